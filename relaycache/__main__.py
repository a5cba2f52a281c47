import sys

from relaycache._cli import main

sys.exit(main())
