import pytest

from relaycache._config import get_default_config, validate_config
from relaycache._exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "RELAYCACHE_HOST",
        "RELAYCACHE_PORT",
        "RELAYCACHE_PROTOCOL",
        "RELAYCACHE_BLOCKLIST_PATH",
        "RELAYCACHE_CONSOLE_PATH",
        "RELAYCACHE_DIAL_TIMEOUT",
        "RELAYCACHE_READ_TIMEOUT",
        "RELAYCACHE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert get_default_config() == {
        "host": "0.0.0.0",
        "port": 8080,
        "protocol": "https",
        "blocklist_path": "tmp/block",
        "console_path": "/console",
        "dial_timeout": 10.0,
        "read_timeout": 10.0,
        "log_level": "INFO",
    }


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RELAYCACHE_PORT", "3128")
    monkeypatch.setenv("RELAYCACHE_PROTOCOL", "http")
    monkeypatch.setenv("RELAYCACHE_DIAL_TIMEOUT", "2.5")
    monkeypatch.setenv("RELAYCACHE_BLOCKLIST_PATH", "/etc/relaycache/block")

    config = get_default_config()

    assert config["port"] == 3128
    assert config["protocol"] == "http"
    assert config["dial_timeout"] == 2.5
    assert config["blocklist_path"] == "/etc/relaycache/block"


def test_non_numeric_environment_value(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RELAYCACHE_PORT", "eighty")

    with pytest.raises(ConfigurationError, match="RELAYCACHE_PORT must be a number"):
        get_default_config()


def test_validate_normalizes_names():
    config = validate_config({**get_default_config(), "protocol": "HTTP", "log_level": "debug"})

    assert config["protocol"] == "http"
    assert config["log_level"] == "DEBUG"


@pytest.mark.parametrize(
    "override, message",
    [
        ({"protocol": "ftp"}, "protocol is invalid"),
        ({"port": 70000}, "port must be between 0 and 65535"),
        ({"dial_timeout": 0}, "dial_timeout must be positive"),
        ({"read_timeout": -1.0}, "read_timeout must be positive"),
        ({"console_path": "console"}, "console_path must start with '/'"),
        ({"log_level": "LOUD"}, "log_level is not a logging level name"),
    ],
)
def test_validate_rejects_invalid_values(override, message):
    with pytest.raises(ConfigurationError, match=message):
        validate_config({**get_default_config(), **override})
