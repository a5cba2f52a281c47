from __future__ import annotations

import logging
import typing as tp

from ._exceptions import PersistenceError
from ._files import AsyncBaseFileManager, AsyncFileManager

logger = logging.getLogger("relaycache.blocklist")

__all__ = ("BlockListStore", "FileBlockListStore", "BlockListGuard")


class BlockListStore:
    async def read_lines(self) -> tp.List[str]:
        raise NotImplementedError()

    async def append_line(self, line: str) -> None:
        raise NotImplementedError()


class FileBlockListStore(BlockListStore):
    """
    A newline-delimited text file holding one blocked host or URL fragment per line.

    The file is read in full on every call and only ever appended to.

    :param path: Location of the block list, defaults to "tmp/block"
    :type path: str, optional
    :param file_manager: Object performing the actual file IO, defaults to None
    :type file_manager: tp.Optional[AsyncBaseFileManager], optional
    """

    def __init__(self, path: str = "tmp/block", file_manager: tp.Optional[AsyncBaseFileManager] = None) -> None:
        self.path = path
        self._file_manager = file_manager or AsyncFileManager()

    async def read_lines(self) -> tp.List[str]:
        try:
            content = await self._file_manager.read_from(self.path)
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Could not read block list {self.path!r}: {exc}") from exc
        return content.splitlines()

    async def append_line(self, line: str) -> None:
        try:
            await self._file_manager.append_to(self.path, line + "\n")
        except OSError as exc:
            raise PersistenceError(f"Could not append to block list {self.path!r}: {exc}") from exc


class BlockListGuard:
    """
    Decides whether a request target is blocked.

    An entry blocks every candidate that contains it as a substring, compared
    case-insensitively. Callers pass the ``host:port`` authority for CONNECT
    requests and the normalized absolute URL for everything else, so an entry
    such as ``ads.example.com`` blocks both forms.

    The store is consulted on every check, which makes an appended entry effective
    for the very next request. When the store can not be read the guard fails
    open and lets the request through.
    """

    def __init__(self, store: BlockListStore) -> None:
        self._store = store

    async def entries(self) -> tp.List[str]:
        lines = await self._store.read_lines()
        return [line.strip() for line in lines if line.strip()]

    async def is_blocked(self, candidate: str) -> bool:
        try:
            entries = await self.entries()
        except PersistenceError as exc:
            logger.warning("Block list unavailable, allowing %s: %s", candidate, exc)
            return False

        lowered = candidate.lower()
        for entry in entries:
            if entry.lower() in lowered:
                logger.info("%s is blocked by entry %r", candidate, entry)
                return True
        return False

    async def append(self, url: str) -> bool:
        """
        Adds an entry to the block list.

        :param url: Host or URL fragment to block
        :type url: str
        :return: False when the submission was blank and nothing was written
        :rtype: bool
        """
        entry = url.strip()
        if not entry:
            logger.debug("Ignoring blank block list submission")
            return False
        await self._store.append_line(entry)
        logger.info("Added %r to the block list", entry)
        return True
