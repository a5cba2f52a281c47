from __future__ import annotations

import hashlib
import logging
import typing as tp

import anyio

logger = logging.getLogger("relaycache.storage")

__all__ = ("ResponseCache",)


class _Shard:
    def __init__(self) -> None:
        self.entries: tp.Dict[str, bytes] = {}
        self.lock = anyio.Lock()


class ResponseCache:
    """
    An in-memory store mapping normalized request URIs to serialized responses.

    Keys are spread over a fixed number of shards, each guarded by its own lock,
    so writers for one key never block readers of keys living in other shards.
    The cache has no capacity bound and never evicts on its own.

    :param shards: Number of independently locked partitions, defaults to 16
    :type shards: int, optional
    """

    def __init__(self, shards: int = 16) -> None:
        if shards <= 0:
            raise ValueError("Number of shards must be positive")

        self._shards = [_Shard() for _ in range(shards)]

    def _shard_for(self, uri: str) -> _Shard:
        digest = hashlib.blake2b(uri.encode("utf-8"), digest_size=8).digest()
        return self._shards[int.from_bytes(digest, "big") % len(self._shards)]

    async def lookup(self, uri: str) -> tp.Optional[bytes]:
        """
        Retrieves the serialized response stored for the URI.

        :param uri: Normalized request URI
        :type uri: str
        :return: The stored bytes or None on a miss
        :rtype: tp.Optional[bytes]
        """
        shard = self._shard_for(uri)
        async with shard.lock:
            return shard.entries.get(uri)

    async def store(self, uri: str, data: bytes) -> bool:
        """
        Stores the serialized response unless an entry already exists.

        :param uri: Normalized request URI
        :type uri: str
        :param data: Serialized response
        :type data: bytes
        :return: True when the entry was written
        :rtype: bool
        """
        shard = self._shard_for(uri)
        async with shard.lock:
            if uri in shard.entries:
                logger.debug("Entry for %s already exists, keeping it", uri)
                return False
            shard.entries[uri] = bytes(data)
        logger.debug("Stored %d bytes for %s", len(data), uri)
        return True

    async def overwrite(self, uri: str, data: bytes) -> None:
        """
        Replaces the entry for the URI, used when a stale response was fetched again.

        :param uri: Normalized request URI
        :type uri: str
        :param data: Serialized response
        :type data: bytes
        """
        shard = self._shard_for(uri)
        async with shard.lock:
            shard.entries[uri] = bytes(data)
        logger.debug("Overwrote entry for %s with %d bytes", uri, len(data))

    async def remove(self, uri: str) -> None:
        shard = self._shard_for(uri)
        async with shard.lock:
            shard.entries.pop(uri, None)

    def __contains__(self, uri: object) -> bool:
        if not isinstance(uri, str):
            return False
        return uri in self._shard_for(uri).entries

    def __len__(self) -> int:
        return sum(len(shard.entries) for shard in self._shards)
