from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from typing_extensions import assert_never

from relaycache._core._spec import (
    AnyState,
    CacheBypass,
    CacheMiss,
    CacheOptions,
    CouldNotBeStored,
    FromCache,
    IdleClient,
    NeedRevalidation,
    StoreAndUse,
    create_idle_state,
)
from relaycache._core.models import Request, Response, text_response
from relaycache._exceptions import SerializationError, UpstreamError
from relaycache._serializers import dump_response
from relaycache._storages import ResponseCache
from relaycache._utils import normalized_uri

logger = logging.getLogger("relaycache.fetcher")


class CachingFetcher:
    """
    Serves plain HTTP requests through the response cache.

    The decision of what to do with a request lives in the states of
    ``relaycache._core._spec``; this class only performs the IO each state asks
    for: cache lookups, upstream round trips and cache writes.

    Args:
        request_sender: Callable performing one upstream round trip.
        cache: Store for serialized responses. Defaults to a new ResponseCache.
        options: Cache options. Defaults to CacheOptions().
        clock: Returns the current POSIX time, used for Expires checks.
    """

    def __init__(
        self,
        request_sender: Callable[[Request], Awaitable[Response]],
        cache: ResponseCache | None = None,
        options: CacheOptions | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.send_request = request_sender
        self.cache = cache if cache is not None else ResponseCache()
        self.options = options if options is not None else CacheOptions()
        self._clock = clock

    async def handle_request(self, request: Request) -> Response:
        key = normalized_uri(request.url)
        state: AnyState = create_idle_state(self.options)

        try:
            while state:
                logger.debug(f"Handling state: {state.__class__.__name__}")
                if isinstance(state, IdleClient):
                    state = state.next(request, await self.cache.lookup(key), self._clock())
                elif isinstance(state, (CacheMiss, CacheBypass, NeedRevalidation)):
                    state = state.next(await self.send_request(state.request))
                elif isinstance(state, StoreAndUse):
                    return await self._handle_store_and_use(state, key)
                elif isinstance(state, CouldNotBeStored):
                    return state.response
                elif isinstance(state, FromCache):
                    return state.response
                else:
                    assert_never(state)
        except UpstreamError as exc:
            logger.warning("Could not fetch %s: %s", request.url, exc)
            return text_response(503, str(exc))

        raise RuntimeError("Unreachable")

    async def _handle_store_and_use(self, state: StoreAndUse, key: str) -> Response:
        response = state.response
        content = await response.aread()

        try:
            data = dump_response(response, content)
        except SerializationError as exc:
            logger.warning("Not caching %s: %s", key, exc)
            response.metadata = {**response.metadata, "stored": False}
            return response

        if state.after_revalidation:
            logger.debug("Replacing expired entry for %s", key)
            await self.cache.overwrite(key, data)
        else:
            logger.debug("Storing response in cache")
            stored = await self.cache.store(key, data)
            response.metadata = {**response.metadata, "stored": stored}
        return response
