from __future__ import annotations

import logging
import types
import typing as t
from typing import AsyncIterator

import httpx

from relaycache._core._headers import HOP_BY_HOP_HEADERS, Headers
from relaycache._core.models import Request, Response
from relaycache._exceptions import UpstreamError
from relaycache._utils import HEADERS_ENCODING

if t.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

logger = logging.getLogger("relaycache.upstream")

__all__ = ("AsyncUpstreamTransport", "internal_to_httpx", "httpx_to_internal")

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


async def internal_to_httpx(value: Request) -> httpx.Request:
    """
    Convert an internal Request into an httpx.Request, dropping hop-by-hop fields.
    """
    headers = value.headers.without(HOP_BY_HOP_HEADERS)
    return httpx.Request(
        method=value.method,
        url=value.url,
        headers=[(k.encode(HEADERS_ENCODING), v.encode(HEADERS_ENCODING)) for k, v in headers.multi_items()],
        content=await value.aread(),
    )


async def _aiter_raw(response: httpx.Response) -> AsyncIterator[bytes]:
    try:
        try:
            content = response.content
        except httpx.ResponseNotRead:
            async for chunk in response.aiter_raw():
                yield chunk
        else:
            # already loaded by the transport, the raw stream is gone
            yield content
    except (httpx.HTTPError, httpx.StreamError) as exc:
        raise UpstreamError(_describe(exc)) from exc
    finally:
        await response.aclose()


def httpx_to_internal(value: httpx.Response) -> Response:
    """
    Convert an httpx.Response into an internal Response.

    The body is exposed as the raw, still content-encoded byte stream, so the
    bytes relayed to the client or written to the cache are the ones the
    upstream server sent.
    """
    headers = Headers(
        [(key.decode(HEADERS_ENCODING), val.decode(HEADERS_ENCODING)) for key, val in value.headers.raw]
    )
    return Response(
        status_code=value.status_code,
        headers=headers,
        stream=_aiter_raw(value),
        reason_phrase=value.reason_phrase,
        http_version=value.http_version,
    )


class AsyncUpstreamTransport:
    """
    Performs a single round trip to the origin server for a proxied request.

    Instances are callables suitable as the ``request_sender`` of a
    ``CachingFetcher``. Redirects are never followed and environment proxy
    settings are ignored, so the proxy always talks to the origin directly.

    :param client: Client used for upstream connections, defaults to None
    :type client: tp.Optional[httpx.AsyncClient], optional
    :param transport: Transport for the default client, mostly useful in tests, defaults to None
    :type transport: tp.Optional[httpx.AsyncBaseTransport], optional
    """

    def __init__(
        self,
        client: t.Optional[httpx.AsyncClient] = None,
        transport: t.Optional[httpx.AsyncBaseTransport] = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            transport=transport,
            follow_redirects=False,
            trust_env=False,
            timeout=timeout,
        )

    async def __call__(self, request: Request) -> Response:
        logger.debug("Sending %s %s upstream", request.method, request.url)
        try:
            httpx_request = await internal_to_httpx(request)
            httpx_response = await self._client.send(httpx_request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Upstream request %s %s failed: %s", request.method, request.url, _describe(exc))
            raise UpstreamError(_describe(exc)) from exc
        return httpx_to_internal(httpx_response)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: t.Optional[t.Type[BaseException]] = None,
        exc_value: t.Optional[BaseException] = None,
        traceback: t.Optional[types.TracebackType] = None,
    ) -> None:
        await self.aclose()
