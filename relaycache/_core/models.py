from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import (
    Any,
    AsyncIterator,
    Mapping,
    TypedDict,
    cast,
)

from relaycache._core._headers import Headers
from relaycache._utils import make_async_iterator


class ResponseMetadata(TypedDict, total=False):
    from_cache: bool
    """Indicates whether the response was served from cache."""

    revalidated: bool
    """Indicates whether the response replaced a stale cache entry."""

    stored: bool
    """Indicates whether the response was stored in cache."""


@dataclass
class Request:
    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    metadata: Mapping[str, Any] = field(default_factory=dict)

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire request body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        collected = b"".join([chunk async for chunk in self.stream])
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    stream: AsyncIterator[bytes] = field(default_factory=lambda: make_async_iterator([]))
    reason_phrase: str = ""
    http_version: str = "HTTP/1.1"
    metadata: ResponseMetadata | Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.reason_phrase:
            try:
                self.reason_phrase = HTTPStatus(self.status_code).phrase
            except ValueError:
                self.reason_phrase = ""

    async def aiter_stream(self) -> AsyncIterator[bytes]:
        if hasattr(self, "collected_body"):
            yield getattr(self, "collected_body")
            return
        async for chunk in self.stream:
            yield chunk

    async def aread(self) -> bytes:
        """
        Asynchronously reads the entire response body without consuming the stream.
        """
        if hasattr(self, "collected_body"):
            return cast(bytes, getattr(self, "collected_body"))

        try:
            collected = b"".join([chunk async for chunk in self.stream])
        finally:
            await self.aclose()
        setattr(self, "collected_body", collected)
        self.stream = make_async_iterator([collected])
        return collected

    async def aclose(self) -> None:
        aclose = getattr(self.stream, "aclose", None)
        if aclose is not None:
            await aclose()


def text_response(status_code: int, text: str = "") -> Response:
    """
    Build a small plain text response, used for errors generated by the proxy itself.
    """
    body = f"{text}\n".encode("utf-8") if text else b""
    headers = Headers()
    if body:
        headers.add("Content-Type", "text/plain; charset=utf-8")
        headers.add("X-Content-Type-Options", "nosniff")
    headers.add("Content-Length", str(len(body)))
    return Response(status_code=status_code, headers=headers, stream=make_async_iterator([body]))
