from __future__ import annotations

import calendar
from email.utils import parsedate_tz
from typing import AsyncIterator, Iterable

import httpx

from ._exceptions import DateParseError, ParseError

HEADERS_ENCODING = "iso-8859-1"

DEFAULT_PORTS = {"http": 80, "https": 443}


def parse_date(date: str) -> int:
    """
    Parse an HTTP-date into a POSIX timestamp.

    Raises:
        DateParseError: when the value is not a valid HTTP-date.
    """
    parsed = parsedate_tz(date)
    if parsed is None:
        raise DateParseError(f"Invalid HTTP date: {date!r}")
    return calendar.timegm(parsed[:6]) - (parsed[9] or 0)


def normalized_uri(target: str, host: str | None = None) -> str:
    """
    Normalize a request target into the key used by the response cache.

    Absolute-form targets are used as is. Origin-form targets (``/path``) are
    resolved against ``host`` with the ``http`` scheme.

    Examples:
        >>> normalized_uri("HTTP://Example.COM:80")
        'http://example.com/'
        >>> normalized_uri("/a?b=1", host="example.com:8080")
        'http://example.com:8080/a?b=1'
    """
    if target.startswith("/"):
        if not host:
            raise ParseError(f"Cannot resolve {target!r} without a Host header")
        target = f"http://{host}{target}"

    try:
        url = httpx.URL(target)
    except httpx.InvalidURL as exc:
        raise ParseError(f"Invalid request target {target!r}: {exc}") from exc

    if not url.scheme or not url.host:
        raise ParseError(f"Invalid request target {target!r}")

    scheme = url.scheme.lower()
    port = None if url.port == DEFAULT_PORTS.get(scheme) else url.port
    hostname = url.host.lower()
    host_part = f"[{hostname}]" if ":" in hostname else hostname
    authority = host_part if port is None else f"{host_part}:{port}"
    path = url.raw_path.decode("ascii") or "/"
    return f"{scheme}://{authority}{path}"


async def make_async_iterator(
    iterable: Iterable[bytes],
) -> AsyncIterator[bytes]:
    for item in iterable:
        yield item
