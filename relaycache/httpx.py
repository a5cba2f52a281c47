from ._async_httpx import (
    AsyncUpstreamTransport as AsyncUpstreamTransport,
    httpx_to_internal as httpx_to_internal,
    internal_to_httpx as internal_to_httpx,
)

__all__ = ("AsyncUpstreamTransport", "httpx_to_internal", "internal_to_httpx")
