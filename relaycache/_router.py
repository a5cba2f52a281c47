from __future__ import annotations

import logging
import typing as tp
from urllib.parse import urlsplit

from relaycache._async_cache import CachingFetcher
from relaycache._blocklist import BlockListGuard
from relaycache._console import Console
from relaycache._core.models import Request, text_response
from relaycache._exceptions import ParseError, UpstreamError
from relaycache._server import ResponseWriter
from relaycache._tunnel import TunnelEngine
from relaycache._utils import normalized_uri

logger = logging.getLogger("relaycache.router")


class RequestRouter:
    """
    Decides how every inbound request is served.

    1. CONNECT requests are checked against the block list by their
       ``host:port`` target and tunneled.
    2. Requests for the console path go to the console.
    3. Everything else is checked against the block list by its normalized URL
       and served through the caching fetcher.

    Blocked requests get an empty 401 response and cause no upstream traffic.
    """

    def __init__(
        self,
        guard: BlockListGuard,
        tunnel: TunnelEngine,
        fetcher: CachingFetcher,
        console: tp.Optional[Console] = None,
        console_path: str = "/console",
    ) -> None:
        self.guard = guard
        self.tunnel = tunnel
        self.fetcher = fetcher
        self.console = console
        self.console_path = console_path

    async def handle(self, request: Request, writer: ResponseWriter) -> None:
        try:
            await self._dispatch(request, writer)
        except ParseError as exc:
            logger.info("Rejecting %s %s: %s", request.method, request.url, exc)
            if not writer.started:
                await writer.send_error(400, "Bad Request")

    async def _dispatch(self, request: Request, writer: ResponseWriter) -> None:
        if request.method == "CONNECT":
            if await self.guard.is_blocked(request.url):
                logger.info("Tunnel to %s is blocked", request.url)
                await writer.send_response(text_response(401))
                return
            await self.tunnel.establish(request.url, writer)
            return

        if self.console is not None and urlsplit(request.url).path == self.console_path:
            await self.console.handle(request, writer)
            return

        url = normalized_uri(request.url, request.headers.get("Host"))
        if await self.guard.is_blocked(url):
            logger.info("Request for %s is blocked", url)
            await writer.send_response(text_response(401))
            return

        request.url = url
        response = await self.fetcher.handle_request(request)
        try:
            await writer.send_response(response)
        except UpstreamError as exc:
            logger.warning("Upstream failed while relaying %s: %s", url, exc)
        finally:
            await response.aclose()
