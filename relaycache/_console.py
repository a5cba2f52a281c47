from __future__ import annotations

import html
import logging
import typing as tp
from urllib.parse import parse_qs

from relaycache._blocklist import BlockListGuard
from relaycache._core._headers import Headers
from relaycache._core.models import Request, Response
from relaycache._exceptions import PersistenceError
from relaycache._server import ResponseWriter
from relaycache._utils import make_async_iterator

logger = logging.getLogger("relaycache.console")

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>relaycache console</title></head>
<body>
<h1>Management console</h1>
{requested}
<form method="POST">
<label for="URL">Block host or URL</label>
<input type="text" id="URL" name="URL">
<input type="submit" value="Block">
</form>
<h2>Blocked</h2>
<ul>
{entries}
</ul>
</body>
</html>
"""


def render_console(entries: tp.List[str], requested_url: tp.Optional[str] = None) -> str:
    requested = f"<p>Requested: {html.escape(requested_url)}</p>" if requested_url else ""
    items = "\n".join(f"<li>{html.escape(entry)}</li>" for entry in entries)
    return PAGE_TEMPLATE.format(requested=requested, entries=items)


class Console:
    """
    The management page of the proxy.

    GET shows the block list and the requested URL. POST reads the ``URL``
    form field and appends it to the block list; blank submissions are ignored.
    """

    def __init__(self, guard: BlockListGuard) -> None:
        self.guard = guard

    async def handle(self, request: Request, writer: ResponseWriter) -> None:
        logger.info("Console requested")
        requested_url: tp.Optional[str] = request.url

        if request.method == "POST":
            requested_url = None
            form = parse_qs((await request.aread()).decode("utf-8", "replace"))
            submitted = form.get("URL", [""])[0]
            try:
                await self.guard.append(submitted)
            except PersistenceError as exc:
                logger.error("Could not add %r to the block list: %s", submitted, exc)

        try:
            entries = await self.guard.entries()
        except PersistenceError as exc:
            logger.warning("Could not read block list: %s", exc)
            entries = []

        body = render_console(entries, requested_url).encode("utf-8")
        headers = Headers(
            [
                ("Content-Type", "text/html; charset=utf-8"),
                ("Content-Length", str(len(body))),
            ]
        )
        await writer.send_response(Response(status_code=200, headers=headers, stream=make_async_iterator([body])))
