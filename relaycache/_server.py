from __future__ import annotations

import logging
import typing as t

import anyio
import anyio.abc
from anyio.abc import SocketAttribute
from anyio.streams.buffered import BufferedByteReceiveStream
from anyio.streams.stapled import StapledByteStream

from relaycache._core._headers import HOP_BY_HOP_HEADERS, Headers
from relaycache._core.models import Request, Response, text_response
from relaycache._exceptions import HijackUnsupported, ParseError
from relaycache._utils import HEADERS_ENCODING, make_async_iterator

if t.TYPE_CHECKING:  # pragma: no cover
    from relaycache._router import RequestRouter

logger = logging.getLogger("relaycache.server")

__all__ = ("ResponseWriter", "HijackableResponseWriter", "Hijacker", "ProxyServer", "read_request")

MAX_HEAD_SIZE = 65536
MAX_CHUNK_LINE_SIZE = 4096


@t.runtime_checkable
class Hijacker(t.Protocol):
    async def hijack(self) -> anyio.abc.ByteStream: ...


class ResponseWriter:
    """
    Writes one HTTP/1.1 response to a client connection.

    ``headers`` collects the fields sent by the next ``write_head`` call.
    """

    def __init__(self, stream: anyio.abc.ByteSendStream) -> None:
        self._stream = stream
        self.headers = Headers()
        self.started = False

    async def write_head(self, status_code: int, reason_phrase: str = "") -> None:
        if self.started:
            raise RuntimeError("Response head has already been written")
        self.started = True

        if not reason_phrase:
            reason_phrase = Response(status_code=status_code).reason_phrase
        lines = [f"HTTP/1.1 {status_code} {reason_phrase}".rstrip()]
        lines.extend(f"{key}: {value}" for key, value in self.headers.multi_items())
        head = "\r\n".join(lines) + "\r\n\r\n"
        await self._stream.send(head.encode(HEADERS_ENCODING))

    async def write(self, data: bytes) -> None:
        if not self.started:
            await self.write_head(200)
        if data:
            await self._stream.send(data)

    async def send_response(self, response: Response) -> None:
        """
        Relays a complete response: status code unchanged, every header value
        added individually, then the body as it streams in.
        """
        for key, value in response.headers.without(HOP_BY_HOP_HEADERS).multi_items():
            self.headers.add(key, value)
        self.headers["Connection"] = "close"
        await self.write_head(response.status_code, response.reason_phrase)
        async for chunk in response.aiter_stream():
            await self.write(chunk)

    async def send_error(self, status_code: int, text: str = "") -> None:
        await self.send_response(text_response(status_code, text))


class HijackableResponseWriter(ResponseWriter):
    """
    A response writer that can hand the raw connection over to its caller.

    After ``hijack`` the writer can no longer be used; bytes the server had
    already buffered past the request head are replayed by the returned stream.
    """

    def __init__(self, stream: anyio.abc.ByteStream, receive_stream: BufferedByteReceiveStream) -> None:
        super().__init__(stream)
        self._raw_stream = stream
        self._receive_stream = receive_stream
        self.hijacked = False

    async def write_head(self, status_code: int, reason_phrase: str = "") -> None:
        if self.hijacked:
            raise HijackUnsupported("The connection has been hijacked")
        await super().write_head(status_code, reason_phrase)

    async def hijack(self) -> anyio.abc.ByteStream:
        if self.hijacked:
            raise HijackUnsupported("The connection has already been hijacked")
        self.hijacked = True
        return StapledByteStream(send_stream=self._raw_stream, receive_stream=self._receive_stream)


async def read_request(stream: BufferedByteReceiveStream) -> Request:
    """
    Reads one request head and its body from a client connection.

    Raises:
        ParseError: when the request head is malformed.
        anyio.IncompleteRead: when the client closes before a full request arrived.
    """
    try:
        head = await stream.receive_until(b"\r\n\r\n", MAX_HEAD_SIZE)
    except anyio.DelimiterNotFound as exc:
        raise ParseError("Request head is too large") from exc

    lines = head.decode(HEADERS_ENCODING).split("\r\n")
    request_line = lines[0].split(" ")
    if len(request_line) != 3 or not request_line[2].startswith("HTTP/"):
        raise ParseError(f"Malformed request line: {lines[0]!r}")
    method, target, _ = request_line

    headers = Headers()
    for line in lines[1:]:
        key, sep, value = line.partition(":")
        if not sep or not key or key != key.strip():
            raise ParseError(f"Malformed header line: {line!r}")
        headers.add(key, value.strip(" \t"))

    if method == "CONNECT":
        body = b""
    elif "chunked" in headers.get("Transfer-Encoding", "").lower():
        body = await _read_chunked_body(stream)
    elif "Content-Length" in headers:
        try:
            content_length = int(headers.get_list("Content-Length")[-1])
        except ValueError as exc:
            raise ParseError("Invalid Content-Length") from exc
        if content_length < 0:
            raise ParseError("Invalid Content-Length")
        body = await stream.receive_exactly(content_length) if content_length else b""
    else:
        body = b""

    return Request(method=method, url=target, headers=headers, stream=make_async_iterator([body]))


async def _read_chunked_body(stream: BufferedByteReceiveStream) -> bytes:
    chunks = []
    while True:
        try:
            size_line = await stream.receive_until(b"\r\n", MAX_CHUNK_LINE_SIZE)
            size = int(size_line.split(b";", 1)[0].strip(), 16)
        except (anyio.DelimiterNotFound, ValueError) as exc:
            raise ParseError("Malformed chunked body") from exc
        if size == 0:
            # trailer section ends with an empty line
            while await stream.receive_until(b"\r\n", MAX_HEAD_SIZE):
                pass
            return b"".join(chunks)
        chunks.append(await stream.receive_exactly(size))
        if await stream.receive_exactly(2) != b"\r\n":
            raise ParseError("Malformed chunked body")


class ProxyServer:
    """
    Accepts client connections and serves one request per connection.

    :param router: Dispatcher receiving every parsed request
    :type router: RequestRouter
    :param host: Interface to listen on, defaults to "0.0.0.0"
    :type host: str, optional
    :param port: TCP port to listen on, 0 picks a free one, defaults to 8080
    :type port: int, optional
    :param read_timeout: Seconds a client has to send its request, defaults to 10
    :type read_timeout: float, optional
    """

    def __init__(
        self,
        router: RequestRouter,
        host: str = "0.0.0.0",
        port: int = 8080,
        read_timeout: float = 10.0,
    ) -> None:
        self.router = router
        self.host = host
        self.port = port
        self.read_timeout = read_timeout

    async def serve(self, *, task_status: anyio.abc.TaskStatus[int] = anyio.TASK_STATUS_IGNORED) -> None:
        listener = await anyio.create_tcp_listener(local_host=self.host, local_port=self.port)
        async with listener:
            port = listener.extra(SocketAttribute.local_port)
            logger.info("Listening on %s:%s", self.host, port)
            task_status.started(port)
            await listener.serve(self.handle_connection)

    async def handle_connection(self, stream: anyio.abc.SocketStream) -> None:
        peer = stream.extra(SocketAttribute.remote_address, None)
        receive_stream = BufferedByteReceiveStream(stream)
        writer = HijackableResponseWriter(stream, receive_stream)

        try:
            try:
                with anyio.fail_after(self.read_timeout):
                    request = await read_request(receive_stream)
            except ParseError as exc:
                logger.info("Bad request from %s: %s", peer, exc)
                await writer.send_error(400, "Bad Request")
                return
            except TimeoutError:
                logger.debug("Client %s did not send a request in time", peer)
                return
            except (anyio.IncompleteRead, anyio.EndOfStream):
                logger.debug("Client %s closed the connection before sending a request", peer)
                return

            logger.info("%s %s from %s", request.method, request.url, peer)
            await self.router.handle(request, writer)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as exc:
            logger.debug("Connection to %s lost: %s", peer, exc)
        except Exception:
            logger.exception("Unhandled error while serving %s", peer)
        finally:
            if not writer.hijacked:
                await stream.aclose()
