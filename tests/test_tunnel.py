import typing as tp

import anyio
import pytest

from relaycache import ResponseWriter, TunnelEngine
from relaycache._exceptions import DialError, ParseError
from relaycache._tunnel import split_authority


class ClosableStream:
    def __init__(self) -> None:
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.parametrize(
    "target, expected",
    [
        ("example.com:443", ("example.com", 443)),
        ("127.0.0.1:8080", ("127.0.0.1", 8080)),
        ("[::1]:8443", ("::1", 8443)),
    ],
)
def test_split_authority(target: str, expected: tp.Tuple[str, int]):
    assert split_authority(target) == expected


@pytest.mark.parametrize("target", ["example.com", ":443", "example.com:", "example.com:http", "example.com:0"])
def test_split_authority_rejects_invalid_targets(target: str):
    with pytest.raises(ParseError):
        split_authority(target)


@pytest.mark.anyio
async def test_dial_error_is_reported():
    async def refuse(host: str, port: int) -> tp.Any:
        raise ConnectionRefusedError(111, "Connection refused")

    with pytest.raises(DialError, match=r"^dial example\.com:443: "):
        await TunnelEngine(dialer=refuse).dial("example.com:443")


@pytest.mark.anyio
async def test_dial_times_out():
    async def hang(host: str, port: int) -> tp.Any:
        await anyio.sleep_forever()

    with pytest.raises(DialError) as exc_info:
        await TunnelEngine(dialer=hang, dial_timeout=0.05).dial("example.com:443")

    assert str(exc_info.value) == "dial example.com:443: timed out after 0.05 seconds"


@pytest.mark.anyio
async def test_unreachable_target_gets_503(recording_stream):
    async def refuse(host: str, port: int) -> tp.Any:
        raise ConnectionRefusedError(111, "Connection refused")

    writer = ResponseWriter(recording_stream)
    await TunnelEngine(dialer=refuse).establish("example.com:443", writer)

    head, _, body = recording_stream.data.partition(b"\r\n\r\n")
    assert head.startswith(b"HTTP/1.1 503 Service Unavailable\r\n")
    assert body.startswith(b"dial example.com:443: ")


@pytest.mark.anyio
async def test_writer_without_hijacking_gets_500(recording_stream):
    upstream = ClosableStream()

    async def dial(host: str, port: int) -> tp.Any:
        return upstream

    writer = ResponseWriter(recording_stream)
    await TunnelEngine(dialer=dial).establish("example.com:443", writer)

    head, _, body = recording_stream.data.partition(b"\r\n\r\n")
    assert head.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
    assert body == b"server does not support hijacking\n"
    assert upstream.closed


class PipeEnd:
    """One side of a tunnel, fed through a memory object stream."""

    def __init__(self, receive: tp.Any) -> None:
        self._receive = receive
        self.received: tp.List[bytes] = []
        self.closed = False

    def __aiter__(self) -> "PipeEnd":
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self._receive.receive()
        except anyio.EndOfStream:
            raise StopAsyncIteration

    async def send(self, data: bytes) -> None:
        self.received.append(data)

    async def aclose(self) -> None:
        self.closed = True
        await self._receive.aclose()


@pytest.mark.anyio
async def test_relay_copies_both_directions():
    from_client, client_receive = anyio.create_memory_object_stream[bytes](10)
    from_upstream, upstream_receive = anyio.create_memory_object_stream[bytes](10)
    client = PipeEnd(client_receive)
    upstream = PipeEnd(upstream_receive)

    async with anyio.create_task_group() as tg:
        tg.start_soon(TunnelEngine().relay, client, upstream, "test")

        await from_client.send(b"\x16\x03\x01 hello")
        await anyio.wait_all_tasks_blocked()
        await from_upstream.send(b"\x16\x03\x03 world")
        await anyio.wait_all_tasks_blocked()
        await from_client.aclose()
        await from_upstream.aclose()

    assert upstream.received == [b"\x16\x03\x01 hello"]
    assert client.received == [b"\x16\x03\x03 world"]
    assert client.closed and upstream.closed


@pytest.mark.anyio
async def test_unencodable_host_is_a_dial_error():
    async def reject(host: str, port: int) -> tp.Any:
        raise UnicodeError("label empty or too long")

    with pytest.raises(DialError, match=r"^dial example\.com:443: label empty or too long$"):
        await TunnelEngine(dialer=reject).dial("example.com:443")


@pytest.mark.anyio
async def test_unencodable_host_gets_503(recording_stream):
    writer = ResponseWriter(recording_stream)

    await TunnelEngine(dial_timeout=5.0).establish("xn--a..\xe9\xe9.com:443", writer)

    head, _, body = recording_stream.data.partition(b"\r\n\r\n")
    assert head.startswith(b"HTTP/1.1 503 Service Unavailable\r\n")
    assert body.startswith("dial xn--a..\xe9\xe9.com:443: ".encode("utf-8"))
