from __future__ import annotations

import logging
import typing as t

import anyio
import anyio.abc

from relaycache._exceptions import DialError, HijackUnsupported, ParseError
from relaycache._server import Hijacker, ResponseWriter

logger = logging.getLogger("relaycache.tunnel")

__all__ = ("TunnelEngine", "split_authority")

Dialer = t.Callable[[str, int], t.Awaitable[anyio.abc.ByteStream]]

DEFAULT_DIAL_TIMEOUT = 10.0


def split_authority(target: str) -> t.Tuple[str, int]:
    """
    Split a CONNECT target into host and port.

    Examples:
        >>> split_authority("example.com:443")
        ('example.com', 443)
        >>> split_authority("[::1]:8443")
        ('::1', 8443)
    """
    host, sep, port = target.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ParseError(f"CONNECT target must be host:port, got {target!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ParseError(f"Invalid port in CONNECT target {target!r}")
    return host, port_number


async def _connect_tcp(host: str, port: int) -> anyio.abc.ByteStream:
    return await anyio.connect_tcp(host, port)


class TunnelEngine:
    """
    Relays opaque bytes between a CONNECT client and the requested server.

    Dialing is the only bounded step: once the tunnel is up, each direction is
    copied by its own task until its source ends, and no idle timeout applies.

    :param dialer: Opens the upstream connection, defaults to anyio.connect_tcp
    :type dialer: tp.Optional[Dialer], optional
    :param dial_timeout: Seconds allowed for dialing, defaults to 10
    :type dial_timeout: float, optional
    """

    def __init__(self, dialer: t.Optional[Dialer] = None, dial_timeout: float = DEFAULT_DIAL_TIMEOUT) -> None:
        self._dialer = dialer or _connect_tcp
        self.dial_timeout = dial_timeout

    async def dial(self, target: str) -> anyio.abc.ByteStream:
        host, port = split_authority(target)
        try:
            with anyio.fail_after(self.dial_timeout):
                return await self._dialer(host, port)
        except TimeoutError as exc:
            raise DialError(f"dial {target}: timed out after {self.dial_timeout:g} seconds") from exc
        except (OSError, UnicodeError, ValueError) as exc:
            # hosts that can not be IDNA encoded fail before any connection attempt
            raise DialError(f"dial {target}: {exc}") from exc

    async def establish(self, target: str, writer: ResponseWriter) -> None:
        try:
            upstream = await self.dial(target)
        except DialError as exc:
            logger.warning("Could not open tunnel: %s", exc)
            await writer.send_error(503, str(exc))
            return

        if not isinstance(writer, Hijacker):
            await upstream.aclose()
            await writer.send_error(500, "server does not support hijacking")
            return

        try:
            # the status line has to go out before the writer gives up the connection
            await writer.write_head(200, "Connection established")
            client = await writer.hijack()
        except (HijackUnsupported, anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as exc:
            logger.warning("Could not hijack connection for %s: %s", target, exc)
            await upstream.aclose()
            return

        logger.info("Tunnel to %s established", target)
        await self.relay(client, upstream, target)
        logger.info("Tunnel to %s closed", target)

    async def relay(self, client: anyio.abc.ByteStream, upstream: anyio.abc.ByteStream, label: str = "") -> None:
        """
        Copy bytes in both directions until both copies have finished.
        """
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._exchange, upstream, client, f"{label} client->upstream")
            tg.start_soon(self._exchange, client, upstream, f"{label} upstream->client")

    @staticmethod
    async def _exchange(dst: anyio.abc.ByteStream, src: anyio.abc.ByteStream, label: str) -> None:
        total = 0
        try:
            async for chunk in src:
                await dst.send(chunk)
                total += len(chunk)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as exc:
            logger.debug("%s ended with %r", label, exc)
        finally:
            await dst.aclose()
            await src.aclose()
            logger.debug("%s copied %d bytes", label, total)
