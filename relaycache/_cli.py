"""Command line entry point of the proxy."""

from __future__ import annotations

import argparse
import logging
import sys
import typing as tp

import anyio

from relaycache._async_cache import CachingFetcher
from relaycache._async_httpx import AsyncUpstreamTransport
from relaycache._blocklist import BlockListGuard, FileBlockListStore
from relaycache._config import Config, get_default_config, validate_config
from relaycache._console import Console
from relaycache._exceptions import ConfigurationError
from relaycache._router import RequestRouter
from relaycache._server import ProxyServer
from relaycache._storages import ResponseCache
from relaycache._tunnel import TunnelEngine

logger = logging.getLogger("relaycache")


def parse_args(argv: tp.Optional[tp.Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="relaycache",
        description="Forward HTTP/HTTPS proxy with response caching and a host block list",
    )
    parser.add_argument("--proto", dest="protocol", help="Proxy protocol label, http or https (default: https)")
    parser.add_argument("--host", help="IP address to listen on (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument("--blocklist", dest="blocklist_path", help="Path to the block list (default: tmp/block)")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    config = get_default_config()
    for key in ("protocol", "host", "port", "blocklist_path", "log_level"):
        value = getattr(args, key)
        if value is not None:
            config[key] = value  # type: ignore[literal-required]
    return validate_config(config)


def build_server(config: Config, cache: tp.Optional[ResponseCache] = None) -> ProxyServer:
    """Wire every component of the proxy together."""

    guard = BlockListGuard(FileBlockListStore(config["blocklist_path"]))
    fetcher = CachingFetcher(AsyncUpstreamTransport(), cache=cache if cache is not None else ResponseCache())
    router = RequestRouter(
        guard=guard,
        tunnel=TunnelEngine(dial_timeout=config["dial_timeout"]),
        fetcher=fetcher,
        console=Console(guard),
        console_path=config["console_path"],
    )
    return ProxyServer(router, host=config["host"], port=config["port"], read_timeout=config["read_timeout"])


def main(argv: tp.Optional[tp.Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args)
    except ConfigurationError as exc:
        logging.basicConfig(level=logging.ERROR)
        logger.error("%s", exc)
        return 2

    logging.basicConfig(
        level=config["log_level"].upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting %s proxy", config["protocol"].upper())

    server = build_server(config)
    try:
        anyio.run(server.serve)
    except KeyboardInterrupt:
        logger.info("Shutting down")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
