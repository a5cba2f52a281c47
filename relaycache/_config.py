import logging
import os
from typing import TypedDict

from ._exceptions import ConfigurationError

PROTOCOLS = ("http", "https")


class Config(TypedDict, total=False):
    # interface the proxy listens on
    # override default value with the environment variable RELAYCACHE_HOST
    host: str
    """
    The interface the proxy listens on.
    """

    # override default value with the environment variable RELAYCACHE_PORT
    port: int
    """
    The TCP port the proxy listens on.
    """

    # override default value with the environment variable RELAYCACHE_PROTOCOL
    protocol: str
    """
    Protocol label of the proxy, "http" or "https". Tunneled traffic is never terminated either way.
    """

    # override default value with the environment variable RELAYCACHE_BLOCKLIST_PATH
    blocklist_path: str
    """
    Path of the newline-delimited block list file.
    """

    # override default value with the environment variable RELAYCACHE_CONSOLE_PATH
    console_path: str
    """
    Request path that serves the management console.
    """

    # seconds, how long dialing a CONNECT target may take
    # override default value with the environment variable RELAYCACHE_DIAL_TIMEOUT
    dial_timeout: float
    """
    How long dialing a CONNECT target may take (in seconds).
    """

    # seconds, how long a client may take to send its request
    # override default value with the environment variable RELAYCACHE_READ_TIMEOUT
    read_timeout: float
    """
    How long a client may take to send its request (in seconds).
    """

    # override default value with the environment variable RELAYCACHE_LOG_LEVEL
    log_level: str
    """
    Name of the logging level, e.g. "INFO" or "DEBUG".
    """


def _number(name: str, default: str, kind: type) -> float:
    raw = os.getenv(name, default)
    try:
        return kind(raw)  # type: ignore[no-any-return]
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def get_default_config() -> Config:
    """Get the default configuration, taking environment overrides into account."""

    HOST = os.getenv("RELAYCACHE_HOST", "0.0.0.0")
    PORT = int(_number("RELAYCACHE_PORT", "8080", int))
    PROTOCOL = os.getenv("RELAYCACHE_PROTOCOL", "https")
    BLOCKLIST_PATH = os.getenv("RELAYCACHE_BLOCKLIST_PATH", "tmp/block")
    CONSOLE_PATH = os.getenv("RELAYCACHE_CONSOLE_PATH", "/console")
    DIAL_TIMEOUT = _number("RELAYCACHE_DIAL_TIMEOUT", "10", float)
    READ_TIMEOUT = _number("RELAYCACHE_READ_TIMEOUT", "10", float)
    LOG_LEVEL = os.getenv("RELAYCACHE_LOG_LEVEL", "INFO")

    return {
        "host": HOST,
        "port": PORT,
        "protocol": PROTOCOL,
        "blocklist_path": BLOCKLIST_PATH,
        "console_path": CONSOLE_PATH,
        "dial_timeout": DIAL_TIMEOUT,
        "read_timeout": READ_TIMEOUT,
        "log_level": LOG_LEVEL,
    }


def validate_config(config: Config) -> Config:
    """
    Check a configuration before the proxy starts.

    Raises:
        ConfigurationError: for any value the proxy can not run with.
    """
    protocol = config.get("protocol", "https").lower()
    if protocol not in PROTOCOLS:
        raise ConfigurationError(f"protocol is invalid; must be one of {', '.join(PROTOCOLS)}, got {protocol!r}")

    port = config.get("port", 8080)
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"port must be between 0 and 65535, got {port}")

    for key in ("dial_timeout", "read_timeout"):
        value = config.get(key, 10.0)
        if value <= 0:
            raise ConfigurationError(f"{key} must be positive, got {value}")

    console_path = config.get("console_path", "/console")
    if not console_path.startswith("/"):
        raise ConfigurationError(f"console_path must start with '/', got {console_path!r}")

    log_level = config.get("log_level", "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigurationError(f"log_level is not a logging level name, got {log_level!r}")

    return {**config, "protocol": protocol, "log_level": log_level}
