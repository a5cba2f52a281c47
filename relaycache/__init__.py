from relaycache._core._headers import Headers as Headers
from relaycache._core._spec import (
    AnyState as AnyState,
    CacheBypass as CacheBypass,
    CacheMiss as CacheMiss,
    CacheOptions as CacheOptions,
    CouldNotBeStored as CouldNotBeStored,
    FromCache as FromCache,
    IdleClient as IdleClient,
    NeedRevalidation as NeedRevalidation,
    State as State,
    StoreAndUse as StoreAndUse,
)
from relaycache._core.models import (
    Request as Request,
    Response as Response,
    ResponseMetadata as ResponseMetadata,
)
from relaycache._exceptions import (
    ConfigurationError as ConfigurationError,
    DateParseError as DateParseError,
    DialError as DialError,
    HijackUnsupported as HijackUnsupported,
    ParseError as ParseError,
    PersistenceError as PersistenceError,
    ProxyError as ProxyError,
    SerializationError as SerializationError,
    UpstreamError as UpstreamError,
)
from relaycache._serializers import dump_response as dump_response, load_response as load_response
from relaycache._storages import ResponseCache as ResponseCache
from relaycache._blocklist import (
    BlockListGuard as BlockListGuard,
    BlockListStore as BlockListStore,
    FileBlockListStore as FileBlockListStore,
)
from relaycache._async_cache import CachingFetcher as CachingFetcher
from relaycache._server import (
    HijackableResponseWriter as HijackableResponseWriter,
    ProxyServer as ProxyServer,
    ResponseWriter as ResponseWriter,
)
from relaycache._tunnel import TunnelEngine as TunnelEngine
from relaycache._console import Console as Console
from relaycache._router import RequestRouter as RequestRouter
from relaycache._config import Config as Config, get_default_config as get_default_config

__all__ = (
    # States
    "AnyState",
    "IdleClient",
    "CacheMiss",
    "CacheBypass",
    "NeedRevalidation",
    "FromCache",
    "StoreAndUse",
    "CouldNotBeStored",
    "CacheOptions",
    "State",
    # Models
    "Request",
    "Response",
    "ResponseMetadata",
    "Headers",
    # Serialization and storage
    "dump_response",
    "load_response",
    "ResponseCache",
    # Block list
    "BlockListGuard",
    "BlockListStore",
    "FileBlockListStore",
    # Proxy
    "CachingFetcher",
    "TunnelEngine",
    "RequestRouter",
    "Console",
    "ProxyServer",
    "ResponseWriter",
    "HijackableResponseWriter",
    # Configuration
    "Config",
    "get_default_config",
    # Errors
    "ProxyError",
    "ConfigurationError",
    "DialError",
    "HijackUnsupported",
    "SerializationError",
    "PersistenceError",
    "DateParseError",
    "UpstreamError",
    "ParseError",
)
