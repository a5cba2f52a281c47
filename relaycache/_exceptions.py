__all__ = (
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


class ProxyError(Exception): ...


class ConfigurationError(ProxyError): ...


class DialError(ProxyError): ...


class HijackUnsupported(ProxyError): ...


class SerializationError(ProxyError): ...


class PersistenceError(ProxyError): ...


class DateParseError(ProxyError): ...


class UpstreamError(ProxyError): ...


class ParseError(ProxyError): ...
