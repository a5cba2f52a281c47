from __future__ import annotations

from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

HeaderPairs = Iterable[Tuple[str, str]]
HeaderInput = Union[Mapping[str, Union[str, List[str]]], HeaderPairs, "Headers", None]

# Connection-scoped fields that must not be forwarded by a proxy (RFC 9110 Section 7.6.1).
HOP_BY_HOP_HEADERS = frozenset(
    [
        "connection",
        "keep-alive",
        "proxy-connection",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    ]
)


class Headers(MutableMapping[str, str]):
    """
    An ordered, case-insensitive multi-map of HTTP header fields.

    Every field keeps the casing it was first seen with and all of its values
    in arrival order. ``headers[key]`` joins the values with ``", "``, while
    ``get_list`` and ``multi_items`` expose them one by one.

    Example:
        >>> headers = Headers([("Set-Cookie", "a=1"), ("set-cookie", "b=2")])
        >>> headers.get_list("SET-COOKIE")
        ['a=1', 'b=2']
        >>> headers.multi_items()
        [('Set-Cookie', 'a=1'), ('set-cookie', 'b=2')]
    """

    def __init__(self, headers: HeaderInput = None) -> None:
        self._pairs: List[Tuple[str, str]] = []

        if headers is None:
            return
        if isinstance(headers, Headers):
            self._pairs = list(headers._pairs)
        elif isinstance(headers, Mapping):
            for key, value in headers.items():
                for item in [value] if isinstance(value, str) else value:
                    self._pairs.append((key, item))
        else:
            for key, value in headers:
                self._pairs.append((key, value))

    def add(self, key: str, value: str) -> None:
        """Append a value without touching the existing ones."""
        self._pairs.append((key, value))

    def extend(self, other: HeaderInput) -> None:
        """Append every field of ``other``, preserving multiplicity."""
        self._pairs.extend(Headers(other).multi_items())

    def get_list(self, key: str) -> List[str]:
        lowered = key.lower()
        return [value for name, value in self._pairs if name.lower() == lowered]

    def multi_items(self) -> List[Tuple[str, str]]:
        return list(self._pairs)

    def copy(self) -> "Headers":
        return Headers(self)

    def without(self, keys: Iterable[str]) -> "Headers":
        """Return a copy with the given fields removed (case-insensitive)."""
        exclude = {k.lower() for k in keys}
        return Headers([(k, v) for k, v in self._pairs if k.lower() not in exclude])

    def __getitem__(self, key: str) -> str:
        values = self.get_list(key)
        if not values:
            raise KeyError(key)
        return ", ".join(values)

    def __setitem__(self, key: str, value: str) -> None:
        lowered = key.lower()
        self._pairs = [(k, v) for k, v in self._pairs if k.lower() != lowered]
        self._pairs.append((key, value))

    def __delitem__(self, key: str) -> None:
        lowered = key.lower()
        remaining = [(k, v) for k, v in self._pairs if k.lower() != lowered]
        if len(remaining) == len(self._pairs):
            raise KeyError(key)
        self._pairs = remaining

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        lowered = key.lower()
        return any(name.lower() == lowered for name, _ in self._pairs)

    def __iter__(self) -> Iterator[str]:
        seen: Dict[str, None] = {}
        for name, _ in self._pairs:
            if name.lower() not in seen:
                seen[name.lower()] = None
                yield name

    def __len__(self) -> int:
        return len({name.lower() for name, _ in self._pairs})

    def __repr__(self) -> str:
        return f"Headers({self._pairs!r})"

    def __eq__(self, other_headers: Any) -> bool:
        if not isinstance(other_headers, Headers):
            return False
        return [(k.lower(), v) for k, v in self._pairs] == [(k.lower(), v) for k, v in other_headers._pairs]


def parse_cache_control(cache_control_values: List[str]) -> Dict[str, Optional[str]]:
    """
    Split ``Cache-Control`` field values into a directive mapping.

    Directive names are lower-cased; quoted arguments are unquoted. Commas
    inside quoted arguments do not split directives.

    Example:
        >>> parse_cache_control(['no-cache="Set-Cookie, Foo"', "max-age=60"])
        {'no-cache': 'Set-Cookie, Foo', 'max-age': '60'}
    """
    directives: Dict[str, Optional[str]] = {}

    for cache_control_value in cache_control_values:
        for directive in _split_directives(cache_control_value):
            key, sep, value = directive.partition("=")
            key = key.strip().lower()
            if not key:
                continue
            if not sep:
                directives[key] = None
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] == '"':
                value = value[1:-1].replace('\\"', '"')
            directives[key] = value
    return directives


def _split_directives(value: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    in_quotes = False
    escaped = False

    for char in value:
        if escaped:
            escaped = False
            current.append(char)
            continue
        if char == "\\" and in_quotes:
            escaped = True
            current.append(char)
            continue
        if char == '"':
            in_quotes = not in_quotes
        if char == "," and not in_quotes:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]
