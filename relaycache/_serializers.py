from __future__ import annotations

import typing as tp

from relaycache._core._headers import Headers
from relaycache._core.models import Response
from relaycache._exceptions import SerializationError
from relaycache._utils import HEADERS_ENCODING, make_async_iterator

__all__ = ("dump_response", "load_response")

HEAD_TERMINATOR = b"\r\n\r\n"


def dump_response(response: Response, content: bytes) -> bytes:
    """
    Dumps an HTTP response into its HTTP/1.1 wire form.

    The body is written exactly as received. Since it is stored de-chunked,
    ``Transfer-Encoding`` is dropped and ``Content-Length`` always describes
    the stored body.

    :param response: An HTTP response
    :type response: Response
    :param content: The raw body of the response
    :type content: bytes
    :return: Serialized response
    :rtype: bytes
    """
    headers = response.headers.without(["Transfer-Encoding"])
    headers["Content-Length"] = str(len(content))

    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}".rstrip()]
    for key, value in headers.multi_items():
        if "\r" in key or "\n" in key or "\r" in value or "\n" in value or ":" in key:
            raise SerializationError(f"Header {key!r} can not be serialized")
        lines.append(f"{key}: {value}")

    try:
        head = "\r\n".join(lines).encode(HEADERS_ENCODING)
    except UnicodeEncodeError as exc:
        raise SerializationError(f"Response head is not {HEADERS_ENCODING} encodable: {exc}") from exc

    return head + HEAD_TERMINATOR + content


def load_response(data: tp.Union[bytes, bytearray]) -> Response:
    """
    Loads an HTTP response from data produced by ``dump_response``.

    :param data: Serialized response
    :type data: bytes
    :return: HTTP response with a fully buffered body
    :rtype: Response
    """
    head, sep, content = bytes(data).partition(HEAD_TERMINATOR)
    if not sep:
        raise SerializationError("Serialized response has no header terminator")

    head_lines = head.decode(HEADERS_ENCODING).split("\r\n")
    http_version, status_code, reason_phrase = _parse_status_line(head_lines[0])

    headers = Headers()
    for line in head_lines[1:]:
        key, sep_, value = line.partition(":")
        if not sep_ or not key or key != key.strip():
            raise SerializationError(f"Malformed header line: {line!r}")
        headers.add(key, value.strip(" \t"))

    content_length = headers.get_list("Content-Length")
    if content_length:
        try:
            expected = int(content_length[-1])
        except ValueError as exc:
            raise SerializationError(f"Invalid Content-Length: {content_length[-1]!r}") from exc
        if expected != len(content):
            raise SerializationError(f"Truncated body: expected {expected} bytes, got {len(content)}")

    response = Response(
        status_code=status_code,
        headers=headers,
        stream=make_async_iterator([content]),
        reason_phrase=reason_phrase,
        http_version=http_version,
    )
    setattr(response, "collected_body", content)
    return response


def _parse_status_line(line: str) -> tp.Tuple[str, int, str]:
    parts = line.split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/"):
        raise SerializationError(f"Malformed status line: {line!r}")

    status = parts[1]
    if len(status) != 3 or not status.isdigit():
        raise SerializationError(f"Malformed status code: {status!r}")

    reason_phrase = parts[2] if len(parts) > 2 else ""
    return parts[0], int(status), reason_phrase
