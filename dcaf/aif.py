"""Authorization information format (AIF): parsing, encoding and evaluation."""

from __future__ import annotations

import enum
import itertools
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import cbor2

MAX_RESOURCE_LEN = 255
"""Upper bound for the length of a resource path in bytes."""

_UINT64_MAX = (1 << 64) - 1


class AifError(ValueError):
    """Raised when an AIF representation is invalid or cannot be encoded."""


class Method(enum.IntFlag):
    """Request methods as used in AIF permission bitmasks."""

    GET = 0x01
    POST = 0x02
    PUT = 0x04
    DELETE = 0x08
    FETCH = 0x10
    PATCH = 0x20
    IPATCH = 0x40


_METHODS = {
    name: 1 << bit
    for bit, name in enumerate(("GET", "POST", "PUT", "DELETE", "FETCH", "PATCH", "IPATCH"))
}


@dataclass(frozen=True)
class Permission:
    """A resource path together with the bitmask of methods allowed on it."""

    resource: str
    methods: int

    def allows(self, method: int) -> bool:
        """Return True if any bit of ``method`` is set in this permission."""
        return bool(self.methods & method)


def _is_space(char: str) -> bool:
    return char in " \t\n\v\f\r"


def _is_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def _is_path_char(char: str) -> bool:
    # ASCII letters, digits and punctuation.
    return "!" <= char <= "~"


def _skip(text: str, pos: int, predicate: Callable[[str], bool]) -> int:
    while pos < len(text) and predicate(text[pos]):
        pos += 1
    return pos


def _decode_cbor(data: bytes | bytearray | memoryview) -> object:
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError, EOFError) as exc:
        raise AifError(f"invalid CBOR: {exc}") from exc


def parse_aif_string(text: str | bytes) -> list[Permission]:
    """Parse a textual AIF such as ``"GET /a POST /b"``.

    ``text`` is either a string or the CBOR encoding of a text string.
    Permissions are returned most recently parsed first. If parsing stops
    early, the permissions read so far are returned; if none were read,
    AifError is raised.
    """
    if isinstance(text, (bytes, bytearray, memoryview)):
        text = _decode_cbor(text)
    if not isinstance(text, str):
        raise AifError("AIF is not a text string")

    result: list[Permission] = []
    reason = "invalid AIF"
    pos, end = 0, len(text)
    while pos < end:
        pos = _skip(text, pos, _is_space)
        if pos == end:
            raise AifError("invalid AIF")

        start = pos
        pos = _skip(text, pos, _is_alpha)
        method = _METHODS.get(text[start:pos], 0)
        if not method:
            reason = "invalid method in AIF"
            break

        pos = _skip(text, pos, _is_space)
        start = pos
        pos = _skip(text, pos, _is_path_char)
        if pos == start:
            reason = "no resource given in AIF"
            break

        result.insert(0, Permission(text[start:pos], method))

    if not result:
        raise AifError(reason)
    return result


def parse_aif(data: object) -> list[Permission]:
    """Parse an AIF array ``[uri, methods, uri, methods, ...]``.

    ``data`` is either CBOR-encoded bytes or an already decoded list.
    Permissions are returned most recently parsed first. An invalid entry
    stops parsing; entries read before it are returned, and AifError is
    raised if there are none.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        data = _decode_cbor(data)
    if not isinstance(data, (list, tuple)):
        raise AifError("AIF is not an array")
    if len(data) % 2:
        raise AifError("AIF array must have an even number of elements")

    result: list[Permission] = []
    reason = "empty AIF"
    for uri, methods in zip(data[0::2], data[1::2]):
        if isinstance(uri, bytes):
            raw = uri
            try:
                uri = raw.decode("utf-8")
            except UnicodeDecodeError:
                reason = "resource is not valid UTF-8"
                break
        elif isinstance(uri, str):
            raw = uri.encode("utf-8")
        else:
            reason = "resource must be a text or byte string"
            break

        if len(raw) > MAX_RESOURCE_LEN:
            reason = "resource URI too long"
            break

        if (
            not isinstance(methods, int)
            or isinstance(methods, bool)
            or not 0 <= methods <= _UINT64_MAX
        ):
            reason = "methods must be an unsigned integer"
            break

        result.insert(0, Permission(uri, methods))

    if not result:
        raise AifError(reason)
    return result


def aif_to_cbor(permissions: Iterable[Permission]) -> bytes:
    """Encode permissions as a CBOR AIF array."""
    perms = list(permissions)
    if not perms:
        raise AifError("no permissions to encode")
    items = list(itertools.chain.from_iterable((p.resource, p.methods) for p in perms))
    return cbor2.dumps(items)


def evaluate(permissions: Iterable[Permission], uri: str, method: int) -> bool:
    """Decide whether ``method`` on ``uri`` is allowed.

    The request is allowed only if at least one permission for ``uri``
    allows it and none for ``uri`` denies it.
    """
    matching = [p.allows(method) for p in permissions if p.resource == uri]
    return bool(matching) and all(matching)