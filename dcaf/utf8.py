"""UTF-8 conversion for byte strings whose code points lie in 0..255."""

from __future__ import annotations


class Utf8Error(ValueError):
    """Raised when input cannot be decoded to single-byte code points."""


def utf8_length(src: bytes) -> int:
    """Return the number of bytes ``src`` takes when encoded as UTF-8."""
    return sum(1 if byte < 0x80 else 2 for byte in bytes(src))


def uint8_to_utf8(src: bytes) -> bytes:
    """Encode each byte of ``src`` as a UTF-8 code point."""
    return bytes(src).decode("latin-1").encode("utf-8")


def utf8_to_uint8(src: bytes) -> bytes:
    """Decode UTF-8 whose code points all lie between 0 and 255."""
    try:
        return bytes(src).decode("utf-8").encode("latin-1")
    except (UnicodeDecodeError, UnicodeEncodeError) as exc:
        raise Utf8Error(f"cannot decode to single bytes: {exc}") from exc