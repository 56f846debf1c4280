"""Origin note wire format.

A delegating transaction carries the requesting site's origin in its note
field using a fixed tagged layout::

    b"dsess:origin\\x00" | length (1 byte) | origin (UTF-8, 1..64 bytes)

Decoding is strict: the tag must match, the length byte must equal the
number of bytes that follow, and the origin must be valid UTF-8. Anything
else is a :class:`~delegated_session.errors.NoteDecodeError`.
"""
from __future__ import annotations

from delegated_session.errors import NoteDecodeError, TemplateError, TemplateOversizeError

NOTE_TAG: bytes = b"dsess:origin\x00"
MAX_ORIGIN_BYTES: int = 64


def origin_bytes(origin: str) -> bytes:
    """Return the UTF-8 encoding of *origin* after checking its size.

    Raises
    ------
    TemplateError
        If the origin is empty.
    TemplateOversizeError
        If the encoding exceeds :data:`MAX_ORIGIN_BYTES`.
    """
    encoded = origin.encode("utf-8")
    if not encoded:
        raise TemplateError("origin must not be empty")
    if len(encoded) > MAX_ORIGIN_BYTES:
        raise TemplateOversizeError("origin", len(encoded), MAX_ORIGIN_BYTES)
    return encoded


def encode_origin_note(origin: str) -> bytes:
    """Encode *origin* into the tagged note format."""
    encoded = origin_bytes(origin)
    return NOTE_TAG + bytes([len(encoded)]) + encoded


def decode_origin_note(note: bytes) -> str:
    """Decode a tagged note back to its origin string.

    Raises
    ------
    NoteDecodeError
        If *note* is not a well-formed origin note.
    """
    if not note.startswith(NOTE_TAG):
        raise NoteDecodeError("note does not carry an origin tag")
    body = note[len(NOTE_TAG):]
    if not body:
        raise NoteDecodeError("origin note is missing its length byte")
    length, payload = body[0], body[1:]
    if length == 0 or length > MAX_ORIGIN_BYTES:
        raise NoteDecodeError(f"origin length {length} out of range")
    if len(payload) != length:
        raise NoteDecodeError(
            f"origin length byte says {length} but {len(payload)} bytes follow"
        )
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise NoteDecodeError(f"origin is not valid UTF-8: {exc}") from exc


__all__ = [
    "MAX_ORIGIN_BYTES",
    "NOTE_TAG",
    "decode_origin_note",
    "encode_origin_note",
    "origin_bytes",
]
