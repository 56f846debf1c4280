"""Text encodings for account addresses and public keys.

Address format
--------------
1. Take the 32-byte account identifier (an Ed25519 public key, or the
   digest of a contract program).
2. Append the first 4 bytes of ``sha256(identifier)`` as a checksum.
3. Encode the 36-byte result with base58btc.

Public keys and contract accounts share this single text form, so a
delegating transaction's ``sender`` and ``receiver`` decode straight back
to the raw keys the authorization predicate verifies against.
"""
from __future__ import annotations

import hashlib

from delegated_session.errors import AddressError

ACCOUNT_ID_LENGTH: int = 32
_CHECKSUM_LENGTH: int = 4

# ---------------------------------------------------------------------------
# Base58btc codec
# ---------------------------------------------------------------------------

_BASE58_ALPHABET: bytes = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX: dict[str, int] = {
    char: index for index, char in enumerate(_BASE58_ALPHABET.decode("ascii"))
}


def base58btc_encode(data: bytes) -> str:
    """Encode *data* to a base58btc string."""
    n = int.from_bytes(data, "big")
    result: list[bytes] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_BASE58_ALPHABET[remainder : remainder + 1])
    # Leading zero bytes become '1' characters
    for byte in data:
        if byte == 0:
            result.append(b"1")
        else:
            break
    return b"".join(reversed(result)).decode("ascii")


def base58btc_decode(encoded: str) -> bytes:
    """Decode a base58btc string back to bytes.

    Raises
    ------
    ValueError
        If the string contains a character outside the base58btc alphabet.
    """
    n = 0
    for char in encoded:
        index = _BASE58_INDEX.get(char)
        if index is None:
            raise ValueError(f"Invalid base58btc character {char!r}")
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + result


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------


def _checksum(account_id: bytes) -> bytes:
    return hashlib.sha256(account_id).digest()[:_CHECKSUM_LENGTH]


def encode_address(account_id: bytes) -> str:
    """Encode a 32-byte account identifier as an address string.

    Raises
    ------
    AddressError
        If *account_id* is not exactly 32 bytes.
    """
    if len(account_id) != ACCOUNT_ID_LENGTH:
        raise AddressError(
            f"Account identifiers are {ACCOUNT_ID_LENGTH} bytes, got {len(account_id)}"
        )
    return base58btc_encode(account_id + _checksum(account_id))


def decode_address(address: str) -> bytes:
    """Decode an address string to its 32-byte account identifier.

    Raises
    ------
    AddressError
        If the string is not base58btc, has the wrong length, or its
        checksum does not match.
    """
    try:
        raw = base58btc_decode(address)
    except ValueError as exc:
        raise AddressError(f"Malformed address {address!r}: {exc}") from exc
    if len(raw) != ACCOUNT_ID_LENGTH + _CHECKSUM_LENGTH:
        raise AddressError(f"Malformed address {address!r}: wrong length")
    account_id, checksum = raw[:ACCOUNT_ID_LENGTH], raw[ACCOUNT_ID_LENGTH:]
    if checksum != _checksum(account_id):
        raise AddressError(f"Malformed address {address!r}: checksum mismatch")
    return account_id


def is_valid_address(address: str) -> bool:
    """Return True if *address* decodes cleanly."""
    try:
        decode_address(address)
    except AddressError:
        return False
    return True


__all__ = [
    "ACCOUNT_ID_LENGTH",
    "base58btc_decode",
    "base58btc_encode",
    "decode_address",
    "encode_address",
    "is_valid_address",
]
