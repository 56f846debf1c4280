"""Signature primitive and address codec.

Example
-------
::

    from delegated_session.crypto import Ed25519KeyManager, encode_address

    manager = Ed25519KeyManager()
    private_bytes, public_bytes = manager.generate_keypair()
    print(encode_address(public_bytes))
"""
from __future__ import annotations

from delegated_session.crypto.encoding import (
    decode_address,
    encode_address,
    is_valid_address,
)
from delegated_session.crypto.key_manager import Ed25519KeyManager, EphemeralKeypair

__all__ = [
    "Ed25519KeyManager",
    "EphemeralKeypair",
    "decode_address",
    "encode_address",
    "is_valid_address",
]
