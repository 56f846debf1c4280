"""Ed25519 key generation, signing, and verification.

A thin wrapper around the ``cryptography`` package's Ed25519 primitives.
Long-lived key material (owner keys) is handled as raw 32-byte values so
callers can store or transmit it without depending on this module's types.
Ephemeral session keys are wrapped in :class:`EphemeralKeypair`, which keeps
the private key out of reach once the session ends.
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from delegated_session.crypto.encoding import encode_address
from delegated_session.errors import KeyDestroyedError

PUBLIC_KEY_LENGTH: int = 32
SIGNATURE_LENGTH: int = 64


class Ed25519KeyManager:
    """Ed25519 key management: generate, sign, and verify.

    Example
    -------
    ::

        manager = Ed25519KeyManager()
        private_bytes, public_bytes = manager.generate_keypair()
        signature = manager.sign(private_bytes, b"hello world")
        assert manager.verify(public_bytes, signature, b"hello world")
    """

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Generate a new Ed25519 keypair.

        Returns
        -------
        tuple[bytes, bytes]
            A ``(private_key_bytes, public_key_bytes)`` pair, both 32 bytes.
        """
        private_key = Ed25519PrivateKey.generate()
        private_bytes = private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        return private_bytes, _raw_public_key(private_key)

    def public_key_for(self, private_key_bytes: bytes) -> bytes:
        """Derive the raw public key for a raw private key."""
        return _raw_public_key(Ed25519PrivateKey.from_private_bytes(private_key_bytes))

    def sign(self, private_key_bytes: bytes, data: bytes) -> bytes:
        """Sign *data* with a raw Ed25519 private key, returning 64 bytes."""
        private_key = Ed25519PrivateKey.from_private_bytes(private_key_bytes)
        return private_key.sign(data)

    def verify(self, public_key_bytes: bytes, signature: bytes, data: bytes) -> bool:
        """Verify an Ed25519 signature.

        Never raises: a malformed public key or a signature of the wrong
        length is reported as ``False`` like any other failed verification.
        """
        if len(public_key_bytes) != PUBLIC_KEY_LENGTH or len(signature) != SIGNATURE_LENGTH:
            return False
        try:
            public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
            public_key.verify(signature, data)
        except (InvalidSignature, ValueError):
            return False
        return True


class EphemeralKeypair:
    """A session-scoped Ed25519 keypair.

    The private key lives only inside this object. :meth:`destroy` drops it,
    after which :meth:`sign` raises :class:`KeyDestroyedError`. The keypair
    is a context manager that destroys itself on exit.

    Example
    -------
    ::

        with EphemeralKeypair.generate() as keypair:
            signature = keypair.sign(b"payload")
        assert keypair.destroyed
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key: Ed25519PrivateKey | None = private_key
        self._public_key: bytes = _raw_public_key(private_key)

    @classmethod
    def generate(cls) -> "EphemeralKeypair":
        """Create a keypair from the operating system's CSPRNG."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, private_key_bytes: bytes) -> "EphemeralKeypair":
        """Rebuild a keypair from a raw 32-byte private key."""
        return cls(Ed25519PrivateKey.from_private_bytes(private_key_bytes))

    @property
    def public_key(self) -> bytes:
        """The raw 32-byte public key (``cspk``)."""
        return self._public_key

    @property
    def address(self) -> str:
        """The public key in address form."""
        return encode_address(self._public_key)

    @property
    def destroyed(self) -> bool:
        return self._private_key is None

    def sign(self, data: bytes) -> bytes:
        """Sign *data* with the ephemeral private key.

        Raises
        ------
        KeyDestroyedError
            If the keypair has been destroyed.
        """
        if self._private_key is None:
            raise KeyDestroyedError(
                f"Ephemeral key {self.address} has been destroyed"
            )
        return self._private_key.sign(data)

    def private_bytes(self) -> bytes:
        """Export the raw private key for client-side persistence.

        Raises
        ------
        KeyDestroyedError
            If the keypair has been destroyed.
        """
        if self._private_key is None:
            raise KeyDestroyedError(
                f"Ephemeral key {self.address} has been destroyed"
            )
        return self._private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )

    def destroy(self) -> None:
        """Drop the private key. Idempotent."""
        self._private_key = None

    def __enter__(self) -> "EphemeralKeypair":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    def __repr__(self) -> str:
        state = "destroyed" if self.destroyed else "live"
        return f"EphemeralKeypair(public_key={self.address!r}, {state})"


def _raw_public_key(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


__all__ = [
    "Ed25519KeyManager",
    "EphemeralKeypair",
    "PUBLIC_KEY_LENGTH",
    "SIGNATURE_LENGTH",
]
