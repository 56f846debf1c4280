"""DelegationIssuer — client-side authentication flow.

Issuing a delegation:

1. generate a fresh ephemeral keypair from the OS CSPRNG;
2. build a delegating transaction from the owner to the ephemeral public
   key, carrying the origin note and an absolute expiry (``now + ttl``);
3. await the owner signer's signature over the transaction's canonical
   bytes.

Step 3 may wait on a human approving the request in a wallet. It is an
``asyncio`` await bounded by the configured signer timeout and can be
cancelled; any failure, timeout or cancellation destroys the ephemeral
keypair before the error propagates, so no secret outlives a failed issue.
"""
from __future__ import annotations

import asyncio
import logging
from typing import NamedTuple, Protocol, runtime_checkable

from delegated_session.audit import AuditLogger
from delegated_session.clock import Clock, system_clock
from delegated_session.config import DelegationSettings
from delegated_session.contract.template import ContractImage
from delegated_session.crypto.encoding import decode_address, encode_address
from delegated_session.crypto.key_manager import Ed25519KeyManager, EphemeralKeypair
from delegated_session.errors import OwnerSignatureDeclinedError
from delegated_session.transaction.model import Transaction
from delegated_session.transaction.note import decode_origin_note, origin_bytes

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Owner signer collaborator
# ---------------------------------------------------------------------------


@runtime_checkable
class OwnerSigner(Protocol):
    """Anything able to obtain the owner's signature over a byte string.

    Implementations typically forward the request to a wallet and wait for
    the user to approve it. Raising any exception means "declined".
    """

    @property
    def public_key(self) -> bytes:
        """The owner's raw 32-byte Ed25519 public key."""
        ...

    async def sign(self, message: bytes) -> bytes:
        """Return the owner's 64-byte signature over *message*."""
        ...


class LocalOwnerSigner:
    """Owner signer backed by a raw private key held in this process.

    Suitable for tests, scripts and the CLI; real deployments sign in the
    owner's wallet instead.

    Parameters
    ----------
    private_key:
        The owner's raw 32-byte Ed25519 private key.
    key_manager:
        Optional key manager; a default instance is created if omitted.
    """

    def __init__(
        self, private_key: bytes, key_manager: Ed25519KeyManager | None = None
    ) -> None:
        self._key_manager = key_manager or Ed25519KeyManager()
        self._private_key = private_key
        self._public_key = self._key_manager.public_key_for(private_key)

    @classmethod
    def generate(cls) -> "LocalOwnerSigner":
        """Create a signer for a freshly generated owner key."""
        manager = Ed25519KeyManager()
        private_key, _ = manager.generate_keypair()
        return cls(private_key, key_manager=manager)

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def address(self) -> str:
        return encode_address(self._public_key)

    async def sign(self, message: bytes) -> bytes:
        return self._key_manager.sign(self._private_key, message)


# ---------------------------------------------------------------------------
# Delegation
# ---------------------------------------------------------------------------


class Delegation(NamedTuple):
    """The three artifacts produced by :meth:`DelegationIssuer.authenticate`.

    Unpacks as ``keypair, transaction, signature``.
    """

    keypair: EphemeralKeypair
    transaction: Transaction
    signature: bytes

    @property
    def expiry(self) -> int:
        return self.transaction.expiry

    @property
    def origin(self) -> str:
        return decode_origin_note(self.transaction.note)

    @property
    def owner_public_key(self) -> bytes:
        return decode_address(self.transaction.sender)

    def is_expired(self, now: int) -> bool:
        """True once *now* has reached the expiry (strict boundary)."""
        return not now < self.transaction.expiry

    def is_bound_to(self, image: ContractImage) -> bool:
        """True if this delegation's owner and origin match *image*."""
        try:
            return self.owner_public_key in image.owners and self.origin == image.origin
        except ValueError:
            return False

    def to_dict(self) -> dict[str, object]:
        """Serialize for client-side storage. Includes the ephemeral secret.

        Raises
        ------
        KeyDestroyedError
            If the keypair has been destroyed.
        """
        return {
            "session_private_key": self.keypair.private_bytes().hex(),
            "transaction": self.transaction.to_dict(),
            "signature": self.signature.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Delegation":
        transaction = data["transaction"]
        if not isinstance(transaction, dict):
            raise ValueError("transaction must be an object")
        return cls(
            keypair=EphemeralKeypair.from_private_bytes(
                bytes.fromhex(str(data["session_private_key"]))
            ),
            transaction=Transaction.from_dict(transaction),
            signature=bytes.fromhex(str(data["signature"])),
        )


# ---------------------------------------------------------------------------
# Issuer
# ---------------------------------------------------------------------------


class DelegationIssuer:
    """Issue origin-bound delegations to fresh ephemeral keys.

    Parameters
    ----------
    settings:
        TTL bounds, signer timeout and network id.
    key_manager:
        Used to check the signature the owner signer returns.
    clock:
        Client clock used to compute the absolute expiry.
    audit:
        Optional audit logger. Defaults to one writing to
        ``settings.audit_log_path`` when that is set.

    Example
    -------
    ::

        issuer = DelegationIssuer()
        keypair, delegation_tx, signature = await issuer.authenticate(
            owner_signer, "game.example", ttl=3600
        )
    """

    def __init__(
        self,
        settings: DelegationSettings | None = None,
        key_manager: Ed25519KeyManager | None = None,
        clock: Clock | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._settings = settings or DelegationSettings()
        self._key_manager = key_manager or Ed25519KeyManager()
        self._clock = clock or system_clock
        self._audit = audit if audit is not None else self._settings.build_audit_logger()

    async def authenticate(
        self,
        owner_signer: OwnerSigner,
        origin: str,
        ttl: int | None = None,
    ) -> Delegation:
        """Issue a delegation for *origin* signed by *owner_signer*.

        Parameters
        ----------
        owner_signer:
            The owner signing collaborator.
        origin:
            The requesting site's origin.
        ttl:
            Requested lifetime in seconds; defaults to the configured value.
            The verifier's clock, not this request, decides validity.

        Returns
        -------
        Delegation

        Raises
        ------
        OwnerSignatureDeclinedError
            If the signer refuses, times out, or returns a signature that
            does not verify under the owner key.
        ValueError
            If *ttl* is out of bounds or *origin* is empty or oversize.
        """
        ttl = self._settings.default_ttl_seconds if ttl is None else ttl
        if ttl <= 0 or ttl > self._settings.max_ttl_seconds:
            raise ValueError(
                f"ttl must be between 1 and {self._settings.max_ttl_seconds} seconds, got {ttl}"
            )
        origin_bytes(origin)

        owner_public_key = owner_signer.public_key
        keypair = EphemeralKeypair.generate()
        try:
            transaction = Transaction.delegation(
                owner_public_key=owner_public_key,
                session_public_key=keypair.public_key,
                origin=origin,
                expiry=self._clock() + ttl,
                genesis_id=self._settings.genesis_id,
            )
            signature = await self._request_signature(owner_signer, transaction, origin)
        except BaseException:
            keypair.destroy()
            raise

        logger.info(
            "Issued delegation for origin %r from owner %s to session key %s, expiry=%d",
            origin,
            transaction.sender,
            transaction.receiver,
            transaction.expiry,
        )
        if self._audit is not None:
            self._audit.log_delegation_issued(
                owner=transaction.sender,
                session_key=transaction.receiver,
                origin=origin,
                expiry=transaction.expiry,
            )
        return Delegation(keypair=keypair, transaction=transaction, signature=signature)

    async def _request_signature(
        self, owner_signer: OwnerSigner, transaction: Transaction, origin: str
    ) -> bytes:
        payload = transaction.canonical_bytes()
        timeout = self._settings.signer_timeout_seconds
        try:
            signature = await asyncio.wait_for(owner_signer.sign(payload), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise self._declined(
                transaction, origin, f"owner signer timed out after {timeout} seconds"
            ) from exc
        except OwnerSignatureDeclinedError as exc:
            raise self._declined(transaction, origin, exc.reason) from exc
        except Exception as exc:
            raise self._declined(transaction, origin, f"owner signer refused: {exc}") from exc

        if not self._key_manager.verify(
            decode_address(transaction.sender), signature, payload
        ):
            raise self._declined(
                transaction, origin, "owner signer returned an invalid signature"
            )
        return signature

    def _declined(
        self, transaction: Transaction, origin: str, reason: str
    ) -> OwnerSignatureDeclinedError:
        logger.warning(
            "Delegation for origin %r from owner %s declined: %s",
            origin,
            transaction.sender,
            reason,
        )
        if self._audit is not None:
            self._audit.log_delegation_declined(
                owner=transaction.sender, origin=origin, reason=reason
            )
        return OwnerSignatureDeclinedError(reason)


__all__ = [
    "Delegation",
    "DelegationIssuer",
    "LocalOwnerSigner",
    "OwnerSigner",
]
