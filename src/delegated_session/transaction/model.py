"""Transaction — canonical transaction representation and identifier.

The canonical encoding is the two-byte domain prefix ``b"TX"`` followed by a
deterministic JSON serialization of every field (sorted keys, compact
separators, note as standard base64). The transaction identifier is the
SHA-256 digest of that encoding; its text form is unpadded base32.

Changing any field -- including ``sender`` -- changes the identifier, which
is what binds a session signature to exactly one transaction.
"""
from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from enum import Enum

from delegated_session.crypto.encoding import encode_address
from delegated_session.transaction.note import encode_origin_note

_DOMAIN_PREFIX: bytes = b"TX"


class TransactionType(str, Enum):
    """Transaction type marker.

    DELEGATION is the non-value-transferring marker used by delegating
    transactions; they are signed but never broadcast.
    """

    PAYMENT = "pay"
    ASSET_TRANSFER = "axfer"
    APPLICATION_CALL = "appl"
    DELEGATION = "dlg"


@dataclass
class Transaction:
    """A ledger transaction.

    Parameters
    ----------
    type:
        The transaction type marker.
    sender:
        Address of the sending account. Left empty on an unsigned outer
        transaction until the session signer fills in the contract address.
    receiver:
        Address of the receiving account.
    amount:
        Value transferred, in base units.
    fee:
        Fee paid, in base units.
    first_valid:
        Earliest time (unix seconds) the transaction may be applied.
    expiry:
        Absolute time bound (unix seconds). For delegating transactions
        this is the delegation's expiry.
    note:
        Arbitrary note bytes. Delegating transactions carry an origin note.
    genesis_id:
        Identifier of the network the transaction is meant for.
    """

    type: TransactionType
    sender: str = ""
    receiver: str = ""
    amount: int = 0
    fee: int = 0
    first_valid: int = 0
    expiry: int = 0
    note: bytes = b""
    genesis_id: str = ""

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def delegation(
        cls,
        owner_public_key: bytes,
        session_public_key: bytes,
        origin: str,
        expiry: int,
        genesis_id: str = "",
    ) -> "Transaction":
        """Build a delegating transaction naming *session_public_key*.

        The result transfers no value and pays no fee; its only purpose is
        to be signed by the owner as a credential.
        """
        return cls(
            type=TransactionType.DELEGATION,
            sender=encode_address(owner_public_key),
            receiver=encode_address(session_public_key),
            amount=0,
            fee=0,
            expiry=expiry,
            note=encode_origin_note(origin),
            genesis_id=genesis_id,
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def canonical_bytes(self) -> bytes:
        """Return the deterministic byte encoding that signatures cover."""
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return _DOMAIN_PREFIX + payload.encode("utf-8")

    def id_bytes(self) -> bytes:
        """Return the raw 32-byte transaction identifier."""
        return hashlib.sha256(self.canonical_bytes()).digest()

    @property
    def tx_id(self) -> str:
        """The transaction identifier as unpadded base32 text."""
        return base64.b32encode(self.id_bytes()).decode("ascii").rstrip("=")

    @property
    def is_delegation(self) -> bool:
        return self.type is TransactionType.DELEGATION

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "type": self.type.value,
            "sender": self.sender,
            "receiver": self.receiver,
            "amount": self.amount,
            "fee": self.fee,
            "first_valid": self.first_valid,
            "expiry": self.expiry,
            "note": base64.b64encode(self.note).decode("ascii"),
            "genesis_id": self.genesis_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Transaction":
        """Reconstruct a Transaction from a dictionary produced by :meth:`to_dict`.

        Raises
        ------
        ValueError
            If a field has the wrong type or the note is not valid base64.
        KeyError
            If ``type`` is missing.
        """
        note_text = str(data.get("note", ""))
        try:
            note = base64.b64decode(note_text, validate=True)
        except ValueError as exc:
            raise ValueError(f"note is not valid base64: {exc}") from exc
        return cls(
            type=TransactionType(str(data["type"])),
            sender=str(data.get("sender", "")),
            receiver=str(data.get("receiver", "")),
            amount=_as_int(data, "amount"),
            fee=_as_int(data, "fee"),
            first_valid=_as_int(data, "first_valid"),
            expiry=_as_int(data, "expiry"),
            note=note,
            genesis_id=str(data.get("genesis_id", "")),
        )


def _as_int(data: dict[str, object], key: str) -> int:
    value = data.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


__all__ = ["Transaction", "TransactionType"]
