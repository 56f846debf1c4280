"""Authorization witness and submission envelope.

An :class:`AuthorizationWitness` is the complete argument set the
authorization predicate checks for one outer transaction. An
:class:`AuthorizedTransaction` bundles the outer transaction, the contract
program it is sent from, and the witness -- the envelope a ledger receives.
"""
from __future__ import annotations

from dataclasses import dataclass

from delegated_session.contract.template import ContractImage
from delegated_session.transaction.model import Transaction


@dataclass(frozen=True)
class AuthorizationWitness:
    """The signed artifacts that justify one outer transaction.

    Parameters
    ----------
    delegation:
        The owner-signed delegating transaction.
    delegation_signature:
        The owner's 64-byte signature over the delegation's canonical bytes.
    session_signature:
        The ephemeral key's 64-byte signature over the outer transaction id.
    """

    delegation: Transaction
    delegation_signature: bytes
    session_signature: bytes

    def to_dict(self) -> dict[str, object]:
        return {
            "delegation": self.delegation.to_dict(),
            "delegation_signature": self.delegation_signature.hex(),
            "session_signature": self.session_signature.hex(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "AuthorizationWitness":
        """Rebuild a witness from :meth:`to_dict` output.

        Raises
        ------
        ValueError
            If a signature is not hex or the delegation is malformed.
        KeyError
            If a required key is missing.
        """
        delegation = data["delegation"]
        if not isinstance(delegation, dict):
            raise ValueError("delegation must be an object")
        return cls(
            delegation=Transaction.from_dict(delegation),
            delegation_signature=bytes.fromhex(str(data["delegation_signature"])),
            session_signature=bytes.fromhex(str(data["session_signature"])),
        )


@dataclass(frozen=True)
class AuthorizedTransaction:
    """An outer transaction ready for submission from a contract account.

    Parameters
    ----------
    transaction:
        The outer transaction; its sender is the contract address.
    program:
        The contract program image bytes.
    witness:
        The authorization witness for ``transaction``.
    """

    transaction: Transaction
    program: bytes
    witness: AuthorizationWitness

    @property
    def image(self) -> ContractImage:
        """Parse the carried program back into a contract image."""
        return ContractImage.from_program(self.program)

    def to_dict(self) -> dict[str, object]:
        return {
            "transaction": self.transaction.to_dict(),
            "program": self.program.hex(),
            "witness": self.witness.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "AuthorizedTransaction":
        transaction = data["transaction"]
        witness = data["witness"]
        if not isinstance(transaction, dict) or not isinstance(witness, dict):
            raise ValueError("transaction and witness must be objects")
        return cls(
            transaction=Transaction.from_dict(transaction),
            program=bytes.fromhex(str(data["program"])),
            witness=AuthorizationWitness.from_dict(witness),
        )


__all__ = ["AuthorizationWitness", "AuthorizedTransaction"]
