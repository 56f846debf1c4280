"""AuthorizationPredicate — the approval rule for contract-account transactions.

The predicate is bound at construction to one :class:`ContractImage` (its
owners and origin are compile-time constants of the program) and decides,
for an outer transaction and its :class:`AuthorizationWitness`, whether the
transaction may be sent from the contract account.

Gates
-----
Six named gates, listed in dependency order:

1. ``size``                 owners and origin within their 64-byte limits
2. ``origin_binding``       the delegation note decodes to the bound origin
3. ``owner_membership``     the delegation sender is one of the owners
4. ``expiry``               ``now < delegation.expiry`` (strict)
5. ``delegation_signature`` the owner signed the canonical bytes of a
                            delegating transaction (type ``dlg``, zero
                            amount and fee)
6. ``session_signature``    the delegated key signed the outer transaction id

The decision is a pure conjunction: every gate is evaluated and the result
is approve only if all pass. No gate raises; malformed input fails the gate
that tried to read it. :class:`AuthorizationDecision` keeps the per-gate
outcomes for diagnostics, while :meth:`AuthorizationPredicate.approve`
returns only the boolean that external callers are allowed to see.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from delegated_session.audit import AuditLogger
from delegated_session.authorization.witness import AuthorizationWitness
from delegated_session.clock import Clock, system_clock
from delegated_session.contract.template import MAX_OWNER_BYTES, ContractImage
from delegated_session.crypto.encoding import decode_address
from delegated_session.crypto.key_manager import Ed25519KeyManager
from delegated_session.transaction.model import Transaction
from delegated_session.transaction.note import MAX_ORIGIN_BYTES, decode_origin_note

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    """Why a gate failed."""

    TEMPLATE_OVERSIZE = "template_oversize"
    ORIGIN_MISMATCH = "origin_mismatch"
    UNAUTHORIZED_SENDER = "unauthorized_sender"
    DELEGATION_EXPIRED = "delegation_expired"
    INVALID_OWNER_SIGNATURE = "invalid_owner_signature"
    INVALID_SESSION_SIGNATURE = "invalid_session_signature"


@dataclass(frozen=True)
class GateOutcome:
    """Result of evaluating one gate.

    Parameters
    ----------
    gate:
        Gate name.
    passed:
        True when the gate's condition holds.
    reason:
        The reject reason when the gate failed, otherwise None.
    detail:
        Human-readable diagnostic for internal logging.
    """

    gate: str
    passed: bool
    reason: RejectReason | None = None
    detail: str = ""


@dataclass(frozen=True)
class AuthorizationDecision:
    """The full outcome of one predicate evaluation.

    Truthiness equals :attr:`approved`.
    """

    approved: bool
    outcomes: tuple[GateOutcome, ...]
    evaluated_at: int

    @property
    def reasons(self) -> list[RejectReason]:
        """Reject reasons of the failed gates, in gate order."""
        return [o.reason for o in self.outcomes if o.reason is not None]

    @property
    def reason(self) -> RejectReason | None:
        """The first reject reason, or None when approved."""
        reasons = self.reasons
        return reasons[0] if reasons else None

    def __bool__(self) -> bool:
        return self.approved


@dataclass(frozen=True)
class _Candidate:
    transaction: Transaction
    witness: AuthorizationWitness
    now: int


_Gate = Callable[["AuthorizationPredicate", _Candidate], GateOutcome]


class AuthorizationPredicate:
    """Stateless approval rule bound to one contract image.

    Parameters
    ----------
    image:
        The contract image whose owners and origin this predicate enforces.
    key_manager:
        Signature verifier. A default :class:`Ed25519KeyManager` is used
        when omitted.
    clock:
        Verifier clock used when :meth:`evaluate` is called without ``now``.
    audit:
        Optional audit logger receiving one event per evaluation.

    Example
    -------
    ::

        predicate = AuthorizationPredicate(image)
        if predicate.approve(outer_tx, witness, now=2500):
            ...
    """

    def __init__(
        self,
        image: ContractImage,
        key_manager: Ed25519KeyManager | None = None,
        clock: Clock | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._image = image
        self._address = image.address
        self._key_manager = key_manager or Ed25519KeyManager()
        self._clock = clock or system_clock
        self._audit = audit

    @property
    def image(self) -> ContractImage:
        return self._image

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def evaluate(
        self,
        transaction: Transaction,
        witness: AuthorizationWitness,
        now: int | None = None,
    ) -> AuthorizationDecision:
        """Run every gate and return the detailed decision.

        Parameters
        ----------
        transaction:
            The outer transaction sent from the contract account.
        witness:
            The authorization witness accompanying it.
        now:
            Verifier time in unix seconds. Defaults to the predicate's clock.
        """
        evaluated_at = self._clock() if now is None else now
        candidate = _Candidate(transaction=transaction, witness=witness, now=evaluated_at)
        outcomes = tuple(self._run_gate(name, gate, candidate) for name, gate in _GATES)
        approved = all(o.passed for o in outcomes)
        decision = AuthorizationDecision(
            approved=approved, outcomes=outcomes, evaluated_at=evaluated_at
        )

        tx_id = _safe_tx_id(transaction)
        if approved:
            logger.debug("Approved transaction %s for contract %s", tx_id, self._address)
        else:
            logger.info(
                "Rejected transaction %s for contract %s: %s",
                tx_id,
                self._address,
                ", ".join(r.value for r in decision.reasons),
            )
        if self._audit is not None:
            try:
                self._audit.log_authorization(
                    contract=self._address,
                    tx_id=tx_id,
                    approved=approved,
                    reasons=[r.value for r in decision.reasons],
                )
            except OSError as exc:
                # the decision stands even when the audit trail cannot be written
                logger.warning(
                    "Could not audit decision on transaction %s: %s", tx_id, exc
                )
        return decision

    def approve(
        self,
        transaction: Transaction,
        witness: AuthorizationWitness,
        now: int | None = None,
    ) -> bool:
        """Return only whether the transaction is approved."""
        return self.evaluate(transaction, witness, now).approved

    __call__ = approve

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _run_gate(self, name: str, gate: _Gate, candidate: _Candidate) -> GateOutcome:
        try:
            return gate(self, candidate)
        except Exception as exc:  # adversarial input must never escape
            logger.debug("Gate %s failed on malformed input: %s", name, exc)
            return GateOutcome(
                gate=name, passed=False, reason=_GATE_REASONS[name], detail=str(exc)
            )

    def _check_size(self, candidate: _Candidate) -> GateOutcome:
        owners_size = len(self._image.owners.serialize())
        origin_size = len(self._image.origin.encode("utf-8"))
        if owners_size > MAX_OWNER_BYTES or origin_size > MAX_ORIGIN_BYTES:
            return self._fail(
                "size", f"owners={owners_size} bytes, origin={origin_size} bytes"
            )
        return GateOutcome(gate="size", passed=True)

    def _check_origin_binding(self, candidate: _Candidate) -> GateOutcome:
        delegated_origin = decode_origin_note(candidate.witness.delegation.note)
        if delegated_origin != self._image.origin:
            return self._fail(
                "origin_binding",
                f"delegation is for {delegated_origin!r}, contract is bound to "
                f"{self._image.origin!r}",
            )
        return GateOutcome(gate="origin_binding", passed=True)

    def _check_owner_membership(self, candidate: _Candidate) -> GateOutcome:
        credential_key = decode_address(candidate.witness.delegation.sender)
        if credential_key not in self._image.owners:
            return self._fail(
                "owner_membership",
                f"{candidate.witness.delegation.sender} is not an owner",
            )
        return GateOutcome(gate="owner_membership", passed=True)

    def _check_expiry(self, candidate: _Candidate) -> GateOutcome:
        expiry = candidate.witness.delegation.expiry
        if not candidate.now < expiry:
            return self._fail("expiry", f"now={candidate.now} expiry={expiry}")
        return GateOutcome(gate="expiry", passed=True)

    def _check_delegation_signature(self, candidate: _Candidate) -> GateOutcome:
        delegation = candidate.witness.delegation
        if not (delegation.is_delegation and delegation.amount == 0 and delegation.fee == 0):
            return self._fail(
                "delegation_signature",
                f"credential is not a delegating transaction (type={delegation.type.value}, "
                f"amount={delegation.amount}, fee={delegation.fee})",
            )
        valid = self._key_manager.verify(
            decode_address(delegation.sender),
            candidate.witness.delegation_signature,
            delegation.canonical_bytes(),
        )
        if not valid:
            return self._fail("delegation_signature", "owner signature does not verify")
        return GateOutcome(gate="delegation_signature", passed=True)

    def _check_session_signature(self, candidate: _Candidate) -> GateOutcome:
        valid = self._key_manager.verify(
            decode_address(candidate.witness.delegation.receiver),
            candidate.witness.session_signature,
            candidate.transaction.id_bytes(),
        )
        if not valid:
            return self._fail(
                "session_signature", "session signature does not cover this transaction"
            )
        return GateOutcome(gate="session_signature", passed=True)

    @staticmethod
    def _fail(gate: str, detail: str) -> GateOutcome:
        return GateOutcome(gate=gate, passed=False, reason=_GATE_REASONS[gate], detail=detail)


_GATES: tuple[tuple[str, _Gate], ...] = (
    ("size", AuthorizationPredicate._check_size),
    ("origin_binding", AuthorizationPredicate._check_origin_binding),
    ("owner_membership", AuthorizationPredicate._check_owner_membership),
    ("expiry", AuthorizationPredicate._check_expiry),
    ("delegation_signature", AuthorizationPredicate._check_delegation_signature),
    ("session_signature", AuthorizationPredicate._check_session_signature),
)

_GATE_REASONS: dict[str, RejectReason] = {
    "size": RejectReason.TEMPLATE_OVERSIZE,
    "origin_binding": RejectReason.ORIGIN_MISMATCH,
    "owner_membership": RejectReason.UNAUTHORIZED_SENDER,
    "expiry": RejectReason.DELEGATION_EXPIRED,
    "delegation_signature": RejectReason.INVALID_OWNER_SIGNATURE,
    "session_signature": RejectReason.INVALID_SESSION_SIGNATURE,
}

GATE_NAMES: tuple[str, ...] = tuple(name for name, _ in _GATES)


def _safe_tx_id(transaction: Transaction) -> str:
    try:
        return transaction.tx_id
    except Exception:  # malformed outer transaction
        return "<unidentifiable>"


__all__ = [
    "AuthorizationDecision",
    "AuthorizationPredicate",
    "GATE_NAMES",
    "GateOutcome",
    "RejectReason",
]
