"""Authorization predicate and witness types.

Example
-------
::

    from delegated_session.authorization import AuthorizationPredicate

    predicate = AuthorizationPredicate(image)
    decision = predicate.evaluate(outer_tx, witness, now=2500)
    print(decision.approved, decision.reasons)
"""
from __future__ import annotations

from delegated_session.authorization.predicate import (
    GATE_NAMES,
    AuthorizationDecision,
    AuthorizationPredicate,
    GateOutcome,
    RejectReason,
)
from delegated_session.authorization.witness import (
    AuthorizationWitness,
    AuthorizedTransaction,
)

__all__ = [
    "GATE_NAMES",
    "AuthorizationDecision",
    "AuthorizationPredicate",
    "AuthorizationWitness",
    "AuthorizedTransaction",
    "GateOutcome",
    "RejectReason",
]
