"""Route handler functions for the verifier HTTP service.

Each function accepts parsed request data and returns a tuple of
(status_code, response_dict). The HTTP handler in app.py calls these
functions and serializes the results to JSON.

``/authorize`` answers with a bare approve/reject. Which gate failed is
logged and written to the audit trail but never returned, so callers cannot
test the predicate one gate at a time.
"""
from __future__ import annotations

import logging

from pydantic import ValidationError

from delegated_session import __version__
from delegated_session.audit import AuditLogger
from delegated_session.authorization.predicate import AuthorizationPredicate
from delegated_session.authorization.witness import AuthorizedTransaction
from delegated_session.clock import Clock, system_clock
from delegated_session.contract.template import ContractImage, OwnerKeySet, instantiate
from delegated_session.errors import DelegatedSessionError
from delegated_session.server.models import (
    AuthorizeRequest,
    AuthorizeResponse,
    ErrorResponse,
    HealthResponse,
    InstantiateRequest,
    InstantiateResponse,
)

logger = logging.getLogger(__name__)

# Module-level shared state
_clock: Clock = system_clock
_audit: AuditLogger = AuditLogger()
_evaluations: int = 0


def reset_state(clock: Clock | None = None, audit: AuditLogger | None = None) -> None:
    """Reset shared state -- used in tests and for clean restarts."""
    global _clock, _audit, _evaluations
    _clock = clock or system_clock
    _audit = audit or AuditLogger()
    _evaluations = 0


def handle_instantiate(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /instantiate."""
    try:
        request = InstantiateRequest.model_validate(body)
    except ValidationError as exc:
        return 422, ErrorResponse(error="Validation error", detail=str(exc)).model_dump()

    try:
        image = instantiate(OwnerKeySet.from_hex(request.owners), request.origin)
    except DelegatedSessionError as exc:
        return 422, ErrorResponse(error="Invalid template", detail=str(exc)).model_dump()

    response = InstantiateResponse(
        address=image.address,
        program=image.program.hex(),
        owners=image.owners.to_hex(),
        origin=image.origin,
    )
    return 200, response.model_dump()


def handle_authorize(body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /authorize.

    Evaluates the predicate at the server's clock. Envelopes that cannot be
    parsed at all are a 422; everything else is a 200 with ``approved``.
    """
    global _evaluations
    try:
        request = AuthorizeRequest.model_validate(body)
        envelope = AuthorizedTransaction.from_dict(request.model_dump())
        image = ContractImage.from_program(envelope.program)
    except (ValidationError, ValueError, KeyError, TypeError) as exc:
        return 422, ErrorResponse(error="Malformed envelope", detail=str(exc)).model_dump()

    _evaluations += 1
    if envelope.transaction.sender != image.address:
        logger.info(
            "Rejected transaction %s: sender %s is not contract %s",
            envelope.transaction.tx_id,
            envelope.transaction.sender,
            image.address,
        )
        return 200, AuthorizeResponse(approved=False).model_dump()

    predicate = AuthorizationPredicate(image, clock=_clock, audit=_audit)
    approved = predicate.approve(envelope.transaction, envelope.witness)
    return 200, AuthorizeResponse(approved=approved).model_dump()


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health."""
    response = HealthResponse(version=__version__, evaluations=_evaluations)
    return 200, response.model_dump()


def audit_log() -> AuditLogger:
    """Return the service's audit logger."""
    return _audit


__all__ = [
    "audit_log",
    "handle_authorize",
    "handle_health",
    "handle_instantiate",
    "reset_state",
]
