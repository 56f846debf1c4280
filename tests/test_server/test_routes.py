"""Tests for delegated_session.server.routes."""
from __future__ import annotations

import asyncio

import pytest

from delegated_session import __version__
from delegated_session.audit import AuditLogger
from delegated_session.clock import fixed_clock
from delegated_session.contract.template import OwnerKeySet, instantiate
from delegated_session.crypto.encoding import encode_address
from delegated_session.server import routes
from delegated_session.session.issuer import DelegationIssuer, LocalOwnerSigner
from delegated_session.session.signer import SessionSigner
from delegated_session.session.store import InMemorySessionStore
from delegated_session.transaction.model import Transaction, TransactionType

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _envelope(owner: LocalOwnerSigner, origin: str = "game.example") -> dict[str, object]:
    """Issue at t=1000 (expiry 4600) and sign at t=2000."""
    image = instantiate(OwnerKeySet.of(owner.public_key), origin)
    delegation = asyncio.run(
        DelegationIssuer(clock=fixed_clock(1000)).authenticate(owner, origin, ttl=3600)
    )
    store = InMemorySessionStore()
    store.add_delegation(delegation)
    tx = Transaction(
        type=TransactionType.PAYMENT,
        receiver=encode_address(b"\x42" * 32),
        amount=5,
        fee=1,
    )
    envelope = SessionSigner(store, clock=fixed_clock(2000)).sign_transaction(
        image, delegation.keypair, tx
    )
    return envelope.to_dict()


@pytest.fixture()
def owner() -> LocalOwnerSigner:
    return LocalOwnerSigner.generate()


@pytest.fixture(autouse=True)
def reset_server_state() -> None:
    """Reset module-level state before each test; the verifier clock reads 2500."""
    routes.reset_state(clock=fixed_clock(2500))


# ---------------------------------------------------------------------------
# /instantiate
# ---------------------------------------------------------------------------


class TestHandleInstantiate:
    def test_derives_address(self, owner: LocalOwnerSigner) -> None:
        status, data = routes.handle_instantiate(
            {"owners": [owner.public_key.hex()], "origin": "game.example"}
        )
        assert status == 200
        expected = instantiate(OwnerKeySet.of(owner.public_key), "game.example")
        assert data["address"] == expected.address
        assert data["program"] == expected.program.hex()

    def test_deterministic(self, owner: LocalOwnerSigner) -> None:
        body = {"owners": [owner.public_key.hex()], "origin": "game.example"}
        assert routes.handle_instantiate(body) == routes.handle_instantiate(body)

    def test_rejects_missing_origin(self, owner: LocalOwnerSigner) -> None:
        status, data = routes.handle_instantiate({"owners": [owner.public_key.hex()]})
        assert status == 422
        assert "error" in data

    def test_rejects_empty_owner_list(self) -> None:
        status, _ = routes.handle_instantiate({"owners": [], "origin": "game.example"})
        assert status == 422

    def test_rejects_oversize_origin(self, owner: LocalOwnerSigner) -> None:
        status, data = routes.handle_instantiate(
            {"owners": [owner.public_key.hex()], "origin": "a" * 65}
        )
        assert status == 422
        assert data["error"] == "Invalid template"


# ---------------------------------------------------------------------------
# /authorize
# ---------------------------------------------------------------------------


class TestHandleAuthorize:
    def test_approves_valid_envelope(self, owner: LocalOwnerSigner) -> None:
        status, data = routes.handle_authorize(_envelope(owner))
        assert status == 200
        assert data == {"approved": True}

    def test_rejects_after_expiry_without_reason(self, owner: LocalOwnerSigner) -> None:
        routes.reset_state(clock=fixed_clock(4700))
        status, data = routes.handle_authorize(_envelope(owner))
        assert status == 200
        assert data == {"approved": False}

    def test_rejects_tampered_transaction(self, owner: LocalOwnerSigner) -> None:
        body = _envelope(owner)
        transaction = body["transaction"]
        assert isinstance(transaction, dict)
        transaction["amount"] = 500
        status, data = routes.handle_authorize(body)
        assert status == 200
        assert data == {"approved": False}

    def test_rejects_sender_not_contract(self, owner: LocalOwnerSigner) -> None:
        body = _envelope(owner)
        transaction = body["transaction"]
        assert isinstance(transaction, dict)
        transaction["sender"] = encode_address(b"\x09" * 32)
        status, data = routes.handle_authorize(body)
        assert status == 200
        assert data == {"approved": False}

    def test_rejects_program_for_other_origin(self, owner: LocalOwnerSigner) -> None:
        body = _envelope(owner)
        other = instantiate(OwnerKeySet.of(owner.public_key), "site-b.example")
        body["program"] = other.program.hex()
        status, data = routes.handle_authorize(body)
        assert status == 200
        assert data == {"approved": False}

    def test_malformed_envelope(self) -> None:
        status, data = routes.handle_authorize({"transaction": {}})
        assert status == 422
        assert data["error"] == "Malformed envelope"

    def test_malformed_program(self, owner: LocalOwnerSigner) -> None:
        body = _envelope(owner)
        body["program"] = "00ff"
        status, _ = routes.handle_authorize(body)
        assert status == 422

    def test_rejection_reason_audited(self, owner: LocalOwnerSigner) -> None:
        audit = AuditLogger()
        routes.reset_state(clock=fixed_clock(4700), audit=audit)
        routes.handle_authorize(_envelope(owner))
        events = routes.audit_log().read_log()
        assert len(events) == 1
        details = events[0]["details"]
        assert isinstance(details, dict)
        assert details["reasons"] == ["delegation_expired"]


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------


class TestHandleHealth:
    def test_health_ok(self) -> None:
        status, data = routes.handle_health()
        assert status == 200
        assert data["status"] == "ok"
        assert data["service"] == "delegated-session"
        assert data["evaluations"] == 0

    def test_reports_package_version(self) -> None:
        _, data = routes.handle_health()
        assert data["version"] == __version__

    def test_counts_evaluations(self, owner: LocalOwnerSigner) -> None:
        routes.handle_authorize(_envelope(owner))
        routes.handle_authorize(_envelope(owner))
        _, data = routes.handle_health()
        assert data["evaluations"] == 2
