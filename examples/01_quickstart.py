#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates the minimal setup for delegated-session using the Session
convenience class: open a session for one origin, authorize a payment from
the contract account, and check it the way a verifier would.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install delegated-session
"""
from __future__ import annotations

import asyncio

import delegated_session
from delegated_session import (
    AuthorizationPredicate,
    LocalOwnerSigner,
    Session,
    Transaction,
    TransactionType,
    encode_address,
)


async def main() -> None:
    print(f"delegated-session version: {delegated_session.__version__}")

    # Step 1: The owner approves a one-hour session for the site
    owner = LocalOwnerSigner.generate()
    session = await Session.open(owner, "game.example", ttl=3600)
    print(f"Contract account: {session.address}")
    print(f"Session key:      {session.delegation.keypair.address}")

    # Step 2: The site signs a payment with the session key, no wallet prompt
    payment = Transaction(
        type=TransactionType.PAYMENT,
        receiver=encode_address(b"\x42" * 32),
        amount=5,
        fee=1,
    )
    envelope = session.authorize(payment)
    print(f"Signed transaction: {payment.tx_id}")

    # Step 3: The verifier evaluates the program carried in the envelope
    decision = AuthorizationPredicate(envelope.image).evaluate(
        envelope.transaction, envelope.witness
    )
    print(f"Approved: {decision.approved}")

    # Step 4: Later than the expiry, the same witness is worthless
    late = AuthorizationPredicate(envelope.image).evaluate(
        envelope.transaction, envelope.witness, now=session.delegation.expiry
    )
    print(f"Approved after expiry: {late.approved} ({late.reason.value if late.reason else ''})")

    session.close()
    print("\nQuickstart complete.")


if __name__ == "__main__":
    asyncio.run(main())
