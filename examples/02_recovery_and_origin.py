#!/usr/bin/env python3
"""Example: Recovery keys and origin binding

Shows a contract image bound to a primary owner and a recovery key, a
delegation issued by the recovery key, and a delegation for another origin
being turned away.

Usage:
    python examples/02_recovery_and_origin.py

Requirements:
    pip install delegated-session
"""
from __future__ import annotations

import asyncio

from delegated_session import (
    AuthorizationPredicate,
    AuthorizationWitness,
    DelegationIssuer,
    InMemorySessionStore,
    LocalOwnerSigner,
    OwnerKeySet,
    SessionSigner,
    Transaction,
    TransactionType,
    encode_address,
    instantiate,
)


def _payment() -> Transaction:
    return Transaction(
        type=TransactionType.PAYMENT,
        receiver=encode_address(b"\x42" * 32),
        amount=5,
        fee=1,
    )


async def main() -> None:
    primary = LocalOwnerSigner.generate()
    recovery = LocalOwnerSigner.generate()
    image = instantiate(OwnerKeySet.of(primary.public_key, recovery.public_key), "site-a.example")
    predicate = AuthorizationPredicate(image)
    print(f"Contract account for site-a.example: {image.address}")

    # The recovery key can delegate just like the primary owner
    issuer = DelegationIssuer()
    delegation = await issuer.authenticate(recovery, "site-a.example", ttl=600)
    store = InMemorySessionStore()
    store.add_delegation(delegation)
    tx = _payment()
    witness = SessionSigner(store).sign(image, delegation.keypair, tx)
    print(f"Recovery-key delegation approved: {predicate.approve(tx, witness)}")

    # A delegation obtained by another site cannot move funds here
    foreign = await issuer.authenticate(primary, "site-b.example", ttl=600)
    tx = _payment()
    tx.sender = image.address
    forged = AuthorizationWitness(
        delegation=foreign.transaction,
        delegation_signature=foreign.signature,
        session_signature=foreign.keypair.sign(tx.id_bytes()),
    )
    decision = predicate.evaluate(tx, forged)
    print(f"site-b delegation approved: {decision.approved}")
    for outcome in decision.outcomes:
        status = "pass" if outcome.passed else f"FAIL ({outcome.detail})"
        print(f"  {outcome.gate:<22} {status}")

    store.clear_delegations()
    foreign.keypair.destroy()


if __name__ == "__main__":
    asyncio.run(main())
