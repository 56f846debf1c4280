"""Client-side session lifecycle: issue delegations, store them, sign with them.

Quick start
-----------
::

    from delegated_session.session import (
        DelegationIssuer,
        InMemorySessionStore,
        LocalOwnerSigner,
        SessionSigner,
    )

    owner = LocalOwnerSigner.generate()
    image = instantiate(OwnerKeySet.of(owner.public_key), "game.example")

    store = InMemorySessionStore()
    delegation = await DelegationIssuer().authenticate(owner, "game.example")
    store.add_delegation(delegation)

    witness = SessionSigner(store).sign(image, delegation.keypair, outer_tx)
"""
from __future__ import annotations

from delegated_session.session.issuer import (
    Delegation,
    DelegationIssuer,
    LocalOwnerSigner,
    OwnerSigner,
)
from delegated_session.session.signer import SessionSigner
from delegated_session.session.store import (
    FilesystemSessionStore,
    InMemorySessionStore,
    SessionStore,
)

__all__ = [
    "Delegation",
    "DelegationIssuer",
    "FilesystemSessionStore",
    "InMemorySessionStore",
    "LocalOwnerSigner",
    "OwnerSigner",
    "SessionSigner",
    "SessionStore",
]
