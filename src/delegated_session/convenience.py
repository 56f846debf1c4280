"""Convenience API for delegated-session — a site session in a few lines.

Example
-------
::

    from delegated_session import LocalOwnerSigner, Session

    session = await Session.open(LocalOwnerSigner.generate(), "game.example")
    authorized = session.authorize(outer_tx)
    session.close()

"""
from __future__ import annotations

import uuid
from collections.abc import Iterable

from delegated_session.clock import Clock
from delegated_session.config import DelegationSettings
from delegated_session.contract.template import ContractImage, OwnerKeySet, instantiate
from delegated_session.authorization.witness import AuthorizedTransaction
from delegated_session.session.issuer import Delegation, DelegationIssuer, OwnerSigner
from delegated_session.session.signer import SessionSigner
from delegated_session.session.store import (
    FilesystemSessionStore,
    InMemorySessionStore,
    SessionStore,
)
from delegated_session.transaction.model import Transaction


class Session:
    """One delegated session for one origin.

    Use :meth:`open` to instantiate the contract image, obtain the owner's
    delegation and record both in a store.
    """

    def __init__(
        self,
        session_id: str,
        image: ContractImage,
        delegation: Delegation,
        store: SessionStore,
        signer: SessionSigner,
    ) -> None:
        self._session_id = session_id
        self._image = image
        self._delegation = delegation
        self._store = store
        self._signer = signer

    @classmethod
    async def open(
        cls,
        owner_signer: OwnerSigner,
        origin: str,
        recovery_keys: Iterable[bytes] = (),
        ttl: int | None = None,
        store: SessionStore | None = None,
        settings: DelegationSettings | None = None,
        clock: Clock | None = None,
    ) -> "Session":
        """Open a session for *origin* on behalf of *owner_signer*.

        Parameters
        ----------
        owner_signer:
            The owner signing collaborator (its key is the primary owner).
        origin:
            The requesting site's origin.
        recovery_keys:
            Additional owner public keys bound into the contract image.
        ttl:
            Requested delegation lifetime in seconds.
        store:
            Session store. When omitted, a filesystem store under
            ``settings.store_dir`` is used if configured, else an in-memory one.
        settings:
            Optional settings shared by issuer and signer. A configured
            ``audit_log_path`` receives both issuance and signing events.
        clock:
            Optional clock shared by issuer and signer.
        """
        settings = settings or DelegationSettings()
        if store is None:
            if settings.store_dir is not None:
                store = FilesystemSessionStore(settings.store_dir)
            else:
                store = InMemorySessionStore()
        audit = settings.build_audit_logger()
        owners = OwnerKeySet((owner_signer.public_key, *recovery_keys))
        image = instantiate(owners, origin)

        issuer = DelegationIssuer(settings=settings, clock=clock, audit=audit)
        delegation = await issuer.authenticate(owner_signer, origin, ttl=ttl)

        session_id = f"session-{uuid.uuid4().hex[:12]}"
        store.put_binding(session_id, image)
        store.add_delegation(delegation)
        return cls(
            session_id=session_id,
            image=image,
            delegation=delegation,
            store=store,
            signer=SessionSigner(store, clock=clock, audit=audit),
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def image(self) -> ContractImage:
        return self._image

    @property
    def address(self) -> str:
        """The contract account the session sends from."""
        return self._image.address

    @property
    def delegation(self) -> Delegation:
        return self._delegation

    def authorize(self, transaction: Transaction) -> AuthorizedTransaction:
        """Sign *transaction* for submission from the session's account."""
        return self._signer.sign_transaction(
            self._image, self._delegation.keypair, transaction
        )

    def close(self) -> None:
        """End the session: destroy the ephemeral key."""
        self._delegation.keypair.destroy()

    def __repr__(self) -> str:
        return (
            f"Session(session_id={self._session_id!r}, "
            f"origin={self._image.origin!r}, address={self.address!r})"
        )
