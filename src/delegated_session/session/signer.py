"""SessionSigner — client-side signing flow.

Turns an unsigned outer transaction into one the contract account can send:
the sender is set to the contract address, the transaction id is computed,
and the ephemeral key signs that id. Signing uses a delegation previously
issued for the image's (owners, origin) binding and held by the store.
"""
from __future__ import annotations

import logging

from delegated_session.audit import AuditLogger
from delegated_session.authorization.witness import (
    AuthorizationWitness,
    AuthorizedTransaction,
)
from delegated_session.clock import Clock, system_clock
from delegated_session.contract.template import ContractImage, derive_address
from delegated_session.crypto.key_manager import EphemeralKeypair
from delegated_session.errors import MissingDelegationError
from delegated_session.session.issuer import Delegation
from delegated_session.session.store import SessionStore
from delegated_session.transaction.model import Transaction

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign outer transactions with a delegated ephemeral key.

    Parameters
    ----------
    store:
        Where issued delegations are held.
    clock:
        Client clock used to skip delegations that have already expired.
        The verifier's clock remains authoritative.
    audit:
        Optional audit logger.
    """

    def __init__(
        self,
        store: SessionStore,
        clock: Clock | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or system_clock
        self._audit = audit

    def sign(
        self,
        image: ContractImage,
        keypair: EphemeralKeypair,
        transaction: Transaction,
    ) -> AuthorizationWitness:
        """Authorize *transaction* to be sent from *image*'s account.

        ``transaction.sender`` is overwritten with the contract address
        before the id is computed.

        Parameters
        ----------
        image:
            The contract image the transaction is sent from.
        keypair:
            The ephemeral keypair of an issued delegation.
        transaction:
            The outer transaction; modified in place.

        Returns
        -------
        AuthorizationWitness

        Raises
        ------
        MissingDelegationError
            If the store holds no unexpired delegation to *keypair* bound to
            *image*. Issue a new delegation and retry.
        KeyDestroyedError
            If *keypair* has been destroyed.
        """
        address = derive_address(image)
        delegation = self._find_delegation(image, keypair, address)

        transaction.sender = address
        tx_id = transaction.tx_id
        session_signature = keypair.sign(transaction.id_bytes())

        logger.debug("Signed transaction %s for contract %s", tx_id, address)
        if self._audit is not None:
            self._audit.log_witness_signed(
                contract=address, tx_id=tx_id, session_key=keypair.address
            )
        return AuthorizationWitness(
            delegation=delegation.transaction,
            delegation_signature=delegation.signature,
            session_signature=session_signature,
        )

    def sign_transaction(
        self,
        image: ContractImage,
        keypair: EphemeralKeypair,
        transaction: Transaction,
    ) -> AuthorizedTransaction:
        """Like :meth:`sign`, but return the full submission envelope."""
        witness = self.sign(image, keypair, transaction)
        return AuthorizedTransaction(
            transaction=transaction, program=image.program, witness=witness
        )

    def _find_delegation(
        self, image: ContractImage, keypair: EphemeralKeypair, address: str
    ) -> Delegation:
        now = self._clock()
        discarded = self._store.discard_expired(now)
        if discarded:
            logger.debug("Discarded %d expired delegation(s)", discarded)
        for delegation in self._store.delegations_for(image):
            if delegation.keypair.public_key != keypair.public_key:
                continue
            if delegation.is_expired(now):
                continue
            return delegation
        logger.info(
            "No unexpired delegation to %s for contract %s", keypair.address, address
        )
        raise MissingDelegationError(address)


__all__ = ["SessionSigner"]
