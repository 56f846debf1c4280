"""delegated-session — origin-bound, expiring session keys for contract accounts.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import delegated_session
>>> delegated_session.__version__
'0.1.0'

Quick start
-----------
::

    from delegated_session import (
        # Template
        OwnerKeySet, instantiate,
        # Session
        DelegationIssuer, SessionSigner, InMemorySessionStore, LocalOwnerSigner,
        # Verification
        AuthorizationPredicate,
    )

    owner = LocalOwnerSigner.generate()
    image = instantiate(OwnerKeySet.of(owner.public_key), "game.example")
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from delegated_session.errors import (
    AddressError,
    DelegatedSessionError,
    KeyDestroyedError,
    MalformedProgramError,
    MissingDelegationError,
    NoteDecodeError,
    OwnerSignatureDeclinedError,
    SessionNotFoundError,
    StorageUnavailableError,
    TemplateError,
    TemplateOversizeError,
)

# ------------------------------------------------------------------
# Signature primitive and transaction model
# ------------------------------------------------------------------
from delegated_session.crypto.encoding import decode_address, encode_address
from delegated_session.crypto.key_manager import Ed25519KeyManager, EphemeralKeypair
from delegated_session.transaction.model import Transaction, TransactionType
from delegated_session.transaction.note import decode_origin_note, encode_origin_note

# ------------------------------------------------------------------
# Contract template
# ------------------------------------------------------------------
from delegated_session.contract.template import (
    ContractImage,
    OwnerKeySet,
    derive_address,
    instantiate,
)

# ------------------------------------------------------------------
# Authorization
# ------------------------------------------------------------------
from delegated_session.authorization.predicate import (
    AuthorizationDecision,
    AuthorizationPredicate,
    GateOutcome,
    RejectReason,
)
from delegated_session.authorization.witness import (
    AuthorizationWitness,
    AuthorizedTransaction,
)

# ------------------------------------------------------------------
# Session lifecycle
# ------------------------------------------------------------------
from delegated_session.audit import AuditEvent, AuditLogger
from delegated_session.config import DelegationSettings
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
from delegated_session.convenience import Session

__all__ = [
    # version
    "__version__",
    "Session",
    # errors
    "AddressError",
    "DelegatedSessionError",
    "KeyDestroyedError",
    "MalformedProgramError",
    "MissingDelegationError",
    "NoteDecodeError",
    "OwnerSignatureDeclinedError",
    "SessionNotFoundError",
    "StorageUnavailableError",
    "TemplateError",
    "TemplateOversizeError",
    # primitives
    "Ed25519KeyManager",
    "EphemeralKeypair",
    "Transaction",
    "TransactionType",
    "decode_address",
    "decode_origin_note",
    "encode_address",
    "encode_origin_note",
    # template
    "ContractImage",
    "OwnerKeySet",
    "derive_address",
    "instantiate",
    # authorization
    "AuthorizationDecision",
    "AuthorizationPredicate",
    "AuthorizationWitness",
    "AuthorizedTransaction",
    "GateOutcome",
    "RejectReason",
    # session
    "AuditEvent",
    "AuditLogger",
    "Delegation",
    "DelegationIssuer",
    "DelegationSettings",
    "FilesystemSessionStore",
    "InMemorySessionStore",
    "LocalOwnerSigner",
    "OwnerSigner",
    "SessionSigner",
    "SessionStore",
]
