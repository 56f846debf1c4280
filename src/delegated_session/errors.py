"""Exception hierarchy for delegated-session.

Errors fall into three families:

- input/template errors (oversize owners or origin, malformed programs,
  notes and addresses) -- these also derive from :class:`ValueError`;
- session errors raised on the client side (no usable delegation, a
  destroyed ephemeral key);
- collaborator errors surfaced from the owner signer or the store.

Authorization failures are not exceptions: the predicate reports them as
:class:`~delegated_session.authorization.predicate.RejectReason` values.
"""
from __future__ import annotations


class DelegatedSessionError(Exception):
    """Base class for all delegated-session errors."""


# ---------------------------------------------------------------------------
# Input / template errors
# ---------------------------------------------------------------------------


class TemplateError(DelegatedSessionError, ValueError):
    """Raised when template parameters or a program image are invalid."""


class TemplateOversizeError(TemplateError):
    """Raised when the owner set or origin exceeds its size limit.

    Parameters
    ----------
    field:
        ``"owners"`` or ``"origin"``.
    size:
        The serialized size that was supplied.
    limit:
        The maximum permitted size.
    """

    def __init__(self, field: str, size: int, limit: int) -> None:
        self.field = field
        self.size = size
        self.limit = limit
        super().__init__(
            f"Template parameter {field!r} is {size} bytes; the limit is {limit} bytes"
        )


class MalformedProgramError(TemplateError):
    """Raised when program bytes cannot be parsed back into a contract image."""


class NoteDecodeError(DelegatedSessionError, ValueError):
    """Raised when a transaction note is not a valid origin note."""


class AddressError(DelegatedSessionError, ValueError):
    """Raised when an address string is malformed or fails its checksum."""


# ---------------------------------------------------------------------------
# Session errors
# ---------------------------------------------------------------------------


class MissingDelegationError(DelegatedSessionError):
    """Raised when no unexpired delegation is available for a contract image.

    The caller should issue a new delegation and retry.
    """

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__(
            f"No unexpired delegation available for contract account {address}"
        )


class KeyDestroyedError(DelegatedSessionError):
    """Raised when an ephemeral keypair is used after :meth:`destroy`."""


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------


class OwnerSignatureDeclinedError(DelegatedSessionError):
    """Raised when the owner signer refuses, times out, or returns a bad signature.

    Non-retryable per invocation: issue a new delegation instead.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Owner signature declined: {reason}")


class StorageUnavailableError(DelegatedSessionError):
    """Raised when the session store cannot be read or written."""


class SessionNotFoundError(DelegatedSessionError, KeyError):
    """Raised when a session identifier has no stored binding."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id!r} not found")

    def __str__(self) -> str:
        return f"Session {self.session_id!r} not found"


__all__ = [
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
]
