"""Session storage — abstract interface, in-memory and filesystem backends.

A store keeps two kinds of record:

- **bindings**: session id -> (owner key set, origin). Loading a binding
  re-instantiates the contract image, so the stored record never has to be
  trusted to hold the right program bytes.
- **delegations**: issued delegations, looked up by the contract image they
  are bound to. Delegations carry ephemeral private keys and are therefore
  held in memory only, by every backend.
"""
from __future__ import annotations

import json
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from delegated_session.contract.template import ContractImage, OwnerKeySet, instantiate
from delegated_session.errors import (
    SessionNotFoundError,
    StorageUnavailableError,
    TemplateError,
)
from delegated_session.session.issuer import Delegation

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


class SessionStore(ABC):
    """Abstract base class for session storage backends."""

    def __init__(self) -> None:
        self._delegations: list[Delegation] = []
        self._delegation_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------

    @abstractmethod
    def put_binding(self, session_id: str, image: ContractImage) -> None:
        """Persist the (owners, origin) binding of *image* under *session_id*."""

    @abstractmethod
    def get_binding(self, session_id: str) -> ContractImage:
        """Return the contract image bound to *session_id*.

        Raises
        ------
        SessionNotFoundError
            If no binding is stored for *session_id*.
        """

    @abstractmethod
    def remove_binding(self, session_id: str) -> None:
        """Delete the binding for *session_id*.

        Raises
        ------
        SessionNotFoundError
            If no binding is stored for *session_id*.
        """

    @abstractmethod
    def list_sessions(self) -> list[str]:
        """Return the sorted list of stored session ids."""

    def has_session(self, session_id: str) -> bool:
        try:
            self.get_binding(session_id)
        except SessionNotFoundError:
            return False
        return True

    # ------------------------------------------------------------------
    # Delegations (memory only)
    # ------------------------------------------------------------------

    def add_delegation(self, delegation: Delegation) -> None:
        """Keep *delegation* available for later signing.

        Delegations whose keys have been destroyed are forgotten here.
        """
        with self._delegation_lock:
            self._prune_destroyed()
            self._delegations.append(delegation)

    def delegations_for(self, image: ContractImage) -> list[Delegation]:
        """Return live delegations bound to *image*, newest expiry first."""
        with self._delegation_lock:
            self._prune_destroyed()
            matches = [d for d in self._delegations if d.is_bound_to(image)]
        return sorted(matches, key=lambda d: d.expiry, reverse=True)

    def _prune_destroyed(self) -> None:
        # caller holds _delegation_lock
        self._delegations = [d for d in self._delegations if not d.keypair.destroyed]

    def discard_expired(self, now: int) -> int:
        """Destroy and forget delegations expired at *now*; return how many."""
        with self._delegation_lock:
            expired = [d for d in self._delegations if d.is_expired(now)]
            self._delegations = [d for d in self._delegations if not d.is_expired(now)]
        for delegation in expired:
            delegation.keypair.destroy()
        return len(expired)

    def clear_delegations(self) -> None:
        """Destroy every held ephemeral key and forget all delegations."""
        with self._delegation_lock:
            delegations, self._delegations = self._delegations, []
        for delegation in delegations:
            delegation.keypair.destroy()


class InMemorySessionStore(SessionStore):
    """Store that keeps everything in process memory."""

    def __init__(self) -> None:
        super().__init__()
        self._bindings: dict[str, ContractImage] = {}
        self._lock = threading.Lock()

    def put_binding(self, session_id: str, image: ContractImage) -> None:
        with self._lock:
            self._bindings[session_id] = image

    def get_binding(self, session_id: str) -> ContractImage:
        with self._lock:
            image = self._bindings.get(session_id)
        if image is None:
            raise SessionNotFoundError(session_id)
        return instantiate(image.owners, image.origin)

    def remove_binding(self, session_id: str) -> None:
        with self._lock:
            if session_id not in self._bindings:
                raise SessionNotFoundError(session_id)
            del self._bindings[session_id]

    def list_sessions(self) -> list[str]:
        with self._lock:
            return sorted(self._bindings)


class FilesystemSessionStore(SessionStore):
    """Store that writes bindings as JSON files under *base_dir*.

    Each session is one ``<session_id>.json`` file holding the hex owner
    keys and the origin. Delegations are not written to disk.

    Parameters
    ----------
    base_dir:
        Root directory for binding files; created if missing.

    Raises
    ------
    StorageUnavailableError
        If the directory cannot be created.
    """

    def __init__(self, base_dir: Path) -> None:
        super().__init__()
        self._base_dir = base_dir
        self._lock = threading.Lock()
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(
                f"Cannot create session directory {base_dir}: {exc}"
            ) from exc

    def put_binding(self, session_id: str, image: ContractImage) -> None:
        record = {"owners": image.owners.to_hex(), "origin": image.origin}
        path = self._path(session_id)
        with self._lock:
            try:
                path.write_text(json.dumps(record, indent=2), encoding="utf-8")
            except OSError as exc:
                raise StorageUnavailableError(
                    f"Cannot write session {session_id!r}: {exc}"
                ) from exc

    def get_binding(self, session_id: str) -> ContractImage:
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                raise SessionNotFoundError(session_id)
            try:
                record = json.loads(path.read_text(encoding="utf-8"))
            except OSError as exc:
                raise StorageUnavailableError(
                    f"Cannot read session {session_id!r}: {exc}"
                ) from exc
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise StorageUnavailableError(
                    f"Session {session_id!r} is corrupt: {exc}"
                ) from exc
        try:
            owners = OwnerKeySet.from_hex(str(k) for k in record["owners"])
            return instantiate(owners, str(record["origin"]))
        except (KeyError, TypeError, TemplateError) as exc:
            raise StorageUnavailableError(
                f"Session {session_id!r} holds an invalid binding: {exc}"
            ) from exc

    def remove_binding(self, session_id: str) -> None:
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                raise SessionNotFoundError(session_id)
            try:
                path.unlink()
            except OSError as exc:
                raise StorageUnavailableError(
                    f"Cannot remove session {session_id!r}: {exc}"
                ) from exc

    def list_sessions(self) -> list[str]:
        with self._lock:
            return sorted(p.stem for p in self._base_dir.glob("*.json"))

    def _path(self, session_id: str) -> Path:
        if not _SESSION_ID_PATTERN.match(session_id) or session_id.startswith("."):
            raise ValueError(f"Invalid session id {session_id!r}")
        return self._base_dir / f"{session_id}.json"


__all__ = [
    "FilesystemSessionStore",
    "InMemorySessionStore",
    "SessionStore",
]
