"""DelegationSettings — runtime configuration for issuers, signers and tools.

Settings are a pydantic model so that values loaded from JSON are validated
in one place. Protocol constants (the 64-byte template limits, the note
format) are not configurable and live with the code that enforces them.

Example
-------
::

    settings = DelegationSettings.from_file(Path("delegated-session.json"))
    issuer = DelegationIssuer(settings=settings)
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from delegated_session.audit import AuditLogger

_ONE_WEEK_SECONDS = 7 * 24 * 3600


class DelegationSettings(BaseModel):
    """Configuration shared by the session components.

    Parameters
    ----------
    default_ttl_seconds:
        Delegation lifetime requested when the caller passes no ``ttl``.
    max_ttl_seconds:
        Upper bound on any requested delegation lifetime.
    signer_timeout_seconds:
        How long to wait for the owner signer before treating the request
        as declined. ``None`` waits indefinitely (cancellation still works).
    genesis_id:
        Network identifier written into delegating transactions.
    store_dir:
        Directory for session bindings. When set, :meth:`Session.open` keeps
        bindings in a :class:`FilesystemSessionStore` there.
    audit_log_path:
        JSONL audit log file written by issuers, signers and the verifier.
        ``None`` disables the file trail.
    """

    default_ttl_seconds: int = Field(default=3600, gt=0)
    max_ttl_seconds: int = Field(default=_ONE_WEEK_SECONDS, gt=0)
    signer_timeout_seconds: Optional[float] = Field(default=120.0, gt=0)
    genesis_id: str = ""
    store_dir: Optional[Path] = None
    audit_log_path: Optional[Path] = None

    @model_validator(mode="after")
    def _ttl_within_bounds(self) -> "DelegationSettings":
        if self.default_ttl_seconds > self.max_ttl_seconds:
            raise ValueError("default_ttl_seconds must not exceed max_ttl_seconds")
        return self

    def build_audit_logger(self) -> AuditLogger | None:
        """Return a file-backed audit logger, or None when no path is set."""
        if self.audit_log_path is None:
            return None
        return AuditLogger(self.audit_log_path)

    @classmethod
    def from_file(cls, path: Path) -> "DelegationSettings":
        """Load settings from a JSON file.

        Raises
        ------
        pydantic.ValidationError
            If a value is invalid.
        OSError, json.JSONDecodeError
            If the file cannot be read or parsed.
        """
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls.model_validate(data)


__all__ = ["DelegationSettings"]
