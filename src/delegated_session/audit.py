"""AuditLogger — JSONL audit trail for delegation events.

Every delegation-relevant event (issuance, decline, witness signing,
authorization decision) is appended as a single JSON line to the configured
log file. Authorization events record which gates failed; this is the only
place besides debug logging where reject reasons are kept, since the
verifier's external answer is a bare approve/reject.

If no file path is configured the logger keeps events in an in-memory
buffer that can be drained via :meth:`AuditLogger.drain_buffer`.
"""
from __future__ import annotations

import datetime
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class AuditEvent:
    """A single auditable event.

    Parameters
    ----------
    event_type:
        Short snake_case string identifying the event (e.g. "delegation_issued").
    account:
        The account the event concerns: a contract address or an owner address.
    details:
        Arbitrary key-value metadata about the event. Never key material.
    timestamp:
        UTC datetime of the event. Defaults to now.
    """

    event_type: str
    account: str
    details: dict[str, object] = field(default_factory=dict)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type,
            "account": self.account,
            "details": self.details,
        }


class AuditLogger:
    """Append-only, thread-safe JSONL audit logger.

    Parameters
    ----------
    log_path:
        Path to the JSONL log file. Parent directories are created
        automatically. If None, events are buffered in memory only.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._buffer: list[str] = []
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, event: AuditEvent) -> None:
        """Append *event* to the log."""
        line = json.dumps(event.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)

    def log_event(self, event_type: str, account: str, **details: object) -> None:
        """Log a simple event without constructing :class:`AuditEvent`."""
        self.log(AuditEvent(event_type=event_type, account=account, details=dict(details)))

    # ------------------------------------------------------------------
    # Convenience event loggers
    # ------------------------------------------------------------------

    def log_delegation_issued(
        self, owner: str, session_key: str, origin: str, expiry: int
    ) -> None:
        self.log_event(
            "delegation_issued",
            account=owner,
            session_key=session_key,
            origin=origin,
            expiry=expiry,
        )

    def log_delegation_declined(self, owner: str, origin: str, reason: str) -> None:
        self.log_event("delegation_declined", account=owner, origin=origin, reason=reason)

    def log_witness_signed(self, contract: str, tx_id: str, session_key: str) -> None:
        self.log_event(
            "witness_signed", account=contract, tx_id=tx_id, session_key=session_key
        )

    def log_authorization(
        self, contract: str, tx_id: str, approved: bool, reasons: list[str]
    ) -> None:
        self.log_event(
            "authorization_evaluated",
            account=contract,
            tx_id=tx_id,
            approved=approved,
            reasons=reasons,
        )

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------

    def drain_buffer(self) -> list[str]:
        """Return and clear the in-memory event buffer, oldest first."""
        with self._lock:
            events = list(self._buffer)
            self._buffer.clear()
        return events

    def read_log(self, tail: int | None = None) -> list[dict[str, object]]:
        """Read parsed events from the log file (or the buffer if unset).

        Parameters
        ----------
        tail:
            If provided, return only the last *tail* events.
        """
        with self._lock:
            if self._log_path is None or not self._log_path.exists():
                lines = list(self._buffer)
            else:
                lines = self._log_path.read_text(encoding="utf-8").splitlines()

        parsed: list[dict[str, object]] = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                parsed.append(json.loads(stripped))
            except json.JSONDecodeError:
                continue

        if tail is not None:
            return parsed[-tail:]
        return parsed


__all__ = ["AuditEvent", "AuditLogger"]
