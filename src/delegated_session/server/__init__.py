"""Verifier HTTP service for delegated-session."""
from __future__ import annotations

from delegated_session.server.app import create_server, run_server

__all__ = ["create_server", "run_server"]
