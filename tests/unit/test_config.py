"""Tests for delegated_session.config — DelegationSettings."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from delegated_session.config import DelegationSettings


class TestDelegationSettings:
    def test_defaults(self) -> None:
        settings = DelegationSettings()
        assert settings.default_ttl_seconds == 3600
        assert settings.max_ttl_seconds == 7 * 24 * 3600
        assert settings.signer_timeout_seconds == 120.0
        assert settings.genesis_id == ""
        assert settings.store_dir is None
        assert settings.audit_log_path is None

    def test_default_above_max_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DelegationSettings(default_ttl_seconds=100, max_ttl_seconds=50)

    @pytest.mark.parametrize("field", ["default_ttl_seconds", "max_ttl_seconds"])
    def test_non_positive_ttl_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError):
            DelegationSettings(**{field: 0})

    def test_timeout_may_be_disabled(self) -> None:
        assert DelegationSettings(signer_timeout_seconds=None).signer_timeout_seconds is None

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DelegationSettings(signer_timeout_seconds=0)

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text(
            json.dumps(
                {
                    "default_ttl_seconds": 600,
                    "genesis_id": "testnet-v1",
                    "store_dir": str(tmp_path / "sessions"),
                }
            ),
            encoding="utf-8",
        )
        settings = DelegationSettings.from_file(path)
        assert settings.default_ttl_seconds == 600
        assert settings.genesis_id == "testnet-v1"
        assert settings.store_dir == tmp_path / "sessions"

    def test_from_file_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text('{"default_ttl_seconds": -1}', encoding="utf-8")
        with pytest.raises(ValidationError):
            DelegationSettings.from_file(path)

    def test_from_file_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            DelegationSettings.from_file(path)

    def test_no_audit_logger_without_path(self) -> None:
        assert DelegationSettings().build_audit_logger() is None

    def test_audit_logger_writes_to_configured_path(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "audit.jsonl"
        audit = DelegationSettings(audit_log_path=path).build_audit_logger()
        assert audit is not None
        audit.log_event("settings_loaded", "cli")
        assert json.loads(path.read_text(encoding="utf-8"))["event_type"] == "settings_loaded"
