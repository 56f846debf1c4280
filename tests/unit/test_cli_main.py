"""Tests for delegated_session.cli.main — CLI commands via Click test runner."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from delegated_session.cli.main import cli
from delegated_session.contract.template import OwnerKeySet, instantiate
from delegated_session.crypto.encoding import encode_address
from delegated_session.crypto.key_manager import Ed25519KeyManager
from delegated_session.transaction.model import Transaction, TransactionType

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def owner_key_file(tmp_path: Path, runner: CliRunner) -> Path:
    path = tmp_path / "owner.key"
    result = runner.invoke(cli, ["keygen", "--output", str(path)])
    assert result.exit_code == 0, result.output
    return path


@pytest.fixture()
def owner_public_hex(owner_key_file: Path) -> str:
    private_key = bytes.fromhex(owner_key_file.read_text(encoding="utf-8").strip())
    return Ed25519KeyManager().public_key_for(private_key).hex()


@pytest.fixture()
def delegation_file(tmp_path: Path, runner: CliRunner, owner_key_file: Path) -> Path:
    path = tmp_path / "delegation.json"
    result = runner.invoke(
        cli,
        [
            "delegate",
            "--owner-key-file",
            str(owner_key_file),
            "--origin",
            "game.example",
            "--ttl",
            "3600",
            "--output",
            str(path),
        ],
    )
    assert result.exit_code == 0, result.output
    return path


@pytest.fixture()
def tx_file(tmp_path: Path) -> Path:
    path = tmp_path / "tx.json"
    tx = Transaction(
        type=TransactionType.PAYMENT,
        receiver=encode_address(b"\x42" * 32),
        amount=5,
        fee=1,
    )
    path.write_text(json.dumps(tx.to_dict()), encoding="utf-8")
    return path


@pytest.fixture()
def envelope_file(
    tmp_path: Path, runner: CliRunner, delegation_file: Path, tx_file: Path
) -> Path:
    path = tmp_path / "envelope.json"
    result = runner.invoke(
        cli,
        [
            "sign",
            "--delegation-file",
            str(delegation_file),
            "--tx-file",
            str(tx_file),
            "--output",
            str(path),
        ],
    )
    assert result.exit_code == 0, result.output
    return path


# ---------------------------------------------------------------------------
# Root CLI
# ---------------------------------------------------------------------------


class TestRootCLI:
    def test_help_exits_zero(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0

    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "delegated-session" in result.output.lower()


# ---------------------------------------------------------------------------
# keygen / instantiate
# ---------------------------------------------------------------------------


class TestKeygenCommand:
    def test_writes_private_key(self, owner_key_file: Path) -> None:
        assert len(bytes.fromhex(owner_key_file.read_text(encoding="utf-8").strip())) == 32


class TestInstantiateCommand:
    def test_json_output(self, runner: CliRunner, owner_public_hex: str) -> None:
        result = runner.invoke(
            cli, ["instantiate", "-o", owner_public_hex, "--origin", "game.example", "--json"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        expected = instantiate(OwnerKeySet.from_hex([owner_public_hex]), "game.example")
        assert data["address"] == expected.address
        assert data["origin"] == "game.example"

    def test_table_output(self, runner: CliRunner, owner_public_hex: str) -> None:
        result = runner.invoke(
            cli, ["instantiate", "-o", owner_public_hex, "--origin", "game.example"]
        )
        assert result.exit_code == 0, result.output
        assert "Address" in result.output

    def test_oversize_origin(self, runner: CliRunner, owner_public_hex: str) -> None:
        result = runner.invoke(
            cli, ["instantiate", "-o", owner_public_hex, "--origin", "a" * 65]
        )
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_bad_owner_hex(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["instantiate", "-o", "zz", "--origin", "game.example"])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# delegate / sign / authorize
# ---------------------------------------------------------------------------


class TestDelegateCommand:
    def test_writes_delegation(self, delegation_file: Path) -> None:
        data = json.loads(delegation_file.read_text(encoding="utf-8"))
        assert set(data) == {"session_private_key", "transaction", "signature"}
        assert data["transaction"]["type"] == "dlg"

    def test_oversize_origin(
        self, runner: CliRunner, tmp_path: Path, owner_key_file: Path
    ) -> None:
        result = runner.invoke(
            cli,
            [
                "delegate",
                "--owner-key-file",
                str(owner_key_file),
                "--origin",
                "a" * 65,
                "--output",
                str(tmp_path / "d.json"),
            ],
        )
        assert result.exit_code == 1
        assert not (tmp_path / "d.json").exists()

    def test_ttl_above_configured_max(
        self, runner: CliRunner, tmp_path: Path, owner_key_file: Path
    ) -> None:
        config = tmp_path / "settings.json"
        config.write_text(
            json.dumps({"default_ttl_seconds": 60, "max_ttl_seconds": 120}), encoding="utf-8"
        )
        result = runner.invoke(
            cli,
            [
                "delegate",
                "--owner-key-file",
                str(owner_key_file),
                "--origin",
                "game.example",
                "--ttl",
                "600",
                "--config",
                str(config),
                "--output",
                str(tmp_path / "d.json"),
            ],
        )
        assert result.exit_code == 1

    def test_invalid_config(
        self, runner: CliRunner, tmp_path: Path, owner_key_file: Path
    ) -> None:
        config = tmp_path / "settings.json"
        config.write_text('{"default_ttl_seconds": 0}', encoding="utf-8")
        result = runner.invoke(
            cli,
            [
                "delegate",
                "--owner-key-file",
                str(owner_key_file),
                "--origin",
                "game.example",
                "--config",
                str(config),
                "--output",
                str(tmp_path / "d.json"),
            ],
        )
        assert result.exit_code == 1
        assert "invalid config" in result.output

    def test_config_audit_path_records_issuance(
        self, runner: CliRunner, tmp_path: Path, owner_key_file: Path
    ) -> None:
        audit_path = tmp_path / "audit.jsonl"
        config = tmp_path / "settings.json"
        config.write_text(json.dumps({"audit_log_path": str(audit_path)}), encoding="utf-8")
        result = runner.invoke(
            cli,
            [
                "delegate",
                "--owner-key-file",
                str(owner_key_file),
                "--origin",
                "game.example",
                "--config",
                str(config),
                "--output",
                str(tmp_path / "d.json"),
            ],
        )
        assert result.exit_code == 0, result.output
        lines = audit_path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event_type"] for line in lines] == ["delegation_issued"]


class TestSignCommand:
    def test_envelope_sent_from_contract(
        self, envelope_file: Path, owner_public_hex: str
    ) -> None:
        data = json.loads(envelope_file.read_text(encoding="utf-8"))
        expected = instantiate(OwnerKeySet.from_hex([owner_public_hex]), "game.example")
        assert data["transaction"]["sender"] == expected.address
        assert data["program"] == expected.program.hex()

    def test_owner_set_without_delegating_key(
        self,
        runner: CliRunner,
        tmp_path: Path,
        delegation_file: Path,
        tx_file: Path,
    ) -> None:
        result = runner.invoke(
            cli,
            [
                "sign",
                "--delegation-file",
                str(delegation_file),
                "--tx-file",
                str(tx_file),
                "-o",
                (b"\x01" * 32).hex(),
                "--output",
                str(tmp_path / "env.json"),
            ],
        )
        assert result.exit_code == 1
        assert "No unexpired delegation" in result.output


class TestAuthorizeCommand:
    def test_approved(self, runner: CliRunner, envelope_file: Path) -> None:
        result = runner.invoke(cli, ["authorize", str(envelope_file)])
        assert result.exit_code == 0, result.output
        assert "APPROVED" in result.output

    def test_rejected_after_expiry(self, runner: CliRunner, envelope_file: Path) -> None:
        result = runner.invoke(cli, ["authorize", str(envelope_file), "--now", "99999999999"])
        assert result.exit_code == 1
        assert "REJECTED" in result.output

    def test_explain_lists_gates(self, runner: CliRunner, envelope_file: Path) -> None:
        result = runner.invoke(
            cli, ["authorize", str(envelope_file), "--now", "99999999999", "--explain"]
        )
        assert result.exit_code == 1
        assert "expiry" in result.output
        assert "FAIL" in result.output

    def test_tampered_amount_rejected(self, runner: CliRunner, envelope_file: Path) -> None:
        data = json.loads(envelope_file.read_text(encoding="utf-8"))
        data["transaction"]["amount"] = 500
        envelope_file.write_text(json.dumps(data), encoding="utf-8")
        result = runner.invoke(cli, ["authorize", str(envelope_file)])
        assert result.exit_code == 1
        assert "REJECTED" in result.output

    def test_malformed_envelope(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "envelope.json"
        path.write_text("{}", encoding="utf-8")
        result = runner.invoke(cli, ["authorize", str(path)])
        assert result.exit_code == 1
        assert "malformed envelope" in result.output

    def test_config_audit_path_records_decision(
        self, runner: CliRunner, tmp_path: Path, envelope_file: Path
    ) -> None:
        audit_path = tmp_path / "audit.jsonl"
        config = tmp_path / "verifier.json"
        config.write_text(json.dumps({"audit_log_path": str(audit_path)}), encoding="utf-8")
        result = runner.invoke(cli, ["authorize", str(envelope_file), "--config", str(config)])
        assert result.exit_code == 0, result.output
        event = json.loads(audit_path.read_text(encoding="utf-8"))
        assert event["event_type"] == "authorization_evaluated"
        assert event["details"]["approved"] is True
