"""
CLI Integration Tests

Drives the typer app end-to-end against a temporary database. The CLI
runs on the real clock, so assertions avoid exact accrued amounts.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ubi_ledger.cli.main import app

runner = CliRunner()


@pytest.fixture
def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("UBI_ACCRUED_PER_SECOND", "1000")
    db_path = tmp_path / "cli.db"
    result = runner.invoke(app, ["init", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "Initialized ledger database" in result.stdout
    return db_path


def invoke(db: Path, *args: str):
    return runner.invoke(app, [*args, "--db", str(db)])


def test_init_refuses_existing_database(db: Path) -> None:
    result = runner.invoke(app, ["init", "--db", str(db)])
    assert result.exit_code == 1


def test_commands_require_initialized_database(tmp_path: Path) -> None:
    result = runner.invoke(app, ["supply", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1


def test_registry_commands(db: Path) -> None:
    assert invoke(db, "human", "register", "alice").exit_code == 0
    assert invoke(db, "human", "register", "bob").exit_code == 0

    result = invoke(db, "human", "list")
    assert "Registered Humans (2)" in result.stdout
    assert "alice" in result.stdout

    assert invoke(db, "human", "remove", "bob").exit_code == 0
    assert "Registered Humans (1)" in invoke(db, "human", "list").stdout


def test_accrual_and_balance(db: Path) -> None:
    invoke(db, "human", "register", "alice")

    result = invoke(db, "accrue", "start", "alice", "--caller", "alice")
    assert result.exit_code == 0
    assert "Accrual started: alice" in result.stdout

    result = invoke(db, "balance", "alice", "--json")
    assert result.exit_code == 0
    info = json.loads(result.stdout)
    assert info["accruing"] is True
    assert info["balance"] >= 0


def test_unregistered_human_cannot_start(db: Path) -> None:
    result = invoke(db, "accrue", "start", "mallory", "--caller", "mallory")

    assert result.exit_code == 1
    assert "not a registered human" in result.output


def test_transfer_beyond_balance_is_rejected(db: Path) -> None:
    result = invoke(db, "transfer", "--to", "bob", "--amount", "5", "--caller", "alice")

    assert result.exit_code == 1
    assert "Error" in result.output


def test_negative_amount_is_rejected_without_traceback(db: Path) -> None:
    result = invoke(db, "transfer", "--to", "bob", "--amount=-5", "--caller", "alice")

    assert result.exit_code == 1
    assert "Error: amount" in result.output
    assert "Traceback" not in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_approve_and_burn(db: Path) -> None:
    result = invoke(db, "approve", "--spender", "bob", "--amount", "50", "--caller", "alice")
    assert result.exit_code == 0
    assert "Allowance of bob on alice: 50" in result.stdout

    result = invoke(db, "burn", "--amount", "0", "--caller", "alice")
    assert result.exit_code == 0


def test_stream_commands(db: Path) -> None:
    invoke(db, "human", "register", "alice")
    invoke(db, "accrue", "start", "alice", "--caller", "alice")

    result = invoke(
        db,
        "stream", "create",
        "--to", "bob",
        "--rate", "10",
        "--start-in", "3600",
        "--duration", "600",
        "--caller", "alice",
    )
    assert result.exit_code == 0
    assert "Created stream: 1" in result.stdout

    result = invoke(db, "stream", "list", "alice")
    assert "Streams from alice (1)" in result.stdout

    result = invoke(db, "stream", "show", "1")
    details = json.loads(result.stdout)
    assert details["recipient"] == "bob"
    assert details["withdrawable"] == 0

    result = invoke(db, "stream", "withdraw", "1", "--caller", "bob")
    assert result.exit_code == 1

    result = invoke(db, "stream", "cancel", "1", "--caller", "carol")
    assert result.exit_code == 1

    result = invoke(db, "stream", "cancel", "1", "--caller", "alice")
    assert result.exit_code == 0
    assert "Cancelled stream: 1" in result.stdout

    assert invoke(db, "stream", "show", "1").exit_code == 1
    assert "No streams from alice" in invoke(db, "stream", "list", "alice").stdout


def test_report_removal(db: Path) -> None:
    invoke(db, "human", "register", "alice")
    invoke(db, "accrue", "start", "alice", "--caller", "alice")
    invoke(db, "human", "remove", "alice")

    result = invoke(db, "accrue", "report-removal", "alice", "--caller", "bob")

    assert result.exit_code == 0
    assert "Removal reported: alice" in result.stdout


def test_supply_and_events(db: Path) -> None:
    invoke(db, "human", "register", "alice")
    invoke(db, "accrue", "start", "alice", "--caller", "alice")

    result = invoke(db, "supply", "--json")
    stats = json.loads(result.stdout)
    assert stats["symbol"] == "UBI"
    assert stats["accrued_per_second"] == 1000

    result = invoke(db, "events", "--type", "AccrualStarted")
    events = json.loads(result.stdout)
    assert len(events) == 1
    assert events[0]["subject_id"] == "alice"
