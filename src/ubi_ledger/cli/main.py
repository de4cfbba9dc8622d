"""
UBI Ledger CLI

Command-line interface for a UBI ledger kept in a local SQLite database.
The humanity registry lives in the same database file, so a single file
is a complete, self-contained deployment for demos and testing.

Usage:
    ubi init --db ubi.db
    ubi human register alice
    ubi accrue start alice --caller alice
    ubi balance alice
    ubi stream create --to bob --rate 1 --start-in 60 --duration 3600 --caller alice
    ubi stream withdraw 1 --caller bob
    ubi events --type Transfer
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from typing_extensions import Annotated

from ubi_ledger.kernel.errors import UBIError
from ubi_ledger.kernel.logging import configure_logging
from ubi_ledger.kernel.parameters import LedgerParameters
from ubi_ledger.kernel.registry import SQLiteHumanityRegistry
from ubi_ledger.ledger import UBILedger

# Configure logging to stderr (avoids polluting stdout for JSON output)
configure_logging(json_output=False, log_level="WARNING")

app = typer.Typer(
    name="ubi",
    help="UBI Ledger - continuously accruing token with streams",
    add_completion=False,
)

# Sub-apps
human_app = typer.Typer(help="Humanity registry commands")
accrue_app = typer.Typer(help="Accrual lifecycle commands")
stream_app = typer.Typer(help="Stream management commands")

app.add_typer(human_app, name="human")
app.add_typer(accrue_app, name="accrue")
app.add_typer(stream_app, name="stream")

# Global state
DEFAULT_DB = Path(".ubi.db")

DbOption = Annotated[Optional[Path], typer.Option("--db", help="Database path")]
CallerOption = Annotated[str, typer.Option("--caller", help="Account performing the call")]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def get_ledger(db_path: Optional[Path] = None) -> UBILedger:
    """Open the ledger and its registry"""
    db = db_path or DEFAULT_DB
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'ubi init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return UBILedger(db, SQLiteHumanityRegistry(db), parameters=LedgerParameters.from_env())


@contextmanager
def rejected_as_exit() -> Iterator[None]:
    """Report a rejected operation on stderr and exit with status 1"""
    try:
        yield
    except UBIError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    except ValidationError as e:
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"])
            typer.echo(f"Error: {field}: {error['msg']}", err=True)
        raise typer.Exit(1) from e


# Initialization command


@app.command()
def init(
    db: Annotated[
        Path,
        typer.Option(help="Database path"),
    ] = DEFAULT_DB,
) -> None:
    """Initialize a new ledger database"""
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    ledger = UBILedger(db, SQLiteHumanityRegistry(db), parameters=LedgerParameters.from_env())
    typer.echo(f"✓ Initialized ledger database: {db}")
    typer.echo(f"  Token: {ledger.name} ({ledger.symbol})")
    typer.echo(f"  Governor: {ledger.governor()}")


# Registry commands


@human_app.command("register")
def human_register(
    account: Annotated[str, typer.Argument(help="Account to register")],
    db: DbOption = None,
) -> None:
    """Register an account as a verified human"""
    get_ledger(db)
    SQLiteHumanityRegistry(db or DEFAULT_DB).register(account)
    typer.echo(f"✓ Registered human: {account}")


@human_app.command("remove")
def human_remove(
    account: Annotated[str, typer.Argument(help="Account to remove")],
    db: DbOption = None,
) -> None:
    """Remove an account from the registry"""
    get_ledger(db)
    SQLiteHumanityRegistry(db or DEFAULT_DB).remove(account)
    typer.echo(f"✓ Removed human: {account}")


@human_app.command("list")
def human_list(db: DbOption = None) -> None:
    """List registered humans"""
    get_ledger(db)
    humans = SQLiteHumanityRegistry(db or DEFAULT_DB).list_humans()

    if not humans:
        typer.echo("No registered humans")
        return

    typer.echo(f"Registered Humans ({len(humans)}):")
    for human in humans:
        typer.echo(f"  {human}")


# Accrual commands


@accrue_app.command("start")
def accrue_start(
    human: Annotated[str, typer.Argument(help="Registered human")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Start accrual for a registered human"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        ledger.start_accruing(human, caller=caller)
    typer.echo(f"✓ Accrual started: {human}")


@accrue_app.command("report-removal")
def accrue_report_removal(
    human: Annotated[str, typer.Argument(help="Human no longer registered")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Stop accrual of a removed human and collect the bounty"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        reward = ledger.report_removal(human, caller=caller)
    typer.echo(f"✓ Removal reported: {human}")
    typer.echo(f"  Paid to {caller}: {reward}")


# Token commands


@app.command()
def balance(
    account: Annotated[str, typer.Argument(help="Account to inspect")],
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show an account's balance"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        info = {
            "account": account,
            "balance": ledger.balance_of(account),
            "accruing": ledger.is_accruing(account),
            "accrued_value": ledger.get_accrued_value(account),
            "delegated_rate": ledger.get_delegated_value(account),
            "streams": ledger.get_streams_count(account),
            "nonce": ledger.nonces(account),
        }

    if json_output:
        typer.echo(json.dumps(info, indent=2))
        return

    typer.echo(f"Account: {account}")
    typer.echo(f"  Balance: {info['balance']} {ledger.symbol}")
    typer.echo(f"  Accruing: {'yes' if info['accruing'] else 'no'}")
    typer.echo(f"  Delegated rate: {info['delegated_rate']}/s")
    typer.echo(f"  Outgoing streams: {info['streams']}")


@app.command()
def transfer(
    recipient: Annotated[str, typer.Option("--to", help="Recipient account")],
    amount: Annotated[int, typer.Option("--amount", help="Amount (smallest unit)")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Transfer tokens from the caller"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        ledger.transfer(recipient, amount, caller=caller)
    typer.echo(f"✓ Transferred {amount} from {caller} to {recipient}")


@app.command()
def approve(
    spender: Annotated[str, typer.Option("--spender", help="Spender account")],
    amount: Annotated[int, typer.Option("--amount", help="Allowance to set")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Set the caller's allowance for a spender"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        ledger.approve(spender, amount, caller=caller)
    typer.echo(f"✓ Allowance of {spender} on {caller}: {amount}")


@app.command()
def burn(
    amount: Annotated[int, typer.Option("--amount", help="Amount to burn")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Burn tokens held by the caller"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        ledger.burn(amount, caller=caller)
    typer.echo(f"✓ Burned {amount} from {caller}")


@app.command()
def supply(
    db: DbOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show total supply and ledger parameters"""
    ledger = get_ledger(db)
    stats = ledger.stats()

    if json_output:
        typer.echo(json.dumps(stats, indent=2))
        return

    typer.echo(f"{stats['name']} ({stats['symbol']})")
    typer.echo(f"  Total supply: {stats['total_supply']}")
    typer.echo(f"  Accrued per second: {stats['accrued_per_second']}")
    typer.echo(f"  Live streams: {stats['live_streams']}")
    typer.echo(f"  Governor: {stats['governor']}")


@app.command()
def events(
    event_type: Annotated[
        Optional[str],
        typer.Option("--type", help="Filter by event type (e.g. Transfer)"),
    ] = None,
    subject: Annotated[
        Optional[str],
        typer.Option("--subject", help="Filter by account or stream:<id>"),
    ] = None,
    limit: Annotated[int, typer.Option("--limit", help="Maximum events")] = 50,
    db: DbOption = None,
) -> None:
    """Show committed events, oldest first"""
    ledger = get_ledger(db)
    found = ledger.events(event_type=event_type, subject_id=subject, limit=limit)
    typer.echo(json.dumps(found, indent=2, default=str))


# Stream commands


@stream_app.command("create")
def stream_create(
    recipient: Annotated[str, typer.Option("--to", help="Recipient account")],
    rate: Annotated[int, typer.Option("--rate", help="Rate per second")],
    duration: Annotated[int, typer.Option("--duration", help="Window length in seconds")],
    caller: CallerOption,
    start_in: Annotated[
        int, typer.Option("--start-in", help="Seconds from now until the window opens")
    ] = 60,
    db: DbOption = None,
) -> None:
    """Redirect part of the caller's accrual to a recipient"""
    ledger = get_ledger(db)
    start_time = ledger.time_provider.now() + start_in
    with rejected_as_exit():
        stream_id = ledger.create_stream(
            recipient, rate, start_time, start_time + duration, caller=caller
        )
    typer.echo(f"✓ Created stream: {stream_id}")
    typer.echo(f"  {caller} -> {recipient} at {rate}/s")
    typer.echo(f"  Window: {start_time} - {start_time + duration}")


@stream_app.command("withdraw")
def stream_withdraw(
    stream_ids: Annotated[List[int], typer.Argument(help="Stream ids")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Pay out the withdrawable value of streams"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        paid = ledger.withdraw_from_streams(stream_ids, caller=caller)
    typer.echo(f"✓ Withdrawn {paid} from {len(stream_ids)} stream(s)")


@stream_app.command("cancel")
def stream_cancel(
    stream_id: Annotated[int, typer.Argument(help="Stream id")],
    caller: CallerOption,
    db: DbOption = None,
) -> None:
    """Settle and delete a stream (sender or recipient)"""
    ledger = get_ledger(db)
    with rejected_as_exit():
        paid = ledger.cancel_stream(stream_id, caller=caller)
    typer.echo(f"✓ Cancelled stream: {stream_id}")
    typer.echo(f"  Paid to recipient: {paid}")


@stream_app.command("list")
def stream_list(
    sender: Annotated[str, typer.Argument(help="Sender account")],
    db: DbOption = None,
) -> None:
    """List a sender's live streams"""
    ledger = get_ledger(db)
    stream_ids = sorted(ledger.get_streams_of(sender))

    if not stream_ids:
        typer.echo(f"No streams from {sender}")
        return

    typer.echo(f"Streams from {sender} ({len(stream_ids)}):")
    for stream_id in stream_ids:
        stream = ledger.get_stream(stream_id)
        typer.echo(
            f"  {stream_id}: -> {stream.recipient} at {stream.rate_per_second}/s "
            f"[{stream.start_time}, {stream.stop_time}]"
        )


@stream_app.command("show")
def stream_show(
    stream_id: Annotated[int, typer.Argument(help="Stream id")],
    db: DbOption = None,
) -> None:
    """Show a stream and its withdrawable value"""
    ledger = get_ledger(db)
    stream = ledger.get_stream(stream_id)

    if not stream:
        typer.echo(f"Error: Stream not found: {stream_id}", err=True)
        raise typer.Exit(1)

    details = stream.model_dump()
    details["withdrawable"] = ledger.balance_of_stream(stream_id)
    details["delta_seconds"] = ledger.delta_of(stream_id)
    typer.echo(json.dumps(details, indent=2))


if __name__ == "__main__":
    app()
