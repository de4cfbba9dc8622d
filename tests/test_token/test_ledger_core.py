"""
Tests for the Ledger Core: balances, transfers, burns and allowances

Balances are checked through the facade, i.e. exactly as a client sees
them: the settled part plus whatever accrued since the last checkpoint.
"""

import pytest
from pydantic import ValidationError

from ubi_ledger.kernel.errors import (
    AllowanceExceeded,
    AllowanceUnderflow,
    AlreadyAccruing,
    InsufficientBalance,
    NotAccruing,
    NotRegistered,
    StillRegistered,
    TransferToZeroAccount,
)
from ubi_ledger.kernel.parameters import ZERO_ACCOUNT
from ubi_ledger.kernel.registry import InMemoryHumanityRegistry
from ubi_ledger.kernel.time import TestTimeProvider
from ubi_ledger.ledger import UBILedger


@pytest.fixture
def accruing_ledger(ledger: UBILedger, test_time: TestTimeProvider) -> UBILedger:
    """Ledger where alice has been accruing for 100 seconds (1000 units)"""
    ledger.start_accruing("alice", caller="alice")
    test_time.advance_seconds(100)
    return ledger


# =============================================================================
# Accrual Lifecycle
# =============================================================================


def test_token_metadata(ledger: UBILedger) -> None:
    assert ledger.name == "Universal Basic Income"
    assert ledger.symbol == "UBI"
    assert ledger.decimals == 18


def test_balance_grows_without_any_write(
    ledger: UBILedger, test_time: TestTimeProvider
) -> None:
    """Accrual is lazy: balances grow while total supply stays put"""
    ledger.start_accruing("alice", caller="alice")
    assert ledger.balance_of("alice") == 0

    test_time.advance_seconds(100)

    assert ledger.balance_of("alice") == 1_000
    assert ledger.get_accrued_value("alice") == 1_000
    assert ledger.total_supply() == 0


def test_start_accruing_requires_registration(ledger: UBILedger) -> None:
    with pytest.raises(NotRegistered) as exc_info:
        ledger.start_accruing("mallory", caller="mallory")

    assert exc_info.value.account == "mallory"
    assert not ledger.is_accruing("mallory")


def test_start_accruing_twice_fails(accruing_ledger: UBILedger) -> None:
    with pytest.raises(AlreadyAccruing):
        accruing_ledger.start_accruing("alice", caller="bob")


def test_anyone_can_start_accrual_for_a_human(ledger: UBILedger) -> None:
    ledger.start_accruing("alice", caller="relayer")

    assert ledger.is_accruing("alice")
    started = ledger.events(event_type="AccrualStarted")
    assert started[0]["payload"]["human"] == "alice"
    assert started[0]["actor_id"] == "relayer"


def test_accrual_frozen_while_unregistered(
    accruing_ledger: UBILedger,
    registry: InMemoryHumanityRegistry,
    test_time: TestTimeProvider,
) -> None:
    registry.remove("alice")

    assert accruing_ledger.balance_of("alice") == 0
    test_time.advance_seconds(50)
    assert accruing_ledger.balance_of("alice") == 0

    # The checkpoint was never cleared, so accrual resumes from it
    registry.register("alice")
    assert accruing_ledger.balance_of("alice") == 1_500


def test_report_removal_pays_reporter(
    accruing_ledger: UBILedger, registry: InMemoryHumanityRegistry
) -> None:
    registry.remove("alice")

    reward = accruing_ledger.report_removal("alice", caller="bob")

    assert reward == 1_000
    assert accruing_ledger.balance_of("bob") == 1_000
    assert accruing_ledger.total_supply() == 1_000
    assert not accruing_ledger.is_accruing("alice")

    event = accruing_ledger.events(event_type="RemovalReported")[0]
    assert event["payload"] == {"human": "alice", "reporter": "bob", "amount": 1_000}


def test_report_removal_of_registered_human_fails(accruing_ledger: UBILedger) -> None:
    with pytest.raises(StillRegistered):
        accruing_ledger.report_removal("alice", caller="bob")


def test_report_removal_of_non_accruing_human_fails(
    ledger: UBILedger, registry: InMemoryHumanityRegistry
) -> None:
    registry.remove("carol")

    with pytest.raises(NotAccruing):
        ledger.report_removal("carol", caller="bob")


def test_removed_human_can_start_again(
    accruing_ledger: UBILedger,
    registry: InMemoryHumanityRegistry,
    test_time: TestTimeProvider,
) -> None:
    registry.remove("alice")
    accruing_ledger.report_removal("alice", caller="bob")
    registry.register("alice")

    accruing_ledger.start_accruing("alice", caller="alice")
    test_time.advance_seconds(10)

    assert accruing_ledger.balance_of("alice") == 100


# =============================================================================
# Transfers
# =============================================================================


def test_transfer_reconciles_sender(accruing_ledger: UBILedger) -> None:
    """A transfer materializes the sender's accrual into total supply"""
    assert accruing_ledger.transfer("bob", 300, caller="alice") is True

    assert accruing_ledger.balance_of("alice") == 700
    assert accruing_ledger.balance_of("bob") == 300
    assert accruing_ledger.total_supply() == 1_000
    assert accruing_ledger.state.get_account("alice").accrual_checkpoint == (
        accruing_ledger.time_provider.now()
    )


def test_transfer_keeps_accruing_afterwards(
    accruing_ledger: UBILedger, test_time: TestTimeProvider
) -> None:
    accruing_ledger.transfer("bob", 300, caller="alice")
    test_time.advance_seconds(10)

    assert accruing_ledger.balance_of("alice") == 800
    assert accruing_ledger.total_supply() == 1_000


def test_transfer_emits_event(accruing_ledger: UBILedger) -> None:
    accruing_ledger.transfer("bob", 300, caller="alice")

    events = accruing_ledger.events(event_type="Transfer")
    assert len(events) == 1
    assert events[0]["payload"] == {"sender": "alice", "recipient": "bob", "amount": 300}
    assert events[0]["subject_id"] == "alice"


def test_transfer_exceeding_balance_changes_nothing(accruing_ledger: UBILedger) -> None:
    """A rejected transfer rolls back the reconcile it started with"""
    with pytest.raises(InsufficientBalance) as exc_info:
        accruing_ledger.transfer("bob", 1_001, caller="alice")

    assert exc_info.value.account == "alice"
    assert exc_info.value.available == 1_000
    assert exc_info.value.requested == 1_001
    assert accruing_ledger.total_supply() == 0
    assert accruing_ledger.balance_of("alice") == 1_000
    assert accruing_ledger.events(event_type="Transfer") == []


def test_transfer_whole_balance(accruing_ledger: UBILedger) -> None:
    accruing_ledger.transfer("bob", 1_000, caller="alice")

    assert accruing_ledger.balance_of("alice") == 0
    assert accruing_ledger.balance_of("bob") == 1_000


def test_non_human_accounts_hold_but_do_not_accrue(
    accruing_ledger: UBILedger, test_time: TestTimeProvider
) -> None:
    accruing_ledger.transfer("shop", 400, caller="alice")
    test_time.advance_seconds(100)

    assert accruing_ledger.balance_of("shop") == 400
    accruing_ledger.transfer("bob", 400, caller="shop")
    assert accruing_ledger.balance_of("shop") == 0


def test_negative_amount_rejected_by_command(accruing_ledger: UBILedger) -> None:
    with pytest.raises(ValidationError):
        accruing_ledger.transfer("bob", -1, caller="alice")


def test_transfer_to_zero_account_rejected(accruing_ledger: UBILedger) -> None:
    """Value leaves the supply only through burn"""
    with pytest.raises(TransferToZeroAccount) as exc_info:
        accruing_ledger.transfer(ZERO_ACCOUNT, 100, caller="alice")

    assert exc_info.value.sender == "alice"
    assert accruing_ledger.balance_of(ZERO_ACCOUNT) == 0
    assert accruing_ledger.events(event_type="Transfer") == []

    accruing_ledger.approve("bob", 100, caller="alice")
    with pytest.raises(TransferToZeroAccount):
        accruing_ledger.transfer_from("alice", ZERO_ACCOUNT, 100, caller="bob")
    assert accruing_ledger.allowance("alice", "bob") == 100


# =============================================================================
# Burns
# =============================================================================


def test_burn_reduces_supply(accruing_ledger: UBILedger) -> None:
    accruing_ledger.burn(200, caller="alice")

    assert accruing_ledger.balance_of("alice") == 800
    assert accruing_ledger.total_supply() == 800

    event = accruing_ledger.events(event_type="Transfer")[0]
    assert event["payload"]["recipient"] == ZERO_ACCOUNT
    assert event["payload"]["amount"] == 200


def test_burn_more_than_balance_fails(accruing_ledger: UBILedger) -> None:
    with pytest.raises(InsufficientBalance):
        accruing_ledger.burn(5_000, caller="alice")
    assert accruing_ledger.total_supply() == 0


def test_burn_from_consumes_allowance(accruing_ledger: UBILedger) -> None:
    accruing_ledger.approve("bob", 300, caller="alice")

    accruing_ledger.burn_from("alice", 100, caller="bob")

    assert accruing_ledger.allowance("alice", "bob") == 200
    assert accruing_ledger.balance_of("alice") == 900
    assert accruing_ledger.total_supply() == 900


# =============================================================================
# Allowances
# =============================================================================


def test_approve_sets_allowance(ledger: UBILedger) -> None:
    assert ledger.approve("bob", 500, caller="alice") is True
    assert ledger.allowance("alice", "bob") == 500

    ledger.approve("bob", 50, caller="alice")
    assert ledger.allowance("alice", "bob") == 50

    approvals = ledger.events(event_type="Approval")
    assert [e["payload"]["amount"] for e in approvals] == [500, 50]


def test_increase_and_decrease_allowance(ledger: UBILedger) -> None:
    ledger.increase_allowance("bob", 100, caller="alice")
    ledger.increase_allowance("bob", 50, caller="alice")
    ledger.decrease_allowance("bob", 30, caller="alice")

    assert ledger.allowance("alice", "bob") == 120


def test_decrease_allowance_below_zero_fails(ledger: UBILedger) -> None:
    ledger.approve("bob", 10, caller="alice")

    with pytest.raises(AllowanceUnderflow) as exc_info:
        ledger.decrease_allowance("bob", 11, caller="alice")

    assert exc_info.value.allowance == 10
    assert exc_info.value.decrease == 11
    assert ledger.allowance("alice", "bob") == 10


def test_transfer_from_with_allowance(accruing_ledger: UBILedger) -> None:
    accruing_ledger.approve("bob", 400, caller="alice")

    accruing_ledger.transfer_from("alice", "carol", 250, caller="bob")

    assert accruing_ledger.allowance("alice", "bob") == 150
    assert accruing_ledger.balance_of("alice") == 750
    assert accruing_ledger.balance_of("carol") == 250
    assert accruing_ledger.balance_of("bob") == 0


def test_transfer_from_without_allowance_fails(accruing_ledger: UBILedger) -> None:
    with pytest.raises(AllowanceExceeded) as exc_info:
        accruing_ledger.transfer_from("alice", "bob", 1, caller="bob")

    assert exc_info.value.owner == "alice"
    assert exc_info.value.spender == "bob"
    assert exc_info.value.allowance == 0


def test_transfer_from_rolls_back_allowance_on_insufficient_balance(
    accruing_ledger: UBILedger,
) -> None:
    """The allowance is decremented first, and restored when the debit fails"""
    accruing_ledger.approve("bob", 5_000, caller="alice")

    with pytest.raises(InsufficientBalance):
        accruing_ledger.transfer_from("alice", "bob", 2_000, caller="bob")

    assert accruing_ledger.allowance("alice", "bob") == 5_000


# =============================================================================
# Persistence
# =============================================================================


def test_state_survives_reopening(
    accruing_ledger: UBILedger,
    registry: InMemoryHumanityRegistry,
    test_time: TestTimeProvider,
) -> None:
    accruing_ledger.transfer("bob", 300, caller="alice")
    accruing_ledger.approve("carol", 20, caller="bob")

    reopened = UBILedger(
        accruing_ledger.sqlite_path,
        registry,
        parameters=accruing_ledger.parameters,
        time_provider=test_time,
    )

    assert reopened.balance_of("alice") == 700
    assert reopened.balance_of("bob") == 300
    assert reopened.allowance("bob", "carol") == 20
    assert reopened.total_supply() == 1_000
    assert len(reopened.events(event_type="Transfer")) == 1
