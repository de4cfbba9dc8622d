"""
Stream Examples - Demonstrations of accrual and streams

This example demonstrates:
- Lazy accrual for registered humans
- Redirecting part of an accrual rate with a stream
- Withdrawing and cancelling streams
- Signed approvals (permits) submitted by a relayer
- The event log left behind by every committed operation
"""

import tempfile
from pathlib import Path

from ubi_ledger import UBILedger
from ubi_ledger.kernel import InMemoryHumanityRegistry, LedgerParameters, TestTimeProvider
from ubi_ledger.token.permit import generate_keypair, sign_permit

START = 1_736_942_400


def make_ledger(db_path: Path, clock: TestTimeProvider, humans: set[str]) -> UBILedger:
    return UBILedger(
        db_path,
        InMemoryHumanityRegistry(humans),
        parameters=LedgerParameters(initial_accrued_per_second=1),
        time_provider=clock,
    )


def example_1_accrual_and_streams():
    """
    Example 1: Accrual and Streams

    Demonstrates:
    - Starting accrual
    - Creating a stream to another account
    - Balances of sender, stream and recipient over time
    """
    print("\n=== Example 1: Accrual and Streams ===\n")

    with tempfile.TemporaryDirectory() as tmpdir:
        clock = TestTimeProvider(START)
        ledger = make_ledger(Path(tmpdir) / "example1.db", clock, {"alice"})

        ledger.start_accruing("alice", caller="alice")
        clock.advance_seconds(100)
        print(f"After 100s alice holds {ledger.balance_of('alice')}")

        stream_id = ledger.create_stream(
            "bob", 1, START + 200, START + 300, caller="alice"
        )
        print(f"Created stream {stream_id}: alice -> bob at 1/s over [200, 300]")

        clock.set_time(START + 250)
        print(f"\nAt t=250:")
        print(f"  alice:  {ledger.balance_of('alice')}")
        print(f"  stream: {ledger.balance_of_stream(stream_id)}")

        paid = ledger.withdraw_from_streams([stream_id], caller="bob")
        print(f"  bob withdrew {paid}")

        clock.set_time(START + 400)
        ledger.withdraw_from_streams([stream_id], caller="bob")
        print(f"\nAt t=400 (stream finished):")
        print(f"  alice: {ledger.balance_of('alice')}")
        print(f"  bob:   {ledger.balance_of('bob')}")
        print(f"  stream still stored: {ledger.get_stream(stream_id) is not None}")


def example_2_cancel_and_permit():
    """
    Example 2: Cancelling and Permits

    Demonstrates:
    - Recipient cancelling a stream mid-window
    - An owner authorizing a spender with an offline signature
    """
    print("\n=== Example 2: Cancelling and Permits ===\n")

    with tempfile.TemporaryDirectory() as tmpdir:
        clock = TestTimeProvider(START)
        owner, secret = generate_keypair()
        ledger = make_ledger(Path(tmpdir) / "example2.db", clock, {owner})

        ledger.start_accruing(owner, caller=owner)
        stream_id = ledger.create_stream("carol", 1, START + 10, START + 110, caller=owner)
        clock.advance_seconds(60)
        paid = ledger.cancel_stream(stream_id, caller="carol")
        print(f"carol cancelled stream {stream_id} and received {paid}")

        deadline = clock.now() + 3_600
        _, signature = sign_permit(secret, ledger.parameters, "shop", 25, 0, deadline)
        ledger.permit(owner, "shop", 25, deadline, signature, caller="relayer")
        ledger.transfer_from(owner, "shop", 25, caller="shop")
        print(f"shop pulled 25 with a permit; nonce is now {ledger.nonces(owner)}")

        print("\nEvent log:")
        for event in ledger.events():
            print(f"  {event['event_type']:<16} {event['payload']}")


if __name__ == "__main__":
    print("=" * 70)
    print("UBI Ledger - Stream Examples")
    print("=" * 70)

    example_1_accrual_and_streams()
    example_2_cancel_and_permit()

    print("\n" + "=" * 70)
    print("✓ All examples completed successfully!")
    print("=" * 70)
