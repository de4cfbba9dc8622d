"""
Custom exceptions for the UBI ledger

Every failure is synchronous and aborts the whole operation, so each
exception carries enough context to explain the rejection to the caller.

Fun fact: Double-entry bookkeeping was codified by Luca Pacioli in 1494.
Five centuries later we still refuse to let a balance go negative!
"""


class UBIError(Exception):
    """Base exception for all UBI ledger errors"""

    pass


class StoreError(UBIError):
    """Raised when the persistent store cannot be read or written"""

    pass


class ReentrancyDetected(UBIError):
    """Raised when a mutating operation is entered while another is running"""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"Operation {operation} attempted while another mutation is in progress"
        )


# Ledger Core Errors


class LedgerError(UBIError):
    """Base class for balance, allowance and accrual errors"""

    pass


class InsufficientBalance(LedgerError):
    """Raised when a debit would take a settled balance below zero"""

    def __init__(self, account: str, available: int, requested: int) -> None:
        self.account = account
        self.available = available
        self.requested = requested
        super().__init__(
            f"Account {account} has {available} available, {requested} requested"
        )


class ArithmeticUnderflow(LedgerError):
    """Raised when a derived quantity would go negative"""

    def __init__(self, quantity: str, value: int) -> None:
        self.quantity = quantity
        self.value = value
        super().__init__(f"{quantity} would underflow to {value}")


class AllowanceExceeded(LedgerError):
    """Raised when a spender tries to move more than it was approved for"""

    def __init__(self, owner: str, spender: str, allowance: int, requested: int) -> None:
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.requested = requested
        super().__init__(
            f"Spender {spender} is allowed {allowance} of {owner}'s balance, "
            f"{requested} requested"
        )


class AllowanceUnderflow(LedgerError):
    """Raised when decreasing an allowance below zero"""

    def __init__(self, owner: str, spender: str, allowance: int, decrease: int) -> None:
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.decrease = decrease
        super().__init__(
            f"Cannot decrease allowance of {spender} on {owner} by {decrease} "
            f"(current: {allowance})"
        )


class TransferToZeroAccount(LedgerError):
    """Raised when a transfer names the zero account as recipient (use burn)"""

    def __init__(self, sender: str) -> None:
        self.sender = sender
        super().__init__(f"Account {sender} cannot transfer to the zero account")


class NotRegistered(LedgerError):
    """Raised when an account must be a registered human but is not"""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(f"Account {account} is not a registered human")


class StillRegistered(LedgerError):
    """Raised when reporting the removal of a human who is still registered"""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(f"Account {account} is still registered")


class AlreadyAccruing(LedgerError):
    """Raised when start_accruing is called twice for the same human"""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(f"Account {account} is already accruing")


class NotAccruing(LedgerError):
    """Raised when an operation requires an accruing account"""

    def __init__(self, account: str) -> None:
        self.account = account
        super().__init__(f"Account {account} is not accruing")


class ExpiredAuthorization(LedgerError):
    """Raised when a signed approval is submitted after its deadline"""

    def __init__(self, deadline: int, now: int) -> None:
        self.deadline = deadline
        self.now = now
        super().__init__(f"Authorization expired at {deadline} (now: {now})")


class InvalidAuthorization(LedgerError):
    """Raised when a signed approval was not signed by the claimed owner"""

    def __init__(self, owner: str, reason: str = "signature does not match owner") -> None:
        self.owner = owner
        self.reason = reason
        super().__init__(f"Invalid authorization for {owner}: {reason}")


class NotGovernor(LedgerError):
    """Raised when an administrative operation is called by a non-governor"""

    def __init__(self, caller: str) -> None:
        self.caller = caller
        super().__init__(f"Caller {caller} is not the governor")


# Stream Errors


class StreamError(UBIError):
    """Base class for stream errors"""

    pass


class InvalidStream(StreamError):
    """Base class for stream creation precondition failures"""

    pass


class SenderNotAccruing(InvalidStream):
    """Raised when the stream sender is not a registered, accruing human"""

    def __init__(self, sender: str) -> None:
        self.sender = sender
        super().__init__(f"Sender {sender} must be registered and accruing to stream")


class InvalidRecipient(InvalidStream):
    """Raised when the recipient is the zero account, the ledger or the sender"""

    def __init__(self, recipient: str) -> None:
        self.recipient = recipient
        super().__init__(f"Recipient {recipient} cannot receive this stream")


class InvalidRate(InvalidStream):
    """Raised when the stream rate is zero"""

    def __init__(self, rate_per_second: int) -> None:
        self.rate_per_second = rate_per_second
        super().__init__(f"Stream rate must be positive, got {rate_per_second}")


class StartTimeInPast(InvalidStream):
    """Raised when a stream would start at or before the current time"""

    def __init__(self, start_time: int, now: int) -> None:
        self.start_time = start_time
        self.now = now
        super().__init__(f"Stream start {start_time} must be after now ({now})")


class InvalidTimeWindow(InvalidStream):
    """Raised when stop_time is not after start_time"""

    def __init__(self, start_time: int, stop_time: int) -> None:
        self.start_time = start_time
        self.stop_time = stop_time
        super().__init__(f"Stream stop {stop_time} must be after start {start_time}")


class RateExceedsAccrual(InvalidStream):
    """Raised when a single stream rate exceeds the global accrual rate"""

    def __init__(self, rate_per_second: int, accrued_per_second: int) -> None:
        self.rate_per_second = rate_per_second
        self.accrued_per_second = accrued_per_second
        super().__init__(
            f"Stream rate {rate_per_second} exceeds accrual rate {accrued_per_second}"
        )


class TooManyStreams(InvalidStream):
    """Raised when the sender already holds the maximum number of streams"""

    def __init__(self, sender: str, count: int, maximum: int) -> None:
        self.sender = sender
        self.count = count
        self.maximum = maximum
        super().__init__(f"Sender {sender} has {count} streams (maximum: {maximum})")


class OverlappingStream(StreamError):
    """Raised when a same-pair stream already covers part of the window"""

    def __init__(self, sender: str, recipient: str, existing_stream_id: int) -> None:
        self.sender = sender
        self.recipient = recipient
        self.existing_stream_id = existing_stream_id
        super().__init__(
            f"Stream {existing_stream_id} from {sender} to {recipient} "
            "overlaps the requested window"
        )


class CircularDelegation(StreamError):
    """Raised when the recipient already streams back to the sender in the window"""

    def __init__(self, sender: str, recipient: str, existing_stream_id: int) -> None:
        self.sender = sender
        self.recipient = recipient
        self.existing_stream_id = existing_stream_id
        super().__init__(
            f"Stream {existing_stream_id} from {recipient} back to {sender} "
            "overlaps the requested window"
        )


class DelegationExceedsCapacity(StreamError):
    """Raised when overlapping stream rates would exceed the accrual rate"""

    def __init__(self, sender: str, delegated_rate: int, accrued_per_second: int) -> None:
        self.sender = sender
        self.delegated_rate = delegated_rate
        self.accrued_per_second = accrued_per_second
        super().__init__(
            f"Sender {sender} would delegate {delegated_rate} per second, "
            f"more than the accrual rate {accrued_per_second}"
        )


class StreamNotFound(StreamError):
    """Raised when a stream does not exist (never created or already deleted)"""

    def __init__(self, stream_id: int) -> None:
        self.stream_id = stream_id
        super().__init__(f"Stream {stream_id} not found")


class StreamNotYetAccruing(StreamError):
    """Raised when withdrawing from a stream that has nothing withdrawable"""

    def __init__(self, stream_id: int, start_time: int, now: int) -> None:
        self.stream_id = stream_id
        self.start_time = start_time
        self.now = now
        super().__init__(
            f"Stream {stream_id} is not accruing (starts at {start_time}, now: {now})"
        )


class NotStreamParty(StreamError):
    """Raised when someone other than the sender or recipient cancels a stream"""

    def __init__(self, stream_id: int, caller: str) -> None:
        self.stream_id = stream_id
        self.caller = caller
        super().__init__(f"Caller {caller} is neither sender nor recipient of stream {stream_id}")
