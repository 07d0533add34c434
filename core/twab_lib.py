"""
TWAB Library for the Prize Pool Protocol.

This module implements the time-weighted average balance (TWAB) history that
backs ticket balances. Each account keeps a fixed-capacity ring of
observations; every observation stores the running sum of
balance * elapsed seconds at a timestamp. Differencing two observations and
dividing by the time between them yields the average balance over that
interval, so historical balances can be read back with a single binary search.

The functions here are stateless: they operate on whatever Account is passed
in. The Ticket ledger owns the mapping from holders to accounts.
"""

from dataclasses import dataclass, field, replace
from typing import List, Sequence, Tuple

import ring_index

# Default ring capacity shared by every account (uint24 max)
MAX_CARDINALITY = 2 ** 24 - 1

# Width of the cumulative balance accumulator; all accumulator math wraps at this width
ACCUMULATOR_BITS = 224
ACCUMULATOR_MODULUS = 2 ** ACCUMULATOR_BITS

# Timestamps are unsigned 32-bit seconds
TIMESTAMP_MODULUS = 2 ** 32


class TwabError(ValueError):
    """Base class for TWAB history failures."""


class InvalidAmount(TwabError):
    """Raised when a balance change is not strictly positive."""

    def __init__(self, amount):
        super().__init__(f"Amount must be greater than zero: {amount}")
        self.amount = amount


class InsufficientBalance(TwabError):
    """Raised when a decrease exceeds the current balance."""

    def __init__(self, context, balance, amount):
        super().__init__(f"{context} (balance {balance}, requested {amount})")
        self.context = context
        self.balance = balance
        self.amount = amount


class MismatchedQueryLengths(TwabError):
    """Raised when paired start/end time lists have different lengths."""

    def __init__(self, start_count, end_count):
        super().__init__(
            f"Start and end times must have the same length ({start_count} != {end_count})"
        )
        self.start_count = start_count
        self.end_count = end_count


@dataclass(frozen=True)
class Observation:
    """A checkpoint of the cumulative balance accumulator."""
    amount: int = 0  # Cumulative balance * seconds, modulo ACCUMULATOR_MODULUS
    timestamp: int = 0  # uint32 seconds


@dataclass(frozen=True)
class AccountDetails:
    """Compact metadata describing an account's ring of observations."""
    balance: int = 0
    next_twab_index: int = 0
    cardinality: int = 0
    overwritten: bool = False  # True once a write has evicted the first ever checkpoint


@dataclass
class Account:
    """
    An account's current details plus its ring of observations.

    The ring is backed by a list that grows until it holds `capacity`
    observations; after that, writes reuse the oldest slot.
    """
    capacity: int = MAX_CARDINALITY
    details: AccountDetails = field(default_factory=AccountDetails)
    twabs: List[Observation] = field(default_factory=list)

    def __post_init__(self):
        if self.capacity <= 0:
            raise ValueError(f"Invalid ring capacity: {self.capacity}")

    def read(self, index: int) -> Observation:
        """Returns the observation in slot `index` (an empty one if never written)."""
        if index < len(self.twabs):
            return self.twabs[index]
        return Observation()

    def write(self, index: int, twab: Observation) -> None:
        """Stores an observation in slot `index`."""
        if index == len(self.twabs):
            self.twabs.append(twab)
        else:
            self.twabs[index] = twab


# Overflow-safe timestamp comparison. A stored timestamp greater than the
# current time belongs to the previous 2**32 epoch.

def _to_uint32(value: int) -> int:
    return value % TIMESTAMP_MODULUS


def _adjusted(value: int, time: int) -> int:
    return value if value > time else value + TIMESTAMP_MODULUS


def lt(a: int, b: int, time: int) -> bool:
    """Returns True if timestamp `a` is before `b`, relative to `time`."""
    if a <= time and b <= time:
        return a < b
    return _adjusted(a, time) < _adjusted(b, time)


def lte(a: int, b: int, time: int) -> bool:
    """Returns True if timestamp `a` is at or before `b`, relative to `time`."""
    if a <= time and b <= time:
        return a <= b
    return _adjusted(a, time) <= _adjusted(b, time)


def checked_sub(a: int, b: int, time: int) -> int:
    """Returns `a - b` for two timestamps, accounting for a wrapped epoch."""
    if a <= time and b <= time:
        return a - b
    return _adjusted(a, time) - _adjusted(b, time)


def newest_twab(account: Account) -> Tuple[int, Observation]:
    """Returns the slot and value of the most recently written observation."""
    details = account.details
    index = ring_index.newest_index(details.next_twab_index, details.cardinality)
    return index, account.read(index)


def oldest_twab(account: Account) -> Tuple[int, Observation]:
    """Returns the slot and value of the oldest retained observation."""
    details = account.details
    if details.cardinality == 0:
        return 0, account.read(0)

    index = _slot_at(details, 0)
    return index, account.read(index)


def get_twab(account: Account, index: int) -> Observation:
    """Returns the raw observation stored in ring slot `index`."""
    return account.read(index)


def increase_balance(account: Account, amount: int,
                     current_time: int) -> Tuple[AccountDetails, Observation, bool]:
    """
    Increases an account's balance and records a checkpoint.

    Args:
        account: Account to update
        amount: Amount to add (must be positive)
        current_time: Current timestamp in seconds

    Returns:
        Tuple of (updated details, checkpoint written, whether a new slot was used)

    Raises:
        InvalidAmount: If amount is not positive
    """
    if amount <= 0:
        raise InvalidAmount(amount)

    details, twab, is_new = _next_twab(account, current_time)
    details = replace(details, balance=details.balance + amount)
    account.details = details

    return details, twab, is_new


def decrease_balance(account: Account, amount: int, revert_message: str,
                     current_time: int) -> Tuple[AccountDetails, Observation, bool]:
    """
    Decreases an account's balance and records a checkpoint.

    Args:
        account: Account to update
        amount: Amount to remove (must be positive)
        revert_message: Context reported if the balance is insufficient
        current_time: Current timestamp in seconds

    Returns:
        Tuple of (updated details, checkpoint written, whether a new slot was used)

    Raises:
        InvalidAmount: If amount is not positive
        InsufficientBalance: If amount exceeds the current balance
    """
    if amount <= 0:
        raise InvalidAmount(amount)

    balance = account.details.balance
    if amount > balance:
        raise InsufficientBalance(revert_message, balance, amount)

    details, twab, is_new = _next_twab(account, current_time)
    details = replace(details, balance=details.balance - amount)
    account.details = details

    return details, twab, is_new


def get_balance_at(account: Account, target_time: int, current_time: int) -> int:
    """
    Returns the balance an account held at `target_time`.

    Between two checkpoints the balance is the one held from the earlier
    checkpoint. Targets before the oldest retained checkpoint read 0 until a
    write has evicted the first checkpoint, and the oldest retained balance
    afterwards.
    """
    details = account.details
    if details.cardinality == 0:
        return 0

    if target_time >= current_time:
        return details.balance

    time = _to_uint32(current_time)
    target = _to_uint32(target_time)

    _, newest = newest_twab(account)
    if lte(newest.timestamp, target, time):
        return details.balance

    _, oldest = oldest_twab(account)
    if lt(target, oldest.timestamp, time):
        return _pre_history_balance(account, time)

    position = _binary_search(account, target, time)
    return _held_balance(account, position, time)


def get_balances_at(account: Account, target_times: Sequence[int], current_time: int) -> List[int]:
    """Returns the balance at each of `target_times`, in order."""
    return [get_balance_at(account, target_time, current_time) for target_time in target_times]


def get_average_balance_between(account: Account, start_time: int, end_time: int, current_time: int) -> int:
    """
    Returns the time-weighted average balance over [start_time, end_time].

    The live balance is assumed to hold for any part of the interval after
    the newest checkpoint. Returns 0 if start_time is after end_time.
    """
    if start_time > end_time:
        return 0

    if start_time == end_time:
        return get_balance_at(account, start_time, current_time)

    start_amount = _accumulator_at(account, start_time, current_time)
    end_amount = _accumulator_at(account, end_time, current_time)

    difference_in_amount = (end_amount - start_amount) % ACCUMULATOR_MODULUS
    return difference_in_amount // (end_time - start_time)


def get_average_balances_between(account: Account, start_times: Sequence[int],
                                 end_times: Sequence[int], current_time: int) -> List[int]:
    """
    Returns the average balance for each paired (start, end) interval.

    Raises:
        MismatchedQueryLengths: If the two lists differ in length
    """
    if len(start_times) != len(end_times):
        raise MismatchedQueryLengths(len(start_times), len(end_times))

    return [
        get_average_balance_between(account, start_time, end_time, current_time)
        for start_time, end_time in zip(start_times, end_times)
    ]


def _next_twab(account: Account, current_time: int):
    """
    Writes the checkpoint for `current_time` and returns the updated details.

    At most one checkpoint exists per timestamp: if the newest one already has
    this timestamp it is overwritten in place.
    """
    details = account.details
    time = _to_uint32(current_time)
    newest_index, newest = newest_twab(account)

    twab = _compute_next_twab(newest, details.balance, time)

    if details.cardinality > 0 and newest.timestamp == time:
        account.write(newest_index, twab)
        return details, twab, False

    account.write(details.next_twab_index, twab)
    return _push(details, account.capacity), twab, True


def _push(details: AccountDetails, capacity: int) -> AccountDetails:
    full = details.cardinality == capacity
    return replace(
        details,
        overwritten=details.overwritten or full,
        next_twab_index=ring_index.next_index(details.next_twab_index, capacity),
        cardinality=details.cardinality if full else details.cardinality + 1,
    )


def _compute_next_twab(current: Observation, balance: int, time: int) -> Observation:
    elapsed = checked_sub(time, current.timestamp, time)
    return Observation(
        amount=(current.amount + balance * elapsed) % ACCUMULATOR_MODULUS,
        timestamp=time,
    )


def _slot_at(details: AccountDetails, position: int) -> int:
    # Position 0 is the oldest retained observation, cardinality - 1 the newest
    return ring_index.offset(details.next_twab_index, details.cardinality - position, details.cardinality)


def _observation_at(account: Account, position: int) -> Observation:
    return account.read(_slot_at(account.details, position))


def _binary_search(account: Account, target: int, time: int) -> int:
    """
    Finds the latest position whose timestamp is at or before `target`.

    Callers guarantee the oldest observation is at or before the target and
    the newest is after it.
    """
    left = 0
    right = account.details.cardinality - 1

    while right - left > 1:
        middle = (left + right) // 2
        if lte(_observation_at(account, middle).timestamp, target, time):
            left = middle
        else:
            right = middle

    return left


def _held_balance(account: Account, position: int, time: int) -> int:
    """Returns the balance held from the observation at `position` until the next one."""
    details = account.details
    if position >= details.cardinality - 1:
        return details.balance

    before = _observation_at(account, position)
    after = _observation_at(account, position + 1)

    difference_in_amount = (after.amount - before.amount) % ACCUMULATOR_MODULUS
    difference_in_time = checked_sub(after.timestamp, before.timestamp, time)
    return difference_in_amount // difference_in_time


def _pre_history_balance(account: Account, time: int) -> int:
    # Until a write evicts a slot, the oldest observation is the first ever write
    if not account.details.overwritten:
        return 0
    return _held_balance(account, 0, time)


def _accumulator_at(account: Account, target_time: int, current_time: int) -> int:
    """Returns the accumulator value extrapolated to `target_time`."""
    details = account.details
    if details.cardinality == 0:
        return 0

    time = _to_uint32(current_time)
    _, newest = newest_twab(account)

    if target_time >= current_time:
        elapsed = checked_sub(time, newest.timestamp, time) + (target_time - current_time)
        return (newest.amount + details.balance * elapsed) % ACCUMULATOR_MODULUS

    target = _to_uint32(target_time)

    if lte(newest.timestamp, target, time):
        elapsed = checked_sub(target, newest.timestamp, time)
        return (newest.amount + details.balance * elapsed) % ACCUMULATOR_MODULUS

    _, oldest = oldest_twab(account)
    if lt(target, oldest.timestamp, time):
        gap = checked_sub(oldest.timestamp, target, time)
        return (oldest.amount - _pre_history_balance(account, time) * gap) % ACCUMULATOR_MODULUS

    position = _binary_search(account, target, time)
    before = _observation_at(account, position)
    elapsed = checked_sub(target, before.timestamp, time)
    return (before.amount + _held_balance(account, position, time) * elapsed) % ACCUMULATOR_MODULUS
