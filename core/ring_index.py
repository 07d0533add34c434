"""
Ring Buffer Index Library for the Prize Pool Protocol.

This module holds the index arithmetic used to address a fixed-capacity
circular array. It keeps no state; the TWAB history engine uses it to move
its write pointer and to translate logical positions into ring slots.
"""


def wrap(index: int, cardinality: int) -> int:
    """Returns the index wrapped into the range [0, cardinality)."""
    return index % cardinality


def offset(index: int, amount: int, cardinality: int) -> int:
    """
    Computes the index `amount` steps behind `index`.

    The cardinality is added before wrapping so the result is correct for
    any amount up to the cardinality itself.

    Args:
        index: Starting index
        amount: Number of steps to move backward
        cardinality: Number of slots in the buffer

    Returns:
        The wrapped index
    """
    return wrap(index + cardinality - amount, cardinality)


def newest_index(next_index: int, cardinality: int) -> int:
    """
    Returns the index of the most recently written slot.

    Args:
        next_index: Slot that will receive the next write
        cardinality: Number of slots in use

    Returns:
        The slot immediately behind `next_index`, or 0 if nothing was written
    """
    if cardinality == 0:
        return 0

    return offset(next_index, 1, cardinality)


def next_index(index: int, cardinality: int) -> int:
    """Returns the slot following `index`."""
    return wrap(index + 1, cardinality)
