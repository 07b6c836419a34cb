"""Batch partitioning of the discovered image set."""

from typing import Sequence, TypeVar

T = TypeVar("T")


def partition(items: Sequence[T], batch_size: int, batch_number: int) -> list[T]:
    """Select one numbered batch of a sorted image sequence.

    Batches are 1-based. The last batch absorbs the remainder, and any batch
    number past the last one returns that last batch too, so every item is
    covered by batch numbers ``1..len(items) // batch_size``.

    Args:
        items: Sorted images
        batch_size: Batch size, ``<= 0`` disables batching
        batch_number: 1-based batch number, ``<= 0`` disables batching

    Returns:
        The selected slice, or all items when batching does not apply
    """
    if batch_size <= 0 or batch_number <= 0 or len(items) <= batch_size:
        return list(items)

    n = len(items) // batch_size
    if batch_number >= n:
        return list(items[batch_size * (n - 1) :])
    return list(items[batch_size * (batch_number - 1) : batch_size * batch_number])


def batch_count(total: int, batch_size: int) -> int:
    """Number of distinct batches ``partition`` yields for ``total`` items."""
    if batch_size <= 0 or total <= batch_size:
        return 1
    return total // batch_size
