"""
Per-record CPU burn applied by benchmark workers.

For every index in a chunk, y += factorial(floor(random() * 10) + 95).
factorial() is the plain recursive float product: for n in [95, 104] the
result is a float64 approximation, and the recursion itself is the load
being measured, so it is neither memoised nor converted to exact integers.
"""

import math
import random
from typing import List, Union

import torch

from core.partitioner import validate_range
from core.records import Record
from core.vector import PositionVec, RangeView


FACTORIAL_BASE = 95
FACTORIAL_SPREAD = 10


def factorial(n):
    if n < 2:
        return 1.0
    else:
        return n * factorial(n - 1)


def burn_delta(rng=random) -> float:
    """
    Draw one per-record increment.

    Args:
        rng: Anything with a random() method returning [0, 1)

    Returns:
        factorial(k) for k in [95, 104]
    """
    return factorial(math.floor(rng.random() * FACTORIAL_SPREAD) + FACTORIAL_BASE)


def delta_bounds():
    """Smallest and largest value burn_delta() can return."""
    return (factorial(FACTORIAL_BASE),
            factorial(FACTORIAL_BASE + FACTORIAL_SPREAD - 1))


def process_records(records: List[Record], start: int, end: int, rng=random) -> int:
    """
    Array-of-records loop.

    Args:
        records: Records to mutate in place
        start: First index (inclusive)
        end: Last index (exclusive)
        rng: Random source

    Returns:
        Number of records processed

    Raises:
        ChunkBoundsError: If [start, end) does not fit inside records
    """
    start, end = validate_range(start, end, len(records))

    for i in range(start, end):
        records[i].y += burn_delta(rng)

    return end - start


def process_vector(target: Union[PositionVec, torch.Tensor], start: int, end: int,
                   rng=random) -> int:
    """
    Structure-of-arrays loop over a shared-memory vec.

    Writes go straight into the shared buffer through a RangeView, so only
    records in [start, end) are reachable.

    Args:
        target: A PositionVec or the raw memory handle of one
        start: First index (inclusive)
        end: Last index (exclusive)
        rng: Random source

    Returns:
        Number of records processed

    Raises:
        ChunkBoundsError: If [start, end) does not fit inside the vec
    """
    vec = target if isinstance(target, PositionVec) else PositionVec.from_memory(target)
    view: RangeView = vec.view(start, end)

    for i in view.indices():
        view.index(i).y += burn_delta(rng)

    return len(view)
