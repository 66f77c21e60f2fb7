"""
Index range partitioner for the benchmark dispatcher.

Splits the record index range [0, N) into contiguous, disjoint chunks.
Each worker processes exactly one chunk; the dispatching process can keep
one trailing chunk for itself.
"""

import operator
from typing import List, Optional, Tuple


class ChunkBoundsError(ValueError):
    """Raised when a chunk does not fit inside the data it addresses."""


class Chunk:
    """A half-open index range [start, end) assigned to one worker"""

    __slots__ = ("start", "end")

    def __init__(self, start: int, end: int):
        """
        Args:
            start: First index (inclusive)
            end: Last index (exclusive)
        """
        self.start = start
        self.end = end

    def __len__(self) -> int:
        return max(self.end - self.start, 0)

    def __iter__(self):
        return iter(range(self.start, self.end))

    def __eq__(self, other):
        if not isinstance(other, Chunk):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self):
        return hash((self.start, self.end))

    def __repr__(self):
        return f"Chunk(start={self.start}, end={self.end})"

    def overlaps(self, other: 'Chunk') -> bool:
        return self.start < other.end and other.start < self.end

    def validate(self, length: int):
        """
        Check that 0 <= start <= end <= length.

        Raises:
            ChunkBoundsError: If the chunk is malformed or out of bounds
        """
        validate_range(self.start, self.end, length)


def validate_range(start: int, end: int, length: int) -> Tuple[int, int]:
    """
    Fail fast on a malformed or out-of-bounds range.

    Any integer-like bound (anything supporting __index__, such as numpy
    integers) is accepted; bools and floats are not.

    Args:
        start: First index (inclusive)
        end: Last index (exclusive)
        length: Number of records actually available

    Returns:
        (start, end) as plain ints

    Raises:
        ChunkBoundsError: If the range is not within [0, length]
    """
    if isinstance(start, bool) or isinstance(end, bool):
        raise ChunkBoundsError(
            f"chunk bounds must be integers, got start={start!r} end={end!r}"
        )
    try:
        start = operator.index(start)
        end = operator.index(end)
    except TypeError:
        raise ChunkBoundsError(
            f"chunk bounds must be integers, got start={start!r} end={end!r}"
        ) from None

    if start < 0:
        raise ChunkBoundsError(f"chunk start {start} is negative")
    if start > end:
        raise ChunkBoundsError(f"chunk start {start} is greater than end {end}")
    if end > length:
        raise ChunkBoundsError(
            f"chunk end {end} is out of bounds for data of length {length}"
        )
    return start, end


def partition_range(length: int, parts: int) -> List[Chunk]:
    """
    Split [0, length) into `parts` contiguous chunks.

    Chunk sizes differ by at most one; the first `length % parts` chunks
    get the extra element.

    Args:
        length: Number of records
        parts: Number of chunks to produce

    Returns:
        List of chunks in index order
    """
    if parts <= 0:
        raise ValueError(f"parts must be positive, got {parts}")
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")

    chunk_size = length // parts
    remainder = length % parts

    chunks = []
    for rank in range(parts):
        if rank < remainder:
            start = rank * (chunk_size + 1)
            end = start + chunk_size + 1
        else:
            start = rank * chunk_size + remainder
            end = start + chunk_size
        chunks.append(Chunk(start, end))

    return chunks


def check_disjoint(chunks: List[Chunk], length: Optional[int] = None):
    """
    Verify chunks never overlap, and optionally that they cover [0, length).

    Raises:
        ValueError: On overlap or incomplete coverage
    """
    ordered = sorted(chunks, key=lambda c: (c.start, c.end))
    for left, right in zip(ordered, ordered[1:]):
        if left.overlaps(right):
            raise ValueError(f"{left} overlaps {right}")

    if length is None:
        return

    covered = 0
    for chunk in ordered:
        if chunk.start != covered:
            raise ValueError(f"indices [{covered}, {chunk.start}) are not assigned")
        covered = chunk.end
    if covered != length:
        raise ValueError(f"indices [{covered}, {length}) are not assigned")


class Partitioner:
    """
    Assigns one chunk per worker over a dataset of `length` records.

    With include_main=True the range is split into num_workers + 1 pieces and
    the last piece is kept for the dispatching process, which works on it
    while the workers run.
    """

    def __init__(self, length: int, num_workers: int, include_main: bool = True):
        """
        Args:
            length: Number of records in the dataset
            num_workers: Number of worker processes
            include_main: Reserve a trailing chunk for the dispatcher itself
        """
        if num_workers < 0:
            raise ValueError(f"num_workers must be >= 0, got {num_workers}")
        if num_workers == 0 and not include_main:
            raise ValueError("at least one worker or the main chunk is required")

        self.length = length
        self.num_workers = num_workers
        self.include_main = include_main

        parts = num_workers + (1 if include_main else 0)
        self.chunks = partition_range(length, parts)

    @property
    def worker_chunks(self) -> List[Chunk]:
        return self.chunks[:self.num_workers]

    @property
    def main_chunk(self) -> Optional[Chunk]:
        if not self.include_main:
            return None
        return self.chunks[-1]

    @property
    def all_chunks(self) -> List[Chunk]:
        return list(self.chunks)

    def get_chunk(self, rank: int) -> Chunk:
        """Get the chunk for a specific worker rank"""
        if rank < 0 or rank >= self.num_workers:
            raise ValueError(f"Rank {rank} out of range (max: {self.num_workers - 1})")
        return self.chunks[rank]

    def __repr__(self):
        return (f"Partitioner(length={self.length}, "
                f"workers={self.num_workers}, "
                f"include_main={self.include_main})")
