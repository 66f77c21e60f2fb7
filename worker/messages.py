"""
Messages exchanged between the dispatcher and worker processes.

Input is one chunk descriptor per message. Output is the literal True once
the whole chunk has been processed, or a WorkerFailure when it could not be.
"""

from dataclasses import dataclass
from typing import List

import torch

from core.partitioner import Chunk
from core.records import Record


COMPLETE = True
SHUTDOWN = None


@dataclass
class ArrayChunk:
    """Array mode: carries its own copy of the records."""
    arr: List[Record]
    start: int
    end: int

    @property
    def chunk(self) -> Chunk:
        return Chunk(self.start, self.end)


@dataclass
class VecChunk:
    """Shared-memory mode: carries the vec memory handle, no record data."""
    memory: torch.Tensor
    start: int
    end: int

    @property
    def chunk(self) -> Chunk:
        return Chunk(self.start, self.end)


@dataclass
class WorkerFailure:
    """Sent in place of the completion signal when a chunk fails."""
    rank: int
    error: str
    error_type: str = "ChunkBoundsError"


class WorkerFailedError(RuntimeError):
    """Raised by the dispatcher when a worker reports a WorkerFailure."""

    def __init__(self, failure: WorkerFailure):
        super().__init__(f"worker {failure.rank} failed: {failure.error_type}: {failure.error}")
        self.failure = failure


def is_complete(message) -> bool:
    return message is COMPLETE
