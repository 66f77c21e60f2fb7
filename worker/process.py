"""
Worker processes for the iteration benchmark.

Each worker is a separate process fed through a queue. It applies the
per-record burn to one chunk per message and answers with True when the
chunk is done. Workers are single-threaded; different workers only ever
write disjoint index ranges, so no locking is used.
"""

import logging
import queue
import random
from typing import Optional

import torch.multiprocessing as mp

from core.partitioner import ChunkBoundsError
from worker.compute import process_records, process_vector
from worker.messages import (
    ArrayChunk,
    VecChunk,
    WorkerFailure,
    COMPLETE,
    SHUTDOWN,
)


logger = logging.getLogger(__name__)

ARRAY_MODE = "array"
VEC_MODE = "vec"
MODES = (ARRAY_MODE, VEC_MODE)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def make_rng(seed: Optional[int], rank: int):
    """Seeded per-worker generator, or the global random module."""
    if seed is None:
        return random
    return random.Random(seed + rank)


def handle_message(mode: str, message, rng):
    """
    Run one chunk and build the reply.

    Returns:
        COMPLETE after the whole chunk is processed
    """
    if mode == ARRAY_MODE:
        if not isinstance(message, ArrayChunk):
            raise TypeError(f"array worker cannot handle {type(message).__name__}")
        process_records(message.arr, message.start, message.end, rng=rng)
    else:
        if not isinstance(message, VecChunk):
            raise TypeError(f"vec worker cannot handle {type(message).__name__}")
        process_vector(message.memory, message.start, message.end, rng=rng)

    return COMPLETE


def worker_loop(mode: str, rank: int, inbox, outbox,
                seed: Optional[int] = None, log_level: str = "INFO"):
    """
    Process entry point.

    Args:
        mode: "array" or "vec"
        rank: Worker index, used for logging and seeding
        inbox: Queue of chunk messages (SHUTDOWN ends the loop)
        outbox: Queue receiving COMPLETE or WorkerFailure per message
        seed: Optional base seed for reproducible runs
        log_level: Logging level for this process
    """
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    logger.info(f"{mode} worker init (rank {rank})")

    rng = make_rng(seed, rank)

    while True:
        message = inbox.get()
        if message is SHUTDOWN:
            logger.debug(f"{mode} worker {rank} shutting down")
            return

        try:
            reply = handle_message(mode, message, rng)
        except ChunkBoundsError as e:
            logger.error(f"{mode} worker {rank} rejected chunk: {e}")
            reply = WorkerFailure(rank=rank, error=str(e))
        except Exception as e:
            logger.exception(f"{mode} worker {rank} failed")
            reply = WorkerFailure(rank=rank, error=str(e), error_type=type(e).__name__)

        outbox.put(reply)


class WorkerProcess:
    """
    Handle on one worker process and its message queues.

    Usage:
        worker = WorkerProcess("vec", rank=0)
        worker.start()
        worker.post(VecChunk(memory=vec.memory, start=0, end=100))
        assert worker.receive() is True
        worker.stop()
    """

    def __init__(
        self,
        mode: str,
        rank: int,
        seed: Optional[int] = None,
        log_level: str = "INFO",
        start_method: str = "spawn"
    ):
        """
        Args:
            mode: "array" or "vec"
            rank: Worker index
            seed: Optional base seed for reproducible runs
            log_level: Logging level inside the worker process
            start_method: multiprocessing start method
        """
        if mode not in MODES:
            raise ValueError(f"Unknown worker mode: {mode} (expected one of {MODES})")

        self.mode = mode
        self.rank = rank

        ctx = mp.get_context(start_method)
        self.inbox = ctx.Queue()
        self.outbox = ctx.Queue()
        self.process = ctx.Process(
            target=worker_loop,
            args=(mode, rank, self.inbox, self.outbox, seed, log_level),
            name=f"{mode}-worker-{rank}",
            daemon=True
        )

    def start(self):
        self.process.start()
        logger.debug(f"Started {self.process.name} (pid {self.process.pid})")

    def is_alive(self) -> bool:
        return self.process.is_alive()

    def post(self, message):
        """Send one chunk message to the worker."""
        expected = ArrayChunk if self.mode == ARRAY_MODE else VecChunk
        if not isinstance(message, expected):
            raise TypeError(
                f"{self.mode} worker expects {expected.__name__}, got {type(message).__name__}"
            )
        self.inbox.put(message)

    def receive(self, timeout: Optional[float] = None):
        """
        Wait for the worker's reply to a posted chunk.

        Raises:
            TimeoutError: If nothing arrives within timeout seconds
        """
        try:
            return self.outbox.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(
                f"{self.process.name} did not report within {timeout}s"
            ) from None

    def stop(self, timeout: float = 5.0):
        """Ask the worker to exit; terminate it if it does not."""
        if self.process.pid is None:
            return

        if self.process.is_alive():
            self.inbox.put(SHUTDOWN)
            self.process.join(timeout)

        if self.process.is_alive():
            logger.warning(f"{self.process.name} did not exit, terminating")
            self.process.terminate()
            self.process.join(timeout)

    def __repr__(self):
        return f"WorkerProcess(mode='{self.mode}', rank={self.rank})"
