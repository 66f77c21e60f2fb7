"""
Dispatcher for the iteration benchmark.

Owns a pool of worker processes, partitions the dataset into one chunk per
worker plus a trailing chunk for itself, posts the chunks, works on its own
chunk, and waits for every worker's completion signal.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional

from core.partitioner import Chunk, Partitioner, check_disjoint
from core.records import Record
from core.vector import PositionVec
from coordinator.config import BenchmarkConfig
from worker.compute import process_records, process_vector
from worker.messages import (
    ArrayChunk,
    VecChunk,
    WorkerFailure,
    WorkerFailedError,
    is_complete,
)
from worker.process import WorkerProcess, ARRAY_MODE, VEC_MODE, MODES


logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of one dispatch round."""
    worker_chunks: List[Chunk]
    main_chunk: Optional[Chunk]
    completions: int = 0
    elapsed_ms: float = 0.0
    failures: List[WorkerFailure] = field(default_factory=list)

    @property
    def processed(self) -> int:
        total = sum(len(c) for c in self.worker_chunks)
        if self.main_chunk is not None:
            total += len(self.main_chunk)
        return total


class Dispatcher:
    """
    Runs one benchmark mode across a pool of worker processes.

    Usage:
        with Dispatcher("vec", num_workers=3) as dispatcher:
            dispatcher.run_vector(vec)
    """

    def __init__(
        self,
        mode: str,
        num_workers: int,
        seed: Optional[int] = None,
        worker_timeout: float = 300.0,
        start_method: str = "spawn",
        log_level: str = "INFO"
    ):
        """
        Args:
            mode: "array" or "vec"
            num_workers: Number of worker processes
            seed: Optional base seed passed to the workers
            worker_timeout: Seconds to wait for each worker's completion
            start_method: multiprocessing start method
            log_level: Logging level inside worker processes
        """
        if mode not in MODES:
            raise ValueError(f"Unknown dispatch mode: {mode} (expected one of {MODES})")
        if num_workers < 0:
            raise ValueError(f"num_workers must be >= 0, got {num_workers}")

        self.mode = mode
        self.num_workers = num_workers
        self.worker_timeout = worker_timeout
        self.seed = seed
        self.start_method = start_method
        self.log_level = log_level

        self.workers = self._build_workers()
        self._started = False
        self._broken = False

    def _build_workers(self) -> List[WorkerProcess]:
        return [
            WorkerProcess(self.mode, rank, seed=self.seed, log_level=self.log_level,
                          start_method=self.start_method)
            for rank in range(self.num_workers)
        ]

    @classmethod
    def from_config(cls, mode: str, config: BenchmarkConfig) -> 'Dispatcher':
        return cls(
            mode,
            num_workers=config.num_workers,
            seed=config.seed,
            worker_timeout=config.worker_timeout,
            start_method=config.start_method,
            log_level=config.log_level
        )

    def start(self):
        if self._started:
            logger.warning("Dispatcher already started")
            return

        for worker in self.workers:
            worker.start()
        self._started = True
        logger.info(f"Started {len(self.workers)} {self.mode} workers")

    def close(self):
        """
        Stop every worker.

        The next start() launches fresh processes with empty queues, which
        also clears a dispatcher broken by a worker timeout.
        """
        for worker in self.workers:
            worker.stop()
        logger.info(f"Stopped {len(self.workers)} {self.mode} workers")

        if self._started:
            self.workers = self._build_workers()
        self._started = False
        self._broken = False

    def _check_ready(self):
        if not self._started:
            raise RuntimeError("Dispatcher not started")
        if self._broken:
            raise RuntimeError(
                "Dispatcher is broken after a worker timeout; close and start it again"
            )

    def __enter__(self) -> 'Dispatcher':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _partition(self, length: int) -> Partitioner:
        partitioner = Partitioner(length, self.num_workers, include_main=True)
        check_disjoint(partitioner.all_chunks, length)
        return partitioner

    def _wait_for_workers(self, result: DispatchResult):
        """
        Collect exactly one reply per worker, then raise on any failure.

        A worker that misses the timeout may still reply later, and that
        reply would be read as the next round's completion. The dispatcher
        is marked broken instead, so no further round runs on these queues.
        """
        for worker in self.workers:
            try:
                reply = worker.receive(timeout=self.worker_timeout)
            except TimeoutError:
                self._broken = True
                logger.error(f"{worker} missed the {self.worker_timeout}s deadline; "
                             f"dispatcher needs a restart")
                raise
            if is_complete(reply):
                result.completions += 1
            elif isinstance(reply, WorkerFailure):
                result.failures.append(reply)
            else:
                raise RuntimeError(f"Unexpected reply from {worker}: {reply!r}")

        if result.failures:
            raise WorkerFailedError(result.failures[0])

    def run_array(self, records: List[Record], rng=random) -> DispatchResult:
        """
        Array-of-records round.

        Every worker receives its own copy of the records along with its
        range, so worker-side mutations stay in the worker. Only the main
        chunk is updated in `records`.
        """
        if self.mode != ARRAY_MODE:
            raise ValueError(f"run_array called on a {self.mode} dispatcher")
        self._check_ready()

        partitioner = self._partition(len(records))
        result = DispatchResult(partitioner.worker_chunks, partitioner.main_chunk)

        start_time = time.perf_counter()
        for worker, chunk in zip(self.workers, partitioner.worker_chunks):
            worker.post(ArrayChunk(arr=records, start=chunk.start, end=chunk.end))

        main = partitioner.main_chunk
        process_records(records, main.start, main.end, rng=rng)

        self._wait_for_workers(result)
        result.elapsed_ms = (time.perf_counter() - start_time) * 1000
        return result

    def run_vector(self, vec: PositionVec, rng=random) -> DispatchResult:
        """
        Shared-memory round.

        Workers write straight into the vec's buffer, so on return every
        record in the vec has been updated.
        """
        if self.mode != VEC_MODE:
            raise ValueError(f"run_vector called on a {self.mode} dispatcher")
        self._check_ready()

        partitioner = self._partition(len(vec))
        result = DispatchResult(partitioner.worker_chunks, partitioner.main_chunk)

        memory = vec.memory
        start_time = time.perf_counter()
        for worker, chunk in zip(self.workers, partitioner.worker_chunks):
            worker.post(VecChunk(memory=memory, start=chunk.start, end=chunk.end))

        main = partitioner.main_chunk
        process_vector(vec, main.start, main.end, rng=rng)

        self._wait_for_workers(result)
        result.elapsed_ms = (time.perf_counter() - start_time) * 1000
        return result

