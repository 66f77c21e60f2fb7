"""
Integration tests for multi-process dispatch.

Starts real worker processes and checks the completion protocol and the
visibility of shared-memory writes.
"""

import math
import random

import pytest

from core.partitioner import Chunk
from core.records import Record, make_records
from core.vector import PositionVec
from coordinator.dispatcher import Dispatcher, DispatchResult
from worker.messages import VecChunk, WorkerFailure, WorkerFailedError
from worker.process import WorkerProcess


TIMEOUT = 60.0


@pytest.fixture(scope="module")
def vec_dispatcher():
    """Pool of three vec workers shared by the module."""
    dispatcher = Dispatcher("vec", num_workers=3, seed=1, worker_timeout=TIMEOUT)
    dispatcher.start()
    yield dispatcher
    dispatcher.close()


@pytest.fixture(scope="module")
def array_dispatcher():
    """Pool of two array workers shared by the module."""
    dispatcher = Dispatcher("array", num_workers=2, seed=1, worker_timeout=TIMEOUT)
    dispatcher.start()
    yield dispatcher
    dispatcher.close()


class TestVecDispatch:
    """Test shared-memory dispatch"""

    def test_all_records_updated(self, vec_dispatcher):
        """Workers' writes are visible in the dispatcher's vec"""
        vec = PositionVec(1000).fill(Record())
        result = vec_dispatcher.run_vector(vec, rng=random.Random(0))

        assert result.completions == 3
        assert result.failures == []
        assert result.processed == 1000

        for record in vec.to_records():
            assert math.isfinite(record.y)
            assert record.y > 0
            assert record.x == 0 and record.z == 0 and record.w == 0

    def test_repeated_rounds_accumulate(self, vec_dispatcher):
        """Test a second round adds on top of the first"""
        vec = PositionVec(40).fill(Record())
        vec_dispatcher.run_vector(vec)
        first = [r.y for r in vec.to_records()]
        vec_dispatcher.run_vector(vec)
        second = [r.y for r in vec.to_records()]

        assert all(b > a for a, b in zip(first, second))

    def test_fewer_records_than_workers(self, vec_dispatcher):
        """Test empty chunks still get one completion each"""
        vec = PositionVec(2).fill(Record())
        result = vec_dispatcher.run_vector(vec)

        assert result.completions == 3
        assert all(r.y > 0 for r in vec.to_records())

    def test_wrong_mode(self, vec_dispatcher):
        """Test array data is refused by a vec dispatcher"""
        with pytest.raises(ValueError):
            vec_dispatcher.run_array(make_records(3))


class TestArrayDispatch:
    """Test copy-based array dispatch"""

    def test_workers_work_on_copies(self, array_dispatcher):
        """Only the main chunk is updated in the dispatcher's records"""
        records = make_records(30, Record(2, 2, 2, 2))
        result = array_dispatcher.run_array(records)

        assert result.completions == 2
        main = result.main_chunk
        assert main == Chunk(20, 30)

        for i, record in enumerate(records):
            if main.start <= i < main.end:
                assert record.y > 2
            else:
                assert record == Record(2, 2, 2, 2)


class TestWorkerFailures:
    """Test out-of-bounds chunks are reported"""

    def test_worker_process_reports_bounds_error(self):
        """Test a worker answers a bad chunk with WorkerFailure"""
        vec = PositionVec(5).fill(Record())
        worker = WorkerProcess("vec", rank=0)
        worker.start()
        try:
            worker.post(VecChunk(memory=vec.memory, start=0, end=6))
            reply = worker.receive(timeout=TIMEOUT)
            assert isinstance(reply, WorkerFailure)
            assert "out of bounds" in reply.error

            worker.post(VecChunk(memory=vec.memory, start=0, end=5))
            assert worker.receive(timeout=TIMEOUT) is True
        finally:
            worker.stop()

        assert not worker.is_alive()

    def test_dispatcher_raises_on_failure(self):
        """Test the dispatcher turns a WorkerFailure into WorkerFailedError"""
        vec = PositionVec(5).fill(Record())
        with Dispatcher("vec", num_workers=1, worker_timeout=TIMEOUT) as dispatcher:
            dispatcher.workers[0].post(VecChunk(memory=vec.memory, start=3, end=1))
            with pytest.raises(WorkerFailedError, match="greater than end"):
                dispatcher._wait_for_workers(DispatchResult([], None))


class TestWorkerTimeout:
    """Test recovery from a worker that misses its deadline"""

    def test_restart_drops_late_reply(self):
        """A late reply from a timed-out round never counts for the next round"""
        records = make_records(20000)
        dispatcher = Dispatcher("array", num_workers=1, seed=1, worker_timeout=0.01)
        dispatcher.start()
        try:
            with pytest.raises(TimeoutError):
                dispatcher.run_array(records)
            with pytest.raises(RuntimeError, match="broken"):
                dispatcher.run_array(records)

            dispatcher.close()
            dispatcher.worker_timeout = TIMEOUT
            dispatcher.start()

            result = dispatcher.run_array(make_records(10))
            assert result.completions == 1

            # Exactly one reply per round: nothing left over from the first one
            with pytest.raises(TimeoutError):
                dispatcher.workers[0].receive(timeout=1.0)
        finally:
            dispatcher.close()
