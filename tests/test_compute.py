"""
Tests for the per-record worker computation
"""

import math
import random

import numpy as np
import pytest

from core.partitioner import ChunkBoundsError
from core.records import Record, make_records
from core.vector import PositionVec
from worker.compute import (
    factorial,
    burn_delta,
    delta_bounds,
    process_records,
    process_vector
)


class FixedRandom:
    """Random source that always returns the same value"""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


class TestFactorial:
    """Test recursive factorial"""

    def test_small_values_exact(self):
        """Test exact results below the float precision cliff"""
        assert factorial(0) == 1
        assert factorial(1) == 1
        assert factorial(5) == 120
        assert factorial(10) == 3628800

    def test_result_is_float(self):
        """Test the product is carried out in floating point"""
        assert isinstance(factorial(5), float)

    def test_benchmark_range_is_approximate(self):
        """Test n in [95, 104] gives a finite float close to n!"""
        for n in range(95, 105):
            value = factorial(n)
            assert math.isfinite(value)
            assert value == pytest.approx(math.factorial(n), rel=1e-12)

    def test_recursion_matches_product(self):
        """Test n! == n * (n-1)!"""
        assert factorial(100) == 100 * factorial(99)


class TestBurnDelta:
    """Test per-record increment"""

    def test_low_end(self):
        """random() == 0 gives factorial(95)"""
        assert burn_delta(FixedRandom(0.0)) == factorial(95)

    def test_high_end(self):
        """random() just below 1 gives factorial(104)"""
        assert burn_delta(FixedRandom(0.9999999)) == factorial(104)

    def test_within_bounds(self):
        """Test every draw lands in [95!, 104!]"""
        low, high = delta_bounds()
        rng = random.Random(7)
        for _ in range(200):
            delta = burn_delta(rng)
            assert low <= delta <= high

    def test_seeded_rng_is_reproducible(self):
        """Test the same seed gives the same deltas"""
        first = [burn_delta(random.Random(3)) for _ in range(5)]
        second = [burn_delta(random.Random(3)) for _ in range(5)]
        assert first == second


class TestProcessRecords:
    """Test the array-of-records loop"""

    def test_end_to_end_ten_records(self):
        """Ten zeroed records, chunk [0, 10)"""
        records = make_records(10)
        processed = process_records(records, 0, 10)

        assert processed == 10
        for record in records:
            assert math.isfinite(record.y)
            assert record.y > 0
            assert record.x == 0 and record.z == 0 and record.w == 0

    def test_only_range_is_mutated(self):
        """Test indices outside [start, end) are untouched"""
        records = make_records(10, Record(2, 2, 2, 2))
        process_records(records, 3, 7, rng=random.Random(1))

        low, high = delta_bounds()
        for i, record in enumerate(records):
            if 3 <= i < 7:
                assert low <= record.y - 2 <= high * (1 + 1e-12)
            else:
                assert record == Record(2, 2, 2, 2)

    def test_empty_range(self):
        """Test start == end processes nothing"""
        records = make_records(4)
        assert process_records(records, 2, 2) == 0
        assert all(r.y == 0 for r in records)

    def test_bounds_checked_before_mutation(self):
        """Test an out-of-bounds chunk fails without touching data"""
        records = make_records(5)
        with pytest.raises(ChunkBoundsError, match="out of bounds"):
            process_records(records, 0, 6)
        assert all(r.y == 0 for r in records)

    def test_numpy_bounds(self):
        """Test bounds taken from a numpy array are accepted"""
        records = make_records(6)
        bounds = np.array([1, 4], dtype=np.int64)

        assert process_records(records, bounds[0], bounds[1]) == 3
        assert [r.y > 0 for r in records] == [False, True, True, True, False, False]

    def test_start_after_end(self):
        """Test malformed chunk is rejected"""
        with pytest.raises(ChunkBoundsError):
            process_records(make_records(5), 4, 1)


class TestProcessVector:
    """Test the shared-memory vec loop"""

    def test_end_to_end_ten_records(self):
        """Ten zeroed records in a vec, chunk [0, 10)"""
        vec = PositionVec(10).fill(Record())
        assert process_vector(vec, 0, 10) == 10

        for record in vec.to_records():
            assert math.isfinite(record.y)
            assert record.y > 0
            assert record.x == 0 and record.z == 0 and record.w == 0

    def test_accepts_memory_handle(self):
        """Test writes through the memory handle land in the source vec"""
        vec = PositionVec(6).fill(Record())
        process_vector(vec.memory, 2, 4, rng=FixedRandom(0.0))

        ys = [r.y for r in vec.to_records()]
        assert ys == [0, 0, factorial(95), factorial(95), 0, 0]

    def test_out_of_bounds(self):
        """Test a chunk past the vec length fails fast"""
        vec = PositionVec(10).fill(Record())
        with pytest.raises(ChunkBoundsError):
            process_vector(vec, 5, 11)
        assert all(r.y == 0 for r in vec.to_records())

    def test_same_result_as_records(self):
        """Test both representations agree for the same random draws"""
        records = make_records(8, Record(2, 2, 2, 2))
        vec = PositionVec(8).fill(Record(2, 2, 2, 2))

        process_records(records, 0, 8, rng=random.Random(11))
        process_vector(vec, 0, 8, rng=random.Random(11))

        assert [r.y for r in records] == [r.y for r in vec.to_records()]


class TestDisjointChunks:
    """Test order independence of disjoint chunks"""

    def test_order_does_not_matter(self):
        """Processing [0,4) then [4,10) equals [4,10) then [0,4)"""
        forward = PositionVec(10).fill(Record(1, 1, 1, 1))
        backward = PositionVec(10).fill(Record(1, 1, 1, 1))

        process_vector(forward, 0, 4, rng=random.Random(5))
        process_vector(forward, 4, 10, rng=random.Random(6))

        process_vector(backward, 4, 10, rng=random.Random(6))
        process_vector(backward, 0, 4, rng=random.Random(5))

        assert forward.to_records() == backward.to_records()
