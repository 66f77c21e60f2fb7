"""
Timing harness for the benchmark scenarios.

Each registered test is run once per iteration, in registration order.
The first `warm_up_runs` iterations are timed but left out of the summary.
"""

import json
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List


logger = logging.getLogger(__name__)

WARM_UP_RUNS = 4
DEFAULT_ITERATIONS = 100


@dataclass
class BenchmarkResult:
    """Timings for one named test."""

    deltas: List[float] = field(default_factory=list)
    avg: float = 0.0
    std_deviation: float = 0.0
    runs: int = 0

    def to_dict(self):
        return {
            'deltas': self.deltas,
            'avg': self.avg,
            'std_deviation': self.std_deviation,
            'runs': self.runs
        }


class Benchmark:
    """
    Collects named callbacks and times them.

    Usage:
        results = (Benchmark()
                   .set_number_of_iterations(10)
                   .add("vec single thread", run_vec)
                   .run())
    """

    def __init__(self, warm_up_runs: int = WARM_UP_RUNS):
        if warm_up_runs < 0:
            raise ValueError(f"warm_up_runs cannot be < 0, got {warm_up_runs}")

        self.warm_up_runs = warm_up_runs
        self.number_of_runs = DEFAULT_ITERATIONS + warm_up_runs
        self.tests: List[tuple] = []

    def add(self, name: str, callback: Callable[[], object]) -> 'Benchmark':
        if any(existing == name for existing, _ in self.tests):
            raise ValueError(f"Test '{name}' already registered")
        self.tests.append((name, callback))
        return self

    def set_number_of_iterations(self, number: int) -> 'Benchmark':
        if number < 0:
            raise ValueError("number of iterations cannot be < 0")
        self.number_of_runs = number + self.warm_up_runs
        return self

    @property
    def measured_runs(self) -> int:
        return self.number_of_runs - self.warm_up_runs

    def run(self) -> Dict[str, BenchmarkResult]:
        """
        Run every test `number_of_runs` times.

        Returns:
            Mapping of test name to its timings and summary
        """
        results = {name: BenchmarkResult() for name, _ in self.tests}

        if self.warm_up_runs:
            logger.info("starting warmup, please wait a moment...")

        for iteration in range(self.number_of_runs):
            if iteration == self.warm_up_runs:
                logger.info("warmup finished. commencing tests")

            for name, callback in self.tests:
                t1 = time.perf_counter()
                callback()
                t2 = time.perf_counter()
                delta = (t2 - t1) * 1000
                results[name].deltas.append(delta)

                if iteration >= self.warm_up_runs:
                    logger.info(
                        f"[iteration {iteration + 1 - self.warm_up_runs}]:"
                        f"\"{name}\" took {delta:.2f} ms"
                    )

        for name, value in results.items():
            summarize(value, self.warm_up_runs)
            logger.info(
                f"\"{name}\" took an average of {value.avg:.2f} ms "
                f"±{value.std_deviation:.2f} ({value.runs} runs)"
            )

        return results


def summarize(result: BenchmarkResult, warm_up_runs: int) -> BenchmarkResult:
    """Fill in avg and population std deviation, ignoring warm-up deltas."""
    measured = result.deltas[warm_up_runs:]
    result.runs = len(measured)

    if not measured:
        result.avg = 0.0
        result.std_deviation = 0.0
        return result

    result.avg = sum(measured) / len(measured)
    squared = sum((delta - result.avg) ** 2 for delta in measured)
    result.std_deviation = math.sqrt(squared / len(measured))
    return result


def save_results(results: Dict[str, BenchmarkResult], directory: str,
                 metadata: Dict = None) -> Path:
    """
    Write results to a timestamped JSON file.

    Args:
        results: Output of Benchmark.run()
        directory: Directory to write into (created if missing)
        metadata: Extra fields stored alongside the results

    Returns:
        Path of the written file
    """
    results_dir = Path(directory)
    results_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    filepath = results_dir / f"iteration-benchmark-{timestamp}.json"

    payload = {
        'timestamp': datetime.now().isoformat(),
        'metadata': metadata or {},
        'results': {name: value.to_dict() for name, value in results.items()}
    }
    with open(filepath, 'w') as f:
        json.dump(payload, f, indent=2)

    logger.info(f"Saved benchmark results to: {filepath}")
    return filepath
