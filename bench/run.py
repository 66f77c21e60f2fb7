"""
Main benchmark script.

Compares the per-record burn loop over a plain list of records against a
shared-memory vec, single-threaded and spread across worker processes.
"""

import argparse
import logging
import random
from contextlib import ExitStack
from typing import Dict, List, Optional

from core.records import Record, make_records
from core.vector import PositionVec
from coordinator.benchmark import Benchmark, BenchmarkResult, save_results
from coordinator.config import BenchmarkConfig
from coordinator.dispatcher import Dispatcher
from worker.compute import process_records, process_vector
from worker.process import ARRAY_MODE, VEC_MODE


logger = logging.getLogger(__name__)

ARRAY_SINGLE = "array single thread"
ARRAY_MULTI = "array multi-threaded"
VEC_SINGLE = "vec single thread"
VEC_MULTI = "vec multi-core"


def setup_logging(config: BenchmarkConfig):
    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        filename=config.log_file
    )


def build_vec(count: int, value: float) -> PositionVec:
    """Vec of `count` records with every field set to `value`."""
    return PositionVec(count).fill(Record(value, value, value, value))


def run_benchmark(
    config: BenchmarkConfig,
    modes: List[str],
    threads: List[str]
) -> Dict[str, BenchmarkResult]:
    """
    Build the datasets, register the selected scenarios and time them.

    Args:
        config: Benchmark configuration
        modes: Any of "array", "vec"
        threads: Any of "single", "multi"

    Returns:
        Results keyed by scenario name
    """
    print(f"\n{'='*60}")
    print("Records vs Vec Iteration Benchmark")
    print(f"{'='*60}")
    print(f"Elements: {config.element_count:,}")
    print(f"Workers: {config.num_workers} (+ main process)")
    print(f"CPU cores: {config.cpu_cores}")
    print(f"Iterations: {config.iterations} (+ {config.warm_up_runs} warm-up)")
    print(f"Modes: {', '.join(modes)} | Threads: {', '.join(threads)}")
    print(f"{'='*60}\n")

    rng = random.Random(config.seed) if config.seed is not None else random
    value = config.initial_value

    benchmark = Benchmark(warm_up_runs=config.warm_up_runs)
    benchmark.set_number_of_iterations(config.iterations)

    with ExitStack() as stack:
        if ARRAY_MODE in modes:
            print("Generating array-of-records dataset...")
            records = make_records(config.element_count, Record(value, value, value, value))

            if "single" in threads:
                benchmark.add(
                    ARRAY_SINGLE,
                    lambda: process_records(records, 0, len(records), rng=rng)
                )
            if "multi" in threads:
                array_dispatcher = stack.enter_context(
                    Dispatcher.from_config(ARRAY_MODE, config)
                )
                benchmark.add(
                    ARRAY_MULTI,
                    lambda: array_dispatcher.run_array(records, rng=rng)
                )

        if VEC_MODE in modes:
            print("Generating vec dataset...")
            vec = build_vec(config.element_count, value)

            if "single" in threads:
                benchmark.add(
                    VEC_SINGLE,
                    lambda: process_vector(vec, 0, len(vec), rng=rng)
                )
            if "multi" in threads:
                vec_dispatcher = stack.enter_context(
                    Dispatcher.from_config(VEC_MODE, config)
                )
                benchmark.add(
                    VEC_MULTI,
                    lambda: vec_dispatcher.run_vector(vec, rng=rng)
                )

        print("\nStarting benchmark...\n")
        results = benchmark.run()

    print(f"\n{'='*60}")
    print("Summary")
    print(f"{'='*60}")
    for name, result in results.items():
        print(f"{name:24s} {result.avg:10.2f} ms ±{result.std_deviation:.2f} "
              f"({result.runs} runs)")
    print(f"\n{'='*60}\n")

    if config.results_dir:
        save_results(results, config.results_dir, metadata=config.to_dict())

    return results


def expand_choice(choice: str, options: List[str]) -> List[str]:
    return list(options) if choice == "all" else [choice]


def build_config(args: argparse.Namespace) -> BenchmarkConfig:
    """Load the JSON config (if any) and apply CLI overrides on top."""
    values = {}
    if args.config:
        values = BenchmarkConfig.from_json_file(args.config).to_dict()

    overrides = {
        'element_count': args.elements,
        'num_workers': args.workers,
        'iterations': args.iterations,
        'seed': args.seed,
        'results_dir': args.save_dir,
        'port': args.port,
        'log_level': args.log_level,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return BenchmarkConfig.from_dict(values)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Records vs Vec Iteration Benchmark")

    parser.add_argument(
        '--mode',
        type=str,
        default='all',
        choices=['array', 'vec', 'all'],
        help='Data representation to benchmark'
    )
    parser.add_argument(
        '--threads',
        type=str,
        default='all',
        choices=['single', 'multi', 'all'],
        help='Run in the main process, across workers, or both'
    )
    parser.add_argument(
        '--elements',
        type=int,
        default=None,
        help='Number of records'
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Number of worker processes'
    )
    parser.add_argument(
        '--iterations',
        type=int,
        default=None,
        help='Timed iterations (warm-up runs are added on top)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for reproducible random draws'
    )
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='JSON config file'
    )
    parser.add_argument(
        '--save-dir',
        type=str,
        default=None,
        help='Directory to write a JSON results file into'
    )
    parser.add_argument(
        '--serve',
        action='store_true',
        help='Serve the browser benchmark page instead of running'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Port for --serve'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )

    args = parser.parse_args(argv)
    config = build_config(args)
    setup_logging(config)

    if args.serve:
        from coordinator.server import run_server
        run_server(host=config.host, port=config.port, public_dir=config.public_dir)
        return None

    return run_benchmark(
        config,
        modes=expand_choice(args.mode, [ARRAY_MODE, VEC_MODE]),
        threads=expand_choice(args.threads, ["single", "multi"])
    )


if __name__ == "__main__":
    main()
