"""
Coordinator module for the iteration benchmark.

The coordinator is responsible for:
- Benchmark configuration
- Partitioning the dataset and dispatching chunks to workers
- Timing the scenarios and summarising results
- Serving the browser benchmark page
"""

__version__ = "0.1.0"
