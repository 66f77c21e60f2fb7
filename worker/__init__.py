"""
Worker module for the iteration benchmark.

Workers are the compute processes that:
- Receive one chunk descriptor per message
- Apply the per-record burn to their assigned range
- Report completion back to the dispatcher
"""

__version__ = "0.1.0"
