"""
Data representations compared by the benchmark: a list of records and a
shared-memory vec, plus the index range partitioner.
"""

__version__ = "0.1.0"
