"""
Command-line entry point for the records-vs-vec iteration benchmark.
"""

__version__ = "0.1.0"
