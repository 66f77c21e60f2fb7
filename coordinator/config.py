"""
Benchmark configuration.

Defines all configuration parameters for a benchmark run and the asset server.
"""

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Dict, Any

import psutil


DEFAULT_PUBLIC_DIR = str(Path(__file__).resolve().parent / "public")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def detect_cpu_cores() -> int:
    """
    Number of physical cores, falling back to logical ones.

    Returns:
        Core count (at least 1)
    """
    cores = psutil.cpu_count(logical=False) or psutil.cpu_count() or os.cpu_count()
    return cores or 1


@dataclass
class BenchmarkConfig:
    """
    Configuration for a benchmark run.

    Covers dataset size, worker pool, timing and the static asset server.
    """

    # Dataset
    element_count: int = 8_000_000
    initial_value: float = 2.0

    # Worker pool
    num_workers: int = 3
    worker_timeout: float = 300.0  # seconds to wait for one chunk
    start_method: str = "spawn"
    seed: Optional[int] = None

    # Timing
    iterations: int = 10
    warm_up_runs: int = 4

    # Asset server
    host: str = "0.0.0.0"
    port: int = 8181
    public_dir: str = DEFAULT_PUBLIC_DIR

    # Hardware information
    cpu_cores: Optional[int] = None

    # Output
    results_dir: Optional[str] = None

    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    log_file: Optional[str] = None

    def __post_init__(self):
        """Validate values and auto-detect hardware info."""
        if self.element_count < 0:
            raise ValueError(f"element_count must be >= 0, got {self.element_count}")
        if self.num_workers < 0:
            raise ValueError(f"num_workers must be >= 0, got {self.num_workers}")
        if self.iterations < 0:
            raise ValueError(f"iterations must be >= 0, got {self.iterations}")
        if self.warm_up_runs < 0:
            raise ValueError(f"warm_up_runs must be >= 0, got {self.warm_up_runs}")
        if self.worker_timeout <= 0:
            raise ValueError(f"worker_timeout must be positive, got {self.worker_timeout}")
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in 1..65535, got {self.port}")

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level}")

        if self.cpu_cores is None:
            self.cpu_cores = detect_cpu_cores()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Configuration as dictionary
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'BenchmarkConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            BenchmarkConfig instance
        """
        return cls(**config_dict)

    @classmethod
    def from_json_file(cls, path: str) -> 'BenchmarkConfig':
        """
        Load config from JSON file.

        Args:
            path: Path to JSON config file

        Returns:
            BenchmarkConfig instance
        """
        with open(path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def to_json_file(self, path: str):
        """
        Save config to JSON file.

        Args:
            path: Path to save JSON config
        """
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"BenchmarkConfig(elements={self.element_count}, "
            f"workers={self.num_workers}, "
            f"iterations={self.iterations}, "
            f"port={self.port})"
        )
