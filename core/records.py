"""
Record data model for the iteration benchmark.

A record is four numeric fields (x, y, z, w). The "array-of-records"
representation is a plain Python list where every record is its own object.
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional


FIELDS = ("x", "y", "z", "w")
FIELD_OFFSETS = {name: offset for offset, name in enumerate(FIELDS)}


@dataclass
class Record:
    """A single (x, y, z, w) element."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, float]) -> 'Record':
        """
        Build a record from a mapping, missing fields default to 0.

        Raises:
            KeyError: If the mapping carries a field that is not x/y/z/w
        """
        unknown = set(values) - set(FIELDS)
        if unknown:
            raise KeyError(f"Unknown record fields: {sorted(unknown)}")
        return cls(**{name: float(value) for name, value in values.items()})

    def copy(self) -> 'Record':
        return Record(self.x, self.y, self.z, self.w)


def make_records(count: int, fill: Optional[Record] = None) -> List[Record]:
    """
    Create an array-of-records.

    Every element is a separate allocation, so mutating one record never
    touches another.

    Args:
        count: Number of records
        fill: Template record (defaults to all zeros)

    Returns:
        List of independent Record objects
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    template = fill if fill is not None else Record()
    return [template.copy() for _ in range(count)]
