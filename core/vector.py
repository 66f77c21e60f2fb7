"""
Shared-memory record vector ("vec").

Records are stored as fixed-width float64 slots in a single 1-D tensor placed
in shared memory, so the buffer can be handed to a worker process without
copying:

    [x0, y0, z0, w0, x1, y1, z1, w1, ..., capacity, length]

Slot for field f of record i is i * ELEMENT_SIZE + offset(f). The last two
slots carry the capacity and length so that a vec can be rebuilt from the
bare memory handle on the receiving side.
"""

from typing import List, Optional

import numpy as np
import torch

from core.partitioner import ChunkBoundsError, validate_range
from core.records import FIELDS, FIELD_OFFSETS, Record


ELEMENT_SIZE = len(FIELDS)
DEFAULT_CAPACITY = 15
ENCODING_SLOTS = 2
CAPACITY_REVERSE_INDEX = 2
LENGTH_REVERSE_INDEX = 1
MEMORY_DTYPE = torch.float64


def create_memory(capacity: int) -> torch.Tensor:
    """
    Allocate zeroed shared memory for `capacity` records.

    Args:
        capacity: Number of records the buffer can hold

    Returns:
        1-D float64 tensor in shared memory
    """
    if capacity < 0:
        raise ValueError(f"capacity must be >= 0, got {capacity}")
    size = capacity * ELEMENT_SIZE + ENCODING_SLOTS
    return torch.zeros(size, dtype=MEMORY_DTYPE).share_memory_()


def _field_property(name: str):
    offset = FIELD_OFFSETS[name]

    def getter(self):
        return float(self._slots[self._viewing_index + offset])

    def setter(self, value):
        self._slots[self._viewing_index + offset] = value

    return property(getter, setter, doc=f"The {name} field of the viewed record")


class Cursor:
    """
    Read/write view onto one record of a vec.

    The vec hands out the same cursor for every index() call and only moves
    its viewing position, so a cursor must not be held across index() calls.
    """

    __slots__ = ("_slots", "_viewing_index")

    x = _field_property("x")
    y = _field_property("y")
    z = _field_property("z")
    w = _field_property("w")

    def __init__(self, slots: np.ndarray):
        self._slots = slots
        self._viewing_index = 0

    @property
    def e(self) -> Record:
        """The whole record at the viewed index."""
        i = self._viewing_index
        return Record(*(float(v) for v in self._slots[i:i + ELEMENT_SIZE]))

    @e.setter
    def e(self, record: Record):
        i = self._viewing_index
        self._slots[i:i + ELEMENT_SIZE] = (record.x, record.y, record.z, record.w)


class PositionVec:
    """
    Growable structure-of-arrays vector of (x, y, z, w) records.

    Example:
        vec = PositionVec(10)
        vec.push(Record(2, 2, 2, 2))
        vec.index(0).y += 1.0

        # in a worker process, sharing the same buffer
        other = PositionVec.from_memory(vec.memory)
    """

    def __init__(self, initial_capacity: int = DEFAULT_CAPACITY,
                 memory: Optional[torch.Tensor] = None):
        """
        Args:
            initial_capacity: Records to allocate room for (ignored with memory)
            memory: Existing vec memory to attach to instead of allocating
        """
        if memory is None:
            capacity = abs(initial_capacity)
            self._attach(create_memory(capacity), capacity, 0)
        else:
            self.memory = memory

    @classmethod
    def from_memory(cls, memory: torch.Tensor) -> 'PositionVec':
        """
        Build a vec over another vec's memory.

        No data is copied; writes through either vec are visible to both.
        """
        return cls(memory=memory)

    def _attach(self, memory: torch.Tensor, capacity: int, length: int):
        self._memory = memory
        self._slots = memory.numpy()
        self._capacity = capacity
        self._length = length
        self._cursor = Cursor(self._slots)

    @property
    def memory(self) -> torch.Tensor:
        """Shared memory handle, with capacity and length written to the trailer."""
        self._slots[-CAPACITY_REVERSE_INDEX] = self._capacity
        self._slots[-LENGTH_REVERSE_INDEX] = self._length
        return self._memory

    @memory.setter
    def memory(self, memory: torch.Tensor):
        if not isinstance(memory, torch.Tensor) or memory.dtype != MEMORY_DTYPE:
            raise TypeError("vec memory must be a float64 tensor")
        if memory.dim() != 1 or memory.numel() < ENCODING_SLOTS:
            raise ValueError("vec memory must be 1-D and carry the capacity/length trailer")

        capacity = int(memory[-CAPACITY_REVERSE_INDEX].item())
        length = int(memory[-LENGTH_REVERSE_INDEX].item())
        if capacity * ELEMENT_SIZE + ENCODING_SLOTS != memory.numel():
            raise ValueError(
                f"vec memory holds {memory.numel()} slots, "
                f"which does not match capacity {capacity}"
            )
        if length < 0 or length > capacity:
            raise ValueError(f"vec length {length} exceeds capacity {capacity}")

        self._attach(memory, capacity, length)

    @property
    def length(self) -> int:
        return self._length

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._length

    def __repr__(self):
        return f"PositionVec(length={self._length}, capacity={self._capacity})"

    def index(self, index: int) -> Cursor:
        """
        Point the shared cursor at a record.

        Raises:
            IndexError: If index is outside [0, length)
        """
        if index < 0 or index >= self._length:
            raise IndexError(f"index {index} out of range for vec of length {self._length}")
        self._cursor._viewing_index = index * ELEMENT_SIZE
        return self._cursor

    def _reserve(self, minimum_capacity: int):
        target_capacity = self._capacity * 2
        if minimum_capacity > target_capacity:
            new_capacity = minimum_capacity + DEFAULT_CAPACITY
        else:
            new_capacity = target_capacity

        memory = create_memory(new_capacity)
        used = self._capacity * ELEMENT_SIZE
        memory[:used] = self._memory[:used]
        self._attach(memory, new_capacity, self._length)

    def push(self, *records: Record) -> int:
        """
        Append records, growing the buffer when needed.

        Growing allocates a new shared buffer: memory handles taken before
        the push no longer see later writes.

        Returns:
            New length
        """
        minimum_capacity = self._length + len(records)
        if minimum_capacity > self._capacity:
            self._reserve(minimum_capacity)

        previous = self._cursor._viewing_index
        for record in records:
            self._cursor._viewing_index = self._length * ELEMENT_SIZE
            self._cursor.e = record
            self._length += 1
        self._cursor._viewing_index = previous
        return self._length

    def fill(self, record: Record, start: int = 0, end: Optional[int] = None) -> 'PositionVec':
        """Set records in [start, end) to `record`; end defaults to capacity."""
        end = self._capacity if end is None else end
        start, end = validate_range(start, end, self._capacity)

        values = np.array((record.x, record.y, record.z, record.w), dtype=np.float64)
        block = self._slots[start * ELEMENT_SIZE:end * ELEMENT_SIZE]
        block.reshape(-1, ELEMENT_SIZE)[:] = values
        self._length = max(self._length, end)
        return self

    def view(self, start: int, end: int) -> 'RangeView':
        """
        Restrict access to records [start, end).

        Raises:
            ChunkBoundsError: If the range does not fit inside this vec
        """
        start, end = validate_range(start, end, self._length)
        return RangeView(self, start, end)

    def column(self, name: str) -> np.ndarray:
        """Strided view of one field across all records (no copy)."""
        offset = FIELD_OFFSETS[name]
        return self._slots[offset:self._length * ELEMENT_SIZE:ELEMENT_SIZE]

    def to_records(self) -> List[Record]:
        records = []
        for i in range(self._length):
            records.append(self.index(i).e)
        return records


class RangeView:
    """
    Worker-side handle onto a vec that only exposes records [start, end).

    Workers never see indices outside their assigned chunk through this view.
    """

    def __init__(self, vec: PositionVec, start: int, end: int):
        self._vec = vec
        self.start = start
        self.end = end

    def __len__(self) -> int:
        return self.end - self.start

    def __repr__(self):
        return f"RangeView(start={self.start}, end={self.end})"

    def indices(self) -> range:
        return range(self.start, self.end)

    def index(self, index: int) -> Cursor:
        """
        Raises:
            ChunkBoundsError: If index is outside [start, end)
        """
        if index < self.start or index >= self.end:
            raise ChunkBoundsError(
                f"index {index} is outside the assigned range [{self.start}, {self.end})"
            )
        return self._vec.index(index)
