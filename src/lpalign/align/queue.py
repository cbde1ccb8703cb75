"""
Indexed binary min-heap keyed by integer distance.

The heap lives in three flat arrays so that the same kernels drive both the Python-facing
``IndexedPriorityQueue`` and the compiled search loop:

- ``keys[1..size]``: distances in heap order.
- ``cells[1..size]``: the cell stored at each heap slot.
- ``slots[cell]``: the heap slot of a cell, ``0`` when the cell is not queued.
"""
from typing import Final, Optional

import numpy as np

from lpalign.lib.resources import jit
from lpalign.align.errors import AllocationError, QueueExhaustedError


# Classes --------------------------------------------------------------------------------------------------------------
class IndexedPriorityQueue:
    """
    Min-priority queue over cell ids ``0..capacity - 1`` supporting decrease-key.

    Each cell appears at most once. Updating a queued cell only ever lowers its distance.

    Args:
        capacity: Number of distinct cells the queue can hold.

    Raises:
        AllocationError: If the heap arrays cannot be allocated.

    Examples:
        >>> q = IndexedPriorityQueue(4)
        >>> q.update(2, 7)
        True
        >>> q.update(2, 9)
        False
        >>> q.extract_min()
        (2, 7)
    """
    DTYPE: Final = np.int64
    __slots__ = ('_keys', '_cells', '_slots', '_size')

    def __init__(self, capacity: int):
        if capacity < 0: raise ValueError(f"Capacity must be non-negative, got {capacity}")
        try:
            self._keys = np.zeros(capacity + 1, dtype=self.DTYPE)
            self._cells = np.zeros(capacity + 1, dtype=self.DTYPE)
            self._slots = np.zeros(capacity, dtype=self.DTYPE)
        except MemoryError as e:
            raise AllocationError(f"Could not allocate a priority queue for {capacity} cells") from e
        self._size = 0

    def __len__(self): return self._size
    def __bool__(self): return self._size > 0
    def __repr__(self): return f"IndexedPriorityQueue({self._size}/{self.capacity})"

    def __contains__(self, cell) -> bool:
        return 0 <= cell < len(self._slots) and self._slots[cell] > 0

    @property
    def capacity(self) -> int: return len(self._slots)

    @property
    def heap(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """The raw ``(keys, cells, slots)`` arrays, for kernels that drive the heap directly."""
        return self._keys, self._cells, self._slots

    def _check(self, cell: int):
        if not 0 <= cell < len(self._slots):
            raise IndexError(f"Cell {cell} out of range for a queue of capacity {self.capacity}")

    def update(self, cell: int, distance: int) -> bool:
        """
        Inserts a cell, or lowers the distance of a queued cell.

        Args:
            cell: The cell id.
            distance: The candidate distance.

        Returns:
            ``True`` if the cell was inserted or its distance lowered, ``False`` if the candidate was not better.
        """
        self._check(cell)
        self._size, improved = _heap_update(self._keys, self._cells, self._slots, self._size, cell, distance)
        return bool(improved)

    def extract_min(self) -> tuple[int, int]:
        """
        Removes and returns the cell with the smallest distance.

        Returns:
            ``(cell, distance)``.

        Raises:
            QueueExhaustedError: If the queue is empty.
        """
        if self._size == 0: raise QueueExhaustedError("Cannot extract from an empty priority queue")
        cell, distance, self._size = _heap_pop(self._keys, self._cells, self._slots, self._size)
        return int(cell), int(distance)

    def peek(self) -> tuple[int, int]:
        """The ``(cell, distance)`` that ``extract_min`` would return, without removing it."""
        if self._size == 0: raise QueueExhaustedError("Cannot peek into an empty priority queue")
        return int(self._cells[1]), int(self._keys[1])

    def distance(self, cell: int) -> Optional[int]:
        """The queued distance of a cell, or ``None`` if it is not queued."""
        self._check(cell)
        if (slot := self._slots[cell]) == 0: return None
        return int(self._keys[slot])


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _sift_up(keys, cells, slots, k):
    key = keys[k]; cell = cells[k]
    while k > 1:
        parent = k >> 1
        if keys[parent] <= key: break
        keys[k] = keys[parent]; cells[k] = cells[parent]; slots[cells[k]] = k
        k = parent
    keys[k] = key; cells[k] = cell; slots[cell] = k


@jit(nopython=True, cache=True, nogil=True)
def _sift_down(keys, cells, slots, k, size):
    key = keys[k]; cell = cells[k]
    while 2 * k <= size:
        child = 2 * k
        if child < size and keys[child + 1] < keys[child]: child += 1
        if key <= keys[child]: break
        keys[k] = keys[child]; cells[k] = cells[child]; slots[cells[k]] = k
        k = child
    keys[k] = key; cells[k] = cell; slots[cell] = k


@jit(nopython=True, cache=True, nogil=True)
def _heap_update(keys, cells, slots, size, cell, distance):
    """Insert or decrease-key. Returns the new size and whether the entry improved."""
    k = slots[cell]
    if k > 0:
        if keys[k] <= distance: return size, False
        keys[k] = distance
        _sift_up(keys, cells, slots, k)
        return size, True
    size += 1
    keys[size] = distance; cells[size] = cell
    _sift_up(keys, cells, slots, size)
    return size, True


@jit(nopython=True, cache=True, nogil=True)
def _heap_pop(keys, cells, slots, size):
    """Removes the root. Returns its cell, its distance and the new size. The heap must not be empty."""
    cell = cells[1]; distance = keys[1]
    slots[cell] = 0
    if size > 1:
        keys[1] = keys[size]; cells[1] = cells[size]
        size -= 1
        _sift_down(keys, cells, slots, 1, size)
    else:
        size -= 1
    return cell, distance, size
