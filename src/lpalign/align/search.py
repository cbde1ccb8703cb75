"""
Least-cost path search over the edit graph.

Dijkstra's algorithm from cell ``(0, 0)`` to ``(m, n)``. Cells are settled in non-decreasing distance
order, and every cell other than the origin records the move that last improved it.
"""
from enum import IntEnum
from typing import NamedTuple

import numpy as np

from lpalign.lib.resources import jit
from lpalign.align.errors import AllocationError, QueueExhaustedError
from lpalign.align.graph import EditGraph, Move
from lpalign.align.queue import IndexedPriorityQueue, _heap_update, _heap_pop


# Constants ------------------------------------------------------------------------------------------------------------
class CellState(IntEnum):
    UNVISITED = 0
    FRONTIER = 1
    SETTLED = 2


_FRONTIER = int(CellState.FRONTIER)
_SETTLED = int(CellState.SETTLED)
_UP = int(Move.UP)
_LEFT = int(Move.LEFT)
_DIAG = int(Move.DIAG)
_FOUND = 0
_EXHAUSTED = 1


# Classes --------------------------------------------------------------------------------------------------------------
class SearchResult(NamedTuple):
    """
    Outcome of a completed search.

    Attributes:
        distance: Least total penalty from ``(0, 0)`` to ``(m, n)``.
        trace: ``(m + 1, n + 1)`` array of ``Move`` values, the predecessor of each reached cell.
        n_settled: Number of cells settled before the terminal cell, the terminal cell included.
    """
    distance: int
    trace: np.ndarray
    n_settled: int


# Functions ------------------------------------------------------------------------------------------------------------
def search(graph: EditGraph) -> SearchResult:
    """
    Finds a least-cost path through the edit graph.

    Args:
        graph: The edit graph to search.

    Returns:
        The least distance, the predecessor trace and the number of settled cells.

    Raises:
        AllocationError: If the scratch arrays cannot be allocated.
        QueueExhaustedError: If the frontier empties before ``(m, n)`` is settled.
    """
    n_cells = graph.n_cells
    try:
        states = np.zeros(n_cells, dtype=np.uint8)
        trace = np.zeros(n_cells, dtype=np.uint8)
    except MemoryError as e:
        raise AllocationError(f"Could not allocate search state for {n_cells} cells") from e
    keys, cells, slots = IndexedPriorityQueue(n_cells).heap
    right_window, down_window = graph.lead_windows

    status, distance, n_settled = _search_kernel(
        graph.seq1, graph.seq2, graph.table.data, graph.table.indel, right_window, down_window,
        graph.free_ends, states, trace, keys, cells, slots
    )
    if status == _EXHAUSTED:
        raise QueueExhaustedError(f"Frontier exhausted after settling {n_settled} of {n_cells} cells")
    return SearchResult(int(distance), trace.reshape(graph.shape), int(n_settled))


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _search_kernel(seq1, seq2, penalties, indel, right_window, down_window, trailing_free,
                   states, trace, keys, cells, slots):
    m = len(seq1); n = len(seq2); width = n + 1
    terminal = m * width + n
    size, _ = _heap_update(keys, cells, slots, 0, 0, 0)
    states[0] = _FRONTIER
    n_settled = 0

    while size > 0:
        x, d, size = _heap_pop(keys, cells, slots, size)
        states[x] = _SETTLED
        n_settled += 1
        if x == terminal: return _FOUND, d, n_settled
        i = x // width; j = x - i * width

        if j < n:  # right
            y = x + 1
            if states[y] != _SETTLED:
                free = (i == 0 and j < right_window) or (trailing_free and i == m)
                w = 0 if free else indel
                size, improved = _heap_update(keys, cells, slots, size, y, d + w)
                if improved: states[y] = _FRONTIER; trace[y] = _LEFT

        if i < m:  # down
            y = x + width
            if states[y] != _SETTLED:
                free = (j == 0 and i < down_window) or (trailing_free and j == n)
                w = 0 if free else indel
                size, improved = _heap_update(keys, cells, slots, size, y, d + w)
                if improved: states[y] = _FRONTIER; trace[y] = _UP

        if i < m and j < n:  # diagonal
            y = x + width + 1
            if states[y] != _SETTLED:
                w = penalties[seq1[i], seq2[j]]
                size, improved = _heap_update(keys, cells, slots, size, y, d + w)
                if improved: states[y] = _FRONTIER; trace[y] = _DIAG

    return _EXHAUSTED, -1, n_settled
