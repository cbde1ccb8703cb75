"""
Reconstruction of the alignment from the predecessor trace of a finished search.
"""
import numpy as np

from lpalign.lib.resources import jit
from lpalign.align.errors import AlignmentOverflowError, AllocationError
from lpalign.align.graph import EditGraph, Move
from lpalign.containers.alignment import Alignment, Column


# Constants ------------------------------------------------------------------------------------------------------------
_UP = int(Move.UP)
_LEFT = int(Move.LEFT)
_DIAG = int(Move.DIAG)
_INDEL = int(Column.INDEL)
_OVERFLOW = -1
_BROKEN = -2


# Functions ------------------------------------------------------------------------------------------------------------
def backtrace(trace: np.ndarray, graph: EditGraph, max_length: int, penalty: int = 0) -> Alignment:
    """
    Walks the predecessor trace from ``(m, n)`` back to ``(0, 0)``.

    Args:
        trace: ``(m + 1, n + 1)`` array of ``Move`` values from ``search``.
        graph: The graph that was searched.
        max_length: Largest number of columns the alignment may have.
        penalty: Total penalty of the path, stored on the alignment.

    Returns:
        The alignment, left to right.

    Raises:
        AlignmentOverflowError: If the alignment would need more than ``max_length`` columns.
        AllocationError: If the output rows cannot be allocated.
    """
    m, n = graph.m, graph.n
    capacity = min(max_length, m + n)
    try:
        top = np.empty(capacity, dtype=np.uint8)
        annotation = np.empty(capacity, dtype=np.uint8)
        bottom = np.empty(capacity, dtype=np.uint8)
    except MemoryError as e:
        raise AllocationError(f"Could not allocate an alignment of {capacity} columns") from e

    k = _backtrace_kernel(trace, graph.seq1, graph.seq2, graph.table.classes, Alignment.GAP, top, annotation, bottom)
    if k == _OVERFLOW: raise AlignmentOverflowError(max_length, m, n)
    if k == _BROKEN: raise ValueError("Trace has no predecessor for a cell on the optimal path")
    return Alignment(top[:k][::-1], annotation[:k][::-1], bottom[:k][::-1], graph.table.alphabet, penalty)


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _backtrace_kernel(trace, seq1, seq2, classes, gap, top, annotation, bottom):
    """Fills the rows back to front. Returns the number of columns or a negative status."""
    i = len(seq1); j = len(seq2); k = 0; capacity = len(top)
    while i > 0 or j > 0:
        if k >= capacity: return _OVERFLOW
        move = trace[i, j]
        if move == _DIAG:
            i -= 1; j -= 1
            a = seq1[i]; b = seq2[j]
            top[k] = a; bottom[k] = b; annotation[k] = classes[a, b]
        elif move == _UP:
            i -= 1
            top[k] = seq1[i]; bottom[k] = gap; annotation[k] = _INDEL
        elif move == _LEFT:
            j -= 1
            top[k] = gap; bottom[k] = seq2[j]; annotation[k] = _INDEL
        else:
            return _BROKEN
        k += 1
    return k
