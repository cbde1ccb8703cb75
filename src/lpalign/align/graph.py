"""
The implicit edit graph between two encoded sequences.

Cell ``(i, j)`` means "the first ``i`` symbols of seq1 and the first ``j`` symbols of seq2 are aligned".
Every edge strictly increases ``i`` or ``j``, so the graph is acyclic and all weights are non-negative.
"""
from enum import IntEnum
from typing import Generator, Optional

import numpy as np
from scipy.sparse import csr_matrix

from lpalign.align.penalty import PenaltyTable


# Constants ------------------------------------------------------------------------------------------------------------
class Move(IntEnum):
    """Predecessor direction recorded at a cell: where the optimal path came from."""
    NONE = 0
    UP = 1  # from (i - 1, j): seq1 base against a gap
    LEFT = 2  # from (i, j - 1): seq2 base against a gap
    DIAG = 3  # from (i - 1, j - 1)


# Classes --------------------------------------------------------------------------------------------------------------
class EditGraph:
    """
    Weighted grid graph over cells ``(0..m, 0..n)`` with right, down and diagonal edges.

    Edge weights:

    - Right ``(i, j) -> (i, j + 1)``: free on the last row, and on the first row while ``j`` is inside
      the right lead window; otherwise the indel penalty.
    - Down ``(i, j) -> (i + 1, j)``: free on the last column, and on the first column while ``i`` is
      inside the down lead window; otherwise the indel penalty.
    - Diagonal ``(i, j) -> (i + 1, j + 1)``: the penalty table entry for ``seq1[i], seq2[j]``.

    The free edges make this a dovetail alignment: unaligned overhang before and after the overlap costs nothing.
    With ``free_ends=False`` no edge is free and the graph describes a global alignment.

    Args:
        seq1: Encoded first (top) sequence.
        seq2: Encoded second (bottom) sequence.
        table: The penalty table the codes are looked up in.
        free_ends: Whether boundary edges are free.
        max_lead_offset: Size of both lead windows. ``None`` estimates them from the sequence lengths.
        raw1: Original text of ``seq1``, only used to report a bad symbol.
        raw2: Original text of ``seq2``, only used to report a bad symbol.

    Raises:
        AlphabetViolationError: If either sequence holds a code the penalty table cannot look up.

    Examples:
        >>> g = EditGraph(Alphabet.IUPAC.encode(b'ACGT'), Alphabet.IUPAC.encode(b'AACGT'), PenaltyTable())
        >>> g.lead_windows
        (1, 0)
    """
    __slots__ = ('_seq1', '_seq2', '_table', '_free_ends', '_right_window', '_down_window')

    def __init__(self, seq1: np.ndarray, seq2: np.ndarray, table: PenaltyTable, free_ends: bool = True,
                 max_lead_offset: Optional[int] = None, raw1: bytes = None, raw2: bytes = None):
        table.check(seq1, 'seq1', raw1)
        table.check(seq2, 'seq2', raw2)
        self._seq1 = seq1
        self._seq2 = seq2
        self._table = table
        self._free_ends = free_ends
        if free_ends:
            self._right_window, self._down_window = self.estimate_windows(len(seq1), len(seq2), max_lead_offset)
        else:
            self._right_window = self._down_window = 0

    def __repr__(self): return f"EditGraph({self.m}x{self.n}, windows={self.lead_windows})"

    @staticmethod
    def estimate_windows(m: int, n: int, max_lead_offset: Optional[int] = None) -> tuple[int, int]:
        """
        Sizes of the free lead windows along the first row and the first column.

        Without an explicit limit the longer sequence may overhang by the length difference and the
        shorter one by a tenth of its own length.

        Args:
            m: Length of seq1.
            n: Length of seq2.
            max_lead_offset: Explicit window size for both sides.

        Returns:
            ``(right_window, down_window)``.
        """
        if max_lead_offset is not None: return max_lead_offset, max_lead_offset
        if n > m: return n - m, m // 10
        return n // 10, m - n

    @property
    def seq1(self) -> np.ndarray: return self._seq1
    @property
    def seq2(self) -> np.ndarray: return self._seq2
    @property
    def table(self) -> PenaltyTable: return self._table
    @property
    def free_ends(self) -> bool: return self._free_ends
    @property
    def m(self) -> int: return len(self._seq1)
    @property
    def n(self) -> int: return len(self._seq2)
    @property
    def shape(self) -> tuple[int, int]: return self.m + 1, self.n + 1
    @property
    def n_cells(self) -> int: return (self.m + 1) * (self.n + 1)
    @property
    def lead_windows(self) -> tuple[int, int]: return self._right_window, self._down_window

    def index(self, i: int, j: int) -> int:
        """Flat index of cell ``(i, j)``."""
        return i * (self.n + 1) + j

    def cell(self, index: int) -> tuple[int, int]:
        """Cell ``(i, j)`` of a flat index."""
        return divmod(index, self.n + 1)

    def right_weight(self, i, j):
        """Weight of ``(i, j) -> (i, j + 1)``. Works element-wise on arrays."""
        free = (i == 0) & (j < self._right_window)
        if self._free_ends: free = free | (i == self.m)
        return np.where(free, 0, self._table.indel) if isinstance(free, np.ndarray) else \
            (0 if free else self._table.indel)

    def down_weight(self, i, j):
        """Weight of ``(i, j) -> (i + 1, j)``. Works element-wise on arrays."""
        free = (j == 0) & (i < self._down_window)
        if self._free_ends: free = free | (j == self.n)
        return np.where(free, 0, self._table.indel) if isinstance(free, np.ndarray) else \
            (0 if free else self._table.indel)

    def diag_weight(self, i, j):
        """Weight of ``(i, j) -> (i + 1, j + 1)``. Works element-wise on arrays."""
        return self._table[self._seq1[i], self._seq2[j]]

    def neighbours(self, i: int, j: int) -> Generator[tuple[int, int, Move, int], None, None]:
        """
        Forward neighbours of ``(i, j)``.

        Yields:
            ``(i2, j2, move, weight)`` where ``move`` is the predecessor direction recorded at the neighbour.
        """
        if j < self.n: yield i, j + 1, Move.LEFT, int(self.right_weight(i, j))
        if i < self.m: yield i + 1, j, Move.UP, int(self.down_weight(i, j))
        if i < self.m and j < self.n: yield i + 1, j + 1, Move.DIAG, int(self.diag_weight(i, j))

    def path_cost(self, moves: np.ndarray) -> int:
        """
        Total weight of the path from ``(0, 0)`` that takes the given moves in order.

        Args:
            moves: ``Move`` values, one per alignment column, left to right.

        Returns:
            The summed edge weights.

        Raises:
            ValueError: If the moves leave the grid or do not end at ``(m, n)``.
        """
        i = j = total = 0
        for move in moves:
            if move == Move.DIAG:
                if i >= self.m or j >= self.n: raise ValueError(f"Diagonal move leaves the grid at ({i}, {j})")
                total += int(self.diag_weight(i, j))
                i += 1
                j += 1
            elif move == Move.UP:
                if i >= self.m: raise ValueError(f"Down move leaves the grid at ({i}, {j})")
                total += int(self.down_weight(i, j))
                i += 1
            elif move == Move.LEFT:
                if j >= self.n: raise ValueError(f"Right move leaves the grid at ({i}, {j})")
                total += int(self.right_weight(i, j))
                j += 1
            else:
                raise ValueError(f"Invalid move {move!r}")
        if (i, j) != (self.m, self.n): raise ValueError(f"Path ends at ({i}, {j}), not ({self.m}, {self.n})")
        return total

    def to_csr(self) -> csr_matrix:
        """
        Materialises the graph as a sparse adjacency matrix over flat cell indices.

        Zero-weight edges are stored as explicit zeros, which ``scipy.sparse.csgraph`` treats as edges.

        Returns:
            A ``(n_cells, n_cells)`` CSR matrix.
        """
        m, n = self.m, self.n
        idx = np.arange(self.n_cells, dtype=np.int64).reshape(m + 1, n + 1)
        rows, cols, data = [], [], []

        ii, jj = np.meshgrid(np.arange(m + 1), np.arange(n), indexing='ij')  # right
        rows.append(idx[:, :-1].ravel())
        cols.append(idx[:, 1:].ravel())
        data.append(np.broadcast_to(self.right_weight(ii, jj), ii.shape).ravel())

        ii, jj = np.meshgrid(np.arange(m), np.arange(n + 1), indexing='ij')  # down
        rows.append(idx[:-1, :].ravel())
        cols.append(idx[1:, :].ravel())
        data.append(np.broadcast_to(self.down_weight(ii, jj), ii.shape).ravel())

        if m and n:  # diagonal
            rows.append(idx[:-1, :-1].ravel())
            cols.append(idx[1:, 1:].ravel())
            data.append(self._table[self._seq1[:, None], self._seq2[None, :]].ravel())

        rows, cols = np.concatenate(rows), np.concatenate(cols)
        data = np.concatenate(data).astype(np.float64)
        return csr_matrix((data, (rows, cols)), shape=(self.n_cells, self.n_cells))
