"""
Gapped pairwise alignment of two sequences, column by column.
"""
from enum import IntEnum
from typing import Final, Generator, NamedTuple

import numpy as np

from lpalign.core.alphabet import Alphabet
from lpalign.lib.protocols import HasAlphabet
from lpalign.lib.resources import jit


# Constants ------------------------------------------------------------------------------------------------------------
class Column(IntEnum):
    """Classification of one alignment column. The first three share their values with ``PenaltyClass``."""
    MATCH = 0
    SUBSTITUTION = 1
    AMBIGUITY = 2
    INDEL = 3


class DifferenceKind(IntEnum):
    SUBSTITUTION = 0
    AMBIGUITY = 1
    INSERTION = 2  # seq2 carries a base that seq1 lacks
    DELETION = 3  # seq1 carries a base that seq2 lacks


_ANNOTATION_TABLE: Final = b" *|-".ljust(256, b"?")  # symbol per Column


# Classes --------------------------------------------------------------------------------------------------------------
class Difference(NamedTuple):
    """
    One non-matching column.

    Positions are 1-based. On the gapped side the position is that of the next base.
    """
    kind: DifferenceKind
    pos1: int
    pos2: int
    base1: bytes
    base2: bytes


class Alignment(HasAlphabet):
    """
    Three parallel rows describing how seq1 (top) and seq2 (bottom) line up.

    The top and bottom rows hold symbol codes, with ``GAP`` where a sequence has no base.
    The annotation row holds one ``Column`` per column.

    Args:
        top: seq1 codes, gapped.
        annotation: ``Column`` values.
        bottom: seq2 codes, gapped.
        alphabet: The alphabet of both sequences.
        penalty: Total penalty of the path this alignment was read from.

    Examples:
        >>> aln = Aligner().align('ACGT', 'ACTT').alignment
        >>> aln.annotation_bytes()
        b'  * '
        >>> aln.cigar()
        b'2=1X1='
    """
    GAP: Final = Alphabet.INVALID
    SPACER: Final = b' '
    _CIGAR_OPS: Final = (b'=', b'X', b'I', b'D')
    __slots__ = ('_top', '_annotation', '_bottom', '_alphabet', '_penalty')

    def __init__(self, top: np.ndarray, annotation: np.ndarray, bottom: np.ndarray, alphabet: Alphabet = Alphabet.IUPAC,
                 penalty: int = 0):
        if not len(top) == len(annotation) == len(bottom):
            raise ValueError(f"Alignment rows differ in length: {len(top)}, {len(annotation)}, {len(bottom)}")
        self._top = np.ascontiguousarray(top, dtype=Alphabet.DTYPE)
        self._annotation = np.ascontiguousarray(annotation, dtype=np.uint8)
        self._bottom = np.ascontiguousarray(bottom, dtype=Alphabet.DTYPE)
        self._alphabet = alphabet
        self._penalty = penalty
        for row in (self._top, self._annotation, self._bottom): row.flags.writeable = False

    def __len__(self): return len(self._annotation)
    def __iter__(self): return zip(self._top, self._annotation, self._bottom)

    def __repr__(self):
        return f"Alignment(length={len(self)}, penalty={self._penalty}, cigar={self.cigar().decode('ascii')})"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Alignment): return False
        return (np.array_equal(self._top, other._top) and np.array_equal(self._bottom, other._bottom)
                and np.array_equal(self._annotation, other._annotation))

    __hash__ = None

    @property
    def top(self) -> np.ndarray: return self._top
    @property
    def annotation(self) -> np.ndarray: return self._annotation
    @property
    def bottom(self) -> np.ndarray: return self._bottom
    @property
    def alphabet(self) -> Alphabet: return self._alphabet
    @property
    def penalty(self) -> int: return self._penalty

    @property
    def moves(self) -> np.ndarray:
        """The path through the edit graph as ``Move`` values (``1`` up, ``2`` left, ``3`` diagonal)."""
        return np.where(self._top == self.GAP, 2, np.where(self._bottom == self.GAP, 1, 3)).astype(np.uint8)

    def top_bytes(self) -> bytes:
        """seq1 as text, with spaces where it has no base."""
        return self._row_bytes(self._top)

    def bottom_bytes(self) -> bytes:
        """seq2 as text, with spaces where it has no base."""
        return self._row_bytes(self._bottom)

    def annotation_bytes(self) -> bytes:
        """The mark of each column: ``' '`` match, ``'*'`` substitution, ``'|'`` ambiguity, ``'-'`` indel."""
        return self._annotation.tobytes().translate(_ANNOTATION_TABLE)

    def _row_bytes(self, row: np.ndarray) -> bytes:
        return self._alphabet.decode(row).replace(Alphabet.GAP, self.SPACER)

    def cigar(self) -> bytes:
        """
        Extended CIGAR with seq1 as the reference.

        ``=`` match, ``X`` substitution or ambiguity, ``I`` base only in seq2, ``D`` base only in seq1.
        """
        if len(self) == 0: return b''
        counts, ops = _cigar_rle_kernel(self._top, self._annotation, self.GAP)
        return b''.join([b'%d' % c + self._CIGAR_OPS[o] for c, o in zip(counts, ops)])

    def positions(self) -> tuple[np.ndarray, np.ndarray]:
        """
        1-based position of each column in seq1 and seq2.

        Where a row has a gap the position is that of the row's next base.
        """
        has1 = self._top != self.GAP
        has2 = self._bottom != self.GAP
        return np.cumsum(has1) - has1 + 1, np.cumsum(has2) - has2 + 1

    def differences(self, statistics: 'AlignmentStatistics' = None) -> Generator[Difference, None, None]:
        """
        Every non-matching column, left to right.

        Args:
            statistics: When given, only the interior columns between its leading and trailing offsets are reported.

        Yields:
            ``Difference`` records.

        Examples:
            >>> [d.kind.name for d in Aligner(free_ends=False).align('ACGT', 'ACT').alignment.differences()]
            ['DELETION']
        """
        pos1, pos2 = self.positions()
        start, stop = 0, len(self)
        if statistics is not None: start, stop = statistics.lead_columns, len(self) - statistics.trail_columns
        decode = self._alphabet.decode
        for c in np.flatnonzero(self._annotation[start:stop] != Column.MATCH) + start:
            kind = self._annotation[c]
            if kind == Column.SUBSTITUTION: kind = DifferenceKind.SUBSTITUTION
            elif kind == Column.AMBIGUITY: kind = DifferenceKind.AMBIGUITY
            elif self._top[c] == self.GAP: kind = DifferenceKind.INSERTION
            else: kind = DifferenceKind.DELETION
            yield Difference(kind, int(pos1[c]), int(pos2[c]), decode(self._top[c:c + 1]),
                             decode(self._bottom[c:c + 1]))


# Kernels --------------------------------------------------------------------------------------------------------------
@jit(nopython=True, cache=True, nogil=True)
def _cigar_rle_kernel(top, annotation, gap_code):
    n = len(annotation)
    counts = np.empty(n, dtype=np.int32); ops = np.empty(n, dtype=np.uint8); idx = 0
    curr_op = 0; curr_count = 0
    for i in range(n):
        a = annotation[i]
        if a == 0: op = 0  # =
        elif a != 3: op = 1  # X
        elif top[i] == gap_code: op = 2  # I
        else: op = 3  # D
        if curr_count and op == curr_op:
            curr_count += 1
        else:
            if curr_count: counts[idx] = curr_count; ops[idx] = curr_op; idx += 1
            curr_op = op; curr_count = 1
    counts[idx] = curr_count; ops[idx] = curr_op; idx += 1
    return counts[:idx], ops[:idx]
