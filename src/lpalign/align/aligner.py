"""
The alignment engine: search, backtrace and classification behind one call.

Examples:
    >>> aligner = Aligner()
    >>> result = aligner.align('ACGTACGT', 'ACGTNCGT')
    >>> result.distance, result.statistics.ambiguities
    (0, 1)
    >>> outcome = aligner.try_align('ACGT', 'ACXT')
    >>> outcome.ok, outcome.error.kind.name
    (False, 'ALPHABET_VIOLATION')
"""
from typing import NamedTuple, Optional, Union

import numpy as np

from lpalign.core.alphabet import Alphabet, GeneticCode
from lpalign.containers.alignment import Alignment, Difference
from lpalign.containers.seq import Seq
from lpalign.align.errors import AlignmentError, AlphabetViolationError
from lpalign.align.penalty import Penalties, PenaltyTable
from lpalign.align.graph import EditGraph
from lpalign.align.search import search
from lpalign.align.backtrace import backtrace
from lpalign.align.stats import AlignmentStatistics, classify


# Classes --------------------------------------------------------------------------------------------------------------
class AlignmentResult(NamedTuple):
    """
    A least-cost alignment and its statistics.

    Attributes:
        alignment: The gapped alignment.
        statistics: Column counts of the alignment.
        distance: The least total penalty.
    """
    alignment: Alignment
    statistics: AlignmentStatistics
    distance: int

    def differences(self) -> list[Difference]:
        """The non-matching columns of the overlap, with 1-based positions."""
        return list(self.alignment.differences(self.statistics))


class AlignmentOutcome(NamedTuple):
    """Either a result or the error that stopped the alignment."""
    result: Optional[AlignmentResult] = None
    error: Optional[AlignmentError] = None

    @property
    def ok(self) -> bool: return self.error is None

    def unwrap(self) -> AlignmentResult:
        """Returns the result, raising the stored error if there is one."""
        if self.error is not None: raise self.error
        return self.result


class Aligner:
    """
    Least-cost pairwise aligner under a unit-cost edit model with ambiguity-aware substitutions.

    The aligner holds no per-call state, so one instance can serve any number of calls, concurrently included.

    Args:
        penalties: Indel, substitution and ambiguity penalties.
        alphabet: The alphabet both sequences are encoded with.
        free_ends: Leave overhang before and after the overlap unpenalised (dovetail alignment).
            ``False`` charges every indel (global alignment).
        max_lead_offset: Largest free leading overhang on either sequence. ``None`` allows the longer
            sequence to overhang by the length difference and the shorter by a tenth of its length.
        max_length: Largest alignment length accepted. ``None`` means ``len(seq1) + len(seq2)``.
        translate: Also compare codons by default.
        code: Genetic code for translation.

    Raises:
        ValueError: If a limit is negative, or the genetic code uses a different alphabet.
    """
    __slots__ = ('_table', '_free_ends', '_max_lead_offset', '_max_length', '_translate', '_code')

    def __init__(self, penalties: Penalties = None, alphabet: Alphabet = Alphabet.IUPAC, free_ends: bool = True,
                 max_lead_offset: int = None, max_length: int = None, translate: bool = False,
                 code: GeneticCode = GeneticCode.STANDARD):
        if max_lead_offset is not None and max_lead_offset < 0:
            raise ValueError(f"max_lead_offset must be non-negative, got {max_lead_offset}")
        if max_length is not None and max_length < 0:
            raise ValueError(f"max_length must be non-negative, got {max_length}")
        if code.alphabet != alphabet: raise ValueError(f"Genetic code alphabet {code.alphabet} is not {alphabet}")
        if (penalties is None or penalties == Penalties()) and alphabet is Alphabet.IUPAC:
            self._table = PenaltyTable.default()
        else:
            self._table = PenaltyTable(alphabet, penalties)
        self._free_ends = free_ends
        self._max_lead_offset = max_lead_offset
        self._max_length = max_length
        self._translate = translate
        self._code = code

    def __repr__(self):
        return (f"Aligner({self._table.penalties}, free_ends={self._free_ends}, "
                f"max_lead_offset={self._max_lead_offset})")

    @property
    def table(self) -> PenaltyTable: return self._table
    @property
    def alphabet(self) -> Alphabet: return self._table.alphabet
    @property
    def penalties(self) -> Penalties: return self._table.penalties
    @property
    def free_ends(self) -> bool: return self._free_ends

    def _encode(self, seq: Union[Seq, str, bytes, np.ndarray], name: str) -> tuple[np.ndarray, Optional[bytes]]:
        if isinstance(seq, Seq):
            if seq.alphabet != self.alphabet: raise ValueError(f'Sequence has a different alphabet "{seq.alphabet}"')
            return seq.encoded, None
        if isinstance(seq, np.ndarray):
            # Range-check before the cast, which would wrap wide codes into the alphabet
            if len(bad := np.flatnonzero((seq < 0) | (seq >= len(self.alphabet)))):
                pos = int(bad[0])
                raise AlphabetViolationError(name, pos, seq[pos].item())
            return np.ascontiguousarray(seq, dtype=Alphabet.DTYPE), None
        if isinstance(seq, str): seq = seq.encode(Alphabet.ENCODING)
        return self.alphabet.encode(seq), seq

    def graph(self, seq1: Union[Seq, str, bytes, np.ndarray], seq2: Union[Seq, str, bytes, np.ndarray]) -> EditGraph:
        """
        The edit graph this aligner searches for a pair of sequences.

        Raises:
            AlphabetViolationError: If either sequence holds a symbol outside the alphabet.
        """
        codes1, raw1 = self._encode(seq1, 'seq1')
        codes2, raw2 = self._encode(seq2, 'seq2')
        return EditGraph(codes1, codes2, self._table, self._free_ends, self._max_lead_offset, raw1, raw2)

    def align(self, seq1: Union[Seq, str, bytes, np.ndarray], seq2: Union[Seq, str, bytes, np.ndarray],
              max_length: int = None, translate: bool = None) -> AlignmentResult:
        """
        Aligns two sequences at least total penalty.

        Args:
            seq1: The first (top) sequence.
            seq2: The second (bottom) sequence.
            max_length: Overrides the aligner's maximum alignment length.
            translate: Overrides the aligner's translation setting.

        Returns:
            The alignment, its statistics and the least distance.

        Raises:
            AlphabetViolationError: If either sequence holds a symbol outside the alphabet.
            AlignmentOverflowError: If the alignment is longer than the maximum length.
            AllocationError: If the search state cannot be allocated.
            QueueExhaustedError: If the search frontier empties before the end cell is reached.
            ValueError: If ``max_length`` is negative.
        """
        if max_length is not None and max_length < 0:
            raise ValueError(f"max_length must be non-negative, got {max_length}")
        graph = self.graph(seq1, seq2)
        found = search(graph)
        if max_length is None: max_length = self._max_length
        if max_length is None: max_length = graph.m + graph.n
        alignment = backtrace(found.trace, graph, max_length, found.distance)
        statistics = classify(alignment, self._translate if translate is None else translate, self._code,
                              self._free_ends)
        return AlignmentResult(alignment, statistics, found.distance)

    def try_align(self, seq1: Union[Seq, str, bytes, np.ndarray], seq2: Union[Seq, str, bytes, np.ndarray],
                  max_length: int = None, translate: bool = None) -> AlignmentOutcome:
        """Like ``align``, but returns an ``AlignmentError`` in the outcome instead of raising it."""
        try:
            return AlignmentOutcome(result=self.align(seq1, seq2, max_length, translate))
        except AlignmentError as error:
            return AlignmentOutcome(error=error)
