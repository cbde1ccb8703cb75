"""
Error statistics of a finished alignment.

Columns are split into a leading offset, the interior overlap and a trailing offset. Offset columns are
unaligned overhang and are only counted per sequence; the interior is classified column by column.
"""
from dataclasses import dataclass, asdict, fields
from typing import Any
from warnings import warn

import numpy as np

from lpalign.core.alphabet import GeneticCode, TranslationWarning
from lpalign.containers.alignment import Alignment, Column


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(slots=True)
class AlignmentStatistics:
    """
    Column counts of one alignment.

    Attributes:
        matches: Interior columns with identical symbols.
        substitutions: Interior columns with incompatible symbols.
        ambiguities: Interior columns where an ambiguity code meets a symbol it can stand for.
        indels: Interior columns with a gap on one side.
        seq1_insertions: Interior indels where seq1 holds the base.
        seq2_insertions: Interior indels where seq2 holds the base.
        seq1_ambiguities: Ambiguity columns where seq1 holds an ambiguity code.
        seq2_ambiguities: Ambiguity columns where seq2 holds an ambiguity code.
        seq1_lead_offset: seq1 bases in the leading offset.
        seq1_trail_offset: seq1 bases in the trailing offset.
        seq2_lead_offset: seq2 bases in the leading offset.
        seq2_trail_offset: seq2 bases in the trailing offset.
        interior: Number of interior columns.
        translated: Whether the codon counters below were computed.
        codons: Complete codons compared.
        changed_codons: Complete codons whose residues differ.
        substitutions_x: Substitutions inside changed codons.
        ambiguities_x: Ambiguities inside changed codons.
    """
    matches: int = 0
    substitutions: int = 0
    ambiguities: int = 0
    indels: int = 0
    seq1_insertions: int = 0
    seq2_insertions: int = 0
    seq1_ambiguities: int = 0
    seq2_ambiguities: int = 0
    seq1_lead_offset: int = 0
    seq1_trail_offset: int = 0
    seq2_lead_offset: int = 0
    seq2_trail_offset: int = 0
    interior: int = 0
    translated: bool = False
    codons: int = 0
    changed_codons: int = 0
    substitutions_x: int = 0
    ambiguities_x: int = 0

    @property
    def lead_columns(self) -> int: return self.seq1_lead_offset + self.seq2_lead_offset
    @property
    def trail_columns(self) -> int: return self.seq1_trail_offset + self.seq2_trail_offset
    @property
    def overlap(self) -> int: return self.interior
    @property
    def mismatches(self) -> int: return self.indels + self.ambiguities + self.substitutions
    @property
    def errors(self) -> int: return self.indels + self.substitutions

    @property
    def error_rate(self) -> float:
        """Errors per interior column, ``0.0`` when there is no overlap."""
        return self.errors / self.interior if self.interior else 0.0

    @property
    def identity(self) -> float:
        """Fraction of interior columns that match exactly, ``0.0`` when there is no overlap."""
        return self.matches / self.interior if self.interior else 0.0

    def as_dict(self) -> dict[str, Any]:
        """All counters plus the derived values, keyed by name."""
        d = asdict(self)
        if not self.translated:
            for f in ('codons', 'changed_codons', 'substitutions_x', 'ambiguities_x'): del d[f]
        d.update(mismatches=self.mismatches, errors=self.errors, error_rate=self.error_rate, identity=self.identity)
        return d

    def __add__(self, other: 'AlignmentStatistics') -> 'AlignmentStatistics':
        """Sums the counters of two alignments, e.g. to total a batch."""
        if not isinstance(other, AlignmentStatistics): return NotImplemented
        values = {f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self) if f.name != 'translated'}
        return AlignmentStatistics(translated=self.translated and other.translated, **values)


# Functions ------------------------------------------------------------------------------------------------------------
def classify(alignment: Alignment, translate: bool = False, code: GeneticCode = GeneticCode.STANDARD,
             free_ends: bool = True) -> AlignmentStatistics:
    """
    Counts the columns of an alignment.

    The leading offset is the run of indel columns at the start, the trailing offset the run at the end,
    never overlapping the leading one. Each offset column is credited to the sequence holding the base.
    Offsets are read from the alignment alone. An overhang longer than the free lead window is still an
    offset here, although the search charged its columns, so ``errors`` can be zero at a non-zero distance.

    Args:
        alignment: The alignment to classify.
        translate: Also compare codons of seq1 translated on both sides.
        code: The genetic code used for translation.
        free_ends: Whether the alignment had free ends. Without them there are no offsets.

    Returns:
        The statistics.

    Examples:
        >>> s = classify(Aligner().align('ACGTACGT', 'ACGTNCGT').alignment)
        >>> s.matches, s.ambiguities, s.seq2_ambiguities
        (7, 1, 1)
    """
    top, annotation, bottom = alignment.top, alignment.annotation, alignment.bottom
    gap = alignment.GAP
    length = len(alignment)
    stats = AlignmentStatistics()

    lead = trail = 0
    if free_ends and length:
        aligned = np.flatnonzero(annotation != Column.INDEL)
        if len(aligned) == 0:
            lead = length
        else:
            lead = int(aligned[0])
            trail = length - int(aligned[-1]) - 1
    stop = length - trail

    stats.seq1_lead_offset = int(np.count_nonzero(top[:lead] != gap))
    stats.seq2_lead_offset = lead - stats.seq1_lead_offset
    stats.seq1_trail_offset = int(np.count_nonzero(top[stop:] != gap))
    stats.seq2_trail_offset = trail - stats.seq1_trail_offset

    mid_top, mid_bottom, mid = top[lead:stop], bottom[lead:stop], annotation[lead:stop]
    stats.interior = len(mid)
    stats.matches = int(np.count_nonzero(mid == Column.MATCH))
    stats.substitutions = int(np.count_nonzero(mid == Column.SUBSTITUTION))
    stats.ambiguities = int(np.count_nonzero(is_ambiguity := mid == Column.AMBIGUITY))
    stats.indels = int(np.count_nonzero(is_indel := mid == Column.INDEL))
    stats.seq1_insertions = int(np.count_nonzero(is_indel & (mid_top != gap)))
    stats.seq2_insertions = stats.indels - stats.seq1_insertions
    ambiguous = alignment.alphabet.ambiguous
    if stats.ambiguities:
        stats.seq1_ambiguities = int(np.count_nonzero(ambiguous[mid_top[is_ambiguity]]))
        stats.seq2_ambiguities = int(np.count_nonzero(ambiguous[mid_bottom[is_ambiguity]]))

    if translate:
        stats.translated = True
        _count_codons(stats, mid_top, mid, mid_bottom, code)
        if stats.codons == 0:
            warn(f'No complete codon in an overlap of {stats.interior} columns', TranslationWarning, stacklevel=2)
    return stats


def _count_codons(stats: AlignmentStatistics, top: np.ndarray, annotation: np.ndarray, bottom: np.ndarray,
                  code: GeneticCode):
    """
    Compares consecutive seq1 codons of the interior, read from its first seq1 base.

    A codon is complete when no indel column falls inside its span, so that both sides hold three bases.
    """
    columns = np.flatnonzero(top != Alignment.GAP)
    n_codons = len(columns) // 3
    for c in range(n_codons):
        start, end = columns[3 * c], columns[3 * c + 2] + 1
        span = annotation[start:end]
        if np.any(span == Column.INDEL): continue
        stats.codons += 1
        r1 = code.translate_codon(*top[start:end])
        r2 = code.translate_codon(*bottom[start:end])
        if r1 == r2: continue
        stats.changed_codons += 1
        stats.substitutions_x += int(np.count_nonzero(span == Column.SUBSTITUTION))
        stats.ambiguities_x += int(np.count_nonzero(span == Column.AMBIGUITY))
