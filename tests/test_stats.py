import numpy as np
import pytest
from lpalign.core.alphabet import Alphabet, TranslationWarning
from lpalign.containers.alignment import Alignment, Column, DifferenceKind
from lpalign.align.aligner import Aligner
from lpalign.align.stats import AlignmentStatistics, classify

IUPAC = Alphabet.IUPAC
GAP = Alignment.GAP
M, S, A, I = Column.MATCH, Column.SUBSTITUTION, Column.AMBIGUITY, Column.INDEL


def make_alignment(top: bytes, annotation: list, bottom: bytes) -> Alignment:
    # '-' encodes as INVALID, which is the gap code
    return Alignment(IUPAC.encode(top), np.array(annotation, dtype=np.uint8), IUPAC.encode(bottom))


class TestAlignmentContainer:
    def test_row_lengths(self):
        with pytest.raises(ValueError, match="differ in length"):
            Alignment(IUPAC.encode(b'AC'), np.zeros(1, dtype=np.uint8), IUPAC.encode(b'AC'))

    def test_gap_encoding(self):
        assert IUPAC.encode(b'-')[0] == GAP

    def test_renderings(self):
        aln = make_alignment(b'--ACGT-', [I, I, M, M, S, M, I], b'ACACATT')
        assert aln.top_bytes() == b'  ACGT '
        assert aln.bottom_bytes() == b'ACACATT'
        assert aln.annotation_bytes() == b'--  * -'
        assert aln.cigar() == b'2I2=1X1=1I'

    def test_moves(self):
        aln = make_alignment(b'A-C', [M, I, I], b'AG-')
        np.testing.assert_array_equal(aln.moves, [3, 2, 1])

    def test_read_only(self):
        aln = make_alignment(b'AC', [M, M], b'AC')
        with pytest.raises(ValueError):
            aln.top[0] = 1

    def test_empty(self):
        aln = make_alignment(b'', [], b'')
        assert len(aln) == 0
        assert aln.cigar() == b''
        assert list(aln.differences()) == []


class TestOffsets:
    aln = make_alignment(b'--ACGT-', [I, I, M, M, S, M, I], b'ACACATT')

    def test_dovetail(self):
        stats = classify(self.aln)
        assert stats.seq1_lead_offset == 0
        assert stats.seq2_lead_offset == 2
        assert stats.seq1_trail_offset == 0
        assert stats.seq2_trail_offset == 1
        assert stats.interior == 4
        assert stats.matches == 3
        assert stats.substitutions == 1
        assert stats.indels == 0
        assert stats.lead_columns + stats.interior + stats.trail_columns == len(self.aln)

    def test_global(self):
        stats = classify(self.aln, free_ends=False)
        assert stats.lead_columns == stats.trail_columns == 0
        assert stats.interior == 7
        assert stats.indels == 3
        assert stats.seq2_insertions == 3
        assert stats.seq1_insertions == 0

    def test_rates(self):
        stats = classify(self.aln)
        assert stats.mismatches == 1
        assert stats.errors == 1
        assert stats.overlap == 4
        assert stats.error_rate == pytest.approx(0.25)
        assert stats.identity == pytest.approx(0.75)

    def test_all_indel(self):
        stats = classify(make_alignment(b'A-', [I, I], b'-C'))
        assert stats.lead_columns == 2
        assert stats.trail_columns == 0
        assert stats.seq1_lead_offset == 1
        assert stats.seq2_lead_offset == 1
        assert stats.interior == 0
        assert stats.error_rate == 0.0
        assert stats.identity == 0.0

    def test_interior_indel(self):
        stats = classify(make_alignment(b'ACGT', [M, I, M, M], b'A-GT'))
        assert stats.interior == 4
        assert stats.indels == 1
        assert stats.seq1_insertions == 1

    def test_charged_overhang_is_offset(self):
        result = Aligner().align('TTACGT', 'ACGTAA')
        stats = result.statistics
        assert result.alignment.cigar() == b'2D4=2I'
        assert result.distance == 10
        assert stats.seq1_lead_offset == 2
        assert stats.seq2_trail_offset == 2
        assert stats.interior == 4
        assert stats.errors == 0

    def test_every_interior_column_counted(self):
        stats = classify(make_alignment(b'-ACGTA', [I, S, M, M, S, I], b'GCCGA-'))
        assert stats.interior == 4
        assert stats.substitutions == 2
        assert stats.matches == 2


class TestAmbiguitySides:
    def test_sides(self):
        stats = classify(make_alignment(b'NAR', [A, A, A], b'ANG'))
        assert stats.ambiguities == 3
        assert stats.seq1_ambiguities == 2
        assert stats.seq2_ambiguities == 1
        assert stats.mismatches == 3
        assert stats.errors == 0


class TestDifferences:
    aln = make_alignment(b'--ACGT-', [I, I, M, M, S, M, I], b'ACACATT')

    def test_all_columns(self):
        kinds = [d.kind for d in self.aln.differences()]
        assert kinds == [DifferenceKind.INSERTION, DifferenceKind.INSERTION, DifferenceKind.SUBSTITUTION,
                         DifferenceKind.INSERTION]

    def test_interior_only(self):
        (diff,) = self.aln.differences(classify(self.aln))
        assert diff == (DifferenceKind.SUBSTITUTION, 3, 5, b'G', b'A')


class TestStatisticsRecord:
    def test_as_dict(self):
        d = classify(make_alignment(b'ACGT', [M, M, S, M], b'ACAT')).as_dict()
        assert d['matches'] == 3
        assert d['errors'] == 1
        assert d['translated'] is False
        assert 'codons' not in d
        assert d['identity'] == pytest.approx(0.75)

    def test_as_dict_translated(self):
        d = Aligner(translate=True).align('ATGGCC', 'ATGGCC').statistics.as_dict()
        assert d['codons'] == 2

    def test_add(self):
        stats = classify(make_alignment(b'ACGT', [M, M, S, M], b'ACAT'))
        total = stats + stats
        assert total.matches == 6
        assert total.substitutions == 2
        assert total.interior == 8
        assert total == AlignmentStatistics(matches=6, substitutions=2, interior=8)


class TestTranslation:
    def test_silent_substitution(self):
        stats = Aligner(translate=True).align('ATGGCC', 'ATGGCT').statistics
        assert stats.translated
        assert stats.substitutions == 1
        assert stats.codons == 2
        assert stats.changed_codons == 0
        assert stats.substitutions_x == 0

    def test_missense_substitution(self):
        stats = Aligner(translate=True).align('ATGGCC', 'ATGCCC').statistics
        assert stats.substitutions == 1
        assert stats.changed_codons == 1
        assert stats.substitutions_x == 1

    def test_silent_ambiguity(self):
        stats = Aligner(translate=True).align('GCAGCA', 'GCNGCA').statistics
        assert stats.ambiguities == 1
        assert stats.codons == 2
        assert stats.ambiguities_x == 0

    def test_unresolved_ambiguity(self):
        stats = Aligner(translate=True).align('ATGATG', 'ATNATG').statistics
        assert stats.ambiguities == 1
        assert stats.changed_codons == 1
        assert stats.ambiguities_x == 1

    def test_indel_breaks_codon(self):
        stats = Aligner(free_ends=False, translate=True).align('ATGAAACCC', 'ATGAACCC').statistics
        assert stats.indels == 1
        assert stats.codons == 2
        assert stats.changed_codons == 0

    def test_partial_codon_ignored(self):
        assert Aligner(translate=True).align('ATGGC', 'ATGGC').statistics.codons == 1

    def test_no_codon_warns(self):
        with pytest.warns(TranslationWarning):
            stats = Aligner(translate=True).align('AC', 'AC').statistics
        assert stats.codons == 0

    def test_per_call_override(self):
        aligner = Aligner()
        assert not aligner.align('ATGGCC', 'ATGGCC').statistics.translated
        assert aligner.align('ATGGCC', 'ATGGCC', translate=True).statistics.translated
