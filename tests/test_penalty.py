from dataclasses import FrozenInstanceError

import numpy as np
import pytest
from lpalign.core.alphabet import Alphabet
from lpalign.align.errors import AlphabetViolationError, ErrorKind
from lpalign.align.penalty import Penalties, PenaltyClass, PenaltyTable

IUPAC = Alphabet.IUPAC


def code(symbol: bytes) -> int:
    return int(IUPAC.encode(symbol)[0])


class TestPenalties:
    def test_defaults(self):
        p = Penalties()
        assert (p.indel, p.substitution, p.ambiguity) == (5, 4, 0)

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            Penalties().indel = 1

    def test_hashable(self):
        assert hash(Penalties()) == hash(Penalties(5, 4, 0))

    @pytest.mark.parametrize('kwargs', [{'indel': -1}, {'substitution': -2}, {'ambiguity': -1}])
    def test_negative(self, kwargs):
        with pytest.raises(ValueError, match="non-negative"):
            Penalties(**kwargs)

    def test_not_integer(self):
        with pytest.raises(ValueError, match="integer"):
            Penalties(indel=1.5)
        with pytest.raises(ValueError, match="integer"):
            Penalties(indel=True)

    def test_ambiguity_above_substitution(self):
        with pytest.raises(ValueError, match="cannot exceed"):
            Penalties(substitution=1, ambiguity=2)


class TestPenaltyTable:
    table = PenaltyTable()

    def test_shape(self):
        assert self.table.shape == (15, 15)

    def test_symmetric(self):
        np.testing.assert_array_equal(self.table.data, self.table.data.T)

    def test_zero_diagonal(self):
        np.testing.assert_array_equal(np.diagonal(self.table.data), 0)

    def test_definite_mismatch(self):
        assert self.table.penalty(code(b'A'), code(b'C')) == 4
        assert self.table.classify(code(b'G'), code(b'T')) is PenaltyClass.SUBSTITUTION

    def test_ambiguity_compatible(self):
        assert self.table.penalty(code(b'A'), code(b'N')) == 0
        assert self.table.classify(code(b'R'), code(b'G')) is PenaltyClass.AMBIGUITY
        # M (A/C) and R (A/G) share A
        assert self.table.classify(code(b'M'), code(b'R')) is PenaltyClass.AMBIGUITY

    def test_ambiguity_incompatible(self):
        # R (A/G) can never be C, M (A/C) and K (G/T) share nothing
        assert self.table.classify(code(b'R'), code(b'C')) is PenaltyClass.SUBSTITUTION
        assert self.table.penalty(code(b'M'), code(b'K')) == 4

    def test_ambiguity_not_above_substitution(self):
        amb = self.table.classes == PenaltyClass.AMBIGUITY
        assert amb.any()
        assert (self.table.data[amb] <= self.table.penalties.substitution).all()

    def test_custom_penalties(self):
        table = PenaltyTable(penalties=Penalties(indel=3, substitution=2, ambiguity=1))
        assert table.indel == 3
        assert table.penalty(code(b'A'), code(b'N')) == 1
        assert table.penalty(code(b'A'), code(b'T')) == 2
        assert table.penalty(code(b'N'), code(b'N')) == 0

    def test_read_only(self):
        with pytest.raises(ValueError):
            self.table.data[0, 1] = 0

    def test_default_is_shared(self):
        assert PenaltyTable.default() is PenaltyTable.default()
        assert PenaltyTable.default() == self.table

    def test_equality(self):
        assert PenaltyTable() == PenaltyTable()
        assert PenaltyTable() != PenaltyTable(penalties=Penalties(indel=6))


class TestPenaltyCheck:
    table = PenaltyTable()

    def test_valid(self):
        self.table.check(IUPAC.encode(b'ACGTN'))

    def test_invalid_symbol(self):
        with pytest.raises(AlphabetViolationError) as e:
            self.table.check(IUPAC.encode(b'AC!T'), 'seq1', b'AC!T')
        assert e.value.kind is ErrorKind.ALPHABET_VIOLATION
        assert e.value.position == 2
        assert e.value.symbol == b'!'
        assert e.value.sequence == 'seq1'
        assert "position 3" in str(e.value)

    def test_invalid_code(self):
        with pytest.raises(AlphabetViolationError) as e:
            self.table.check(np.array([0, 1, 15], dtype=np.uint8))
        assert e.value.symbol == 15
