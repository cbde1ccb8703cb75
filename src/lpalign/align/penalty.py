"""Unit-cost penalty model for aligning symbols of an ambiguity-aware alphabet."""
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from typing import Final

import numpy as np

from lpalign.core.alphabet import Alphabet
from lpalign.align.errors import AlphabetViolationError


# Constants ------------------------------------------------------------------------------------------------------------
class PenaltyClass(IntEnum):
    """How an ordered pair of symbols is charged on a diagonal step."""
    MATCH = 0
    SUBSTITUTION = 1
    AMBIGUITY = 2


# Classes --------------------------------------------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Penalties:
    """
    The penalty for each kind of edit.

    Frozen = Immutable and Hashable (can be used as a cache key).

    Attributes:
        indel: Charged for every inserted or deleted base inside the overlap.
        substitution: Charged for aligning two incompatible symbols.
        ambiguity: Charged for aligning an ambiguity code with a symbol it can stand for.
    """
    indel: int = 5
    substitution: int = 4
    ambiguity: int = 0

    def __post_init__(self):
        for name in ('indel', 'substitution', 'ambiguity'):
            value = getattr(self, name)
            if not isinstance(value, (int, np.integer)) or isinstance(value, bool):
                raise ValueError(f"Penalty '{name}' must be an integer, got {value!r}")
            if value < 0: raise ValueError(f"Penalty '{name}' must be non-negative, got {value}")
        if self.ambiguity > self.substitution:
            raise ValueError(f"Ambiguity penalty ({self.ambiguity}) cannot exceed the substitution penalty "
                             f"({self.substitution})")


class PenaltyTable:
    """
    Symmetric ``len x len`` penalty matrix with a zero diagonal.

    A pair of distinct symbols is an ambiguity substitution when at least one of them is an ambiguity
    code and their base sets intersect, otherwise it is a plain substitution.

    Examples:
        >>> table = PenaltyTable()
        >>> table.penalty(0, 1)  # A vs C
        4
        >>> table.classify(0, 14)  # A vs N
        <PenaltyClass.AMBIGUITY: 2>
    """
    _DTYPE: Final = np.int64
    __slots__ = ('_alphabet', '_penalties', '_data', '_classes')

    def __init__(self, alphabet: Alphabet = Alphabet.IUPAC, penalties: Penalties = None):
        self._alphabet = alphabet
        self._penalties = penalties or Penalties()

        n = len(alphabet)
        ambiguous = alphabet.ambiguous
        involves_ambiguity = ambiguous[:, None] | ambiguous[None, :]
        classes = np.full((n, n), PenaltyClass.SUBSTITUTION, dtype=np.uint8)
        classes[involves_ambiguity & alphabet.compatibility] = PenaltyClass.AMBIGUITY
        np.fill_diagonal(classes, PenaltyClass.MATCH)

        weights = np.array([0, self._penalties.substitution, self._penalties.ambiguity], dtype=self._DTYPE)
        self._classes = classes
        self._data = np.ascontiguousarray(weights[classes])
        self._classes.flags.writeable = False
        self._data.flags.writeable = False

    def __getitem__(self, item): return self._data[item]
    def __array__(self, dtype=None): return self._data.astype(dtype, copy=False) if dtype else self._data
    def __repr__(self): return f"PenaltyTable{self._data.shape}({self._penalties})"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, PenaltyTable): return False
        return self._alphabet == other._alphabet and self._penalties == other._penalties

    def __hash__(self): return hash((self._alphabet, self._penalties))

    @classmethod
    @lru_cache(maxsize=None)
    def default(cls) -> 'PenaltyTable':
        """The shared, read-only table for the IUPAC alphabet with the default penalties."""
        return cls()

    @property
    def shape(self): return self._data.shape
    @property
    def alphabet(self) -> Alphabet: return self._alphabet
    @property
    def penalties(self) -> Penalties: return self._penalties
    @property
    def indel(self) -> int: return self._penalties.indel
    @property
    def data(self) -> np.ndarray: return self._data

    @property
    def classes(self) -> np.ndarray:
        """Read-only matrix of ``PenaltyClass`` values, parallel to the penalties."""
        return self._classes

    def penalty(self, a: int, b: int) -> int:
        """The penalty for aligning code ``a`` with code ``b``."""
        return int(self._data[a, b])

    def classify(self, a: int, b: int) -> PenaltyClass:
        """The penalty class for aligning code ``a`` with code ``b``."""
        return PenaltyClass(self._classes[a, b])

    def check(self, codes: np.ndarray, name: str = 'sequence', raw: bytes = None):
        """
        Verifies that every code can be looked up in this table.

        Args:
            codes: Encoded symbols.
            name: Label used in the error message.
            raw: The original text, used to report the offending symbol as typed.

        Raises:
            AlphabetViolationError: At the first code outside the alphabet.
        """
        if len(bad := np.flatnonzero(codes >= len(self._alphabet))) == 0: return
        pos = int(bad[0])
        symbol = raw[pos:pos + 1] if raw is not None else int(codes[pos])
        raise AlphabetViolationError(name, pos, symbol)
