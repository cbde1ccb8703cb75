"""Immutable, alphabet-aware sequence container."""
from typing import Union

import numpy as np

from lpalign.lib.protocols import HasAlphabet


# Classes --------------------------------------------------------------------------------------------------------------
class Seq(HasAlphabet):
    """
    Immutable, alphabet-aware sequence storing encoded integers (uint8).

    ``Seq`` objects should be created via ``Alphabet.seq_from()`` rather than directly,
    so that every code is known to be inside the alphabet.

    Args:
        data: A numpy uint8 array of encoded symbol indices.
        alphabet: The ``Alphabet`` that owns this sequence.
        _validation_token: Internal token (must be the alphabet) to prevent
            direct construction.

    Examples:
        >>> seq = Alphabet.IUPAC.seq_from('ACGTN')
        >>> len(seq)
        5
        >>> bytes(seq)
        b'ACGTN'
        >>> seq[1:4]
        CGT
    """
    __slots__ = ('_data', '_alphabet', '_hash')
    def __init__(self, data: np.ndarray, alphabet: 'Alphabet', _validation_token: object = None):
        if _validation_token is not alphabet:
            raise PermissionError("Seq objects must be created via an Alphabet")
        self._alphabet = alphabet
        self._data = data
        self._hash = None
        self._data.flags.writeable = False

    @property
    def alphabet(self) -> 'Alphabet':
        """Returns the alphabet used for encoding/decoding."""
        return self._alphabet

    @property
    def encoded(self) -> np.ndarray:
        """Returns the underlying encoded integer array (zero-copy, read-only)."""
        return self._data

    def __array__(self, dtype=None):
        return self._data.astype(dtype, copy=False) if dtype else self._data

    def __bytes__(self) -> bytes: return self._alphabet.decode(self._data)
    def __len__(self): return self._data.shape[0]
    def __str__(self): return self.__bytes__().decode('ascii')
    def __iter__(self): return iter(self._data)
    def __bool__(self): return len(self._data) > 0
    def __repr__(self):
        if len(self) <= 14: return str(self)
        head = self._alphabet.decode(self._data[:7]).decode('ascii')
        tail = self._alphabet.decode(self._data[-7:]).decode('ascii')
        return f"{head}...{tail}"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Seq): return False
        if self._alphabet is not other._alphabet: return False
        return np.array_equal(self._data, other._data)

    def __hash__(self):
        if self._hash is None: self._hash = hash((self._alphabet, self._data.tobytes()))
        return self._hash

    def __add__(self, other: 'Seq') -> 'Seq':
        if self._alphabet is not other._alphabet:
            raise ValueError("Cannot concatenate sequences with different alphabets")
        return self._alphabet.new_seq(np.concatenate((self._data, other._data), axis=0))

    def __getitem__(self, item: Union[slice, int]) -> 'Seq':
        """Extracts a subsequence by index or slice.

        Examples:
            >>> seq = Alphabet.IUPAC.seq_from('ACGTN')
            >>> seq[-1]
            N
        """
        if isinstance(item, slice): return self._alphabet.new_seq(self._data[item].copy())
        if isinstance(item, (int, np.integer)):
            if item < 0: item += len(self)
            if not 0 <= item < len(self): raise IndexError(f"Index {item} out of range for length {len(self)}")
            return self._alphabet.new_seq(self._data[item:item + 1].copy())
        raise TypeError(f"Seq indices must be integers or slices, not {type(item).__name__}")

    def tobytes(self) -> bytes:
        """Decodes the sequence to raw bytes."""
        return self.__bytes__()
