"""
Module for representing the IUPAC nucleotide alphabet and codon translation
"""
from itertools import product
from typing import Union, Iterable, Final, ClassVar

import numpy as np

from lpalign import LpalignWarning
from lpalign.containers.seq import Seq


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class AlphabetError(Exception):
    """Raised when an alphabet is invalid or a sequence contains symbols outside the alphabet."""


class TranslationWarning(LpalignWarning):
    """Issued when a translation-aware comparison has nothing to translate."""


# Classes --------------------------------------------------------------------------------------------------------------
class Alphabet:
    """
    An alphabet of ASCII symbols, each standing for a set of definite bases.

    Symbols are encoded to sequential ``uint8`` codes in the order they are given.
    The first symbols whose base set has exactly one member are the definite bases;
    every other symbol is an ambiguity class.

    Examples:
        >>> Alphabet.IUPAC.encode(b'ACGN')
        array([ 0,  1,  2, 14], dtype=uint8)
        >>> Alphabet.IUPAC.compatible(0, 14)  # A vs N
        True
    """
    __slots__ = ('_data', '_lookup_table', '_masks', '_ambiguous', '_n_definite', '_complement', '_decode_table',
                 '_compatibility')
    DTYPE: Final = np.uint8
    INVALID: Final = np.iinfo(DTYPE).max
    MAX_LEN: Final = INVALID + 1
    ENCODING: Final = 'ascii'
    GAP: Final = b'-'

    IUPAC: ClassVar['Alphabet']

    def __init__(self, symbols: bytes, masks: Iterable[int], complement: bytes = None,
                 aliases: dict[bytes, bytes] = None):
        """
        Initializes an Alphabet.

        Args:
            symbols: The symbols in the alphabet as bytes.
            masks: One bitmask per symbol, bit ``k`` set when the symbol can stand for definite base ``k``.
            complement: Optional complement symbols as bytes. Must be same length as symbols.
            aliases: Optional mapping of extra characters to valid ones (e.g. {b'U': b'T'}).

        Raises:
            AlphabetError: If symbols are not ASCII, too long, contain duplicates, or if masks or complement are invalid.
        """
        if not symbols.isascii(): raise AlphabetError('Alphabet symbols must be a valid ASCII string')
        if len(symbols) >= self.MAX_LEN:
            raise AlphabetError(f'Alphabet size must be below {self.MAX_LEN} symbols ({self.DTYPE})')
        if len(set(symbols.upper())) != len(symbols): raise AlphabetError('Alphabet contains duplicate symbols')
        if self.GAP in symbols: raise AlphabetError(f'The gap symbol {self.GAP!r} cannot be part of an alphabet')

        self._data: np.ndarray = np.frombuffer(symbols, dtype=self.DTYPE)
        self._masks = np.ascontiguousarray(list(masks), dtype=np.uint16)
        if len(self._masks) != len(symbols): raise AlphabetError('Alphabet needs exactly one base mask per symbol')
        if np.any(self._masks == 0): raise AlphabetError('Every symbol must stand for at least one base')
        self._ambiguous = np.array([bin(int(m)).count('1') > 1 for m in self._masks], dtype=bool)
        self._n_definite = int(np.count_nonzero(~self._ambiguous))
        if not np.array_equal(self._masks[:self._n_definite], 1 << np.arange(self._n_definite)):
            raise AlphabetError('Definite bases must come first, in the order of their mask bits')
        self._masks.flags.writeable = False
        self._ambiguous.flags.writeable = False

        # Build Lookup Table
        self._lookup_table = np.full(self.MAX_LEN, self.INVALID, dtype=self.DTYPE)
        indices = np.arange(len(symbols), dtype=self.DTYPE)
        self._lookup_table[np.frombuffer(symbols, dtype=self.DTYPE)] = indices
        self._lookup_table[np.frombuffer(symbols.lower(), dtype=self.DTYPE)] = indices

        if aliases:
            for src, dst in aliases.items():
                if len(src) != 1 or len(dst) != 1: raise AlphabetError("Aliases must be single bytes")
                dst_idx = self._lookup_table[ord(dst)]
                if dst_idx == self.INVALID: raise AlphabetError(f"Alias target {dst} not in alphabet")
                self._lookup_table[ord(src)] = dst_idx
                self._lookup_table[ord(src.lower())] = dst_idx
        self._lookup_table.flags.writeable = False

        # Build Decode Table, anything outside the alphabet decodes as a gap
        decode_map = np.full(self.MAX_LEN, ord(self.GAP), dtype=self.DTYPE)
        decode_map[:len(self._data)] = self._data
        self._decode_table = decode_map.tobytes()

        # Two symbols agree when their base sets intersect
        self._compatibility = (self._masks[:, None] & self._masks[None, :]) != 0
        self._compatibility.flags.writeable = False

        self._complement = None
        if complement is not None:
            if len(complement) != len(symbols):
                raise AlphabetError("Complement must be the same length as symbols")
            comp_indices = self._lookup_table[np.frombuffer(complement, dtype=self.DTYPE)]
            if np.any(comp_indices == self.INVALID):
                raise AlphabetError("Complement contains symbols not in alphabet")
            self._complement = comp_indices

    def __len__(self):
        return len(self._data)

    def __contains__(self, item):
        try:
            if isinstance(item, (int, np.integer)):
                return 0 <= item < len(self._data)
            if isinstance(item, (str, bytes)):
                if len(item) != 1: return False
                val = ord(item) if isinstance(item, str) else item[0]
                return self._lookup_table[val] != self.INVALID
        except (IndexError, ValueError, TypeError):
            pass
        return False

    def __iter__(self):
        return iter(self._data)

    def __getitem__(self, item):
        return self._data[item]

    def __array__(self, dtype=None):
        return self._data.astype(dtype, copy=False) if dtype else self._data

    def __repr__(self):
        return f"Alphabet({self._data.tobytes().decode(self.ENCODING)})"

    def __eq__(self, other):
        if self is other: return True
        if not isinstance(other, Alphabet): return False
        return np.array_equal(self._data, other._data) and np.array_equal(self._masks, other._masks)

    def __hash__(self):
        return hash((self._data.tobytes(), self._masks.tobytes()))

    @property
    def masks(self) -> np.ndarray:
        """Read-only array of base bitmasks, one per code."""
        return self._masks

    @property
    def ambiguous(self) -> np.ndarray:
        """Boolean array, ``True`` for every ambiguity code."""
        return self._ambiguous

    @property
    def n_definite(self) -> int:
        """Number of leading codes that stand for exactly one base."""
        return self._n_definite

    @property
    def complement(self):
        """Returns the complement lookup table if available."""
        return self._complement

    @property
    def compatibility(self) -> np.ndarray:
        """Boolean ``len x len`` matrix, ``True`` where two codes share at least one base."""
        return self._compatibility

    def is_ambiguous(self, code: int) -> bool:
        """``True`` if the code stands for more than one definite base."""
        return bool(self._ambiguous[code])

    def compatible(self, a: int, b: int) -> bool:
        """``True`` if codes ``a`` and ``b`` can stand for the same base."""
        return bool(self._compatibility[a, b])

    def bases(self, code: int) -> tuple[int, ...]:
        """The definite base codes an (ambiguous) code stands for, in code order."""
        mask = int(self._masks[code])
        return tuple(k for k in range(self.n_definite) if mask >> k & 1)

    def encode(self, text: bytes) -> np.ndarray:
        """
        Encodes bytes to codes without dropping anything.

        Bytes outside the alphabet are encoded as ``INVALID`` so that callers can decide whether
        that is a user error or an invariant violation.

        Args:
            text: The text to encode as bytes.

        Returns:
            A numpy ``uint8`` array of codes, the same length as ``text``.
        """
        return self._lookup_table[np.frombuffer(text, dtype=self.DTYPE)]

    def decode(self, encoded: np.ndarray) -> bytes:
        """Decodes an array of codes back to bytes, with ``INVALID`` codes shown as gaps.

        Args:
            encoded: The numpy array of codes (uint8).

        Returns:
            The decoded bytes string.
        """
        if encoded.dtype != self.DTYPE:
            encoded = encoded.astype(self.DTYPE, copy=False)
        return encoded.tobytes().translate(self._decode_table)

    def new_seq(self, data: np.ndarray) -> 'Seq':
        """
        Factory method. The ONLY valid way to create a Seq.
        """
        return Seq(data, self, _validation_token=self)

    def seq_from(self, data: Union['Seq', str, bytes, np.ndarray]) -> 'Seq':
        """Creates a Seq object from various input types, ensuring correct encoding.

        Args:
            data: The input data. Can be a ``Seq``, string, bytes, or numpy array of codes.

        Returns:
            A new ``Seq`` object with this alphabet.

        Raises:
            AlphabetError: If the input data contains symbols not in the alphabet.
        """
        if isinstance(data, Seq):
            if data.alphabet != self: raise AlphabetError(f'Sequence has a different alphabet "{data.alphabet}"')
            return data
        if isinstance(data, np.ndarray):
            codes = np.ascontiguousarray(data, dtype=self.DTYPE)
            if np.any(codes >= len(self)):
                raise AlphabetError(f'Code {codes[codes >= len(self)][0]} is not in {self}')
            return self.new_seq(codes.copy())
        if isinstance(data, str): data = data.encode(self.ENCODING)
        codes = self.encode(data)
        if len(bad := np.flatnonzero(codes == self.INVALID)):
            pos = int(bad[0])
            raise AlphabetError(f'Symbol {data[pos:pos + 1]!r} at position {pos + 1} is not in {self}')
        return self.new_seq(codes)

    def random_seq(self, rng: np.random.Generator = None, length: int = 100, ambiguous: bool = False,
                   weights=None) -> 'Seq':
        """
        Generates a random sequence from this alphabet.

        Args:
            rng: Random number generator (optional).
            length: Length of sequence to generate.
            ambiguous: If True, ambiguity codes may be drawn as well as definite bases.
            weights: Weights for each eligible symbol (optional).

        Returns:
            A random Seq object.

        Examples:
            >>> s = Alphabet.IUPAC.random_seq(length=10)
            >>> len(s)
            10
        """
        if rng is None: rng = np.random.default_rng()
        n_symbols = len(self) if ambiguous else self.n_definite
        if weights is not None:
            weights = np.asarray(weights, dtype=float)
            weights = weights / weights.sum()
        return self.new_seq(rng.choice(n_symbols, size=length, p=weights).astype(self.DTYPE))

    def reverse_complement(self, seq: 'Seq') -> 'Seq':
        """Returns the reverse complement of a sequence, or the sequence itself if there is no complement."""
        if self._complement is None: return seq
        return self.new_seq(self._complement[seq.encoded[::-1]])


# Initialize Standard Alphabets
#                        A  C  G  T  M  R  W  S  Y   K   V  H   D   B   N
Alphabet.IUPAC = Alphabet(b'ACGTMRWSYKVHDBN', (1, 2, 4, 8, 3, 5, 9, 6, 10, 12, 7, 11, 13, 14, 15),
                          complement=b'TGCAKYWSRMBDHVN', aliases={b'U': b'T'})


class GeneticCode:
    """
    Represents a genetic code table for codon translation over an ambiguity-aware alphabet.

    Codons containing ambiguity codes are resolved by expansion: when every definite codon the
    ambiguous one can stand for translates to the same residue, that residue is returned,
    otherwise ``X``. Codons with a gap or an invalid code translate to ``?``.
    """
    __slots__ = ('_alphabet', '_data', '_resolved')
    _NCBI_ORDER: Final = b'TCAG'
    UNRESOLVED: Final = ord('X')
    UNKNOWN: Final = ord('?')
    STANDARD_TABLE: Final = b'FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG'
    STANDARD: ClassVar['GeneticCode']

    def __init__(self, table: bytes, alphabet: Alphabet = Alphabet.IUPAC):
        """Initializes a genetic code.

        Args:
            table: 64-byte ASCII string in NCBI (``TCAG``) codon order, e.g. ``b'FFLLSSSSYY**CC*W...'``.
            alphabet: The nucleotide alphabet whose codes will be translated.

        Raises:
            ValueError: If the table does not have 64 entries.
        """
        if len(table) != 64: raise ValueError(f"A genetic code needs 64 residues, got {len(table)}")
        self._alphabet = alphabet
        self._data = np.frombuffer(table, dtype=np.uint8)
        # Reindex the NCBI table by this alphabet's definite base codes
        n_def = alphabet.n_definite
        ncbi = alphabet.encode(self._NCBI_ORDER)
        order = np.argsort(ncbi)  # code -> position in TCAG
        definite = np.empty((n_def, n_def, n_def), dtype=np.uint8)
        for a, b, c in product(range(n_def), repeat=3):
            definite[a, b, c] = self._data[order[a] * 16 + order[b] * 4 + order[c]]

        n = len(alphabet)
        self._resolved = np.full((n, n, n), self.UNRESOLVED, dtype=np.uint8)
        expansions = [alphabet.bases(k) for k in range(n)]
        for a, b, c in product(range(n), repeat=3):
            residues = {definite[x, y, z] for x in expansions[a] for y in expansions[b] for z in expansions[c]}
            if len(residues) == 1: self._resolved[a, b, c] = residues.pop()
        self._resolved.flags.writeable = False

    def __repr__(self):
        return f"GeneticCode({self._data.tobytes().decode(Alphabet.ENCODING)})"

    @property
    def alphabet(self) -> Alphabet: return self._alphabet

    def translate_codon(self, a: int, b: int, c: int) -> int:
        """
        Translates a single codon given as three codes.

        Returns:
            The residue as an ASCII ordinal (``X`` for unresolvable ambiguity, ``?`` for gaps or invalid codes).
        """
        n = len(self._alphabet)
        if a >= n or b >= n or c >= n: return self.UNKNOWN
        return int(self._resolved[a, b, c])

    def translate(self, seq: 'Seq', frame: int = 0) -> bytes:
        """
        Translates a sequence to residues, ignoring any incomplete trailing codon.

        Args:
            seq: The nucleotide sequence.
            frame: The reading frame (0, 1, or 2).

        Returns:
            The translated residues as bytes.
        """
        data = seq.encoded[frame:]
        n_codons = len(data) // 3
        if n_codons == 0: return b''
        codons = data[:n_codons * 3].reshape(n_codons, 3)
        return self._resolved[codons[:, 0], codons[:, 1], codons[:, 2]].tobytes()

    def translate_triplicate(self, seq: 'Seq') -> bytes:
        """
        Translates a sequence in frame 0 so that each base is replaced by its codon's residue.

        Leftover bases at the end translate to ``?``.

        Examples:
            >>> GeneticCode.STANDARD.translate_triplicate(Alphabet.IUPAC.seq_from('GATCCAGCGA'))
            b'DDDPPPAAA?'
        """
        protein = np.frombuffer(self.translate(seq), dtype=np.uint8)
        out = np.full(len(seq), self.UNKNOWN, dtype=np.uint8)
        out[:len(protein) * 3] = np.repeat(protein, 3)
        return out.tobytes()


GeneticCode.STANDARD = GeneticCode(GeneticCode.STANDARD_TABLE)
