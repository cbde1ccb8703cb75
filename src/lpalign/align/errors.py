"""
Failure kinds of a single alignment call.

Every failure is deterministic: rerunning the same inputs with the same configuration fails the same way,
so none of these are retried.
"""
from enum import IntEnum


# Constants ------------------------------------------------------------------------------------------------------------
class ErrorKind(IntEnum):
    """Machine-readable failure classes, stable across releases."""
    ALLOCATION_FAILURE = 1
    ALIGNMENT_OVERFLOW = 2
    ALPHABET_VIOLATION = 3
    QUEUE_EXHAUSTION = 4


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class AlignmentError(Exception):
    """Base class for errors that abort one alignment call."""
    kind: ErrorKind = None


class AllocationError(AlignmentError):
    """A scratch buffer for the search could not be allocated."""
    kind = ErrorKind.ALLOCATION_FAILURE


class AlignmentOverflowError(AlignmentError):
    """The optimal alignment is longer than the configured maximum alignment length."""
    kind = ErrorKind.ALIGNMENT_OVERFLOW

    def __init__(self, limit: int, m: int, n: int):
        super().__init__(f"Alignment of sequences of length {m} and {n} exceeds the maximum length of {limit}")
        self.limit = limit


class AlphabetViolationError(AlignmentError):
    """A code outside the alphabet reached the penalty lookup."""
    kind = ErrorKind.ALPHABET_VIOLATION

    def __init__(self, sequence: str, position: int, symbol):
        super().__init__(f"Symbol {symbol!r} at position {position + 1} of {sequence} is outside the alphabet")
        self.sequence = sequence
        self.position = position
        self.symbol = symbol


class QueueExhaustedError(AlignmentError):
    """The frontier emptied before the terminal cell was settled."""
    kind = ErrorKind.QUEUE_EXHAUSTION
