"""
Least-path alignment of nucleotide sequences with IUPAC ambiguity codes.

The engine finds the least-total-penalty dovetail alignment between two reads
by running a shortest-path search over the implicit edit graph, then classifies
every aligned column and summarises the overlap.

Examples:
    >>> from lpalign.align.aligner import Aligner
    >>> result = Aligner().align('ACGTACGT', 'ACGTNCGT')
    >>> result.distance
    0
"""
__version__ = '0.3.0'


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class LpalignWarning(Warning): pass
