"""
Utility functions for alignment results: sequence coercion, CIGAR parsing,
alignment statistics and a plain-text alignment view.
"""

import numbers
import re
from typing import Dict, List, Optional, Union

from .alignment import (
    AlignmentResult,
    Cigar,
    CigarElement,
    CigarOperator,
    OverhangStrategy,
    DEFAULT_OVERHANG_STRATEGY,
)
from .exceptions import InvalidInputError, InvalidParameterError

SequenceLike = Union[bytes, bytearray, memoryview, str]

_CIGAR_RE = re.compile(r'(\d+)([MIDS])')


def as_sequence_bytes(seq: Optional[SequenceLike], name: str = 'sequence') -> bytes:
    """Coerce a sequence to immutable bytes, rejecting missing or empty input."""
    if seq is None:
        raise InvalidInputError(f"The {name} must not be None")
    # bytes(n) would silently build n NUL bytes
    if isinstance(seq, numbers.Integral):
        raise InvalidInputError(f"The {name} must be a sequence, got {type(seq).__name__}")
    if isinstance(seq, str):
        try:
            seq = seq.encode('ascii')
        except UnicodeEncodeError as e:
            raise InvalidInputError(f"The {name} must contain only ASCII characters",
                                    details={'argument': name, 'position': e.start})
    try:
        data = bytes(seq)
    except TypeError:
        raise InvalidInputError(f"The {name} must be bytes-like or str, got {type(seq).__name__}")
    if not data:
        raise InvalidInputError(f"The {name} must not be empty",
                                details={'argument': name})
    return data


def parse_cigar(cigar_string: str) -> Cigar:
    """
    Parse a SAM-style CIGAR string restricted to the M, I, D and S operators.

    The result is consolidated, so ``"2M3M"`` parses to ``5M``.
    """
    if cigar_string in ('', '*'):
        return Cigar()
    elements = []
    pos = 0
    for m in _CIGAR_RE.finditer(cigar_string):
        if m.start() != pos:
            break
        elements.append(CigarElement(int(m.group(1)), CigarOperator(m.group(2))))
        pos = m.end()
    if pos != len(cigar_string):
        raise InvalidParameterError(f"Malformed CIGAR string: {cigar_string!r}")
    return Cigar.from_elements(elements)


def compute_alignment_stats(reference: SequenceLike, query: SequenceLike,
                            result: AlignmentResult) -> Dict:
    """
    Compute alignment statistics from an aligner result.

    Returns:
        Dictionary with matches, mismatches, insertions, deletions,
        clipped bases, gap openings and identity over aligned columns.
    """
    ref = as_sequence_bytes(reference, 'reference')
    read = as_sequence_bytes(query, 'query')

    matches = mismatches = insertions = deletions = clipped = 0
    gap_openings = 0
    i = result.alignment_offset
    j = 0

    for element in result.cigar:
        op, n = element.operator, element.length
        if op is CigarOperator.M:
            for _ in range(n):
                # IGNORE can place overhanging bases outside the reference
                if 0 <= i < len(ref) and ref[i] == read[j]:
                    matches += 1
                else:
                    mismatches += 1
                i += 1
                j += 1
        elif op is CigarOperator.I:
            insertions += n
            gap_openings += 1
            j += n
        elif op is CigarOperator.D:
            deletions += n
            gap_openings += 1
            i += n
        else:
            clipped += n
            j += n

    total = matches + mismatches + insertions + deletions
    return {
        "matches": matches,
        "mismatches": mismatches,
        "insertions": insertions,
        "deletions": deletions,
        "clipped": clipped,
        "gap_openings": gap_openings,
        "total_aligned": total,
        "identity": matches / total if total else 0.0,
    }


def format_alignment(reference: SequenceLike, query: SequenceLike, result: AlignmentResult,
                     strategy: OverhangStrategy = DEFAULT_OVERHANG_STRATEGY,
                     width: int = 100) -> str:
    """
    Render an alignment as blocks of three lines: markers, query, reference.

    Markers are '.' for a match, '*' for a mismatch, and 'I', 'D', 'S' for
    insertions, deletions and clipped query bases.
    """
    if width <= 0:
        raise InvalidParameterError(f"Width must be positive, got {width}")
    ref = as_sequence_bytes(reference, 'reference').decode('ascii', 'replace')
    read = as_sequence_bytes(query, 'query').decode('ascii', 'replace')
    strategy = OverhangStrategy.parse(strategy)

    bref: List[str] = []
    bread: List[str] = []
    marks: List[str] = []
    i = j = 0
    offset = result.alignment_offset
    elements = list(result.cigar)

    # only IGNORE produces negative offsets; the first element then carries
    # the overhanging query bases printed here
    if strategy is not OverhangStrategy.SOFTCLIP and offset < 0 and elements:
        for j in range(-offset):
            bread.append(read[j])
            bref.append(' ')
            marks.append(' ')
        j = -offset
        first = elements[0]
        elements[0] = CigarElement(first.length + offset, first.operator)

    if offset > 0:
        for i in range(offset):
            bref.append(ref[i])
            bread.append(' ')
            marks.append(' ')
        i = offset

    for element in elements:
        op = element.operator
        for _ in range(element.length):
            if op is CigarOperator.M:
                in_ref, in_read = i < len(ref), j < len(read)
                bref.append(ref[i] if in_ref else ' ')
                bread.append(read[j] if in_read else ' ')
                if in_ref and in_read:
                    marks.append('.' if ref[i] == read[j] else '*')
                else:
                    marks.append(' ')
                i += 1
                j += 1
            elif op is CigarOperator.I:
                bref.append('-')
                bread.append(read[j])
                marks.append('I')
                j += 1
            elif op is CigarOperator.S:
                bref.append(' ')
                bread.append(read[j])
                marks.append('S')
                j += 1
            else:
                bref.append(ref[i])
                bread.append('-')
                marks.append('D')
                i += 1

    bref.extend(ref[i:])
    bread.extend(read[j:])

    lines = []
    rows = [''.join(marks), ''.join(bread), ''.join(bref)]
    total = max(len(r) for r in rows)
    for pos in range(0, total, width):
        for row in rows:
            lines.append(row[pos:pos + width])
        lines.append('')
    return '\n'.join(lines)


__all__ = [
    'as_sequence_bytes',
    'parse_cigar',
    'compute_alignment_stats',
    'format_alignment',
]
