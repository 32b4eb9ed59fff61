"""
Alignment data model: CIGAR operations, scoring parameters, overhang
strategies and the result type returned by the pairwise aligner.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple, Union

from .exceptions import InvalidParameterError


# ================================================================
# CIGAR
# ================================================================
class CigarOperator(Enum):
    """Operations emitted by the aligner, named after their SAM letters."""
    M = 'M'   # match or mismatch
    I = 'I'   # insertion relative to the reference
    D = 'D'   # deletion relative to the reference
    S = 'S'   # soft clip

    @property
    def consumes_reference(self) -> bool:
        return self in (CigarOperator.M, CigarOperator.D)

    @property
    def consumes_query(self) -> bool:
        return self in (CigarOperator.M, CigarOperator.I, CigarOperator.S)


MATCH = CigarOperator.M
INSERTION = CigarOperator.I
DELETION = CigarOperator.D
CLIP = CigarOperator.S


@dataclass(frozen=True)
class CigarElement:
    length: int
    operator: CigarOperator

    def __str__(self) -> str:
        return f"{self.length}{self.operator.value}"


def consolidate_cigar(elements: Iterable[CigarElement]) -> Tuple[CigarElement, ...]:
    """
    Merge adjacent elements that share an operator and drop zero-length ones.

    Examples:
        >>> consolidate_cigar([CigarElement(2, MATCH), CigarElement(0, DELETION), CigarElement(3, MATCH)])
        (CigarElement(length=5, operator=<CigarOperator.M: 'M'>),)
    """
    merged = []
    run_op = None
    run_len = 0
    for element in elements:
        if element.length == 0:
            continue
        if run_op is not None and element.operator != run_op:
            merged.append(CigarElement(run_len, run_op))
            run_len = 0
        run_len += element.length
        run_op = element.operator
    if run_len > 0:
        merged.append(CigarElement(run_len, run_op))
    return tuple(merged)


@dataclass(frozen=True)
class Cigar:
    """Immutable, consolidated list of CIGAR elements."""
    elements: Tuple[CigarElement, ...] = ()

    @classmethod
    def from_elements(cls, elements: Iterable[CigarElement]) -> 'Cigar':
        return cls(consolidate_cigar(elements))

    def __iter__(self):
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    def __getitem__(self, index) -> CigarElement:
        return self.elements[index]

    def __str__(self) -> str:
        if not self.elements:
            return '*'
        return ''.join(str(e) for e in self.elements)

    @property
    def reference_length(self) -> int:
        """Number of reference bases covered (M and D)."""
        return sum(e.length for e in self.elements if e.operator.consumes_reference)

    @property
    def query_length(self) -> int:
        """Number of query bases accounted for (M, I and S)."""
        return sum(e.length for e in self.elements if e.operator.consumes_query)


# ================================================================
# Scoring and overhang policy
# ================================================================
@dataclass(frozen=True)
class ScoringParameters:
    """
    Weights for the affine-gap aligner.

    A gap of length k costs ``gap_open + (k - 1) * gap_extend``; penalties are
    expressed as negative numbers and added to the score.
    """
    match: int
    mismatch: int
    gap_open: int
    gap_extend: int

    @classmethod
    def from_name(cls, name: str) -> 'ScoringParameters':
        """Look up one of the named presets (case-insensitive)."""
        try:
            return SCORING_PRESETS[name.strip().lower()]
        except (KeyError, AttributeError):
            raise InvalidParameterError(
                f"Unknown scoring preset: {name!r}. "
                f"Available presets: {', '.join(sorted(SCORING_PRESETS))}"
            )

    def as_dict(self):
        return {
            'match': self.match,
            'mismatch': self.mismatch,
            'gap_open': self.gap_open,
            'gap_extend': self.gap_extend,
        }


ORIGINAL_DEFAULT = ScoringParameters(3, -1, -4, -3)
STANDARD_NGS = ScoringParameters(25, -50, -110, -6)
NEW_SW_PARAMETERS = ScoringParameters(200, -150, -260, -11)
ALIGNMENT_TO_BEST_HAPLOTYPE = ScoringParameters(10, -15, -30, -5)

SCORING_PRESETS = {
    'original_default': ORIGINAL_DEFAULT,
    'standard_ngs': STANDARD_NGS,
    'new_sw_parameters': NEW_SW_PARAMETERS,
    'alignment_to_best_haplotype': ALIGNMENT_TO_BEST_HAPLOTYPE,
}


class OverhangStrategy(Enum):
    """How unaligned leading/trailing bases of either sequence are reported."""
    SOFTCLIP = 'softclip'            # overhangs become soft clips, unpenalized
    INDEL = 'indel'                  # overhangs are charged as gaps at both ends
    LEADING_INDEL = 'leading_indel'  # only the leading overhang is charged
    IGNORE = 'ignore'                # overhangs folded into the terminal match

    @classmethod
    def parse(cls, value: Union['OverhangStrategy', str]) -> 'OverhangStrategy':
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise InvalidParameterError(
                f"Unknown overhang strategy: {value!r}. "
                f"Expected one of {', '.join(s.name for s in cls)}"
            )

    @property
    def penalizes_leading_overhang(self) -> bool:
        return self in (OverhangStrategy.INDEL, OverhangStrategy.LEADING_INDEL)

    @property
    def allows_exact_match_shortcut(self) -> bool:
        return self in (OverhangStrategy.SOFTCLIP, OverhangStrategy.IGNORE)


DEFAULT_OVERHANG_STRATEGY = OverhangStrategy.SOFTCLIP


# ================================================================
# Result
# ================================================================
@dataclass(frozen=True)
class AlignmentResult:
    """
    Outcome of aligning a query against a reference.

    ``alignment_offset`` is the reference index where the first non-clipped
    operation starts. With the IGNORE strategy it can be negative when the
    query overhangs the start of the reference.
    """
    cigar: Cigar
    alignment_offset: int
    score: int = 0

    @property
    def cigar_string(self) -> str:
        return str(self.cigar)


__all__ = [
    'CigarOperator',
    'CigarElement',
    'Cigar',
    'consolidate_cigar',
    'MATCH',
    'INSERTION',
    'DELETION',
    'CLIP',
    'ScoringParameters',
    'ORIGINAL_DEFAULT',
    'STANDARD_NGS',
    'NEW_SW_PARAMETERS',
    'ALIGNMENT_TO_BEST_HAPLOTYPE',
    'SCORING_PRESETS',
    'OverhangStrategy',
    'DEFAULT_OVERHANG_STRATEGY',
    'AlignmentResult',
]
