"""
Pairwise Smith-Waterman alignment with affine gaps and overhang strategies.

The score matrix and the backtrack matrix are dense (|ref|+1) x (|query|+1)
numpy arrays. Backtrack cells hold 0 for a diagonal step, -k for a
horizontal gap of length k (insertion) and +k for a vertical gap of length k
(deletion).

NOTE: bases are compared byte for byte, so callers should upper-case both
sequences beforehand.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..core.alignment import (
    AlignmentResult,
    Cigar,
    CigarElement,
    CigarOperator,
    OverhangStrategy,
    ScoringParameters,
    ORIGINAL_DEFAULT,
    DEFAULT_OVERHANG_STRATEGY,
)
from ..core.utilities import SequenceLike, as_sequence_bytes
from ..diagnostics.validation import check_matrix_size, validate_scoring_parameters

logger = logging.getLogger(__name__)

# never let matrix cells drop below this value
MATRIX_MIN_CUTOFF = -100_000_000
# starting value for the running best gaps, far below any reachable score
LOW_INIT_VALUE = -(2 ** 30)


class SWPairwiseAligner:
    """
    Aligns a query (alternate) sequence to a reference sequence.

    Examples:
        >>> aligner = SWPairwiseAligner(ORIGINAL_DEFAULT, OverhangStrategy.SOFTCLIP)
        >>> str(aligner.align(b"AAACCCCC", b"CCCCC").cigar)
        '5M'
    """

    def __init__(self,
                 parameters: ScoringParameters = ORIGINAL_DEFAULT,
                 strategy: OverhangStrategy = DEFAULT_OVERHANG_STRATEGY,
                 exact_match_shortcut: bool = True,
                 max_matrix_cells: Optional[int] = None):
        self.parameters = validate_scoring_parameters(parameters)
        self.strategy = OverhangStrategy.parse(strategy)
        self.exact_match_shortcut = exact_match_shortcut
        self.max_matrix_cells = max_matrix_cells

    def align(self, reference: SequenceLike, query: SequenceLike) -> AlignmentResult:
        ref = as_sequence_bytes(reference, 'reference')
        alt = as_sequence_bytes(query, 'query')

        # exact substring search is only valid when overhangs are free
        if self.exact_match_shortcut and self.strategy.allows_exact_match_shortcut:
            match_index = ref.rfind(alt)
            if match_index != -1:
                logger.debug("Exact match of %d bases at reference offset %d",
                             len(alt), match_index)
                return AlignmentResult(
                    Cigar.from_elements([CigarElement(len(alt), CigarOperator.M)]),
                    match_index,
                    self.parameters.match * len(alt),
                )

        check_matrix_size(len(ref), len(alt), self.max_matrix_cells)
        sw, btrack = calculate_matrix(ref, alt, self.parameters, self.strategy)
        return calculate_cigar(sw, btrack, self.strategy)


def align(reference: SequenceLike, query: SequenceLike,
          parameters: ScoringParameters = ORIGINAL_DEFAULT,
          strategy: OverhangStrategy = DEFAULT_OVERHANG_STRATEGY) -> AlignmentResult:
    """Align ``query`` against ``reference`` with a one-off aligner."""
    return SWPairwiseAligner(parameters, strategy).align(reference, query)


def calculate_matrix(reference: bytes, alternate: bytes,
                     parameters: ScoringParameters,
                     strategy: OverhangStrategy) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fill the score and backtrack matrices.

    The running best gaps only work because gap cost is linear in the gap
    length after opening: once a newly opened gap beats the extended best gap
    it stays ahead for every cell further along the same row or column.
    """
    if not reference or not alternate:
        raise ValueError("Non-empty sequences are required for the Smith-Waterman calculation")

    nrow = len(reference) + 1
    ncol = len(alternate) + 1
    w_open = parameters.gap_open
    w_extend = parameters.gap_extend
    w_match = parameters.match
    w_mismatch = parameters.mismatch

    sw = np.zeros((nrow, ncol), dtype=np.int64)
    btrack = np.zeros((nrow, ncol), dtype=np.int64)

    best_gap_v = [LOW_INIT_VALUE] * (ncol + 1)
    gap_size_v = [0] * (ncol + 1)
    best_gap_h = [LOW_INIT_VALUE] * (nrow + 1)
    gap_size_h = [0] * (nrow + 1)

    cur_row = [0] * ncol
    if strategy.penalizes_leading_overhang:
        # charge gaps along the top row and left column
        value = w_open
        cur_row[1] = value
        for j in range(2, ncol):
            value += w_extend
            cur_row[j] = value
        sw[0, :] = cur_row
        first_col = [0] * nrow
        value = w_open
        first_col[1] = value
        for i in range(2, nrow):
            value += w_extend
            first_col[i] = value
        sw[:, 0] = first_col
    else:
        first_col = [0] * nrow

    for i in range(1, nrow):
        a_base = reference[i - 1]
        last_row = cur_row
        cur_row = [0] * ncol
        cur_row[0] = first_col[i]
        bt_row = [0] * ncol

        # horizontal gap state for this row lives in scalars inside the loop
        best_h = best_gap_h[i]
        size_h = gap_size_h[i]

        for j in range(1, ncol):
            step_diag = last_row[j - 1] + (w_match if a_base == alternate[j - 1] else w_mismatch)

            # vertical: open a gap just above, or extend the best one in this column
            prev_gap = last_row[j] + w_open
            best_v = best_gap_v[j] + w_extend
            if prev_gap > best_v:
                best_v = prev_gap
                gap_size_v[j] = 1
            else:
                gap_size_v[j] += 1
            best_gap_v[j] = best_v
            step_down = best_v
            kd = gap_size_v[j]

            # horizontal: open a gap just left, or extend the best one in this row
            prev_gap = cur_row[j - 1] + w_open
            best_h += w_extend
            if prev_gap > best_h:
                best_h = prev_gap
                size_h = 1
            else:
                size_h += 1
            step_right = best_h
            ki = size_h

            # priority: diagonal, then right (insertion), then down (deletion)
            if step_diag >= step_down and step_diag >= step_right:
                cur_row[j] = step_diag if step_diag > MATRIX_MIN_CUTOFF else MATRIX_MIN_CUTOFF
                bt_row[j] = 0
            elif step_right >= step_down:
                cur_row[j] = step_right if step_right > MATRIX_MIN_CUTOFF else MATRIX_MIN_CUTOFF
                bt_row[j] = -ki
            else:
                cur_row[j] = step_down if step_down > MATRIX_MIN_CUTOFF else MATRIX_MIN_CUTOFF
                bt_row[j] = kd

        best_gap_h[i] = best_h
        gap_size_h[i] = size_h
        sw[i, :] = cur_row
        btrack[i, :] = bt_row

    return sw, btrack


def _find_traceback_start(sw: np.ndarray, strategy: OverhangStrategy) -> Tuple[int, int, int]:
    """Return (row, column, trailing query overhang) of the cell to trace back from."""
    ref_length = sw.shape[0] - 1
    alt_length = sw.shape[1] - 1

    if strategy is OverhangStrategy.INDEL:
        return ref_length, alt_length, 0

    # largest score on the rightmost column; >= makes later rows win ties,
    # which keeps the end closest to the diagonal
    p1, p2 = 0, alt_length
    max_score = None
    last_col = sw[:, alt_length].tolist()
    for i in range(1, ref_length + 1):
        if max_score is None or last_col[i] >= max_score:
            p1 = i
            max_score = last_col[i]

    overhang = 0
    if strategy is not OverhangStrategy.LEADING_INDEL:
        # an end on the bottom row leaves the tail of the query overhanging
        bottom_row = sw[ref_length].tolist()
        for j in range(1, alt_length + 1):
            score = bottom_row[j]
            if score > max_score or (score == max_score
                                     and abs(ref_length - j) < abs(p1 - p2)):
                p1 = ref_length
                p2 = j
                max_score = score
                overhang = alt_length - j

    return p1, p2, overhang


def calculate_cigar(sw: np.ndarray, btrack: np.ndarray,
                    strategy: OverhangStrategy) -> AlignmentResult:
    """Trace back through the matrices and emit the consolidated CIGAR."""
    p1, p2, segment_length = _find_traceback_start(sw, strategy)
    score = int(sw[p1, p2])

    # elements are collected back to front and reversed at the end
    elements = []
    if segment_length > 0 and strategy is OverhangStrategy.SOFTCLIP:
        elements.append(CigarElement(segment_length, CigarOperator.S))
        segment_length = 0

    state = CigarOperator.M
    while True:
        btr = int(btrack[p1, p2])
        if btr > 0:
            new_state = CigarOperator.D
            step_length = btr
            p1 -= step_length
        elif btr < 0:
            new_state = CigarOperator.I
            step_length = -btr
            p2 -= step_length
        else:
            new_state = CigarOperator.M
            step_length = 1
            p1 -= 1
            p2 -= 1

        if new_state is state:
            segment_length += step_length
        else:
            elements.append(CigarElement(segment_length, state))
            segment_length = step_length
            state = new_state

        if p1 <= 0 or p2 <= 0:
            break

    # p2 > 0 here means the query starts before the aligned reference region
    if strategy is OverhangStrategy.SOFTCLIP:
        elements.append(CigarElement(segment_length, state))
        if p2 > 0:
            elements.append(CigarElement(p2, CigarOperator.S))
        alignment_offset = p1
    elif strategy is OverhangStrategy.IGNORE:
        elements.append(CigarElement(segment_length + p2, state))
        alignment_offset = p1 - p2
    else:
        elements.append(CigarElement(segment_length, state))
        if p1 > 0:
            elements.append(CigarElement(p1, CigarOperator.D))
        elif p2 > 0:
            elements.append(CigarElement(p2, CigarOperator.I))
        alignment_offset = 0

    elements.reverse()
    return AlignmentResult(Cigar.from_elements(elements), alignment_offset, score)


__all__ = [
    'SWPairwiseAligner',
    'align',
    'calculate_matrix',
    'calculate_cigar',
    'MATRIX_MIN_CUTOFF',
]
