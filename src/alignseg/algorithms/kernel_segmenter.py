"""
Kernel-based multiple changepoint detection.

Segment costs follow the kernel change-point framework of Arlot, Celisse and
Harchaoui (https://hal.inria.fr/hal-01413230/document, Eq. 11), evaluated
with a low-rank (Nystroem) approximation of the kernel matrix built from a
seeded subsample of the data. Candidate changepoints are the persistent
local minima of local costs computed in windows of several sizes; a backward
selection over the candidates gives the global cost as a function of the
number of changepoints C, and the penalty ``A * C + B * C * log(N / C)``
picks the final count.

Given N data points the steps are:

1. Select the maximum number of changepoints C_max.
2. Select a kernel (linear for changes in the mean, Gaussian for changes in
   the distribution) and a subsample of p points used to approximate it.
3. For each window size w, compute at every index i the cost of a
   changepoint with flanking segments [i - w + 1, i] and [i + 1, i + w].
4. Keep up to C_max of the most persistent local minima per window size.
5. Backward-select over the pooled candidates using the global cost.
6. Add the penalty and take the minimum to fix the number of changepoints.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .persistence import find_persistent_local_minima
from ..diagnostics.validation import (
    validate_kernel_variance,
    validate_segmentation_parameters,
)
from ..core.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

RANDOM_SEED = 1216

Kernel = Callable[[object, object], float]


# ================================================================
# Kernels
# ================================================================
def linear_kernel(x, y) -> float:
    return x * y


class GaussianKernel:
    """exp(-(x - y)^2 / (2 * variance)); picklable for worker processes."""

    def __init__(self, variance: float):
        if not variance > 0:
            raise InvalidParameterError(f"Gaussian kernel variance must be positive, got {variance}")
        self.variance = float(variance)

    def __call__(self, x, y) -> float:
        return math.exp(-(x - y) * (x - y) / (2. * self.variance))

    def __eq__(self, other):
        return isinstance(other, GaussianKernel) and other.variance == self.variance

    def __hash__(self):
        return hash(('GaussianKernel', self.variance))

    def __repr__(self):
        return f"GaussianKernel(variance={self.variance})"


def kernel_for_variance(kernel_variance: float) -> Kernel:
    """Linear kernel for a variance of zero, Gaussian kernel otherwise."""
    validate_kernel_variance(kernel_variance)
    if kernel_variance == 0:
        return linear_kernel
    return GaussianKernel(kernel_variance)


# ================================================================
# Segmenter
# ================================================================
class KernelSegmenter:
    """
    Finds changepoints in an ordered sequence of data points.

    A changepoint is the inclusive end index of a segment; the last index is
    never reported since it always ends the final segment.

    Examples:
        >>> segmenter = KernelSegmenter([0.] * 50 + [1.] * 50)
        >>> segmenter.find_changepoints(5, linear_kernel, 10, [8, 16], 1., 1.)
        [49]
    """

    def __init__(self, data: Sequence):
        self.data = tuple(data)

    def find_changepoints(self,
                          max_num_changepoints: int,
                          kernel: Kernel,
                          kernel_approximation_dimension: int,
                          window_sizes: Sequence[int],
                          num_changepoints_penalty_linear_factor: float,
                          num_changepoints_penalty_log_linear_factor: float,
                          seed: int = RANDOM_SEED) -> List[int]:
        validate_segmentation_parameters(
            max_num_changepoints, kernel_approximation_dimension, window_sizes,
            num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor)

        num_points = len(self.data)
        if max_num_changepoints == 0:
            logger.warning("Asked for zero changepoints; no changepoints will be found.")
            return []
        if num_points < 2:
            logger.warning("Fewer than two data points (%d); no changepoints will be found.", num_points)
            return []

        logger.info("Finding up to %d changepoints in %d data points...",
                    max_num_changepoints, num_points)
        rng = np.random.default_rng(seed)

        logger.info("Calculating low-rank approximation to kernel matrix...")
        reduced_observation_matrix = calculate_reduced_observation_matrix(
            rng, self.data, kernel, kernel_approximation_dimension)
        kernel_approximation_diagonal = calculate_kernel_approximation_diagonal(
            reduced_observation_matrix)

        logger.info("Finding changepoint candidates for all window sizes %s...", list(window_sizes))
        candidates = find_changepoint_candidates(
            reduced_observation_matrix, kernel_approximation_diagonal,
            max_num_changepoints, window_sizes)
        if not candidates:
            logger.warning("No changepoint candidates were found.")
            return []

        logger.info("Performing backward model selection on %d changepoint candidates...",
                    len(candidates))
        changepoints = select_changepoints(
            candidates, max_num_changepoints,
            num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor,
            reduced_observation_matrix, kernel_approximation_diagonal)
        logger.info("Found %d changepoints.", len(changepoints))
        return changepoints


def find_changepoints(data: Sequence,
                      max_num_changepoints: int,
                      kernel: Kernel,
                      kernel_approximation_dimension: int,
                      window_sizes: Sequence[int],
                      num_changepoints_penalty_linear_factor: float,
                      num_changepoints_penalty_log_linear_factor: float,
                      seed: int = RANDOM_SEED) -> List[int]:
    """Convenience wrapper around ``KernelSegmenter.find_changepoints``."""
    return KernelSegmenter(data).find_changepoints(
        max_num_changepoints, kernel, kernel_approximation_dimension, window_sizes,
        num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor,
        seed=seed)


# ================================================================
# Kernel approximation
# ================================================================
def calculate_reduced_observation_matrix(rng: np.random.Generator,
                                         data: Sequence,
                                         kernel: Kernel,
                                         kernel_approximation_dimension: int) -> np.ndarray:
    """
    Return the N x p' matrix Z with Z Z^T approximating the kernel matrix.

    Z = K_Np U S^(-1/2), where K_Np holds the kernel between every point and
    the p subsampled points and U S U^T is the SVD of the p x p kernel matrix
    of the subsample. Numerically null singular values are dropped, so p' <= p.
    """
    num_points = len(data)
    if kernel_approximation_dimension > num_points:
        logger.warning(
            "Specified dimension of the kernel approximation (%d) exceeds the number of data points (%d) "
            "to segment; using all data points to calculate kernel approximation.",
            kernel_approximation_dimension, num_points)
    p = min(kernel_approximation_dimension, num_points)
    logger.debug("Calculating reduced observation matrix (%d x %d)...", num_points, p)

    subsample = [data[i] for i in rng.permutation(num_points)[:p].tolist()]

    sub_kernel_matrix = np.empty((p, p))
    for i in range(p):
        for j in range(i, p):
            sub_kernel_matrix[i, j] = sub_kernel_matrix[j, i] = kernel(subsample[i], subsample[j])

    u, singular_values, _ = np.linalg.svd(sub_kernel_matrix)
    tolerance = singular_values.max(initial=0.) * p * np.finfo(float).eps
    keep = singular_values > tolerance
    if not keep.any():
        logger.warning("Kernel matrix of the subsample is numerically zero.")
        return np.zeros((num_points, 1))

    cross_kernel_matrix = np.array(
        [[kernel(x, s) for s in subsample] for x in data], dtype=float)
    return (cross_kernel_matrix @ u[:, keep]) / np.sqrt(singular_values[keep])


def calculate_kernel_approximation_diagonal(reduced_observation_matrix: np.ndarray) -> np.ndarray:
    """Diagonal of Z Z^T."""
    return np.einsum('ij,ij->i', reduced_observation_matrix, reduced_observation_matrix)


# ================================================================
# Costs
# ================================================================
def _prefix_sums(reduced_observation_matrix: np.ndarray,
                 kernel_approximation_diagonal: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    p = reduced_observation_matrix.shape[1]
    cumulative_z = np.vstack([np.zeros((1, p)), np.cumsum(reduced_observation_matrix, axis=0)])
    cumulative_diagonal = np.concatenate([[0.], np.cumsum(kernel_approximation_diagonal)])
    return cumulative_z, cumulative_diagonal


def _segment_cost(cumulative_z, cumulative_diagonal, start: int, end: int) -> float:
    """Cost of the segment [start, end], both inclusive."""
    total = cumulative_z[end + 1] - cumulative_z[start]
    return (cumulative_diagonal[end + 1] - cumulative_diagonal[start]
            - float(total @ total) / (end - start + 1))


def calculate_segment_cost(start: int, end: int,
                           reduced_observation_matrix: np.ndarray,
                           kernel_approximation_diagonal: np.ndarray) -> float:
    """
    Cost of the segment [start, end]:

        sum_i K_ii - (1 / n) * || sum_i z_i ||^2
    """
    if not 0 <= start <= end < len(kernel_approximation_diagonal):
        raise InvalidParameterError(f"Invalid segment [{start}, {end}]")
    cumulative_z, cumulative_diagonal = _prefix_sums(
        reduced_observation_matrix, kernel_approximation_diagonal)
    return _segment_cost(cumulative_z, cumulative_diagonal, start, end)


def calculate_window_costs(reduced_observation_matrix: np.ndarray,
                           kernel_approximation_diagonal: np.ndarray,
                           window_size: int) -> np.ndarray:
    """
    Local changepoint cost at every index for one window size.

    For index i this is the cost of the two flanking segments
    [i - w + 1, i] and [i + 1, i + w] minus the cost of the single segment
    covering both. Windows wrap around the ends of the data.
    """
    num_points = len(kernel_approximation_diagonal)
    w = window_size
    # extended positions k = 0 .. N + 2w - 2 hold original index (k - w + 1) mod N
    wrapped = np.arange(-w + 1, num_points + w) % num_points
    cumulative_z, cumulative_diagonal = _prefix_sums(
        reduced_observation_matrix[wrapped], kernel_approximation_diagonal[wrapped])

    i = np.arange(num_points)

    def costs(start, stop):
        totals = cumulative_z[stop] - cumulative_z[start]
        return (cumulative_diagonal[stop] - cumulative_diagonal[start]
                - np.einsum('ij,ij->i', totals, totals) / (stop - start))

    return costs(i, i + w) + costs(i + w, i + 2 * w) - costs(i, i + 2 * w)


# ================================================================
# Candidate search and selection
# ================================================================
def find_changepoint_candidates(reduced_observation_matrix: np.ndarray,
                                kernel_approximation_diagonal: np.ndarray,
                                max_num_changepoints: int,
                                window_sizes: Sequence[int]) -> List[int]:
    """Pool up to ``max_num_changepoints`` persistent minima per window size."""
    num_points = len(kernel_approximation_diagonal)
    candidates = []
    for window_size in window_sizes:
        if 2 * window_size > num_points:
            logger.warning(
                "Number of points needed to calculate local changepoint costs (2 * window size = %d) "
                "exceeds number of data points (%d). Local changepoint costs will not be calculated "
                "for this window size.", 2 * window_size, num_points)
            continue
        logger.debug("Calculating local changepoint costs for window size %d...", window_size)
        window_costs = calculate_window_costs(
            reduced_observation_matrix, kernel_approximation_diagonal, window_size)
        minima = [m for m in find_persistent_local_minima(window_costs) if m != num_points - 1]
        candidates.extend(minima[:max_num_changepoints])
    return list(dict.fromkeys(candidates))


def changepoint_penalty(num_changepoints: int, num_points: int,
                        linear_factor: float, log_linear_factor: float) -> float:
    if num_changepoints == 0:
        return 0.
    c = num_changepoints
    return linear_factor * c + log_linear_factor * c * math.log(num_points / c)


def select_changepoints(changepoint_candidates: Sequence[int],
                        max_num_changepoints: int,
                        num_changepoints_penalty_linear_factor: float,
                        num_changepoints_penalty_log_linear_factor: float,
                        reduced_observation_matrix: np.ndarray,
                        kernel_approximation_diagonal: np.ndarray) -> List[int]:
    """
    Backward selection over the candidates followed by the penalized choice
    of the number of changepoints. Returns changepoints in ascending order.
    """
    num_points = len(kernel_approximation_diagonal)
    cumulative_z, cumulative_diagonal = _prefix_sums(
        reduced_observation_matrix, kernel_approximation_diagonal)

    def cost(start, end):
        return _segment_cost(cumulative_z, cumulative_diagonal, start, end)

    current = sorted(set(changepoint_candidates))
    starts = [0] + [c + 1 for c in current]
    ends = current + [num_points - 1]
    segment_costs = [cost(s, e) for s, e in zip(starts, ends)]

    total_cost = sum(segment_costs)
    total_cost_by_count = {len(current): total_cost}
    removal_order = []

    while current:
        best_index = 0
        best_delta = math.inf
        best_merged = 0.
        for k in range(len(current)):
            start = 0 if k == 0 else current[k - 1] + 1
            end = num_points - 1 if k == len(current) - 1 else current[k + 1]
            merged = cost(start, end)
            delta = merged - segment_costs[k] - segment_costs[k + 1]
            if delta < best_delta:
                best_index, best_delta, best_merged = k, delta, merged
        segment_costs[best_index:best_index + 2] = [best_merged]
        removal_order.append(current.pop(best_index))
        total_cost += best_delta
        total_cost_by_count[len(current)] = total_cost

    num_candidates = len(removal_order)
    max_count = min(max_num_changepoints, num_candidates)
    penalized = [
        total_cost_by_count[c] + changepoint_penalty(
            c, num_points,
            num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor)
        for c in range(max_count + 1)
    ]
    # first minimum, so ties go to fewer changepoints
    num_changepoints = int(np.argmin(penalized))
    logger.debug("Penalized costs by number of changepoints: %s", penalized)

    # the last C removed are the C changepoints that survive
    survivors = removal_order[num_candidates - num_changepoints:]
    return sorted(survivors)


# ================================================================
# Segments
# ================================================================
@dataclass(frozen=True)
class Segment:
    """Data points [start, end] (inclusive) between consecutive changepoints."""
    start: int
    end: int
    mean: float
    contig: Optional[str] = None

    @property
    def num_points(self) -> int:
        return self.end - self.start + 1


def changepoints_to_segments(data: Sequence[float], changepoints: Sequence[int],
                             contig: Optional[str] = None) -> List[Segment]:
    """
    Split ``data`` at the changepoints into segments carrying their mean value.

    Each changepoint is the inclusive end of a segment; the last segment
    always ends at the last data point.
    """
    values = np.asarray(data, dtype=float)
    num_points = len(values)
    if num_points == 0:
        return []
    ends = sorted(set(changepoints))
    if ends and (ends[0] < 0 or ends[-1] >= num_points):
        raise InvalidParameterError(
            f"Changepoints must lie in [0, {num_points - 1}], got {ends[0]}..{ends[-1]}")
    if not ends or ends[-1] != num_points - 1:
        ends.append(num_points - 1)

    segments = []
    start = 0
    for end in ends:
        segments.append(Segment(start, end, float(values[start:end + 1].mean()), contig))
        start = end + 1
    return segments


__all__ = [
    'RANDOM_SEED',
    'Segment',
    'changepoints_to_segments',
    'linear_kernel',
    'GaussianKernel',
    'kernel_for_variance',
    'KernelSegmenter',
    'find_changepoints',
    'calculate_reduced_observation_matrix',
    'calculate_kernel_approximation_diagonal',
    'calculate_segment_cost',
    'calculate_window_costs',
    'find_changepoint_candidates',
    'changepoint_penalty',
    'select_changepoints',
]
