"""
Parameter validation and resource checks.

Every check here runs before any O(N) work starts, so an invalid call is
rejected without partial computation.
"""

import logging
import numbers
from typing import Dict, List, Optional, Sequence, Tuple

import psutil

from ..core.alignment import OverhangStrategy, ScoringParameters
from ..core.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

# cells above which the aligner warns and checks available memory
DEFAULT_MAX_MATRIX_CELLS = 25_000_000
# score matrix + backtrack matrix, int64 each
BYTES_PER_CELL = 16


def validate_scoring_parameters(parameters: ScoringParameters) -> ScoringParameters:
    """Check that the scoring weights are integers; returns them unchanged."""
    if not isinstance(parameters, ScoringParameters):
        raise InvalidParameterError(
            f"Expected ScoringParameters, got {type(parameters).__name__}")
    for name, value in parameters.as_dict().items():
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise InvalidParameterError(
                f"Scoring weight '{name}' must be an integer, got {value!r}")
    return parameters


def estimate_matrix_bytes(reference_length: int, query_length: int) -> int:
    """Memory needed by the aligner's score and backtrack matrices."""
    return (reference_length + 1) * (query_length + 1) * BYTES_PER_CELL


def check_matrix_size(reference_length: int, query_length: int,
                      max_cells: Optional[int] = None) -> int:
    """
    Warn about large dynamic-programming matrices and refuse ones that
    cannot fit in the memory currently available.

    Returns:
        Number of cells in each matrix.
    """
    max_cells = DEFAULT_MAX_MATRIX_CELLS if max_cells is None else max_cells
    cells = (reference_length + 1) * (query_length + 1)
    if cells <= max_cells:
        return cells

    required = estimate_matrix_bytes(reference_length, query_length)
    available = psutil.virtual_memory().available
    logger.warning(
        "Alignment matrix of %d x %d cells needs about %.1f MB (%.1f MB available)",
        reference_length + 1, query_length + 1,
        required / (1024 ** 2), available / (1024 ** 2))
    if required > available:
        raise InvalidParameterError(
            f"Alignment of {reference_length} x {query_length} bases needs "
            f"{required / (1024 ** 3):.2f} GB, more than the memory available",
            details={'required_bytes': required, 'available_bytes': available})
    return cells


def _is_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _validate_penalty_factor(value: float, description: str):
    if not (value == 0. or value >= 1.):
        raise InvalidParameterError(
            f"{description} for the penalty on the number of changepoints "
            f"must be either zero or greater than or equal to 1, got {value}")


def validate_segmentation_parameters(max_num_changepoints: int,
                                     kernel_approximation_dimension: int,
                                     window_sizes: Sequence[int],
                                     num_changepoints_penalty_linear_factor: float,
                                     num_changepoints_penalty_log_linear_factor: float):
    """Raise InvalidParameterError for any out-of-range segmentation setting."""
    if not _is_integer(max_num_changepoints):
        raise InvalidParameterError(
            f"Maximum number of changepoints must be an integer, got {max_num_changepoints!r}.")
    if max_num_changepoints < 0:
        raise InvalidParameterError("Maximum number of changepoints must be non-negative.")
    if not _is_integer(kernel_approximation_dimension):
        raise InvalidParameterError(
            f"Dimension of kernel approximation must be an integer, got {kernel_approximation_dimension!r}.")
    if kernel_approximation_dimension <= 0:
        raise InvalidParameterError("Dimension of kernel approximation must be positive.")
    window_sizes = list(window_sizes)
    if not all(_is_integer(ws) for ws in window_sizes):
        raise InvalidParameterError("Window sizes must all be integers.",
                                    details={'window_sizes': window_sizes})
    if not all(ws > 0 for ws in window_sizes):
        raise InvalidParameterError("Window sizes must all be positive.",
                                    details={'window_sizes': window_sizes})
    if len(set(window_sizes)) != len(window_sizes):
        raise InvalidParameterError("Window sizes must all be unique.",
                                    details={'window_sizes': window_sizes})
    _validate_penalty_factor(num_changepoints_penalty_linear_factor, "Linear factor")
    _validate_penalty_factor(num_changepoints_penalty_log_linear_factor, "Log-linear factor")


def validate_kernel_variance(kernel_variance: float):
    if kernel_variance < 0:
        raise InvalidParameterError(
            "Variance of Gaussian kernel must be non-negative "
            "(if zero, a linear kernel will be used).")


def validate_configuration(config: Dict) -> Tuple[bool, List[str]]:
    """
    Validate a loaded configuration dictionary.

    Args:
        config: Configuration as returned by the config loader

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    for section in ('alignment', 'segmentation'):
        if section not in config:
            errors.append(f"Missing configuration section: {section}")
        elif not isinstance(config[section], dict):
            errors.append(f"Configuration section '{section}' must be a mapping")

    align_config = config.get('alignment')
    if isinstance(align_config, dict):
        if 'overhang_strategy' in align_config:
            try:
                OverhangStrategy.parse(align_config['overhang_strategy'])
            except InvalidParameterError as e:
                errors.append(str(e))
        scoring = align_config.get('scoring', 'original_default')
        if isinstance(scoring, dict):
            missing = {'match', 'mismatch', 'gap_open', 'gap_extend'} - set(scoring)
            if missing:
                errors.append(f"Scoring weights missing: {', '.join(sorted(missing))}")
        elif not isinstance(scoring, str):
            errors.append("alignment.scoring must be a preset name or a mapping of weights")
        if align_config.get('max_matrix_cells', 1) <= 0:
            errors.append("max_matrix_cells should be positive")

    seg_config = config.get('segmentation')
    if isinstance(seg_config, dict):
        try:
            validate_segmentation_parameters(
                seg_config.get('max_num_changepoints', 0),
                seg_config.get('kernel_approximation_dimension', 1),
                seg_config.get('window_sizes', []),
                seg_config.get('num_changepoints_penalty_linear_factor', 0.),
                seg_config.get('num_changepoints_penalty_log_linear_factor', 0.),
            )
            validate_kernel_variance(seg_config.get('kernel_variance', 0.))
        except (InvalidParameterError, TypeError) as e:
            errors.append(str(e))

    return len(errors) == 0, errors


__all__ = [
    'DEFAULT_MAX_MATRIX_CELLS',
    'validate_scoring_parameters',
    'estimate_matrix_bytes',
    'check_matrix_size',
    'validate_segmentation_parameters',
    'validate_kernel_variance',
    'validate_configuration',
]
