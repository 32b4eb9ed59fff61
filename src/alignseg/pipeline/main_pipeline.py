"""
Batch drivers for the two engines: alignment of many (reference, query)
pairs and per-contig changepoint segmentation.

Each pair and each contig is independent, so both drivers can fan out to a
multiprocessing pool; results are returned in input order.
"""

import logging
from multiprocessing import Pool, cpu_count
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..algorithms.kernel_segmenter import (
    KernelSegmenter,
    RANDOM_SEED,
    Segment,
    changepoints_to_segments,
    kernel_for_variance,
)
from ..algorithms.sw_pairwise import SWPairwiseAligner
from ..config.config_loader import ConfigLoader, get_config
from ..core.alignment import (
    AlignmentResult,
    OverhangStrategy,
    ScoringParameters,
    ORIGINAL_DEFAULT,
    DEFAULT_OVERHANG_STRATEGY,
)
from ..core.utilities import SequenceLike
from ..diagnostics.validation import validate_kernel_variance, validate_segmentation_parameters

LOGGER_NAME = 'alignseg'


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None) -> logging.Logger:
    """Setup logging for the ``alignseg`` logger hierarchy."""
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(level)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def parse_num_workers(num_workers_spec) -> int:
    """Parse num_workers specification."""
    if num_workers_spec == 'auto':
        return max(1, cpu_count() - 1)
    elif isinstance(num_workers_spec, str) and num_workers_spec.isdigit():
        return max(1, int(num_workers_spec))
    elif isinstance(num_workers_spec, int) and not isinstance(num_workers_spec, bool):
        return max(1, num_workers_spec)
    else:
        return 1


# ================================================================
# Alignment of many pairs
# ================================================================
def _align_one(args) -> AlignmentResult:
    reference, query, parameters, strategy = args
    return SWPairwiseAligner(parameters, strategy).align(reference, query)


def align_pairs(pairs: Iterable[Tuple[SequenceLike, SequenceLike]],
                parameters: ScoringParameters = ORIGINAL_DEFAULT,
                strategy: Union[OverhangStrategy, str] = DEFAULT_OVERHANG_STRATEGY,
                num_workers=1) -> List[AlignmentResult]:
    """Align each (reference, query) pair; results follow the input order."""
    strategy = OverhangStrategy.parse(strategy)
    # builds the aligner once so bad parameters fail before any work is sent out
    SWPairwiseAligner(parameters, strategy)

    tasks = [(ref, query, parameters, strategy) for ref, query in pairs]
    workers = min(parse_num_workers(num_workers), max(1, len(tasks)))
    logger = logging.getLogger(__name__)
    logger.info("Aligning %d sequence pairs with %d worker(s)", len(tasks), workers)

    if workers == 1:
        return [_align_one(task) for task in tasks]
    with Pool(processes=workers) as pool:
        return pool.map(_align_one, tasks)


# ================================================================
# Per-contig segmentation
# ================================================================
def _segment_one(args) -> List[int]:
    (contig, data, max_num_changepoints, kernel_variance, kernel_approximation_dimension,
     window_sizes, linear_factor, log_linear_factor, seed) = args
    logging.getLogger(__name__).info("Segmenting contig %s (%d points)", contig, len(data))
    return KernelSegmenter(data).find_changepoints(
        max_num_changepoints,
        kernel_for_variance(kernel_variance),
        kernel_approximation_dimension,
        window_sizes,
        linear_factor,
        log_linear_factor,
        seed=seed,
    )


def segment_contigs(data_by_contig: Mapping[str, Sequence[float]],
                    max_num_changepoints_per_contig: int,
                    kernel_variance: float,
                    kernel_approximation_dimension: int,
                    window_sizes: Sequence[int],
                    num_changepoints_penalty_linear_factor: float,
                    num_changepoints_penalty_log_linear_factor: float,
                    num_workers=1,
                    seed: int = RANDOM_SEED) -> Dict[str, List[int]]:
    """
    Find changepoints independently on each contig.

    Args:
        data_by_contig: Ordered data points per contig (e.g. denoised copy ratios)
        max_num_changepoints_per_contig: Upper bound on changepoints per contig
        kernel_variance: 0 for a linear kernel, otherwise the Gaussian variance
        kernel_approximation_dimension: Subsample size for the kernel approximation
        window_sizes: Distinct positive window sizes
        num_changepoints_penalty_linear_factor: 0 or >= 1
        num_changepoints_penalty_log_linear_factor: 0 or >= 1
        num_workers: Worker processes ('auto', int or digit string)
        seed: Seed for each contig's subsample

    Returns:
        Mapping of contig name to changepoint indices (contig-local, ascending),
        in the contigs' input order.
    """
    validate_segmentation_parameters(
        max_num_changepoints_per_contig, kernel_approximation_dimension, window_sizes,
        num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor)
    validate_kernel_variance(kernel_variance)

    window_sizes = list(window_sizes)
    contigs = list(data_by_contig)
    tasks = [
        (contig, list(data_by_contig[contig]), max_num_changepoints_per_contig, kernel_variance,
         kernel_approximation_dimension, window_sizes,
         num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor, seed)
        for contig in contigs
    ]
    workers = min(parse_num_workers(num_workers), max(1, len(tasks)))
    logging.getLogger(__name__).info(
        "Segmenting %d contig(s) with %d worker(s)", len(tasks), workers)

    if workers == 1:
        results = [_segment_one(task) for task in tasks]
    else:
        with Pool(processes=workers) as pool:
            results = pool.map(_segment_one, tasks)
    return dict(zip(contigs, results))


def build_segments(data_by_contig: Mapping[str, Sequence[float]],
                   changepoints_by_contig: Mapping[str, Sequence[int]]) -> List[Segment]:
    """Turn per-contig changepoints into segments with their mean, in contig order."""
    segments = []
    for contig, data in data_by_contig.items():
        segments.extend(
            changepoints_to_segments(data, changepoints_by_contig.get(contig, []), contig))
    logging.getLogger(__name__).info(
        "Built %d segments over %d contig(s)", len(segments), len(data_by_contig))
    return segments


def find_segments(data_by_contig: Mapping[str, Sequence[float]],
                  max_num_changepoints_per_contig: int,
                  kernel_variance: float,
                  kernel_approximation_dimension: int,
                  window_sizes: Sequence[int],
                  num_changepoints_penalty_linear_factor: float,
                  num_changepoints_penalty_log_linear_factor: float,
                  num_workers=1,
                  seed: int = RANDOM_SEED) -> List[Segment]:
    """segment_contigs followed by build_segments."""
    changepoints = segment_contigs(
        data_by_contig, max_num_changepoints_per_contig, kernel_variance,
        kernel_approximation_dimension, window_sizes,
        num_changepoints_penalty_linear_factor, num_changepoints_penalty_log_linear_factor,
        num_workers=num_workers, seed=seed)
    return build_segments(data_by_contig, changepoints)


# ================================================================
# Configuration-driven entry points
# ================================================================
def setup_logging_from_config(config: Optional[ConfigLoader] = None) -> logging.Logger:
    config = config or get_config()
    debug = config.get_debug_params()
    return setup_logging(debug.get('log_level', 'INFO'), debug.get('log_file'))


def build_aligner(config: Optional[ConfigLoader] = None) -> SWPairwiseAligner:
    """Aligner configured from the ``alignment`` section."""
    config = config or get_config()
    params = config.get_alignment_params()
    return SWPairwiseAligner(
        config.get_scoring_parameters(),
        config.get_overhang_strategy(),
        exact_match_shortcut=params.get('exact_match_shortcut', True),
        max_matrix_cells=params.get('max_matrix_cells'),
    )


def segment_contigs_from_config(data_by_contig: Mapping[str, Sequence[float]],
                                config: Optional[ConfigLoader] = None) -> Dict[str, List[int]]:
    """segment_contigs with every setting taken from the ``segmentation`` section."""
    config = config or get_config()
    seg = config.get_segmentation_params()
    return segment_contigs(
        data_by_contig,
        seg['max_num_changepoints'],
        seg['kernel_variance'],
        seg['kernel_approximation_dimension'],
        seg['window_sizes'],
        seg['num_changepoints_penalty_linear_factor'],
        seg['num_changepoints_penalty_log_linear_factor'],
        num_workers=config.get_performance_params().get('num_workers', 1),
        seed=seg.get('seed', RANDOM_SEED),
    )


__all__ = [
    'setup_logging',
    'setup_logging_from_config',
    'parse_num_workers',
    'build_aligner',
    'align_pairs',
    'segment_contigs',
    'build_segments',
    'find_segments',
    'segment_contigs_from_config',
]
