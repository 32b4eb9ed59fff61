"""
Pairwise Smith-Waterman alignment and kernel changepoint segmentation.
"""

# Version info - keep at top
__version__ = "1.0.0"
__description__ = "Smith-Waterman pairwise alignment and kernel-based changepoint segmentation"

from .core.exceptions import (
    AlignSegError,
    InvalidInputError,
    InvalidParameterError,
    ConfigurationError,
)
from .core.alignment import (
    AlignmentResult,
    Cigar,
    CigarElement,
    CigarOperator,
    OverhangStrategy,
    ScoringParameters,
    ORIGINAL_DEFAULT,
    STANDARD_NGS,
    NEW_SW_PARAMETERS,
    ALIGNMENT_TO_BEST_HAPLOTYPE,
)
from .algorithms.sw_pairwise import SWPairwiseAligner, align
from .algorithms.kernel_segmenter import (
    KernelSegmenter,
    GaussianKernel,
    linear_kernel,
    find_changepoints,
    Segment,
    changepoints_to_segments,
)
from .pipeline.main_pipeline import align_pairs, find_segments, segment_contigs, setup_logging

__all__ = [
    # Errors
    'AlignSegError',
    'InvalidInputError',
    'InvalidParameterError',
    'ConfigurationError',

    # Alignment
    'AlignmentResult',
    'Cigar',
    'CigarElement',
    'CigarOperator',
    'OverhangStrategy',
    'ScoringParameters',
    'ORIGINAL_DEFAULT',
    'STANDARD_NGS',
    'NEW_SW_PARAMETERS',
    'ALIGNMENT_TO_BEST_HAPLOTYPE',
    'SWPairwiseAligner',
    'align',

    # Segmentation
    'KernelSegmenter',
    'GaussianKernel',
    'linear_kernel',
    'find_changepoints',
    'Segment',
    'changepoints_to_segments',

    # Batch drivers
    'align_pairs',
    'segment_contigs',
    'find_segments',
    'setup_logging',

    # Version info
    '__version__',
    '__description__',
]
