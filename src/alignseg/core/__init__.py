"""
Core data types, errors and sequence utilities.
"""

from .exceptions import *
from .alignment import *
from .utilities import (
    as_sequence_bytes,
    parse_cigar,
    compute_alignment_stats,
    format_alignment,
)
