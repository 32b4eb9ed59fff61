"""
Diagnostic modules: parameter validation and resource checks.
"""

from .validation import *
