"""
Deduplication components.

These modules identify probable duplicate content entities and explain why
each candidate pair was flagged.
"""

from .aliases import DEFAULT_ALIASES, AliasTable, load_alias_table
from .detector import (
    DetectorThresholds,
    DuplicateDetector,
    detect,
    determine_confidence,
    find_all_duplicates,
    suggest_action,
    summarize,
)

__all__ = [
    'AliasTable',
    'DEFAULT_ALIASES',
    'load_alias_table',
    'DetectorThresholds',
    'DuplicateDetector',
    'detect',
    'determine_confidence',
    'suggest_action',
    'find_all_duplicates',
    'summarize',
]
