"""Utility modules for the entity merge core."""

from entity_merge.utils.text import levenshtein_distance, name_similarity, normalize_name

__all__ = [
    # Text utilities
    "normalize_name",
    "levenshtein_distance",
    "name_similarity",
]
