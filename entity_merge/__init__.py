"""
Entity duplicate detection & canonicalization for the travel content platform.

Finds probable duplicate destinations, attractions, hotels and articles,
merges them under an explicit strategy and keeps redirects so old links
resolve to the surviving entity.
"""

from entity_merge.deduplication import AliasTable, DuplicateDetector, detect
from entity_merge.errors import (
    AlreadyMergedError,
    EntityMergeError,
    EntityNotFoundError,
    FeatureDisabledError,
    MergeCycleError,
    MergeError,
    MergeErrorKind,
    ValidationError,
)
from entity_merge.merge import MergeExecutor, MergeHistory, RedirectResolver, apply_strategy
from entity_merge.service import EntityMergeService
from entity_merge.storage import EntityRepository, InMemoryEntityRepository
from entity_merge.types import (
    Confidence,
    ContentBlock,
    DuplicatePair,
    EntitySnapshot,
    EntityStatus,
    EntityType,
    MatchType,
    MergeResult,
    MergeStrategy,
    Redirect,
    RedirectStatus,
    SuggestedAction,
)
from entity_merge.utils.text import name_similarity, normalize_name

__all__ = [
    # Service
    "EntityMergeService",
    # Components
    "AliasTable",
    "DuplicateDetector",
    "detect",
    "MergeExecutor",
    "MergeHistory",
    "RedirectResolver",
    "apply_strategy",
    "normalize_name",
    "name_similarity",
    # Persistence
    "EntityRepository",
    "InMemoryEntityRepository",
    # Types
    "EntityType",
    "EntityStatus",
    "EntitySnapshot",
    "ContentBlock",
    "MatchType",
    "Confidence",
    "SuggestedAction",
    "DuplicatePair",
    "MergeStrategy",
    "MergeResult",
    "Redirect",
    "RedirectStatus",
    # Errors
    "EntityMergeError",
    "ValidationError",
    "FeatureDisabledError",
    "MergeError",
    "MergeErrorKind",
    "MergeCycleError",
    "EntityNotFoundError",
    "AlreadyMergedError",
]
