"""
Data models for entity duplicate detection and canonicalization.

Entity snapshots are read-only projections handed over by the persistence
layer. Duplicate pairs are recomputed on every scan and never stored.
Redirects are the only durable records this package creates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from entity_merge.errors import ValidationError


class EntityType(str, Enum):
    """Content entity types subject to duplicate detection."""

    DESTINATION = "destination"
    ATTRACTION = "attraction"
    HOTEL = "hotel"
    ARTICLE = "article"


class EntityStatus(str, Enum):
    """Publication status of a content entity."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class MatchType(str, Enum):
    """Why two entities were flagged as probable duplicates."""

    EXACT_NAME = "exact_name"
    FUZZY_NAME = "fuzzy_name"
    SAME_SLUG = "same_slug"
    SAME_LOCATION_NAME = "same_location_name"
    ALIAS_MATCH = "alias_match"


class Confidence(str, Enum):
    """Detector certainty tier."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestedAction(str, Enum):
    """Recommendation attached to a duplicate pair.

    IGNORE is only ever set by an operator dismissing a pair.
    """

    MERGE = "merge"
    REVIEW = "review"
    IGNORE = "ignore"


class MergeStrategy(str, Enum):
    """Which content blocks end up on the merge target."""

    KEEP_TARGET = "keep_target"
    KEEP_SOURCE = "keep_source"
    MERGE_CONTENT = "merge_content"


class RedirectStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def parse_enum(enum_cls, value):
    """Coerce a raw string (or enum member) into ``enum_cls``.

    Raises:
        ValidationError: if the value is not one of the enum's values
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {enum_cls.__name__} '{value}' (expected one of: {allowed})") from None


@dataclass(frozen=True)
class EntitySnapshot:
    """Read-only projection of a content entity used for comparison."""

    id: str
    type: EntityType
    name: str
    slug: str
    status: EntityStatus = EntityStatus.DRAFT
    location_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_archived(self) -> bool:
        return self.status == EntityStatus.ARCHIVED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "slug": self.slug,
            "location": self.location_name,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class ContentBlock:
    """A single block of page content owned by an entity."""

    id: str
    type: str
    content: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "content": self.content}


@dataclass(frozen=True)
class DuplicatePair:
    """
    A candidate duplicate pair produced by the detector.

    ``entity_a.id`` is always lexicographically smaller than ``entity_b.id``.
    """

    entity_type: EntityType
    entity_a: EntitySnapshot
    entity_b: EntitySnapshot
    match_type: MatchType
    similarity: float
    confidence: Confidence
    suggested_action: SuggestedAction
    reasons: tuple[str, ...] = ()

    @property
    def key(self) -> tuple[str, str]:
        return (self.entity_a.id, self.entity_b.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityType": self.entity_type.value,
            "entityA": self.entity_a.to_dict(),
            "entityB": self.entity_b.to_dict(),
            "matchType": self.match_type.value,
            "similarity": self.similarity,
            "confidence": self.confidence.value,
            "suggestedAction": self.suggested_action.value,
            "reasons": list(self.reasons),
        }


@dataclass
class Redirect:
    """
    Durable ``from_id -> to_id`` fact created by a merge.

    Undo flips ``status`` to inactive; the record itself is kept for audit.
    """

    id: str
    entity_type: EntityType
    from_id: str
    from_slug: str
    to_id: str
    to_slug: str
    merged_at: datetime
    merged_by: str
    status: RedirectStatus = RedirectStatus.ACTIVE
    undone_at: datetime | None = None
    undone_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == RedirectStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Persisted/public shape of the redirect record."""
        return {
            "id": self.id,
            "entityType": self.entity_type.value,
            "fromId": self.from_id,
            "fromSlug": self.from_slug,
            "toId": self.to_id,
            "toSlug": self.to_slug,
            "mergedAt": self.merged_at.isoformat(),
            "mergedBy": self.merged_by,
            "status": self.status.value,
        }


@dataclass
class MergeResult:
    """Outcome of a successful merge."""

    redirect: Redirect
    target: EntitySnapshot
    blocks: list[ContentBlock] = field(default_factory=list)
    strategy: MergeStrategy = MergeStrategy.KEEP_TARGET

    @property
    def redirect_id(self) -> str:
        return self.redirect.id


@dataclass
class DuplicateStats:
    """Counts of detected pairs for the admin overview."""

    by_type: dict[str, int] = field(default_factory=dict)
    by_confidence: dict[str, int] = field(default_factory=dict)
    total: int = 0
    feature_enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "byType": dict(self.by_type),
            "byConfidence": dict(self.by_confidence),
            "total": self.total,
            "featureEnabled": self.feature_enabled,
        }
