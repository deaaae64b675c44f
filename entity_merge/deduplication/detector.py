"""
Duplicate detection for content entities.

Compares every unordered pair of entities of the same type and classifies the
pair by the first rule that fires:

1. exact_name          - normalized names are identical
2. same_slug           - slugs are identical
3. alias_match         - names belong to the same curated alias group
4. same_location_name  - locations match and names are >= 0.8 similar
5. fuzzy_name          - names are >= 0.85 similar

Pairs matching no rule are dropped. Detection is read-only and keeps no
shared mutable state, so scans of different types can run in parallel.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from itertools import combinations

from loguru import logger

from entity_merge.deduplication.aliases import AliasTable
from entity_merge.types import (
    Confidence,
    DuplicatePair,
    DuplicateStats,
    EntitySnapshot,
    EntityStatus,
    EntityType,
    MatchType,
    SuggestedAction,
)
from entity_merge.utils.text import name_similarity, normalize_name

HIGH_SIMILARITY = 0.95
MEDIUM_SIMILARITY = 0.9

CONFIDENCE_ORDER = {Confidence.HIGH: 0, Confidence.MEDIUM: 1, Confidence.LOW: 2}

# Types without a natural tie-break are reported in catalogue order
ENTITY_TYPE_ORDER = list(EntityType)


@dataclass(frozen=True)
class DetectorThresholds:
    """Similarity cut-offs that decide whether a pair is reported at all."""

    fuzzy: float = 0.85
    location_name: float = 0.8
    location_match: float = 0.85

    @classmethod
    def from_settings(cls, merge_settings) -> "DetectorThresholds":
        return cls(
            fuzzy=merge_settings.fuzzy_threshold,
            location_name=merge_settings.location_name_threshold,
            location_match=merge_settings.location_match_threshold,
        )


def determine_confidence(match_type: MatchType, similarity: float) -> Confidence:
    """Map a match type and name similarity onto a confidence tier."""
    if match_type in (MatchType.EXACT_NAME, MatchType.SAME_SLUG, MatchType.ALIAS_MATCH):
        return Confidence.HIGH
    if match_type == MatchType.SAME_LOCATION_NAME:
        return Confidence.HIGH if similarity >= MEDIUM_SIMILARITY else Confidence.MEDIUM
    if match_type == MatchType.FUZZY_NAME:
        if similarity >= HIGH_SIMILARITY:
            return Confidence.HIGH
        if similarity >= MEDIUM_SIMILARITY:
            return Confidence.MEDIUM
    return Confidence.LOW


def is_draft_published_pair(status_a: EntityStatus, status_b: EntityStatus) -> bool:
    return {status_a, status_b} == {EntityStatus.DRAFT, EntityStatus.PUBLISHED}


def suggest_action(
    match_type: MatchType,
    similarity: float,
    status_a: EntityStatus,
    status_b: EntityStatus,
) -> SuggestedAction:
    """Recommend merge or review; first matching rule wins.

    A draft shadowing a published entity is always worth merging, whatever
    the match type. IGNORE is never produced here.
    """
    if is_draft_published_pair(status_a, status_b):
        return SuggestedAction.MERGE
    if match_type in (MatchType.EXACT_NAME, MatchType.SAME_SLUG, MatchType.ALIAS_MATCH):
        return SuggestedAction.MERGE
    if match_type == MatchType.SAME_LOCATION_NAME and similarity >= MEDIUM_SIMILARITY:
        return SuggestedAction.MERGE
    if match_type == MatchType.FUZZY_NAME and similarity >= HIGH_SIMILARITY:
        return SuggestedAction.MERGE
    return SuggestedAction.REVIEW


def build_reasons(
    entity_a: EntitySnapshot,
    entity_b: EntitySnapshot,
    match_type: MatchType,
    similarity: float,
) -> tuple[str, ...]:
    """Human-readable justifications: match reason first, status reason second."""
    percent = f"{similarity * 100:.0f}%"
    reasons = []

    if match_type == MatchType.EXACT_NAME:
        reasons.append("Exact name match detected")
    elif match_type == MatchType.SAME_SLUG:
        reasons.append("Same slug detected")
    elif match_type == MatchType.ALIAS_MATCH:
        reasons.append("Known alias pattern detected")
    elif match_type == MatchType.SAME_LOCATION_NAME:
        reasons.append(f"Same location with {percent} name similarity")
    elif match_type == MatchType.FUZZY_NAME:
        reasons.append(f"Fuzzy name match: {percent} similar")

    if entity_a.status == EntityStatus.DRAFT and entity_b.status == EntityStatus.PUBLISHED:
        reasons.append("Draft might be duplicate of published content")
    elif entity_a.status == EntityStatus.PUBLISHED and entity_b.status == EntityStatus.DRAFT:
        reasons.append("Published content has potential draft duplicate")

    return tuple(reasons)


def pair_sort_key(pair: DuplicatePair) -> tuple:
    return (CONFIDENCE_ORDER[pair.confidence], -pair.similarity, pair.entity_a.id, pair.entity_b.id)


class DuplicateDetector:
    """
    Finds probable duplicates within a collection of entity snapshots.

    The alias table and thresholds are injected and never mutated, so one
    detector can be shared between threads.
    """

    def __init__(self, aliases: AliasTable | None = None, thresholds: DetectorThresholds | None = None):
        self.aliases = aliases if aliases is not None else AliasTable.default()
        self.thresholds = thresholds or DetectorThresholds()

    def _locations_match(self, entity_a: EntitySnapshot, entity_b: EntitySnapshot) -> bool:
        loc_a = normalize_name(entity_a.location_name)
        loc_b = normalize_name(entity_b.location_name)
        if not loc_a or not loc_b:
            return False
        return loc_a == loc_b or name_similarity(loc_a, loc_b) >= self.thresholds.location_match

    def classify(self, entity_a: EntitySnapshot, entity_b: EntitySnapshot) -> tuple[MatchType, float] | None:
        """Return ``(match_type, similarity)`` for a pair, or None if it is not a duplicate."""
        if normalize_name(entity_a.name) == normalize_name(entity_b.name):
            return MatchType.EXACT_NAME, 1.0

        if entity_a.slug and entity_a.slug == entity_b.slug:
            return MatchType.SAME_SLUG, 1.0

        similarity = name_similarity(entity_a.name, entity_b.name)

        if self.aliases.is_alias_match(entity_a.name, entity_b.name):
            return MatchType.ALIAS_MATCH, similarity

        if self._locations_match(entity_a, entity_b) and similarity >= self.thresholds.location_name:
            return MatchType.SAME_LOCATION_NAME, similarity

        if similarity >= self.thresholds.fuzzy:
            return MatchType.FUZZY_NAME, similarity

        return None

    def compare(self, entity_a: EntitySnapshot, entity_b: EntitySnapshot) -> DuplicatePair | None:
        """Build a DuplicatePair for two entities of the same type, ordered by id."""
        if entity_a.id == entity_b.id or entity_a.type != entity_b.type:
            return None
        if entity_b.id < entity_a.id:
            entity_a, entity_b = entity_b, entity_a

        classified = self.classify(entity_a, entity_b)
        if classified is None:
            return None

        match_type, similarity = classified
        return DuplicatePair(
            entity_type=entity_a.type,
            entity_a=entity_a,
            entity_b=entity_b,
            match_type=match_type,
            similarity=similarity,
            confidence=determine_confidence(match_type, similarity),
            suggested_action=suggest_action(match_type, similarity, entity_a.status, entity_b.status),
            reasons=build_reasons(entity_a, entity_b, match_type, similarity),
        )

    def detect(self, entities: Sequence[EntitySnapshot]) -> list[DuplicatePair]:
        """Find duplicate pairs among ``entities``.

        Entities are compared only against others of the same type. Each
        unordered pair is emitted at most once, with ``entity_a.id < entity_b.id``.
        """
        if len(entities) < 2:
            return []

        by_type: dict[EntityType, dict[str, EntitySnapshot]] = defaultdict(dict)
        for entity in entities:
            # A repeated id is the same entity, not a duplicate of itself
            by_type[entity.type].setdefault(entity.id, entity)

        pairs = []
        for entity_type, by_id in by_type.items():
            ordered = [by_id[entity_id] for entity_id in sorted(by_id)]
            found = 0
            for entity_a, entity_b in combinations(ordered, 2):
                pair = self.compare(entity_a, entity_b)
                if pair is not None:
                    pairs.append(pair)
                    found += 1
                    logger.debug(
                        f"Duplicate candidate {pair.entity_a.id} / {pair.entity_b.id}: "
                        f"{pair.match_type.value} ({pair.similarity:.2f}, {pair.confidence.value})"
                    )
            logger.info(f"Scanned {len(ordered)} {entity_type.value} entities: {found} duplicate pairs")

        pairs.sort(key=pair_sort_key)
        return pairs


def detect(
    entities: Sequence[EntitySnapshot],
    aliases: AliasTable | None = None,
    thresholds: DetectorThresholds | None = None,
) -> list[DuplicatePair]:
    """Convenience wrapper around ``DuplicateDetector(...).detect(entities)``."""
    return DuplicateDetector(aliases, thresholds).detect(entities)


def find_all_duplicates(
    repository,
    entity_types: Iterable[EntityType] | None = None,
    detector: DuplicateDetector | None = None,
    max_workers: int = 4,
) -> list[DuplicatePair]:
    """Scan several entity types, one thread per type.

    Args:
        repository: Persistence collaborator providing ``list_entities_by_type``
        entity_types: Types to scan (all types if omitted)
        detector: Detector to use (default alias table and thresholds if omitted)
        max_workers: Thread pool size

    Returns:
        Pairs grouped in catalogue type order, each group sorted by confidence
    """
    detector = detector or DuplicateDetector()
    wanted = set(ENTITY_TYPE_ORDER if entity_types is None else entity_types)
    types = [t for t in ENTITY_TYPE_ORDER if t in wanted]
    if not types:
        return []

    results: dict[EntityType, list[DuplicatePair]] = {}

    def scan(entity_type: EntityType) -> list[DuplicatePair]:
        return detector.detect(repository.list_entities_by_type(entity_type))

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(types)))) as executor:
        future_to_type = {executor.submit(scan, t): t for t in types}
        for future in as_completed(future_to_type):
            results[future_to_type[future]] = future.result()

    pairs = []
    for entity_type in types:
        pairs.extend(results.get(entity_type, []))
    return pairs


def summarize(pairs: Iterable[DuplicatePair], feature_enabled: bool = True) -> DuplicateStats:
    """Count pairs by entity type and confidence, zero-filling missing keys."""
    by_type = {t.value: 0 for t in EntityType}
    by_confidence = {c.value: 0 for c in Confidence}
    total = 0

    for pair in pairs:
        by_type[pair.entity_type.value] += 1
        by_confidence[pair.confidence.value] += 1
        total += 1

    return DuplicateStats(
        by_type=by_type,
        by_confidence=by_confidence,
        total=total,
        feature_enabled=feature_enabled,
    )
