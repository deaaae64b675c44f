"""
Entity merge service.

Single entry point for callers such as the admin surface: duplicate
detection, merge, undo, redirect resolution and merge history, with the
feature flags from ``MergeSettings`` applied.
"""

from dataclasses import replace
from typing import Optional, Sequence

from loguru import logger

from entity_merge.config import MergeSettings, settings
from entity_merge.deduplication.aliases import AliasTable, load_alias_table
from entity_merge.deduplication.detector import (
    DetectorThresholds,
    DuplicateDetector,
    find_all_duplicates,
    summarize,
)
from entity_merge.errors import FeatureDisabledError
from entity_merge.merge.executor import MergeExecutor
from entity_merge.merge.history import MergeHistory
from entity_merge.merge.redirects import RedirectResolver
from entity_merge.storage.base import EntityRepository
from entity_merge.types import (
    DuplicatePair,
    DuplicateStats,
    EntitySnapshot,
    EntityType,
    MergeResult,
    MergeStrategy,
    Redirect,
    SuggestedAction,
    parse_enum,
)


class EntityMergeService:
    """Facade over detector, executor, resolver and history."""

    def __init__(
        self,
        repository: EntityRepository,
        aliases: Optional[AliasTable] = None,
        merge_settings: Optional[MergeSettings] = None,
    ):
        self.repository = repository
        self.settings = merge_settings or settings.merge

        if aliases is None:
            aliases = load_alias_table(self.settings.alias_file)

        self.detector = DuplicateDetector(aliases, DetectorThresholds.from_settings(self.settings))
        self.resolver = RedirectResolver(repository, max_depth=self.settings.max_redirect_depth)
        self.executor = MergeExecutor(repository, resolver=self.resolver)
        self.merge_history = MergeHistory(repository)

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def _require_enabled(self, operation: str) -> None:
        if not self.settings.enabled:
            raise FeatureDisabledError(
                f"Entity merge is disabled; cannot {operation} (set ENABLE_ENTITY_MERGE=true)"
            )

    def _apply_suggestion_flag(self, pairs: list[DuplicatePair]) -> list[DuplicatePair]:
        if self.settings.auto_suggest:
            return pairs
        return [replace(p, suggested_action=SuggestedAction.REVIEW) for p in pairs]

    # -- detection ----------------------------------------------------------

    def detect(self, entities: Sequence[EntitySnapshot]) -> list[DuplicatePair]:
        return self._apply_suggestion_flag(self.detector.detect(entities))

    def find_duplicates(self, entity_type: EntityType | str | None = None) -> list[DuplicatePair]:
        """Scan the repository for duplicates of one type, or of every type."""
        types = None if entity_type is None else [parse_enum(EntityType, entity_type)]
        pairs = find_all_duplicates(
            self.repository,
            entity_types=types,
            detector=self.detector,
            max_workers=self.settings.scan_workers,
        )
        return self._apply_suggestion_flag(pairs)

    def stats(self, entity_type: EntityType | str | None = None) -> DuplicateStats:
        return summarize(self.find_duplicates(entity_type), feature_enabled=self.settings.enabled)

    # -- merge / undo -------------------------------------------------------

    def merge(self, source_id: str, target_id: str, strategy: MergeStrategy | str, actor: str) -> MergeResult:
        self._require_enabled("merge entities")
        return self.executor.merge(source_id, target_id, strategy, actor)

    def undo(self, redirect_id: str, actor: str) -> bool:
        self._require_enabled("undo merges")
        return self.merge_history.undo(redirect_id, actor)

    # -- redirects ----------------------------------------------------------

    def resolve(self, entity_id: str, max_depth: int | None = None) -> str:
        return self.resolver.resolve(entity_id, max_depth)

    def history(
        self,
        entity_type: EntityType | str | None = None,
        include_inactive: bool = False,
        limit: int | None = 50,
    ) -> list[Redirect]:
        if entity_type is not None:
            entity_type = parse_enum(EntityType, entity_type)
        redirects = self.merge_history.list(entity_type, include_inactive, limit)
        logger.debug(f"Loaded {len(redirects)} redirects from merge history")
        return redirects
