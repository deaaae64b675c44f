"""
Merge execution.

A merge folds a source entity into a target: the chosen strategy decides the
target's final content blocks, the source is archived and a redirect
``source -> target`` is recorded. The writes are handed to the repository as
one transaction.
"""

import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from functools import partial

from loguru import logger

from entity_merge.errors import (
    AlreadyMergedError,
    EntityNotFoundError,
    MergeCycleError,
    MergeError,
    ValidationError,
)
from entity_merge.merge.redirects import RedirectResolver
from entity_merge.storage.base import EntityRepository
from entity_merge.types import (
    ContentBlock,
    MergeResult,
    MergeStrategy,
    Redirect,
    RedirectStatus,
    parse_enum,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def apply_strategy(
    strategy: MergeStrategy | str,
    source_blocks: Sequence[ContentBlock],
    target_blocks: Sequence[ContentBlock],
) -> list[ContentBlock]:
    """Decide which content blocks the target keeps.

    - keep_target:   target blocks only
    - keep_source:   source blocks replace the target's
    - merge_content: target blocks followed by source blocks, order preserved
    """
    strategy = parse_enum(MergeStrategy, strategy)

    if strategy == MergeStrategy.KEEP_TARGET:
        return list(target_blocks)
    if strategy == MergeStrategy.KEEP_SOURCE:
        return list(source_blocks)
    return [*target_blocks, *source_blocks]


class MergeExecutor:
    """Validates and executes merges against a repository."""

    def __init__(
        self,
        repository: EntityRepository,
        resolver: RedirectResolver | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.resolver = resolver or RedirectResolver(repository)
        self.clock = clock

    def _check_preconditions(self, source_id: str, target_id: str):
        if source_id == target_id:
            raise MergeCycleError(
                f"Cannot merge entity {source_id} into itself",
                source_id=source_id,
                target_id=target_id,
            )

        if self.resolver.reaches(target_id, source_id):
            raise MergeCycleError(
                f"Entity {target_id} already redirects to {source_id}; merging would create a cycle",
                source_id=source_id,
                target_id=target_id,
            )

        existing = self.repository.get_active_redirect(source_id)
        if existing is not None:
            raise AlreadyMergedError(
                f"Entity {source_id} was already merged into {existing.to_id}",
                source_id=source_id,
                target_id=target_id,
            )

        source = self.repository.get_entity(source_id)
        target = self.repository.get_entity(target_id)
        for entity_id, entity in ((source_id, source), (target_id, target)):
            if entity is None or entity.is_archived:
                raise EntityNotFoundError(
                    f"Entity {entity_id} not found or archived",
                    source_id=source_id,
                    target_id=target_id,
                )

        if source.type != target.type:
            raise ValidationError(
                f"Cannot merge {source.type.value} {source_id} into {target.type.value} {target_id}"
            )

        return source, target

    def merge(
        self,
        source_id: str,
        target_id: str,
        strategy: MergeStrategy | str,
        actor: str,
    ) -> MergeResult:
        """Merge ``source_id`` into ``target_id``.

        Raises:
            MergeCycleError: merging would create a redirect cycle
            AlreadyMergedError: the source already has an active redirect
            EntityNotFoundError: either entity is missing or archived
            ValidationError: unknown strategy, or the entities differ in type
        """
        strategy = parse_enum(MergeStrategy, strategy)

        try:
            source, target = self._check_preconditions(source_id, target_id)

            redirect = Redirect(
                id=str(uuid.uuid4()),
                entity_type=target.type,
                from_id=source.id,
                from_slug=source.slug,
                to_id=target.id,
                to_slug=target.slug,
                merged_at=self.clock(),
                merged_by=actor,
                status=RedirectStatus.ACTIVE,
            )

            # Blocks are read, composed and written inside the repository
            # transaction, which also re-checks "no active redirect"
            blocks = self.repository.commit_merge(redirect, partial(apply_strategy, strategy))

        except MergeError as e:
            logger.warning(f"Merge {source_id} -> {target_id} rejected ({e.kind.value}): {e}")
            raise

        logger.bind(audit=True).info(
            f"Merged {target.type.value} {source_id} -> {target_id} "
            f"(strategy={strategy.value}, actor={actor}, redirect={redirect.id}, blocks={len(blocks)})"
        )

        return MergeResult(
            redirect=redirect,
            target=self.repository.get_entity(target_id) or target,
            blocks=blocks,
            strategy=strategy,
        )
