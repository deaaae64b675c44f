"""
In-memory persistence collaborator.

Records live in flat dicts (an arena of entities, blocks and redirects) with
an index of active redirects keyed by ``from_id``. A re-entrant lock
serializes writers, which is all the single-writer model needs.
"""

import threading
from dataclasses import replace
from datetime import datetime, timezone

from entity_merge.errors import AlreadyMergedError, EntityNotFoundError
from entity_merge.storage.base import BlockComposer, EntityRepository
from entity_merge.types import (
    ContentBlock,
    EntitySnapshot,
    EntityStatus,
    EntityType,
    Redirect,
    RedirectStatus,
)


class InMemoryEntityRepository(EntityRepository):
    """Thread-safe dict-backed repository for tests and embedded use."""

    def __init__(self, entities=None):
        self._lock = threading.RLock()
        self._entities: dict[str, EntitySnapshot] = {}
        self._status_before_archive: dict[str, EntityStatus] = {}
        self._blocks: dict[str, list[ContentBlock]] = {}
        self._redirects: dict[str, Redirect] = {}
        self._active_by_from: dict[str, str] = {}

        for entity in entities or []:
            self.add_entity(entity)

    # -- seeding ------------------------------------------------------------

    def add_entity(self, entity: EntitySnapshot, blocks: list[ContentBlock] | None = None) -> None:
        with self._lock:
            self._entities[entity.id] = entity
            self._blocks[entity.id] = list(blocks or [])

    def add_redirect(self, redirect: Redirect) -> None:
        """Store a redirect as-is, without touching entities (imports, fixtures)."""
        with self._lock:
            if redirect.is_active and redirect.from_id in self._active_by_from:
                raise AlreadyMergedError(
                    f"Entity {redirect.from_id} already has an active redirect",
                    source_id=redirect.from_id,
                    target_id=redirect.to_id,
                )
            self._redirects[redirect.id] = replace(redirect)
            if redirect.is_active:
                self._active_by_from[redirect.from_id] = redirect.id

    # -- entities -----------------------------------------------------------

    def list_entities_by_type(self, entity_type: EntityType) -> list[EntitySnapshot]:
        with self._lock:
            return [e for e in self._entities.values() if e.type == entity_type]

    def get_entity(self, entity_id: str) -> EntitySnapshot | None:
        with self._lock:
            return self._entities.get(entity_id)

    def get_content_blocks(self, entity_id: str) -> list[ContentBlock]:
        with self._lock:
            return list(self._blocks.get(entity_id, []))

    def _require(self, entity_id: str) -> EntitySnapshot:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(f"Entity {entity_id} not found", source_id=entity_id)
        return entity

    def _touch(self, entity: EntitySnapshot, **changes) -> None:
        self._entities[entity.id] = replace(entity, updated_at=datetime.now(timezone.utc), **changes)

    def archive_entity(self, entity_id: str) -> None:
        with self._lock:
            entity = self._require(entity_id)
            if entity.is_archived:
                return
            self._status_before_archive[entity_id] = entity.status
            self._touch(entity, status=EntityStatus.ARCHIVED)

    def restore_entity(self, entity_id: str) -> None:
        with self._lock:
            entity = self._require(entity_id)
            if not entity.is_archived:
                return
            previous = self._status_before_archive.pop(entity_id, EntityStatus.DRAFT)
            self._touch(entity, status=previous)

    def apply_content_blocks(self, entity_id: str, blocks: list[ContentBlock]) -> None:
        with self._lock:
            entity = self._require(entity_id)
            self._blocks[entity_id] = list(blocks)
            self._touch(entity)

    # -- redirects ----------------------------------------------------------

    def get_redirect(self, redirect_id: str) -> Redirect | None:
        with self._lock:
            redirect = self._redirects.get(redirect_id)
            return replace(redirect) if redirect else None

    def get_active_redirect(self, from_id: str) -> Redirect | None:
        with self._lock:
            redirect_id = self._active_by_from.get(from_id)
            return replace(self._redirects[redirect_id]) if redirect_id else None

    def list_redirects(
        self,
        entity_type: EntityType | None = None,
        include_inactive: bool = False,
        limit: int | None = None,
    ) -> list[Redirect]:
        with self._lock:
            redirects = [
                replace(r)
                for r in self._redirects.values()
                if (include_inactive or r.is_active)
                and (entity_type is None or r.entity_type == entity_type)
            ]
        redirects.sort(key=lambda r: r.merged_at, reverse=True)
        return redirects[:limit] if limit is not None else redirects

    # -- atomic operations --------------------------------------------------

    def commit_merge(self, redirect: Redirect, compose: BlockComposer) -> list[ContentBlock]:
        with self._lock:
            if redirect.from_id in self._active_by_from:
                raise AlreadyMergedError(
                    f"Entity {redirect.from_id} has already been merged",
                    source_id=redirect.from_id,
                    target_id=redirect.to_id,
                )
            for entity_id in (redirect.from_id, redirect.to_id):
                entity = self._entities.get(entity_id)
                if entity is None or entity.is_archived:
                    raise EntityNotFoundError(
                        f"Entity {entity_id} not found or archived",
                        source_id=redirect.from_id,
                        target_id=redirect.to_id,
                    )

            blocks = list(compose(
                list(self._blocks.get(redirect.from_id, [])),
                list(self._blocks.get(redirect.to_id, [])),
            ))

            # All checks passed; the writes below cannot fail
            self.apply_content_blocks(redirect.to_id, blocks)
            self.archive_entity(redirect.from_id)
            self._redirects[redirect.id] = replace(redirect, status=RedirectStatus.ACTIVE)
            self._active_by_from[redirect.from_id] = redirect.id
            return blocks

    def commit_undo(self, redirect_id: str, actor: str, undone_at: datetime) -> bool:
        with self._lock:
            redirect = self._redirects.get(redirect_id)
            if redirect is None or not redirect.is_active:
                return False

            self.restore_entity(redirect.from_id)
            redirect.status = RedirectStatus.INACTIVE
            redirect.undone_at = undone_at
            redirect.undone_by = actor
            if self._active_by_from.get(redirect.from_id) == redirect_id:
                del self._active_by_from[redirect.from_id]
            return True
