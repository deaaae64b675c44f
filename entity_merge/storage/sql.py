"""
SQLAlchemy persistence collaborator.

Each public method runs in its own session. ``commit_merge`` and
``commit_undo`` do all of their reads and writes inside one session so the
database sees a single transaction; the partial unique index on active
redirects turns a lost race into ``AlreadyMergedError``.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from entity_merge.database import (
    ContentBlockRecord,
    ContentEntity,
    EntityRedirect,
    SessionLocal,
    get_session,
)
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


def entity_to_snapshot(row: ContentEntity) -> EntitySnapshot:
    return EntitySnapshot(
        id=row.id,
        type=EntityType(row.entity_type),
        name=row.name,
        slug=row.slug,
        status=EntityStatus(row.status),
        location_name=row.location_name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def block_from_row(row: ContentBlockRecord) -> ContentBlock:
    return ContentBlock(id=row.block_id, type=row.block_type, content=row.content)


def redirect_from_row(row: EntityRedirect) -> Redirect:
    return Redirect(
        id=row.id,
        entity_type=EntityType(row.entity_type),
        from_id=row.from_id,
        from_slug=row.from_slug,
        to_id=row.to_id,
        to_slug=row.to_slug,
        merged_at=row.merged_at,
        merged_by=row.merged_by,
        status=RedirectStatus(row.status),
        undone_at=row.undone_at,
        undone_by=row.undone_by,
    )


class SqlEntityRepository(EntityRepository):
    """Repository backed by the ``content_entities`` / ``entity_redirects`` tables."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    def add_entity(self, entity: EntitySnapshot, blocks: list[ContentBlock] | None = None) -> None:
        """Insert an entity with its blocks (fixtures and imports)."""
        with get_session(self.session_factory) as session:
            row = ContentEntity(
                id=entity.id,
                entity_type=entity.type.value,
                name=entity.name,
                slug=entity.slug,
                location_name=entity.location_name,
                status=entity.status.value,
            )
            if entity.created_at:
                row.created_at = entity.created_at
            session.add(row)
            self._write_blocks(session, row, blocks or [])

    # -- entities -----------------------------------------------------------

    def list_entities_by_type(self, entity_type: EntityType) -> list[EntitySnapshot]:
        with get_session(self.session_factory) as session:
            rows = session.scalars(
                select(ContentEntity)
                .where(ContentEntity.entity_type == EntityType(entity_type).value)
                .order_by(ContentEntity.id)
            ).all()
            return [entity_to_snapshot(row) for row in rows]

    def get_entity(self, entity_id: str) -> EntitySnapshot | None:
        with get_session(self.session_factory) as session:
            row = session.get(ContentEntity, entity_id)
            return entity_to_snapshot(row) if row else None

    def get_content_blocks(self, entity_id: str) -> list[ContentBlock]:
        with get_session(self.session_factory) as session:
            rows = session.scalars(
                select(ContentBlockRecord)
                .where(ContentBlockRecord.entity_id == entity_id)
                .order_by(ContentBlockRecord.position)
            ).all()
            return [block_from_row(r) for r in rows]

    @staticmethod
    def _require(session: Session, entity_id: str) -> ContentEntity:
        row = session.get(ContentEntity, entity_id)
        if row is None:
            raise EntityNotFoundError(f"Entity {entity_id} not found", source_id=entity_id)
        return row

    @staticmethod
    def _archive(row: ContentEntity) -> None:
        if row.status == EntityStatus.ARCHIVED.value:
            return
        row.status_before_archive = row.status
        row.status = EntityStatus.ARCHIVED.value

    @staticmethod
    def _restore(row: ContentEntity) -> None:
        if row.status != EntityStatus.ARCHIVED.value:
            return
        row.status = row.status_before_archive or EntityStatus.DRAFT.value
        row.status_before_archive = None

    @staticmethod
    def _write_blocks(session: Session, row: ContentEntity, blocks: list[ContentBlock]) -> None:
        row.blocks.clear()
        session.flush()
        for position, block in enumerate(blocks):
            row.blocks.append(ContentBlockRecord(
                block_id=block.id,
                position=position,
                block_type=block.type,
                content=block.content,
            ))

    def archive_entity(self, entity_id: str) -> None:
        with get_session(self.session_factory) as session:
            self._archive(self._require(session, entity_id))

    def restore_entity(self, entity_id: str) -> None:
        with get_session(self.session_factory) as session:
            self._restore(self._require(session, entity_id))

    def apply_content_blocks(self, entity_id: str, blocks: list[ContentBlock]) -> None:
        with get_session(self.session_factory) as session:
            self._write_blocks(session, self._require(session, entity_id), blocks)

    # -- redirects ----------------------------------------------------------

    def get_redirect(self, redirect_id: str) -> Redirect | None:
        with get_session(self.session_factory) as session:
            row = session.get(EntityRedirect, redirect_id)
            return redirect_from_row(row) if row else None

    @staticmethod
    def _active_redirect_row(session: Session, from_id: str, for_update: bool = False) -> EntityRedirect | None:
        stmt = select(EntityRedirect).where(
            EntityRedirect.from_id == from_id,
            EntityRedirect.status == RedirectStatus.ACTIVE.value,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return session.scalars(stmt).first()

    def get_active_redirect(self, from_id: str) -> Redirect | None:
        with get_session(self.session_factory) as session:
            row = self._active_redirect_row(session, from_id)
            return redirect_from_row(row) if row else None

    def list_redirects(
        self,
        entity_type: EntityType | None = None,
        include_inactive: bool = False,
        limit: int | None = None,
    ) -> list[Redirect]:
        with get_session(self.session_factory) as session:
            stmt = select(EntityRedirect).order_by(EntityRedirect.merged_at.desc())
            if entity_type is not None:
                stmt = stmt.where(EntityRedirect.entity_type == EntityType(entity_type).value)
            if not include_inactive:
                stmt = stmt.where(EntityRedirect.status == RedirectStatus.ACTIVE.value)
            if limit is not None:
                stmt = stmt.limit(limit)
            return [redirect_from_row(row) for row in session.scalars(stmt).all()]

    def add_redirect(self, redirect: Redirect) -> None:
        """Store a redirect as-is, without touching entities (imports, fixtures)."""
        try:
            with get_session(self.session_factory) as session:
                session.add(self._redirect_row(redirect))
        except IntegrityError as e:
            raise AlreadyMergedError(
                f"Entity {redirect.from_id} already has an active redirect",
                source_id=redirect.from_id,
                target_id=redirect.to_id,
            ) from e

    @staticmethod
    def _redirect_row(redirect: Redirect) -> EntityRedirect:
        return EntityRedirect(
            id=redirect.id,
            entity_type=redirect.entity_type.value,
            from_id=redirect.from_id,
            from_slug=redirect.from_slug,
            to_id=redirect.to_id,
            to_slug=redirect.to_slug,
            merged_at=redirect.merged_at,
            merged_by=redirect.merged_by,
            status=redirect.status.value,
            undone_at=redirect.undone_at,
            undone_by=redirect.undone_by,
        )

    # -- atomic operations --------------------------------------------------

    def commit_merge(self, redirect: Redirect, compose: BlockComposer) -> list[ContentBlock]:
        already_merged = AlreadyMergedError(
            f"Entity {redirect.from_id} has already been merged",
            source_id=redirect.from_id,
            target_id=redirect.to_id,
        )

        try:
            with get_session(self.session_factory) as session:
                if self._active_redirect_row(session, redirect.from_id, for_update=True):
                    raise already_merged

                # Lock in id order so merges sharing a target cannot deadlock
                rows = {}
                for entity_id in sorted((redirect.from_id, redirect.to_id)):
                    row = session.get(ContentEntity, entity_id, with_for_update=True, populate_existing=True)
                    if row is None or row.status == EntityStatus.ARCHIVED.value:
                        raise EntityNotFoundError(
                            f"Entity {entity_id} not found or archived",
                            source_id=redirect.from_id,
                            target_id=redirect.to_id,
                        )
                    rows[entity_id] = row

                blocks = list(compose(
                    [block_from_row(r) for r in rows[redirect.from_id].blocks],
                    [block_from_row(r) for r in rows[redirect.to_id].blocks],
                ))

                self._write_blocks(session, rows[redirect.to_id], blocks)
                self._archive(rows[redirect.from_id])
                session.add(self._redirect_row(redirect))
                session.flush()
        except IntegrityError as e:
            logger.warning(f"Concurrent merge of {redirect.from_id} lost the race: {e.orig}")
            raise already_merged from e

        return blocks

    def commit_undo(self, redirect_id: str, actor: str, undone_at: datetime) -> bool:
        with get_session(self.session_factory) as session:
            row = session.get(EntityRedirect, redirect_id, with_for_update=True)
            if row is None or row.status != RedirectStatus.ACTIVE.value:
                return False

            self._restore(self._require(session, row.from_id))
            row.status = RedirectStatus.INACTIVE.value
            row.undone_at = undone_at
            row.undone_by = actor
            return True
