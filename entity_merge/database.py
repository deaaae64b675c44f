"""
Database models for the entity merge core.

Uses SQLAlchemy 2.0. Content entities and their blocks are owned by the
content platform; this module maps just the columns the merge core reads
and writes, plus the redirect table it owns.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    create_engine,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
    sessionmaker,
)
from sqlalchemy.sql import func

from entity_merge.config import settings


# =============================================================================
# Database Engine and Session
# =============================================================================

def create_db_engine(url: str | None = None, echo: bool | None = None):
    """Create an engine; pool sizing only applies to server databases."""
    url = url or settings.database.url
    echo = settings.log_level == "DEBUG" if echo is None else echo

    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,        # Connection timeout to prevent hanging
        pool_recycle=1800,      # Recycle connections every 30 minutes
    )


engine = create_db_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session(session_factory=None):
    """Context manager for database sessions (commit on success, rollback on error)."""
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# Content Models
# =============================================================================

class ContentEntity(Base):
    """
    A destination, attraction, hotel or article.

    ``status_before_archive`` remembers the status an entity had when a merge
    archived it, so undo can put it back.
    """
    __tablename__ = "content_entities"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    location_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    status_before_archive: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    blocks: Mapped[List["ContentBlockRecord"]] = relationship(
        "ContentBlockRecord",
        back_populates="entity",
        cascade="all, delete-orphan",
        order_by="ContentBlockRecord.position",
    )

    __table_args__ = (
        Index("idx_content_entities_type_status", "entity_type", "status"),
    )

    def __repr__(self) -> str:
        return f"<ContentEntity {self.entity_type}:{self.id} - {self.name}>"


class ContentBlockRecord(Base):
    """An ordered content block belonging to an entity."""
    __tablename__ = "content_blocks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("content_entities.id", ondelete="CASCADE"), nullable=False
    )

    block_id: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    block_type: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    entity: Mapped["ContentEntity"] = relationship("ContentEntity", back_populates="blocks")

    __table_args__ = (
        Index("idx_content_blocks_entity", "entity_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<ContentBlockRecord {self.entity_id}#{self.position} {self.block_type}>"


# =============================================================================
# Merge Models
# =============================================================================

class EntityRedirect(Base):
    """
    Redirect left behind by a merge.

    At most one active redirect may exist per ``from_id``; the partial unique
    index enforces this even when two merges race.
    """
    __tablename__ = "entity_redirects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)

    from_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    from_slug: Mapped[str] = mapped_column(String(500), nullable=False)
    to_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    to_slug: Mapped[str] = mapped_column(String(500), nullable=False)

    merged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    merged_by: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")  # active, inactive
    undone_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    undone_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index(
            "uq_entity_redirects_active_from",
            "from_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_entity_redirects_merged_at", "merged_at"),
    )

    def __repr__(self) -> str:
        return f"<EntityRedirect {self.from_id} -> {self.to_id} ({self.status})>"


# =============================================================================
# Helper Functions
# =============================================================================

def create_all_tables(bind=None):
    """Create all database tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_all_tables(bind=None):
    """Drop all database tables. USE WITH CAUTION!"""
    Base.metadata.drop_all(bind=bind or engine)
