# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for entity merge tests."""

import os
from datetime import datetime, timezone
from typing import Callable, Generator

import pytest

# Set test environment variables before importing the package
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DISABLE_LOGGING", "1")

from entity_merge.types import (  # noqa: E402
    ContentBlock,
    EntitySnapshot,
    EntityStatus,
    EntityType,
    Redirect,
)


@pytest.fixture
def make_entity() -> Callable[..., EntitySnapshot]:
    """Factory for entity snapshots with sensible defaults."""

    def _make(
        entity_id: str,
        name: str,
        entity_type: EntityType = EntityType.ATTRACTION,
        slug: str | None = None,
        status: EntityStatus = EntityStatus.DRAFT,
        location: str | None = None,
    ) -> EntitySnapshot:
        return EntitySnapshot(
            id=entity_id,
            type=entity_type,
            name=name,
            slug=slug or f"{entity_id}-slug",
            status=status,
            location_name=location,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def make_redirect() -> Callable[..., Redirect]:
    """Factory for redirect records."""

    def _make(from_id: str, to_id: str, redirect_id: str | None = None, **kwargs) -> Redirect:
        return Redirect(
            id=redirect_id or f"r-{from_id}",
            entity_type=kwargs.pop("entity_type", EntityType.ATTRACTION),
            from_id=from_id,
            from_slug=f"{from_id}-slug",
            to_id=to_id,
            to_slug=f"{to_id}-slug",
            merged_at=kwargs.pop("merged_at", datetime(2024, 1, 1, tzinfo=timezone.utc)),
            merged_by=kwargs.pop("merged_by", "tester"),
            **kwargs,
        )

    return _make


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_repository(make_entity):
    """In-memory repository with two published/draft attractions and a hotel."""
    from entity_merge.storage.memory import InMemoryEntityRepository

    repo = InMemoryEntityRepository()
    repo.add_entity(
        make_entity("attr-1", "Burj Khalifa", slug="burj-khalifa", status=EntityStatus.PUBLISHED),
        [ContentBlock(id="t1", type="text", content="Target content")],
    )
    repo.add_entity(
        make_entity("attr-2", "Burj Kalifa", slug="burj-kalifa", status=EntityStatus.DRAFT),
        [ContentBlock(id="s1", type="text", content="Source content")],
    )
    repo.add_entity(make_entity("attr-3", "Dubai Frame", slug="dubai-frame", status=EntityStatus.PUBLISHED))
    repo.add_entity(
        make_entity("hotel-1", "Atlantis The Palm", entity_type=EntityType.HOTEL, slug="atlantis")
    )
    return repo


@pytest.fixture
def sqlite_session_factory() -> Generator:
    """Session factory bound to a fresh in-memory SQLite database."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from entity_merge.database import create_all_tables

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(bind=engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    engine.dispose()


@pytest.fixture
def sql_repository(sqlite_session_factory):
    from entity_merge.storage.sql import SqlEntityRepository

    return SqlEntityRepository(sqlite_session_factory)
