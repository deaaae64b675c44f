#!/usr/bin/env python3
"""
Initialize the entity merge database.

Creates the content and redirect tables, optionally loading entities from a
JSON fixture file.

Usage:
    python scripts/init_db.py [--drop] [--seed entities.json]

Options:
    --drop  Drop existing tables before creating (USE WITH CAUTION!)
    --seed  JSON list of {"id", "type", "name", "slug", "status", "location", "blocks"}
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from sqlalchemy import inspect

from entity_merge.database import create_all_tables, drop_all_tables, engine
from entity_merge.storage.sql import SqlEntityRepository
from entity_merge.types import ContentBlock, EntitySnapshot, EntityStatus, EntityType


def seed_entities(repository: SqlEntityRepository, path: Path) -> int:
    """
    Load entities and their content blocks from a JSON fixture.

    Returns:
        Number of entities added.
    """
    records = json.loads(path.read_text(encoding="utf-8"))
    count = 0

    for record in records:
        entity = EntitySnapshot(
            id=record["id"],
            type=EntityType(record["type"]),
            name=record["name"],
            slug=record["slug"],
            status=EntityStatus(record.get("status", "draft")),
            location_name=record.get("location"),
        )
        blocks = [
            ContentBlock(id=b["id"], type=b.get("type", "text"), content=b.get("content"))
            for b in record.get("blocks", [])
        ]
        if repository.get_entity(entity.id):
            logger.info(f"Skipping existing entity: {entity.id}")
            continue

        logger.info(f"Adding {entity.type.value}: {entity.id} ({entity.name})")
        repository.add_entity(entity, blocks)
        count += 1

    return count


def main():
    parser = argparse.ArgumentParser(description="Initialize the entity merge database")
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables before creating (USE WITH CAUTION!)",
    )
    parser.add_argument(
        "--seed",
        type=Path,
        default=None,
        help="JSON file of entities to load",
    )
    args = parser.parse_args()

    logger.info("=" * 60)
    logger.info("Entity Merge - Database Initialization")
    logger.info("=" * 60)

    if args.drop:
        logger.warning("Dropping all existing tables...")
        confirm = input("Are you sure you want to drop all tables? (yes/no): ")
        if confirm.lower() == "yes":
            drop_all_tables()
            logger.info("Tables dropped.")
        else:
            logger.info("Drop cancelled.")
            sys.exit(0)

    logger.info("Creating database tables...")
    create_all_tables()
    logger.info(f"Tables in database: {inspect(engine).get_table_names()}")

    if args.seed:
        count = seed_entities(SqlEntityRepository(), args.seed)
        logger.info(f"Added {count} entities from {args.seed}")

    logger.info("=" * 60)
    logger.info("Database initialization complete!")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
