"""
Logging configuration for the entity merge core.

Uses loguru. Level and optional log file come from ``Settings``
(``LOG_LEVEL``, ``LOG_FILE``). Merge and undo records are bound with
``audit=True`` by the executor and history; when a log file is configured
those records also go to a separate ``*.audit.log`` next to it, which is
kept longer than the general log.
"""

import os
import sys
from pathlib import Path

from loguru import logger

from entity_merge.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
AUDIT_FORMAT = "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} | {message}"


def audit_log_path(log_file: Path) -> Path:
    """``logs/entity_merge.log`` -> ``logs/entity_merge.audit.log``"""
    return log_file.with_name(f"{log_file.stem}.audit{log_file.suffix or '.log'}")


def is_audit_record(record) -> bool:
    return record["extra"].get("audit", False)


def setup_logging(
    level: str | None = None,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "1 week",
    audit_retention: str = "90 days",
) -> None:
    """
    Configure logging for the entity merge core.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to ``settings.log_level``
        log_file: General log file; defaults to ``settings.log_file``
        rotation: Rotation for both files (e.g., "10 MB", "1 day")
        retention: Retention of the general log
        audit_retention: Retention of the merge audit log
    """
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT, colorize=True)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
        )
        logger.add(
            audit_log_path(log_file),
            level="INFO",
            format=AUDIT_FORMAT,
            filter=is_audit_record,
            rotation=rotation,
            retention=audit_retention,
            compression="gz",
        )

    logger.info(f"Logging configured: level={level}, file={log_file or '-'}")


# Only configure logging if not explicitly disabled
if os.environ.get("DISABLE_LOGGING") != "1":
    setup_logging()
