"""Merge history and undo."""

from collections.abc import Callable
from datetime import datetime

from loguru import logger

from entity_merge.merge.executor import utcnow
from entity_merge.storage.base import EntityRepository
from entity_merge.types import EntityType, Redirect


class MergeHistory:
    """
    Read access to past merges and reversal of a single merge.

    Undo only reverses archival and redirect state. Content blocks written to
    the target by keep_source or merge_content stay as they are.
    """

    def __init__(self, repository: EntityRepository, clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.clock = clock

    def get(self, redirect_id: str) -> Redirect | None:
        return self.repository.get_redirect(redirect_id)

    def list(
        self,
        entity_type: EntityType | None = None,
        include_inactive: bool = False,
        limit: int | None = 50,
    ) -> list[Redirect]:
        """Most recent merges first."""
        return self.repository.list_redirects(
            entity_type=entity_type,
            include_inactive=include_inactive,
            limit=limit,
        )

    def undo(self, redirect_id: str, actor: str) -> bool:
        """Deactivate a redirect and restore the archived source entity.

        Returns:
            True if the merge was undone, False if the redirect does not exist
            or was already undone
        """
        undone = self.repository.commit_undo(redirect_id, actor, self.clock())
        if undone:
            logger.bind(audit=True).info(f"Undid merge {redirect_id} (actor={actor})")
        else:
            logger.info(f"Nothing to undo for redirect {redirect_id}")
        return undone
