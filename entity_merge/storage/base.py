"""
Persistence collaborator interface.

The merge core never owns entities: it reads snapshots and content blocks
through this interface and asks for archive/restore/update. Merge and undo
are each handed over as a single logical transaction so that the
"no active redirect for this source" check and the writes happen together.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from entity_merge.types import ContentBlock, EntitySnapshot, EntityType, Redirect

# (source_blocks, target_blocks) -> blocks the target ends up with
BlockComposer = Callable[[list[ContentBlock], list[ContentBlock]], list[ContentBlock]]


class EntityRepository(ABC):
    """
    Abstract persistence collaborator.

    Subclasses must implement entity reads, archive/restore, content block
    writes, redirect lookups and the two atomic operations ``commit_merge``
    and ``commit_undo``.
    """

    # -- entities -----------------------------------------------------------

    @abstractmethod
    def list_entities_by_type(self, entity_type: EntityType) -> list[EntitySnapshot]:
        """Return snapshots of every entity of ``entity_type`` (archived ones included)."""

    @abstractmethod
    def get_entity(self, entity_id: str) -> EntitySnapshot | None:
        pass

    @abstractmethod
    def get_content_blocks(self, entity_id: str) -> list[ContentBlock]:
        pass

    @abstractmethod
    def archive_entity(self, entity_id: str) -> None:
        """Archive an entity, remembering its current status.

        Raises:
            EntityNotFoundError: if the id is unknown
        """

    @abstractmethod
    def restore_entity(self, entity_id: str) -> None:
        """Return an archived entity to the status it had before archiving.

        Raises:
            EntityNotFoundError: if the id is unknown
        """

    @abstractmethod
    def apply_content_blocks(self, entity_id: str, blocks: list[ContentBlock]) -> None:
        """Replace the content blocks of an entity."""

    # -- redirects ----------------------------------------------------------

    @abstractmethod
    def get_redirect(self, redirect_id: str) -> Redirect | None:
        pass

    @abstractmethod
    def get_active_redirect(self, from_id: str) -> Redirect | None:
        pass

    @abstractmethod
    def list_redirects(
        self,
        entity_type: EntityType | None = None,
        include_inactive: bool = False,
        limit: int | None = None,
    ) -> list[Redirect]:
        """Redirects, newest ``merged_at`` first."""

    # -- atomic operations --------------------------------------------------

    @abstractmethod
    def commit_merge(self, redirect: Redirect, compose: BlockComposer) -> list[ContentBlock]:
        """Apply a merge as one transaction.

        Reads the source and target blocks inside the transaction, writes
        ``compose(source_blocks, target_blocks)`` to the target, archives the
        source and stores ``redirect``. Nothing is written if any check fails.
        Concurrent merges into the same target are serialized, so each one
        composes from the blocks the previous one wrote.

        Returns:
            The blocks written to the target

        Raises:
            AlreadyMergedError: if ``redirect.from_id`` already has an active redirect
            EntityNotFoundError: if source or target is missing or archived
        """

    @abstractmethod
    def commit_undo(self, redirect_id: str, actor: str, undone_at: datetime) -> bool:
        """Deactivate a redirect and restore its source entity as one transaction.

        Returns:
            False if the redirect does not exist or is already inactive
        """
