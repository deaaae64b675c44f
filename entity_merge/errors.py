"""Error types raised by the entity merge core."""

from enum import Enum


class EntityMergeError(Exception):
    """Base class for all entity merge errors."""


class ValidationError(EntityMergeError):
    """Raised for malformed input values (unknown strategy, entity type, ...)."""


class FeatureDisabledError(EntityMergeError):
    """Raised when merge operations are switched off by configuration."""


class MergeErrorKind(str, Enum):
    CYCLE = "cycle"
    NOT_FOUND = "not_found"
    ALREADY_MERGED = "already_merged"


class MergeError(EntityMergeError):
    """A merge or undo request that cannot be carried out.

    These are structural: retrying with the same inputs fails the same way.
    """

    kind: MergeErrorKind = None

    def __init__(self, message: str, source_id: str = None, target_id: str = None):
        super().__init__(message)
        self.source_id = source_id
        self.target_id = target_id


class MergeCycleError(MergeError):
    """Merging would make the redirect graph cyclic."""

    kind = MergeErrorKind.CYCLE


class EntityNotFoundError(MergeError):
    """An entity id does not resolve to an existing, non-archived entity."""

    kind = MergeErrorKind.NOT_FOUND


class AlreadyMergedError(MergeError):
    """The source entity already has an active redirect."""

    kind = MergeErrorKind.ALREADY_MERGED
