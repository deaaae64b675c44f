"""
Redirect resolution.

Redirects are flat ``from_id -> to_id`` records indexed by ``from_id``.
Resolution walks them iteratively and stops after ``max_depth`` hops, so a
corrupt chain can never turn into an endless loop.
"""

from collections.abc import Callable, Mapping

from loguru import logger

from entity_merge.types import Redirect

DEFAULT_MAX_DEPTH = 5

RedirectLookup = Callable[[str], Redirect | None]


def _as_lookup(redirects: Mapping[str, Redirect] | RedirectLookup) -> RedirectLookup:
    if isinstance(redirects, Mapping):
        return redirects.get
    return redirects


def follow_redirects(
    entity_id: str,
    redirects: Mapping[str, Redirect] | RedirectLookup,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[str]:
    """Return the hop path starting at ``entity_id``, at most ``max_depth`` hops long.

    Args:
        entity_id: Id to start from
        redirects: Mapping of active redirects keyed by ``from_id``, or a lookup function
        max_depth: Maximum number of hops to follow

    Returns:
        ``[entity_id, ..., reached_id]``
    """
    lookup = _as_lookup(redirects)
    path = [entity_id]
    current = entity_id

    for _ in range(max(0, max_depth)):
        redirect = lookup(current)
        if redirect is None:
            return path
        current = redirect.to_id
        path.append(current)

    if lookup(current) is not None:
        logger.warning(f"Redirect chain from {entity_id} truncated at {current} after {max_depth} hops")
    return path


def resolve_redirect_chain(
    entity_id: str,
    redirects: Mapping[str, Redirect] | RedirectLookup,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """Follow redirects to the canonical id, or to the id reached at the depth limit."""
    return follow_redirects(entity_id, redirects, max_depth)[-1]


class RedirectResolver:
    """Resolves entity ids through the active redirects of a repository.

    Read-only; safe to share between threads.
    """

    def __init__(self, repository, max_depth: int = DEFAULT_MAX_DEPTH):
        self.repository = repository
        self.max_depth = max_depth

    def _lookup(self, entity_id: str) -> Redirect | None:
        return self.repository.get_active_redirect(entity_id)

    def resolve(self, entity_id: str, max_depth: int | None = None) -> str:
        depth = self.max_depth if max_depth is None else max_depth
        return resolve_redirect_chain(entity_id, self._lookup, depth)

    def chain(self, entity_id: str, max_depth: int | None = None) -> list[str]:
        depth = self.max_depth if max_depth is None else max_depth
        return follow_redirects(entity_id, self._lookup, depth)

    def reaches(self, start_id: str, entity_id: str) -> bool:
        """True if following redirects from ``start_id`` ever arrives at ``entity_id``.

        Not depth-limited: each id has at most one active redirect, so the
        walk ends at a canonical id or at the first repeated id.
        """
        seen = {start_id}
        current = start_id
        while current != entity_id:
            redirect = self._lookup(current)
            if redirect is None or redirect.to_id in seen:
                return False
            current = redirect.to_id
            seen.add(current)
        return True
