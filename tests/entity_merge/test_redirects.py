# SPDX-License-Identifier: MIT
"""Tests for redirect resolution, merge history and undo."""

from datetime import datetime, timezone

import pytest

from entity_merge.merge.executor import MergeExecutor
from entity_merge.merge.history import MergeHistory
from entity_merge.merge.redirects import (
    DEFAULT_MAX_DEPTH,
    RedirectResolver,
    follow_redirects,
    resolve_redirect_chain,
)
from entity_merge.types import EntityStatus, MergeStrategy, RedirectStatus


@pytest.fixture
def chain(make_redirect):
    """Redirects id-1 -> id-2 -> ... -> id-11, keyed by from_id."""
    return {f"id-{i}": make_redirect(f"id-{i}", f"id-{i + 1}") for i in range(1, 11)}


@pytest.fixture
def executor(memory_repository, fixed_clock):
    return MergeExecutor(memory_repository, clock=fixed_clock)


@pytest.fixture
def merge_history(memory_repository, fixed_clock):
    return MergeHistory(memory_repository, clock=fixed_clock)


class TestResolveRedirectChain:
    """Test resolution over a redirect mapping."""

    def test_no_redirect(self, chain):
        assert resolve_redirect_chain("unknown", chain) == "unknown"
        assert resolve_redirect_chain("id-11", chain) == "id-11"

    def test_single_hop(self, chain):
        assert resolve_redirect_chain("id-10", chain) == "id-11"

    def test_stops_at_max_depth(self, chain):
        assert DEFAULT_MAX_DEPTH == 5
        assert resolve_redirect_chain("id-1", chain) == "id-6"
        assert resolve_redirect_chain("id-1", chain, max_depth=3) == "id-4"

    def test_full_chain_with_enough_depth(self, chain):
        assert resolve_redirect_chain("id-1", chain, max_depth=20) == "id-11"

    def test_zero_depth(self, chain):
        assert resolve_redirect_chain("id-1", chain, max_depth=0) == "id-1"

    def test_path(self, chain):
        assert follow_redirects("id-8", chain) == ["id-8", "id-9", "id-10", "id-11"]

    def test_corrupt_cycle_terminates(self, make_redirect):
        redirects = {"a": make_redirect("a", "b"), "b": make_redirect("b", "a")}
        assert resolve_redirect_chain("a", redirects) == "b"
        assert len(follow_redirects("a", redirects)) == DEFAULT_MAX_DEPTH + 1

    def test_accepts_lookup_function(self, chain):
        assert resolve_redirect_chain("id-9", chain.get) == "id-11"


class TestRedirectResolver:
    """Test resolution through a repository."""

    def test_follows_active_redirects(self, memory_repository, make_redirect):
        memory_repository.add_redirect(make_redirect("attr-2", "attr-3"))
        memory_repository.add_redirect(make_redirect("attr-3", "attr-1"))

        resolver = RedirectResolver(memory_repository)
        assert resolver.resolve("attr-2") == "attr-1"
        assert resolver.chain("attr-2") == ["attr-2", "attr-3", "attr-1"]
        assert resolver.resolve("attr-1") == "attr-1"

    def test_ignores_inactive_redirects(self, memory_repository, make_redirect):
        memory_repository.add_redirect(make_redirect("attr-2", "attr-1", status=RedirectStatus.INACTIVE))
        assert RedirectResolver(memory_repository).resolve("attr-2") == "attr-2"

    def test_configured_depth(self, memory_repository, make_redirect):
        memory_repository.add_redirect(make_redirect("attr-2", "attr-3"))
        memory_repository.add_redirect(make_redirect("attr-3", "attr-1"))

        resolver = RedirectResolver(memory_repository, max_depth=1)
        assert resolver.resolve("attr-2") == "attr-3"
        assert resolver.resolve("attr-2", max_depth=2) == "attr-1"

    def test_reaches(self, memory_repository, make_redirect):
        memory_repository.add_redirect(make_redirect("attr-2", "attr-3"))
        memory_repository.add_redirect(make_redirect("attr-3", "attr-1"))

        resolver = RedirectResolver(memory_repository)
        assert resolver.reaches("attr-2", "attr-1")
        assert resolver.reaches("attr-2", "attr-2")
        assert not resolver.reaches("attr-1", "attr-2")
        assert not resolver.reaches("hotel-1", "attr-1")


class TestUndo:
    """Test reversing merges."""

    def test_undo_restores_source(self, executor, merge_history, memory_repository, fixed_clock):
        result = executor.merge("attr-2", "attr-1", MergeStrategy.KEEP_TARGET, "alice")

        assert merge_history.undo(result.redirect_id, "bob") is True

        assert memory_repository.get_entity("attr-2").status == EntityStatus.DRAFT
        redirect = merge_history.get(result.redirect_id)
        assert redirect.status == RedirectStatus.INACTIVE
        assert redirect.undone_by == "bob"
        assert redirect.undone_at == fixed_clock()
        assert executor.resolver.resolve("attr-2") == "attr-2"

    def test_undo_restores_published_status(self, executor, merge_history, memory_repository):
        result = executor.merge("attr-3", "attr-1", "keep_target", "alice")
        assert memory_repository.get_entity("attr-3").status == EntityStatus.ARCHIVED

        merge_history.undo(result.redirect_id, "bob")
        assert memory_repository.get_entity("attr-3").status == EntityStatus.PUBLISHED

    def test_second_undo_returns_false(self, executor, merge_history):
        result = executor.merge("attr-2", "attr-1", "keep_target", "alice")

        assert merge_history.undo(result.redirect_id, "bob") is True
        assert merge_history.undo(result.redirect_id, "bob") is False

    def test_unknown_redirect(self, merge_history):
        assert merge_history.undo("does-not-exist", "bob") is False

    def test_source_can_be_merged_again(self, executor, merge_history):
        first = executor.merge("attr-2", "attr-1", "keep_target", "alice")
        merge_history.undo(first.redirect_id, "bob")

        second = executor.merge("attr-2", "attr-3", "keep_target", "alice")
        assert second.redirect.to_id == "attr-3"

    def test_content_changes_are_not_reverted(self, executor, merge_history, memory_repository):
        result = executor.merge("attr-2", "attr-1", MergeStrategy.KEEP_SOURCE, "alice")
        merge_history.undo(result.redirect_id, "bob")

        assert [b.id for b in memory_repository.get_content_blocks("attr-1")] == ["s1"]


class TestMergeHistory:
    """Test listing past merges."""

    def test_newest_first(self, memory_repository):
        times = iter([
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 2, 1, tzinfo=timezone.utc),
        ])
        executor = MergeExecutor(memory_repository, clock=lambda: next(times))
        executor.merge("attr-2", "attr-1", "keep_target", "alice")
        executor.merge("attr-3", "attr-1", "keep_target", "alice")

        redirects = MergeHistory(memory_repository).list()
        assert [r.from_id for r in redirects] == ["attr-3", "attr-2"]

    def test_inactive_hidden_by_default(self, executor, merge_history):
        result = executor.merge("attr-2", "attr-1", "keep_target", "alice")
        merge_history.undo(result.redirect_id, "bob")

        assert merge_history.list() == []
        assert [r.id for r in merge_history.list(include_inactive=True)] == [result.redirect_id]

    def test_limit(self, executor, merge_history):
        executor.merge("attr-2", "attr-1", "keep_target", "alice")
        executor.merge("attr-3", "attr-1", "keep_target", "alice")
        assert len(merge_history.list(limit=1)) == 1
