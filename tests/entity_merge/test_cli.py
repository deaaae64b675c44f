# SPDX-License-Identifier: MIT
"""Tests for the operator CLI."""

import pytest
from click.testing import CliRunner

from entity_merge.config import MergeSettings
from entity_merge.main import cli
from entity_merge.service import EntityMergeService


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def service(memory_repository, mocker):
    merge_settings = MergeSettings(_env_file=None, enabled=True, auto_suggest=True)
    service = EntityMergeService(memory_repository, merge_settings=merge_settings)
    mocker.patch("entity_merge.main.get_service", return_value=service)
    return service


class TestCommands:
    """Test each CLI command against an in-memory service."""

    def test_scan(self, runner, service):
        result = runner.invoke(cli, ["scan"])
        assert result.exit_code == 0
        assert "Duplicate candidates (1)" in result.output

    def test_scan_one_type(self, runner, service):
        result = runner.invoke(cli, ["scan", "--type", "hotel"])
        assert result.exit_code == 0
        assert "Duplicate candidates (0)" in result.output

    def test_scan_rejects_unknown_type(self, runner, service):
        result = runner.invoke(cli, ["scan", "--type", "castle"])
        assert result.exit_code == 2

    def test_stats(self, runner, service):
        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 0
        assert "Duplicate Statistics" in result.output

    def test_merge(self, runner, service, memory_repository):
        result = runner.invoke(cli, ["merge", "attr-2", "attr-1", "--actor", "alice"])
        assert result.exit_code == 0
        assert "Merged attr-2 into attr-1" in result.output
        assert memory_repository.get_active_redirect("attr-2") is not None

    def test_merge_requires_actor(self, runner, service):
        result = runner.invoke(cli, ["merge", "attr-2", "attr-1"])
        assert result.exit_code == 2

    def test_merge_error_exits_nonzero(self, runner, service):
        result = runner.invoke(cli, ["merge", "attr-1", "attr-1", "--actor", "alice"])
        assert result.exit_code == 1
        assert "into itself" in result.output

    def test_undo(self, runner, service):
        merged = service.merge("attr-2", "attr-1", "keep_target", "alice")

        result = runner.invoke(cli, ["undo", merged.redirect_id, "--actor", "bob"])
        assert result.exit_code == 0
        assert "Undid merge" in result.output

    def test_undo_unknown_redirect(self, runner, service):
        result = runner.invoke(cli, ["undo", "nope", "--actor", "bob"])
        assert result.exit_code == 0
        assert "not found or already undone" in result.output

    def test_resolve(self, runner, service):
        service.merge("attr-2", "attr-1", "keep_target", "alice")

        result = runner.invoke(cli, ["resolve", "attr-2"])
        assert result.exit_code == 0
        assert result.output.strip() == "attr-1"

    def test_history(self, runner, service):
        service.merge("attr-2", "attr-1", "keep_target", "alice")

        result = runner.invoke(cli, ["history", "--all"])
        assert result.exit_code == 0
        assert "Merge History" in result.output


class TestFeatureDisabled:
    """Test the CLI when merging has not been switched on."""

    @pytest.fixture
    def disabled(self, memory_repository, mocker):
        service = EntityMergeService(memory_repository, merge_settings=MergeSettings(_env_file=None, enabled=False))
        mocker.patch("entity_merge.main.get_service", return_value=service)
        return service

    def test_merge_refused(self, runner, disabled, memory_repository):
        result = runner.invoke(cli, ["merge", "attr-2", "attr-1", "--actor", "alice"])
        assert result.exit_code == 1
        assert "disabled" in result.output
        assert memory_repository.get_active_redirect("attr-2") is None

    def test_stats_reports_disabled(self, runner, disabled):
        result = runner.invoke(cli, ["stats"])
        assert result.exit_code == 0
        assert "ENABLE_ENTITY_MERGE=true" in result.output
