# SPDX-License-Identifier: MIT
"""Tests for logging configuration and the merge audit trail."""

from pathlib import Path

import pytest
from loguru import logger

from entity_merge.merge.executor import MergeExecutor
from entity_merge.merge.history import MergeHistory
from entity_merge.utils.logging import audit_log_path, is_audit_record, setup_logging


@pytest.fixture
def audit_messages():
    """Collect messages that would reach the audit log."""
    messages = []
    handler_id = logger.add(messages.append, level="INFO", format="{message}", filter=is_audit_record)
    yield messages
    logger.remove(handler_id)


class TestAuditLogPath:
    def test_sits_beside_log_file(self):
        assert audit_log_path(Path("logs/entity_merge.log")) == Path("logs/entity_merge.audit.log")

    def test_without_suffix(self):
        assert audit_log_path(Path("logs/merge")) == Path("logs/merge.audit.log")


class TestAuditRecords:
    """Test which records are routed to the audit log."""

    def test_merge_and_undo_are_audited(self, memory_repository, audit_messages):
        result = MergeExecutor(memory_repository).merge("attr-2", "attr-1", "keep_target", "alice")
        MergeHistory(memory_repository).undo(result.redirect_id, "bob")

        assert len(audit_messages) == 2
        assert "Merged attraction attr-2 -> attr-1" in audit_messages[0]
        assert "actor=alice" in audit_messages[0]
        assert f"Undid merge {result.redirect_id} (actor=bob)" in audit_messages[1]

    def test_other_records_are_not_audited(self, memory_repository, audit_messages):
        MergeHistory(memory_repository).undo("does-not-exist", "bob")
        logger.info("Scanned 3 attraction entities")

        assert audit_messages == []


class TestSetupLogging:
    """Test sink configuration."""

    def test_stderr_only_without_log_file(self, mocker):
        mock_logger = mocker.patch("entity_merge.utils.logging.logger")
        mocker.patch("entity_merge.utils.logging.settings.log_file", None)

        setup_logging(level="WARNING")

        mock_logger.remove.assert_called_once_with()
        assert mock_logger.add.call_count == 1
        assert mock_logger.add.call_args.kwargs["level"] == "WARNING"

    def test_log_file_adds_audit_sink(self, tmp_path, mocker):
        mock_logger = mocker.patch("entity_merge.utils.logging.logger")
        log_file = tmp_path / "logs" / "entity_merge.log"

        setup_logging(level="INFO", log_file=log_file)

        assert log_file.parent.is_dir()
        sinks = [call.args[0] for call in mock_logger.add.call_args_list]
        assert sinks[1:] == [log_file, tmp_path / "logs" / "entity_merge.audit.log"]
        assert mock_logger.add.call_args_list[2].kwargs["filter"] is is_audit_record
