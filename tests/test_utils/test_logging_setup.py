"""Tests für das Logging-Setup."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import structlog

from kronos.utils.logging import LOG_FILE_NAME, bind_context, get_logger, setup_logging

if TYPE_CHECKING:
    from pathlib import Path


class TestSetupLogging:
    def teardown_method(self) -> None:
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()
        logging.basicConfig(force=True, handlers=[logging.NullHandler()])

    def test_json_file_log(self, tmp_path: Path) -> None:
        setup_logging(level="DEBUG", log_dir=tmp_path, json_logs=True, console=False)
        get_logger("kronos.test").info("job_started", rule="* * * * * *")
        for handler in logging.root.handlers:
            handler.flush()

        lines = (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
        assert record["event"] == "job_started"
        assert record["rule"] == "* * * * * *"
        assert record["level"] == "info"

    def test_bound_context_in_log(self, tmp_path: Path) -> None:
        setup_logging(level="INFO", log_dir=tmp_path, json_logs=True, console=False)
        bind_context(cron_rule="0 0 * * *")
        get_logger("kronos.test").info("subscribed")
        for handler in logging.root.handlers:
            handler.flush()

        record = json.loads((tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()[-1])
        assert record["cron_rule"] == "0 0 * * *"

    def test_level_filters(self, tmp_path: Path) -> None:
        setup_logging(level="WARNING", log_dir=None, console=True)
        assert logging.root.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging(level="LOUD", console=True)
        assert logging.root.level == logging.INFO
