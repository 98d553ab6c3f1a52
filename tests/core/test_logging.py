"""Tests for structured logging."""

import json
import logging
import threading
from pathlib import Path

import structlog

from modelsync.config.models import LoggingConfig, LogOutputConfig
from modelsync.core.concurrency import PhaseRunner
from modelsync.core.logging import (
    ConsoleSuppressingFilter,
    configure_logging,
    get_logger,
    run_context,
)
from modelsync.core.progress import suppress_console_logs


def _json_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().strip().splitlines()]


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()
        logging.getLogger().handlers.clear()

    def teardown_method(self) -> None:
        logging.getLogger().handlers.clear()
        structlog.contextvars.clear_contextvars()

    def test_given_run_context_when_log_then_json_carries_run_fields(
        self, tmp_path: Path
    ) -> None:
        """JSON lines include event, fields, level and the bound run fields."""
        # Given
        log_file = tmp_path / "sync.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )

        # When
        with run_context(tmp_path / "Shop", run_id="abc123") as rid:
            get_logger("test").info("model_rewritten", class_name="User")
        get_logger("test").info("after_run")

        # Then
        inside, after = _json_lines(log_file)
        assert rid == "abc123"
        assert inside["event"] == "model_rewritten"
        assert inside["class_name"] == "User"
        assert inside["level"] == "info"
        assert inside["run_id"] == "abc123"
        assert inside["project"] == str(tmp_path / "Shop")
        assert "timestamp" in inside
        assert "run_id" not in after

    def test_given_no_run_id_when_enter_context_then_generates_short_hex(self) -> None:
        with run_context("Shop") as rid:
            assert len(rid) == 12
            int(rid, 16)

    def test_given_worker_threads_when_log_then_run_fields_follow(self, tmp_path: Path) -> None:
        """Units run by the phase runner log with the caller's run fields."""
        # Given
        log_file = tmp_path / "sync.log"
        output = LogOutputConfig(format="json", destination=str(log_file))
        configure_logging(config=LoggingConfig(outputs=[output]))

        # When
        with run_context("Shop", run_id="run-7"), PhaseRunner(max_workers=3) as runner:
            runner.map("patch", lambda n: get_logger().info("unit_done", unit=n), [1, 2, 3])

        # Then
        units = [line for line in _json_lines(log_file) if line["event"] == "unit_done"]
        assert sorted(line["unit"] for line in units) == [1, 2, 3]
        assert {line["run_id"] for line in units} == {"run-7"}

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over the simple level param."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When
        configure_logging(config=config, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_multi_output_config_when_configure_then_levels_apply_per_output(
        self, tmp_path: Path
    ) -> None:
        """Each output filters by its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content


class TestConsoleSuppression:
    """Console records are dropped while a spinner is active."""

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("modelsync", logging.WARNING, __file__, 1, "msg", None, None)

    def test_records_pass_when_not_suppressed(self) -> None:
        assert ConsoleSuppressingFilter().filter(self._record()) is True

    def test_records_from_other_threads_are_dropped(self) -> None:
        # Given
        seen: list[bool] = []
        flt = ConsoleSuppressingFilter()

        # When
        with suppress_console_logs():
            worker = threading.Thread(target=lambda: seen.append(flt.filter(self._record())))
            worker.start()
            worker.join()

        # Then
        assert seen == [False]
        assert flt.filter(self._record()) is True
