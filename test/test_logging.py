#!/usr/bin/env python3
"""
Tests for logging utilities.
"""

import pytest
import structlog
from structlog.testing import capture_logs

from signal_collector.utils.logging import (
    PerformanceMonitor,
    PipelineLogger,
    log_error,
    setup_logging,
)


def test_setup_logging_to_file(tmp_path):
    """Test that logging can be directed to a file."""
    log_file = tmp_path / "logs" / "run.log"
    logger = setup_logging(log_level="INFO", log_file=log_file, log_format="json")
    logger.info("Collection started", rows=3)
    assert log_file.exists()


def test_pipeline_logger_success():
    """Test start and completion events of a step."""
    with capture_logs() as logs:
        logger = structlog.get_logger()
        with PipelineLogger(logger, "collect") as plog:
            plog.add_context(rows=10)
            plog.log_progress("Halfway")
    events = [entry["event"] for entry in logs]
    assert events == ["Starting collect", "Halfway", "Completed collect"]
    assert logs[-1]["status"] == "success"
    assert logs[-1]["rows"] == 10


def test_pipeline_logger_failure():
    """Test that failures are logged and re-raised."""
    with capture_logs() as logs:
        logger = structlog.get_logger()
        with pytest.raises(RuntimeError):
            with PipelineLogger(logger, "merge"):
                raise RuntimeError("partial missing")
    assert logs[-1]["event"] == "Failed merge"
    assert logs[-1]["error_type"] == "RuntimeError"
    assert logs[-1]["log_level"] == "error"


def test_performance_monitor():
    """Test named timers."""
    with capture_logs():
        monitor = PerformanceMonitor(structlog.get_logger())
        monitor.start_timer("collection")
        duration = monitor.stop_timer("collection")
        monitor.log_memory_usage(partition=0)
    assert duration >= 0
    assert monitor.get_summary() == {"collection": duration}
    with pytest.raises(ValueError, match="was not started"):
        monitor.stop_timer("merge")


def test_log_error():
    """Test error events carry type and context."""
    with capture_logs() as logs:
        log_error(structlog.get_logger(), KeyError("chr9"), context={"row": 4})
    assert logs[0]["error_type"] == "KeyError"
    assert logs[0]["context"] == {"row": 4}
