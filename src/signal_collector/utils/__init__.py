"""
Utility modules for the signal collector.
"""

from .logging import (
    setup_logging,
    get_logger,
    PipelineLogger,
    PerformanceMonitor,
    log_file_operation,
    log_error,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "PipelineLogger",
    "PerformanceMonitor",
    "log_file_operation",
    "log_error",
]
