#!/usr/bin/env python3
"""
Tests for import functionality.
"""

import pytest


def test_models_imports():
    """Test that models can be imported correctly."""
    try:
        from signal_collector.models import (
            Feature,
            Region,
            RelativeSpec,
            Bin,
            AggregationResult,
            RowResult,
            WorkerPartition,
            SourceSpec,
        )
        assert Feature is not None
        assert Region is not None
        assert RelativeSpec is not None
        assert Bin is not None
        assert AggregationResult is not None
        assert RowResult is not None
        assert WorkerPartition is not None
        assert SourceSpec is not None
    except ImportError as e:
        pytest.fail(f"Failed to import models: {e}")


def test_config_imports():
    """Test that config can be imported correctly."""
    try:
        from signal_collector.config import RunConfig, CollectorSettings, load_settings
        assert RunConfig is not None
        assert CollectorSettings is not None
        assert load_settings is not None
    except ImportError as e:
        pytest.fail(f"Failed to import config: {e}")


def test_core_imports():
    """Test that core modules can be imported correctly."""
    try:
        from signal_collector.core import (
            coordinates,
            windows,
            aggregation,
            binning,
            interpolation,
            sources,
            tables,
            summary,
            ParallelCoordinator,
            collect_bins_frame,
            collect_region_frame,
        )
        assert coordinates is not None
        assert windows is not None
        assert aggregation is not None
        assert binning is not None
        assert interpolation is not None
        assert sources is not None
        assert tables is not None
        assert summary is not None
        assert ParallelCoordinator is not None
        assert collect_bins_frame is not None
        assert collect_region_frame is not None
    except ImportError as e:
        pytest.fail(f"Failed to import core modules: {e}")


def test_utils_imports():
    """Test that utils can be imported correctly."""
    try:
        from signal_collector.utils import (
            setup_logging,
            get_logger,
            PipelineLogger,
            PerformanceMonitor,
            log_error,
        )
        assert setup_logging is not None
        assert get_logger is not None
        assert PipelineLogger is not None
        assert PerformanceMonitor is not None
        assert log_error is not None
    except ImportError as e:
        pytest.fail(f"Failed to import utils: {e}")


def test_lazy_getters():
    """Test the package level lazy getters."""
    import signal_collector

    assert signal_collector.get_coordinator().__name__ == "ParallelCoordinator"
    assert signal_collector.get_run_config().__name__ == "RunConfig"
    assert signal_collector.get_feature_table().__name__ == "FeatureTable"
    assert signal_collector.__version__ == "1.0.0"


def test_cli_imports():
    """Test that the CLI can be imported correctly."""
    try:
        from signal_collector.cli import cli, main
        assert cli is not None
        assert main is not None
    except ImportError as e:
        pytest.fail(f"Failed to import CLI: {e}")
