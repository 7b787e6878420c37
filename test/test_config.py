#!/usr/bin/env python3
"""
Tests for run configuration and collector settings.
"""

from pathlib import Path

import pytest

from signal_collector.config.settings import CollectorSettings, RunConfig, load_settings
from signal_collector.errors import ConfigError
from signal_collector.models.features import SpecMode
from signal_collector.models.options import Method, SourceSpec, ValueType


@pytest.fixture
def dataset():
    return SourceSpec.from_locator("coverage.bw")


def test_run_config_defaults(dataset):
    """Test default run options."""
    config = RunConfig(datasets=[dataset])
    assert config.method == Method.MEAN
    assert config.bin_count == 10
    assert config.flank_count == 0
    assert config.long_threshold_bp == 3000
    assert config.relative_spec.mode == SpecMode.WHOLE
    assert not config.interpolate


def test_run_config_is_frozen(dataset):
    """Test that the run configuration cannot change once built."""
    config = RunConfig(datasets=[dataset])
    with pytest.raises(Exception):
        config.bin_count = 5


def test_unknown_method_is_config_error(dataset):
    """Test that unknown methods fail before any row is processed."""
    with pytest.raises(ConfigError, match="unrecognized"):
        RunConfig(datasets=[dataset], method="geomean")


def test_method_names_are_case_insensitive(dataset):
    """Test method name parsing."""
    assert RunConfig(datasets=[dataset], method="MEDIAN").method == Method.MEDIAN


@pytest.mark.parametrize("kwargs", [
    {"bin_count": 0},
    {"flank_count": -1},
    {"flank_size_bp": 0},
    {"decimal_places": -2},
])
def test_invalid_layout_is_config_error(dataset, kwargs):
    """Test validation of the bin layout options."""
    with pytest.raises(ConfigError):
        RunConfig(datasets=[dataset], **kwargs)


def test_datasets_are_required():
    """Test that a run needs at least one dataset."""
    with pytest.raises(ConfigError):
        RunConfig(datasets=[])


def test_rpm_requires_library_size(dataset):
    """Test that normalized methods need a library size."""
    with pytest.raises(ConfigError, match="library size"):
        RunConfig(datasets=[dataset], method="rpm")

    config = RunConfig(datasets=[dataset], method="rpm", library_size=1000)
    assert config.library_size_for(dataset) == 1000
    assert config.effective_value_type == ValueType.COUNT


def test_library_size_per_dataset():
    """Test library sizes carried by the datasets themselves."""
    sized = SourceSpec.from_locator("a.bam", library_size=5000)
    config = RunConfig(datasets=[sized], method="rpkm")
    assert config.library_size_for(sized) == 5000

    with pytest.raises(ConfigError, match="b"):
        RunConfig(datasets=[sized, SourceSpec.from_locator("b.bam")], method="rpm")


def test_log2_inference():
    """Test log2 detection from dataset names unless set explicitly."""
    logged = SourceSpec.from_locator("chip_log2FE.bw")
    plain = SourceSpec.from_locator("chip.bw")
    config = RunConfig(datasets=[logged, plain])
    assert config.is_log2(logged)
    assert not config.is_log2(plain)
    assert not RunConfig(datasets=[logged], log2=False).is_log2(logged)


def test_collector_settings_defaults():
    """Test default collector settings."""
    settings = CollectorSettings()
    assert settings.workers == 4
    assert settings.executor == "process"
    assert settings.min_rows_per_worker == 100


def test_collector_settings_from_environment(monkeypatch):
    """Test settings read from prefixed environment variables."""
    monkeypatch.setenv("SIGNAL_COLLECTOR_WORKERS", "8")
    monkeypatch.setenv("SIGNAL_COLLECTOR_EXECUTOR", "THREAD")
    settings = CollectorSettings()
    assert settings.workers == 8
    assert settings.executor == "thread"


@pytest.mark.parametrize("kwargs", [{"workers": 0}, {"executor": "cluster"}, {"log_format": "xml"}])
def test_collector_settings_validation(kwargs):
    """Test that invalid settings are rejected."""
    with pytest.raises(ValueError):
        CollectorSettings(**kwargs)


def test_load_settings(tmp_path):
    """Test loading settings from an ini file."""
    config_file = tmp_path / "config.ini"
    config_file.write_text(
        "[Parallel]\n"
        "WORKERS = 2\n"
        "EXECUTOR = thread\n"
        "[Output]\n"
        f"OUTPUT_DIR = {tmp_path / 'results'}\n"
        "SUMMARY = yes\n"
        "[Logging]\n"
        "LOG_LEVEL = DEBUG\n"
    )
    settings = load_settings(config_file)
    assert settings.workers == 2
    assert settings.executor == "thread"
    assert settings.output_dir == tmp_path / "results"
    assert settings.write_summary
    assert not settings.write_groups
    assert settings.log_level == "DEBUG"


def test_load_settings_missing_file(tmp_path):
    """Test that a missing configuration file is reported."""
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.ini")


def test_validate_setup(tmp_path):
    """Test detection of missing datasets before a run."""
    present = tmp_path / "present.bdg"
    present.write_text("chr1\t0\t10\t1\n")
    settings = CollectorSettings(output_dir=tmp_path)
    errors = settings.validate_setup([
        SourceSpec.from_locator(str(present)),
        SourceSpec.from_locator(str(tmp_path / "absent.bw")),
    ])
    assert errors == [f"Dataset not found: {tmp_path / 'absent.bw'}"]
    assert isinstance(settings.output_dir, Path)
