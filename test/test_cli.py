#!/usr/bin/env python3
"""
Tests for the command-line interface.
"""

from pathlib import Path

import pandas as pd
import pytest
from click.testing import CliRunner
from rich.console import Console

from signal_collector.cli.main import cli, display_results
from signal_collector.config.settings import RunConfig
from signal_collector.core.tables import read_result_table
from signal_collector.models.options import SourceSpec


@pytest.fixture
def inputs(tmp_path, write_bedgraph):
    """A feature table and a flat dataset."""
    dataset = write_bedgraph([("chr1", 0, 100000, 5.0)], name="flat.bdg")
    features = tmp_path / "genes.txt"
    features.write_text(
        "Name\tChromosome\tStart\tStop\tStrand\n"
        "geneA\tchr1\t1001\t2000\t+\n"
        "geneB\tchr1\t5001\t5500\t-\n"
    )
    return features, dataset


def test_bins_command(tmp_path, inputs):
    """Test a binned run with summary and column group files."""
    features, dataset = inputs
    output = tmp_path / "profile.txt"
    result = CliRunner().invoke(cli, [
        "bins",
        "--features", str(features),
        "--data", str(dataset),
        "--out", str(output),
        "--bins", "4",
        "--flanks", "1",
        "--flank-size", "100",
        "--workers", "1",
        "--format", "1",
        "--sum",
        "--groups",
    ])
    assert result.exit_code == 0, result.output

    frame = read_result_table(output)
    assert list(frame.columns)[5:] == ["flat:-100bp", "flat:0%", "flat:25%", "flat:50%", "flat:75%", "flat:0bp"]
    assert frame.iloc[0, 5:].tolist() == ["5.0"] * 6
    assert (tmp_path / "profile_summary.txt").exists()
    assert (tmp_path / "profile.col_groups.txt").read_text().startswith("Name\tDataset\n")


def test_region_command(tmp_path, inputs):
    """Test a single region run upstream of each feature."""
    features, dataset = inputs
    output = tmp_path / "promoters.txt"
    result = CliRunner().invoke(cli, [
        "region",
        "--features", str(features),
        "--data", str(dataset),
        "--out", str(output),
        "--start=-200",
        "--stop=0",
        "--method", "sum",
        "--workers", "1",
    ])
    assert result.exit_code == 0, result.output
    frame = read_result_table(output)
    assert frame["flat"].tolist() == ["1005.0", "1005.0"]


def test_region_command_rejects_mixed_offsets(tmp_path, inputs):
    """Test that bp and fractional offsets cannot be combined."""
    features, dataset = inputs
    result = CliRunner().invoke(cli, [
        "region",
        "--features", str(features),
        "--data", str(dataset),
        "--out", str(tmp_path / "out.txt"),
        "--start=-200",
        "--fstop=0.5",
    ])
    assert result.exit_code == 1
    assert "Cannot combine" in result.output


def test_bins_command_unknown_dataset_type(tmp_path, inputs):
    """Test that unknown dataset types fail before collection."""
    features, _ = inputs
    unknown = tmp_path / "data.xyz"
    unknown.write_text("")
    result = CliRunner().invoke(cli, [
        "bins",
        "--features", str(features),
        "--data", str(unknown),
        "--out", str(tmp_path / "out.txt"),
    ])
    assert result.exit_code == 1
    assert "unable to determine dataset type" in result.output


def test_summary_command(tmp_path):
    """Test summarizing an existing result table."""
    table = tmp_path / "profile.txt"
    table.write_text(
        "Name\tsample:0%\tsample:50%\n"
        "a\t1.0\t2.0\n"
        "b\t3.0\t.\n"
    )
    result = CliRunner().invoke(cli, ["summary", "--input", str(table), "--bins", "2"])
    assert result.exit_code == 0, result.output
    lines = (tmp_path / "profile_summary.txt").read_text().splitlines()
    assert lines[0] == "Window\tMidpoint\tsample"
    assert lines[1] == "sample:0%\t250\t2.0"


def test_display_results_lists_stage_timings(monkeypatch):
    """Test that stage timings are shown with the run summary."""
    recorder = Console(record=True, width=200)
    monkeypatch.setitem(display_results.__globals__, "console", recorder)
    frame = pd.DataFrame({"Name": ["a", "b"], "flat": ["1.0", "2.0"]})
    config = RunConfig(datasets=[SourceSpec.from_locator("flat.bdg")])
    display_results(frame, Path("out.txt"), config, {"read": 0.5, "collection": 1.25})
    text = recorder.export_text()
    assert "Time read (s)" in text
    assert "Time collection (s)" in text
    assert "1.25" in text
