#!/usr/bin/env python3
"""
Tests for signal sources and dataset specifications.
"""

import pytest

from signal_collector.core.sources import IntervalSignalSource, open_source, read_interval_table
from signal_collector.errors import BackendError, ConfigError
from signal_collector.models.options import SourceKind, SourceSpec


def test_interval_source_reports_every_covered_position(make_source):
    """Test per-position points from bedGraph intervals."""
    source = make_source([("chr1", 0, 10, 1.0), ("chr1", 10, 20, 2.0)])
    points = list(source.query("chr1", 5, 15))
    assert [p.position for p in points] == list(range(5, 16))
    assert [p.value for p in points] == [1.0] * 6 + [2.0] * 5
    assert all(p.length == 10 for p in points)


def test_interval_source_long_interval_overlap(make_source):
    """Test that an interval starting far before the query is still found."""
    source = make_source([("chr1", 0, 100000, 5.0), ("chr1", 200000, 200010, 1.0)])
    points = list(source.query("chr1", 50000, 50004))
    assert [p.value for p in points] == [5.0] * 5


def test_interval_source_unknown_chromosome(make_source):
    """Test that missing chromosomes yield nothing."""
    source = make_source([("chr1", 0, 10, 1.0)])
    assert list(source.query("chrX", 1, 100)) == []


def test_interval_source_strand(make_source):
    """Test strand filtering in queries."""
    source = make_source([
        ("chr1", 0, 2, 1.0, "+"),
        ("chr1", 2, 4, 2.0, "-"),
        ("chr1", 4, 6, 3.0, "."),
    ])
    points = list(source.query("chr1", 1, 6, strand=1))
    assert [p.value for p in points] == [1.0, 1.0, 3.0, 3.0]
    assert source.total_count() == 3


def test_read_interval_table(write_bedgraph):
    """Test reading a bedGraph file with a track line."""
    path = write_bedgraph([("chr1", 0, 10, 1.5), ("chr2", 5, 10, 2)])
    frame = read_interval_table(path)
    assert list(frame.columns) == ["chromosome", "start", "end", "value"]
    assert len(frame) == 2
    assert frame["value"].tolist() == [1.5, 2.0]


def test_read_interval_table_too_few_columns(write_bedgraph):
    """Test that tables without values are rejected."""
    path = write_bedgraph([("chr1", 0, 10)], track=False)
    with pytest.raises(BackendError):
        read_interval_table(path)


def test_open_source(write_bedgraph):
    """Test opening a bedGraph dataset through its spec."""
    path = write_bedgraph([("chr1", 0, 10, 1.0)])
    spec = SourceSpec.from_locator(str(path))
    assert spec.kind == SourceKind.DATABASE
    with open_source(spec) as source:
        assert isinstance(source, IntervalSignalSource)
        assert len(list(source.query("chr1", 1, 10))) == 10


def test_open_missing_source(tmp_path):
    """Test that a missing dataset is a backend error."""
    spec = SourceSpec.from_locator(str(tmp_path / "missing.bw"))
    with pytest.raises(BackendError, match="not found"):
        open_source(spec)


@pytest.mark.parametrize("locator, kind, name", [
    ("data/sample.bw", SourceKind.BIGWIG, "sample"),
    ("data/peaks.bigBed", SourceKind.BIGBED, "peaks"),
    ("reads.bam", SourceKind.BAM, "reads"),
    ("cov.log2.bedgraph.gz", SourceKind.DATABASE, "cov.log2"),
    ("file:cov.bdg", SourceKind.DATABASE, "cov"),
])
def test_source_kind_from_locator(locator, kind, name):
    """Test dataset kind detection from the file extension."""
    spec = SourceSpec.from_locator(locator)
    assert spec.kind == kind
    assert spec.name == name


def test_unknown_source_kind():
    """Test that unknown extensions fail at configuration time."""
    with pytest.raises(ConfigError):
        SourceSpec.from_locator("sample.xyz")


def test_log2_name_detection():
    """Test log2 inference from the dataset name."""
    assert SourceSpec.from_locator("chip_log2FE.bw").looks_log2
    assert not SourceSpec.from_locator("chip.bw").looks_log2
