"""
Shared fixtures for the signal collector tests.
"""

import sys
from pathlib import Path

import pandas as pd
import pytest
import structlog

# Add src to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from signal_collector.core.sources import IntervalSignalSource  # noqa: E402
from signal_collector.core.tables import FeatureTable  # noqa: E402
from signal_collector.models.options import SourceKind, SourceSpec  # noqa: E402


@pytest.fixture
def logger():
    """Create a test logger."""
    return structlog.get_logger()


@pytest.fixture
def write_bedgraph(tmp_path):
    """Write bedGraph rows ``(chrom, start0, end, value[, strand])`` to a file."""
    def _write(rows, name="signal.bdg", track=True):
        path = tmp_path / name
        with open(path, "w") as f:
            if track:
                f.write("track type=bedGraph name=test\n")
            for row in rows:
                f.write("\t".join(str(v) for v in row) + "\n")
        return path
    return _write


@pytest.fixture
def make_source():
    """Build an in-memory interval source from bedGraph-like rows."""
    def _make(rows, name="signal"):
        columns = ["chromosome", "start", "end", "value", "strand"][:len(rows[0])]
        frame = pd.DataFrame(rows, columns=columns)
        spec = SourceSpec(locator=f"{name}.bdg", kind=SourceKind.DATABASE, name=name)
        return IntervalSignalSource(spec, frame)
    return _make


@pytest.fixture
def ramp_rows():
    """chr1 signal rising by one every 10 bp over the first 20 kb."""
    return [("chr1", i * 10, (i + 1) * 10, float(i + 1)) for i in range(2000)]


@pytest.fixture
def feature_table():
    """Build a FeatureTable from ``(chrom, start, stop, strand, name)`` rows."""
    def _make(rows):
        frame = pd.DataFrame(
            [[str(v) for v in row] for row in rows],
            columns=["Chromosome", "Start", "Stop", "Strand", "Name"],
        )
        return FeatureTable(frame)
    return _make
