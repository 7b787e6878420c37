"""
Feature tables in, result tables out.

Tables are held as pandas DataFrames of strings so that input columns are
written back exactly as they were read.
"""

import gzip
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pandas as pd

from ..errors import RegionError
from ..models.features import Feature

NULL = "."

# Column name prefixes, matched case-insensitively, in order of preference
COLUMN_PREFIXES = {
    "chromosome": ("chromo", "chr", "seq"),
    "start": ("start",),
    "end": ("stop", "end"),
    "strand": ("strand",),
    "name": ("name", "id"),
}

BED_COLUMNS = ["Chromosome", "Start", "Stop", "Name", "Score", "Strand"]

HEADER_PREFIXES = ("track", "browser", "#")


def count_header_lines(path: Path) -> int:
    """Number of leading track, browser and comment lines of a file."""
    path = Path(path)
    opener = gzip.open if path.suffix.lower() == ".gz" else open
    count = 0
    with opener(path, "rt") as f:
        for line in f:
            if not line.startswith(HEADER_PREFIXES):
                break
            count += 1
    return count


def find_columns(columns: List[str]) -> Dict[str, Optional[str]]:
    """Locate the feature coordinate columns of a table by name prefix."""
    found: Dict[str, Optional[str]] = {}
    lowered = [(str(c).lower(), c) for c in columns]
    for key, prefixes in COLUMN_PREFIXES.items():
        found[key] = None
        for prefix in prefixes:
            match = next((c for low, c in lowered if low.startswith(prefix)), None)
            if match is not None:
                found[key] = match
                break
    return found


def parse_strand(value) -> int:
    """Convert a strand notation to 1, -1 or 0."""
    text = str(value).strip()
    if text in ("+", "1", "+1", "f", "w", "watson"):
        return 1
    if text in ("-", "-1", "r", "c", "crick"):
        return -1
    return 0


class FeatureTable:
    """A table of features with located coordinate columns."""

    def __init__(self, frame: pd.DataFrame, columns: Optional[Dict[str, Optional[str]]] = None):
        self.frame = frame.reset_index(drop=True)
        self.columns = columns or find_columns(list(self.frame.columns))
        for key in ("chromosome", "start", "end"):
            if self.columns.get(key) is None:
                raise ValueError(f"Feature table has no {key} column")

    def row_count(self) -> int:
        return len(self.frame)

    def __len__(self) -> int:
        return self.row_count()

    def feature(self, index: int) -> Feature:
        """
        Build the feature of one row.

        Raises:
            RegionError: if the row's coordinates are unusable
        """
        row = self.frame.iloc[index]
        try:
            start = int(float(row[self.columns["start"]]))
            end = int(float(row[self.columns["end"]]))
        except (TypeError, ValueError) as e:
            raise RegionError(f"row {index}: invalid coordinates") from e
        if start < 1 or end < start:
            raise RegionError(f"row {index}: invalid bounds {start}-{end}")
        strand_column = self.columns.get("strand")
        name_column = self.columns.get("name")
        return Feature(
            chromosome=str(row[self.columns["chromosome"]]),
            start=start,
            end=end,
            strand=parse_strand(row[strand_column]) if strand_column else 0,
            name=str(row[name_column]) if name_column else None,
        )

    def features(self) -> Iterator[Feature]:
        for index in range(self.row_count()):
            yield self.feature(index)

    def slice_rows(self, start: int, end: int) -> "FeatureTable":
        """Rows ``start:end`` as a new table sharing the column layout."""
        return FeatureTable(self.frame.iloc[start:end].copy(), dict(self.columns))


def read_feature_table(path: Path) -> FeatureTable:
    """
    Read a tab-delimited feature table.

    Leading ``#``, track and browser lines are skipped, then the first
    line is the header.
    BED files have no header and 0-based starts, which are shifted to
    1-based coordinates.
    """
    path = Path(path)
    suffixes = [s.lower() for s in path.suffixes if s.lower() != ".gz"]
    if suffixes and suffixes[-1] == ".bed":
        frame = pd.read_csv(
            path,
            sep="\t",
            header=None,
            skiprows=count_header_lines(path),
            dtype=str,
            keep_default_na=False,
        )
        frame = frame.iloc[:, :len(BED_COLUMNS)]
        frame.columns = BED_COLUMNS[:frame.shape[1]]
        frame["Start"] = (frame["Start"].astype(int) + 1).astype(str)
        return FeatureTable(frame)

    frame = pd.read_csv(
        path,
        sep="\t",
        skiprows=count_header_lines(path),
        dtype=str,
        keep_default_na=False,
    )
    return FeatureTable(frame)


def write_table(
    frame: pd.DataFrame,
    path: Path,
    decimal_places: Optional[int] = None,
    compress: bool = False
) -> Path:
    """
    Write a result table as tab-delimited text, nulls as ``.``.

    Returns:
        Path of the written file
    """
    path = Path(path)
    if compress and path.suffix != ".gz":
        path = path.with_name(path.name + ".gz")
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(
        path,
        sep="\t",
        index=False,
        na_rep=NULL,
        float_format=f"%.{decimal_places}f" if decimal_places is not None else None,
        compression="gzip" if compress else None,
    )
    return path


def read_result_table(path: Path) -> pd.DataFrame:
    """Read a written result table back as strings, unchanged."""
    return pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)


def numeric_columns(frame: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    """Selected columns as floats, with ``.`` and blanks as NaN."""
    return frame[columns].apply(pd.to_numeric, errors="coerce")
