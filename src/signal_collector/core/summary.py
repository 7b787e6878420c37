"""
Profile summaries of a binned result table.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ..models.features import Bin, BinUnit
from .tables import numeric_columns, write_table

# Nominal feature length the percentage bins are scaled to
NOMINAL_LENGTH = 1000

_BIN_SUFFIX = re.compile(r":[\-\d.%bp]+$")


def bin_midpoint(bin: Bin, after_percent: bool = False) -> int:
    """
    Plotting position of a bin.

    Percentage bins are scaled to a feature of ``NOMINAL_LENGTH`` bp, bp
    flanks that follow percentage bins are shifted past its end.
    """
    midpoint = int((bin.relative_start + bin.relative_stop) / 2)
    if bin.unit == BinUnit.PERCENT:
        midpoint *= NOMINAL_LENGTH // 100
    elif after_percent:
        midpoint += NOMINAL_LENGTH
    return midpoint


def column_mean(values: pd.Series, log2: bool = False) -> float:
    """Mean of a column over all rows, treating no-values as 0."""
    data = values.fillna(0.0).to_numpy(dtype=float)
    if data.size == 0:
        return float("nan")
    if log2:
        data = np.power(2.0, data)
    mean = float(np.mean(data))
    if log2:
        return float(np.log2(mean)) if mean > 0 else float("nan")
    return mean


def summarize(
    frame: pd.DataFrame,
    bins: List[Bin],
    datasets: List[str],
    log2: Dict[str, bool]
) -> pd.DataFrame:
    """
    Average every bin column across all rows of a result table.

    Args:
        frame: Result table, numeric or as read back from disk
        bins: Bin layout of the run
        datasets: Dataset names, in column order
        log2: Whether each dataset holds log2 values

    Returns:
        One row per bin with ``Window`` and ``Midpoint`` columns and one
        mean column per dataset
    """
    windows, midpoints = [], []
    seen_percent = False
    for b in bins:
        seen_percent = seen_percent or b.unit == BinUnit.PERCENT
        windows.append(b.column_name(datasets[0]))
        midpoints.append(bin_midpoint(b, after_percent=seen_percent))

    summary = pd.DataFrame({"Window": windows, "Midpoint": midpoints})
    for dataset in datasets:
        columns = [b.column_name(dataset) for b in bins]
        values = numeric_columns(frame, columns)
        summary[dataset] = [
            column_mean(values[column], log2.get(dataset, False)) for column in columns
        ]
    return summary


def summary_path(output: Path) -> Path:
    """``out.txt`` becomes ``out_summary.txt``."""
    output = Path(output)
    name = re.sub(r"\.txt(\.gz)?$", "", output.name, flags=re.IGNORECASE)
    return output.with_name(f"{name}_summary.txt")


def write_summary(
    frame: pd.DataFrame,
    bins: List[Bin],
    datasets: List[str],
    log2: Dict[str, bool],
    output: Path,
    decimal_places: Optional[int] = None
) -> Path:
    """Write the profile summary beside the output table."""
    return write_table(summarize(frame, bins, datasets, log2), summary_path(output), decimal_places)


def column_groups(columns: List[str]) -> pd.DataFrame:
    """Map each bin column to the dataset it belongs to."""
    return pd.DataFrame({
        "Name": columns,
        "Dataset": [_BIN_SUFFIX.sub("", column) for column in columns],
    })


def groups_path(output: Path) -> Path:
    """``out.txt`` becomes ``out.col_groups.txt``."""
    output = Path(output)
    name = re.sub(r"\.txt(\.gz)?$", "", output.name, flags=re.IGNORECASE)
    return output.with_name(f"{name}.col_groups.txt")


def write_column_groups(columns: List[str], output: Path) -> Path:
    """Write the column group file beside the output table."""
    return write_table(column_groups(columns), groups_path(output))
