"""
Filling of short gaps between bins from their neighbours.
"""

import math
from typing import List, Optional, Sequence

from ..models.features import AggregationResult, RowResult

# Longest run of empty bins that is filled, longer runs stay empty
MAX_GAP = 3


def interpolate(values: Sequence[Optional[float]], log2: bool = False) -> List[Optional[float]]:
    """
    Linearly fill interior runs of up to three empty bins.

    A run is filled only when real values sit on both sides of it, so the
    first and last bins are never changed. With ``log2`` the fill is done
    on de-logged values and converted back.

    Args:
        values: Bin values, None for no value
        log2: Whether the values are log2 transformed

    Returns:
        New list with gaps filled where possible
    """
    filled = list(values)
    last = len(filled) - 1
    i = 1
    while i < last:
        if filled[i] is not None or filled[i - 1] is None:
            i += 1
            continue

        # find the end of the run of empty bins
        j = i
        while j <= last and filled[j] is None:
            j += 1
        gap = j - i
        if j > last or gap > MAX_GAP:
            i = j
            continue

        begin, end = filled[i - 1], filled[j]
        if log2:
            begin, end = 2.0 ** begin, 2.0 ** end
        step = (end - begin) / (gap + 1)
        for k in range(gap):
            value = begin + step * (k + 1)
            filled[i + k] = math.log2(value) if log2 else value
        i = j
    return filled


def interpolate_row(row: RowResult, start: int = 0, stop: Optional[int] = None) -> RowResult:
    """
    Interpolate the bins ``start:stop`` of a row in place.

    Rows holding several datasets are interpolated one dataset block at a
    time so gaps are never bridged across datasets.
    """
    stop = len(row.values) if stop is None else stop
    block = row.values[start:stop]
    if len(block) < 3:
        return row
    log2 = any(result.log2 for result in block)
    method = block[0].method
    filled = interpolate([result.value for result in block], log2=log2)
    for offset, (old, new) in enumerate(zip(block, filled)):
        if old.value is None and new is not None:
            row.values[start + offset] = AggregationResult(value=new, method=method, log2=log2)
    return row


def interpolate_rows(rows: List[RowResult]) -> List[RowResult]:
    """Interpolate every multi-bin row in place."""
    for row in rows:
        interpolate_row(row)
    return rows
