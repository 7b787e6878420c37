"""
Placement of bins on a feature and the raw scores they are cut from.

Two strategies are used. Short regions are queried once and the raw
position scores are sliced per bin; long regions are queried bin by bin.
Both address the same positions so they produce the same values.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from ..models.features import Bin, BinUnit, Feature, Region, SignalPoint
from ..models.options import Stranded, ValueType
from .aggregation import keep_point, point_value
from .coordinates import extend_region, round_half_up, to_relative_position
from .windows import extension_bp

DEFAULT_THRESHOLD_BP = 3000


class BinAssignment(NamedTuple):
    """Where the values of every bin of one feature come from."""

    long: bool
    query_region: Optional[Region]
    windows: List[Tuple[int, int]]
    regions: List[Optional[Region]]


def relative_window(bin: Bin, feature_length: int) -> Tuple[int, int]:
    """
    Inclusive window of 5'-relative positions covered by a bin.

    Positions count from 1 at the feature's five prime end, see
    ``coordinates.to_relative_position``.
    """
    if bin.unit == BinUnit.PERCENT:
        lo = round_half_up(bin.relative_start * 0.01 * feature_length) + 1
        hi = round_half_up(bin.relative_stop * 0.01 * feature_length)
    elif bin.relative_start < 0:
        # 5' flank, measured back from the first base
        lo = int(bin.relative_start) + 1
        hi = int(bin.relative_stop)
    else:
        # 3' flank, measured on from the last base
        lo = feature_length + int(bin.relative_start) + 1
        hi = feature_length + int(bin.relative_stop)
    if hi < lo:
        # too narrow after rounding, still query one position
        hi = lo
    return lo, hi


def window_region(feature: Feature, window: Tuple[int, int]) -> Optional[Region]:
    """
    Absolute region of a relative window on a feature.

    The start is clamped at position 1 like ``extend_region`` clamps the
    short path query. None when the whole window lies before position 1.
    """
    lo, hi = window
    if feature.is_reverse:
        start, end = feature.end - hi + 1, feature.end - lo + 1
    else:
        start, end = feature.start + lo - 1, feature.start + hi - 1
    if end < 1:
        return None
    return Region(
        chromosome=feature.chromosome,
        start=max(1, start),
        end=end,
        strand=feature.strand,
    )


def use_long_path(
    region: Region,
    extension: int,
    threshold_bp: int = DEFAULT_THRESHOLD_BP,
    force_long: bool = False
) -> bool:
    """Whether bins of this region should be queried independently."""
    return force_long or region.length + 2 * extension > threshold_bp


def assign(
    region: Region,
    feature: Feature,
    bins: List[Bin],
    threshold_bp: int = DEFAULT_THRESHOLD_BP,
    force_long: bool = False
) -> BinAssignment:
    """
    Decide how the bins of a feature are collected.

    Args:
        region: Region of the feature body
        feature: Feature the bins are relative to
        bins: Bin layout of the run
        threshold_bp: Size above which bins are queried one by one
        force_long: Always query bins one by one

    Returns:
        BinAssignment with one window per bin and, on the long path, one
        region per bin (None where the whole bin lies before position 1)
    """
    windows = [relative_window(b, feature.length) for b in bins]
    extension = extension_bp(bins, feature.length)

    if use_long_path(region, extension, threshold_bp, force_long):
        regions = [window_region(feature, window) for window in windows]
        return BinAssignment(long=True, query_region=None, windows=windows, regions=regions)

    return BinAssignment(
        long=False,
        query_region=extend_region(region, extension),
        windows=windows,
        regions=[],
    )


class RawScoreMap:
    """
    Values of one region keyed by 5'-relative position.

    In count mode only a running count per position is kept.
    """

    def __init__(self, value_type: ValueType = ValueType.SCORE):
        self.value_type = value_type
        self._counts: Dict[int, int] = defaultdict(int)
        self._values: Dict[int, List[float]] = defaultdict(list)

    @property
    def counting(self) -> bool:
        return self.value_type == ValueType.COUNT

    def add(self, position: int, value: float = 1.0):
        if self.counting:
            self._counts[position] += 1
        else:
            self._values[position].append(value)

    def values_between(self, lo: int, hi: int) -> List[float]:
        """All values at positions ``lo..hi`` inclusive, in position order."""
        collected = []
        if self.counting:
            for position in range(lo, hi + 1):
                count = self._counts.get(position)
                if count:
                    collected.extend([1.0] * count)
        else:
            for position in range(lo, hi + 1):
                values = self._values.get(position)
                if values:
                    collected.extend(values)
        return collected

    def positions(self) -> List[int]:
        source = self._counts if self.counting else self._values
        return sorted(source)

    def __len__(self) -> int:
        return len(self._counts if self.counting else self._values)

    def __bool__(self) -> bool:
        return len(self) > 0


def build_score_map(
    points: Iterable[SignalPoint],
    feature: Feature,
    value_type: ValueType = ValueType.SCORE,
    stranded: Stranded = Stranded.ALL
) -> RawScoreMap:
    """Strand-filter the points of a query and key them relative to the feature."""
    score_map = RawScoreMap(value_type)
    for point in points:
        if keep_point(point, stranded, feature.strand):
            score_map.add(
                to_relative_position(feature, point.position),
                point_value(point, value_type),
            )
    return score_map
