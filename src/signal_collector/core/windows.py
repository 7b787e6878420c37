"""
Bin layout across a feature body and its flanks.
"""

from typing import List, Optional

from ..errors import ConfigError
from ..models.features import Bin, BinUnit
from .coordinates import round_half_up


def plan(
    bin_count: int,
    flank_count: int = 0,
    flank_size_bp: Optional[int] = None
) -> List[Bin]:
    """
    Plan the ordered bins of a run.

    Body bins split the feature into ``bin_count`` equal percentage
    windows. Flank bins are added symmetrically on both sides, either of
    a fixed bp size or sized like a body bin and placed below 0 and
    above 100 percent.

    Args:
        bin_count: Number of bins across the feature body
        flank_count: Number of flank bins on each side
        flank_size_bp: Fixed size of flank bins in bp

    Returns:
        Bins ordered 5' flank, body, 3' flank
    """
    if bin_count < 1:
        raise ConfigError("Bin count must be positive")
    if flank_count < 0:
        raise ConfigError("Flank count must be non-negative")
    if flank_size_bp is not None and flank_size_bp <= 0:
        raise ConfigError("Flank size must be positive")

    bin_size = 100 / bin_count
    spans = []

    # 5' flank, outermost first
    for i in range(flank_count, 0, -1):
        if flank_size_bp:
            spans.append((-flank_size_bp * i, -flank_size_bp * (i - 1), BinUnit.BASEPAIR, True))
        else:
            spans.append((-bin_size * i, -bin_size * (i - 1), BinUnit.PERCENT, True))

    for i in range(bin_count):
        stop = 100.0 if i == bin_count - 1 else (i + 1) * bin_size
        spans.append((i * bin_size, stop, BinUnit.PERCENT, False))

    # 3' flank, innermost first
    for i in range(flank_count):
        if flank_size_bp:
            spans.append((flank_size_bp * i, flank_size_bp * (i + 1), BinUnit.BASEPAIR, True))
        else:
            spans.append((100 + bin_size * i, 100 + bin_size * (i + 1), BinUnit.PERCENT, True))

    return [
        Bin(index=index, relative_start=start, relative_stop=stop, unit=unit, is_flank=flank)
        for index, (start, stop, unit, flank) in enumerate(spans)
    ]


def body_bins(bins: List[Bin]) -> List[Bin]:
    """Bins covering the feature itself."""
    return [b for b in bins if not b.is_flank]


def flank_count(bins: List[Bin]) -> int:
    """Number of flank bins on each side of the body."""
    return sum(1 for b in bins if b.is_flank) // 2


def extension_bp(bins: List[Bin], feature_length: int) -> int:
    """
    Distance in bp the flank bins reach beyond each end of a feature.

    For bp flanks this is the outermost flank stop, for percentage flanks
    it depends on the feature length.
    """
    flanks = [b for b in bins if b.is_flank]
    if not flanks:
        return 0
    outer = flanks[0]
    if outer.unit == BinUnit.BASEPAIR:
        return int(round(abs(outer.relative_start)))
    return round_half_up(abs(outer.relative_start) * 0.01 * feature_length)


def column_names(bins: List[Bin], dataset: str) -> List[str]:
    """Output column names of the bins for one dataset."""
    return [b.column_name(dataset) for b in bins]
