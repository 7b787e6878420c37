"""
Resolution of relative region specifications into absolute regions.
"""

import math

from ..errors import RegionError
from ..models.features import Anchor, Feature, Region, RelativeSpec, SpecMode


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from minus infinity."""
    return int(math.floor(value + 0.5))


def midpoint(feature: Feature) -> int:
    """Middle coordinate of a feature."""
    return feature.start + int(math.floor(feature.length / 2 + 0.5))


def resolve_offsets(
    feature: Feature,
    start_offset: int,
    stop_offset: int,
    anchor: Anchor = Anchor.FIVE_PRIME
) -> Region:
    """
    Build a region from bp offsets relative to one end of a feature.

    Offsets follow the feature's orientation: on the reverse strand the
    five prime end is ``feature.end`` and positive offsets move toward
    lower coordinates. Unstranded features are treated as forward.

    Args:
        feature: Feature the offsets are relative to
        start_offset: Offset of the region start
        stop_offset: Offset of the region stop
        anchor: Feature end the offsets are measured from

    Returns:
        Region in absolute coordinates

    Raises:
        RegionError: if the resulting bounds are flipped or below 1
    """
    if anchor == Anchor.MIDDLE:
        mid = midpoint(feature)
        start, end = mid + start_offset, mid + stop_offset
    elif anchor == Anchor.FIVE_PRIME:
        if feature.is_reverse:
            start, end = feature.end - stop_offset, feature.end - start_offset
        else:
            start, end = feature.start + start_offset, feature.start + stop_offset
    elif anchor == Anchor.THREE_PRIME:
        if feature.is_reverse:
            start, end = feature.start - stop_offset, feature.start - start_offset
        else:
            start, end = feature.end + start_offset, feature.end + stop_offset
    else:
        raise RegionError(f"unknown anchor '{anchor}'")

    return Region(
        chromosome=feature.chromosome,
        start=start,
        end=end,
        strand=feature.strand,
    )


def fraction_to_offsets(feature: Feature, start_fraction: float, stop_fraction: float):
    """Convert fractions of the feature length to bp offsets."""
    return (
        round_half_up(start_fraction * feature.length),
        round_half_up(stop_fraction * feature.length),
    )


def resolve(feature: Feature, spec: RelativeSpec) -> Region:
    """
    Resolve a feature and a relative specification into a region.

    Fractional specifications fall back to the whole feature when the
    feature is shorter than ``spec.min_feature_length``.
    """
    if spec.mode == SpecMode.WHOLE:
        return whole_region(feature)

    if spec.mode == SpecMode.ABSOLUTE:
        return resolve_offsets(feature, spec.start_offset, spec.stop_offset, spec.anchor)

    if spec.mode == SpecMode.FRACTIONAL:
        if feature.length < spec.min_feature_length:
            return whole_region(feature)
        start_offset, stop_offset = fraction_to_offsets(
            feature, spec.start_fraction, spec.stop_fraction
        )
        return resolve_offsets(feature, start_offset, stop_offset, spec.anchor)

    raise RegionError(f"unknown specification mode '{spec.mode}'")


def whole_region(feature: Feature) -> Region:
    """The feature's own coordinates as a region."""
    return Region(
        chromosome=feature.chromosome,
        start=feature.start,
        end=feature.end,
        strand=feature.strand,
    )


def extend_region(region: Region, extension: int) -> Region:
    """Grow a region on both sides, clamping the start at position 1."""
    if extension <= 0:
        return region
    return Region(
        chromosome=region.chromosome,
        start=max(1, region.start - extension),
        end=region.end + extension,
        strand=region.strand,
    )


def to_relative_position(feature: Feature, position: int) -> int:
    """
    Position relative to the feature's five prime end, 1-based.

    The first base of the feature is 1, upstream flank positions are 0 or
    negative and downstream positions exceed the feature length.
    """
    if feature.is_reverse:
        return feature.end - position + 1
    return position - feature.start + 1
