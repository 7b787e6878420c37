"""
Statistical combination of the values collected over a region.
"""

from typing import Iterable, List, Optional, Union

import numpy as np
import structlog

from ..errors import ConfigError
from ..models.features import AggregationResult, SignalPoint
from ..models.options import Method, Stranded, ValueType

logger = structlog.get_logger("signal_collector.aggregation")

# Methods combined in linear space when the dataset is log2
_DELOG_METHODS = {
    Method.MEAN,
    Method.MEDIAN,
    Method.SUM,
    Method.MIN,
    Method.MAX,
    Method.RANGE,
    Method.STDDEV,
}


def keep_point(point: SignalPoint, stranded: Stranded, region_strand: int) -> bool:
    """Whether a point passes the strand filter for a region."""
    if stranded == Stranded.ALL or point.strand == 0:
        return True
    if stranded == Stranded.SENSE:
        return point.strand == region_strand
    return point.strand != region_strand


def point_value(point: SignalPoint, value_type: ValueType) -> float:
    """The attribute of a point collected for a value type."""
    if value_type == ValueType.COUNT:
        return 1.0
    if value_type == ValueType.LENGTH:
        return float(point.length)
    return float(point.value)


def resolve_value_type(method: Method, value_type: ValueType) -> ValueType:
    """rpm and rpkm are only defined on counts, whatever was requested."""
    if method.is_normalized and value_type != ValueType.COUNT:
        logger.debug(
            "Coercing value type to count",
            method=method.value,
            requested=value_type.value,
        )
        return ValueType.COUNT
    return value_type


def extract_values(
    values: Iterable[Union[SignalPoint, float]],
    stranded: Stranded = Stranded.ALL,
    region_strand: int = 0,
    value_type: ValueType = ValueType.SCORE
) -> List[float]:
    """
    Apply the strand filter and pull out the collected values.

    Plain numbers carry no strand and are kept as they are.
    """
    collected = []
    for item in values:
        if isinstance(item, SignalPoint):
            if keep_point(item, stranded, region_strand):
                collected.append(point_value(item, value_type))
        else:
            collected.append(float(item))
    return collected


def empty_result(method: Method, log2: bool = False) -> AggregationResult:
    """Result for a region where nothing was observed."""
    value = 0.0 if method.zero_when_empty else None
    return AggregationResult(
        value=value,
        method=method.value,
        log2=log2 and method in _DELOG_METHODS,
    )


def aggregate(
    values: Iterable[Union[SignalPoint, float]],
    method: Union[Method, str] = Method.MEAN,
    stranded: Union[Stranded, str] = Stranded.ALL,
    region_strand: int = 0,
    log2: bool = False,
    library_size: Optional[int] = None,
    region_length: Optional[int] = None,
    value_type: Union[ValueType, str] = ValueType.SCORE
) -> AggregationResult:
    """
    Combine the values of one region into a single result.

    Args:
        values: Signal points or plain values collected over the region
        method: Aggregation method name
        stranded: Strand of the signal to keep relative to the region
        region_strand: Strand of the region
        log2: Whether the values are log2 and must be combined in linear space
        library_size: Total library reads, required for rpm and rpkm
        region_length: Length of the region in bp, required for rpkm
        value_type: Attribute collected from signal points

    Returns:
        AggregationResult, with value None when nothing was observed
    """
    method = Method.parse(method)
    stranded = Stranded(stranded)
    value_type = resolve_value_type(method, ValueType(value_type))

    if method.is_normalized and not library_size:
        raise ConfigError(f"method '{method.value}' requires the total library size")
    if method == Method.RPKM and not region_length:
        raise ConfigError("method 'rpkm' requires the region length")

    scores = extract_values(values, stranded, region_strand, value_type)
    if not scores:
        return empty_result(method, log2)

    use_log = log2 and method in _DELOG_METHODS
    data = np.asarray(scores, dtype=float)
    if use_log:
        data = np.power(2.0, data)

    result = combine(data, method, library_size, region_length)

    if use_log:
        if result == 0:
            return AggregationResult(value=None, method=method.value, log2=True)
        result = float(np.log2(result))

    return AggregationResult(value=float(result), method=method.value, log2=use_log)


def combine(
    data: np.ndarray,
    method: Method,
    library_size: Optional[int] = None,
    region_length: Optional[int] = None
) -> float:
    """Reduce a non-empty array with the given method."""
    if method == Method.MEAN:
        return float(np.mean(data))
    if method == Method.MEDIAN:
        return float(np.median(data))
    if method == Method.SUM:
        return float(np.sum(data))
    if method == Method.MIN:
        return float(np.min(data))
    if method == Method.MAX:
        return float(np.max(data))
    if method == Method.RANGE:
        return float(np.max(data) - np.min(data))
    if method == Method.STDDEV:
        # population standard deviation, these are all the values there are
        return float(np.std(data))
    if method == Method.COUNT:
        return float(data.size)
    if method == Method.RPM:
        return float(np.sum(data)) * 1e6 / library_size
    if method == Method.RPKM:
        return float(np.sum(data)) * 1e9 / (region_length * library_size)
    raise ConfigError(f"unrecognized aggregation method '{method}'")
