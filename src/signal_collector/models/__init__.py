"""
Data models for the signal collector.
"""

from .features import (
    Anchor,
    SpecMode,
    BinUnit,
    Feature,
    Region,
    RelativeSpec,
    Bin,
    SignalPoint,
    AggregationResult,
    RowResult,
    WorkerPartition,
)
from .options import (
    Method,
    ValueType,
    Stranded,
    SourceKind,
    SourceSpec,
)

__all__ = [
    "Anchor",
    "SpecMode",
    "BinUnit",
    "Feature",
    "Region",
    "RelativeSpec",
    "Bin",
    "SignalPoint",
    "AggregationResult",
    "RowResult",
    "WorkerPartition",
    "Method",
    "ValueType",
    "Stranded",
    "SourceKind",
    "SourceSpec",
]
