"""
Data models for features, regions, bins and collected values.
"""

from enum import Enum
from typing import List, NamedTuple, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ..errors import RegionError


class Anchor(str, Enum):
    """Feature end that relative offsets are measured from."""

    FIVE_PRIME = "five_prime"
    THREE_PRIME = "three_prime"
    MIDDLE = "middle"


class SpecMode(str, Enum):
    """How a relative region is derived from a feature."""

    WHOLE = "whole"
    ABSOLUTE = "absolute"
    FRACTIONAL = "fractional"


class BinUnit(str, Enum):
    """Unit of a bin's relative coordinates."""

    PERCENT = "percent"
    BASEPAIR = "basepair"

    @property
    def suffix(self) -> str:
        return "%" if self is BinUnit.PERCENT else "bp"


class Feature(BaseModel):
    """A flat genomic feature taken from one row of the input table."""

    model_config = {"frozen": True}

    chromosome: str = Field(description="Chromosome name")
    start: int = Field(description="Start position (1-based, inclusive)")
    end: int = Field(description="End position (1-based, inclusive)")
    strand: int = Field(default=0, description="Strand: 1, -1 or 0 for unstranded")
    name: Optional[str] = Field(default=None, description="Feature name")

    @field_validator("strand")
    @classmethod
    def validate_strand(cls, v):
        """Validate that strand is one of 1, -1 or 0."""
        if v not in (1, -1, 0):
            raise ValueError("Strand must be 1, -1 or 0")
        return v

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def is_reverse(self) -> bool:
        return self.strand < 0

    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"


class Region(BaseModel):
    """Absolute 1-based coordinates ready to query a signal source."""

    model_config = {"frozen": True}

    chromosome: str = Field(description="Chromosome name")
    start: int = Field(description="Start position (1-based, inclusive)")
    end: int = Field(description="End position (1-based, inclusive)")
    strand: int = Field(default=0, description="Strand of the originating feature")

    @model_validator(mode="after")
    def validate_bounds(self):
        """Reject flipped or non-positive bounds instead of repairing them."""
        if self.start < 1 or self.end < self.start:
            raise RegionError(
                f"invalid bounds {self.chromosome}:{self.start}-{self.end}"
            )
        return self

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"


class RelativeSpec(BaseModel):
    """Relative description of a region to collect for every feature."""

    model_config = {"frozen": True}

    mode: SpecMode = Field(default=SpecMode.WHOLE, description="Resolution mode")
    start_offset: int = Field(default=0, description="Start offset in bp")
    stop_offset: int = Field(default=0, description="Stop offset in bp")
    start_fraction: float = Field(default=0.0, description="Start offset as fraction of length")
    stop_fraction: float = Field(default=1.0, description="Stop offset as fraction of length")
    anchor: Anchor = Field(default=Anchor.FIVE_PRIME, description="Reference end of the feature")
    min_feature_length: int = Field(
        default=1000,
        description="Features shorter than this are taken whole in fractional mode"
    )

    @field_validator("min_feature_length")
    @classmethod
    def validate_min_length(cls, v):
        """Validate that the minimum length is non-negative."""
        if v < 0:
            raise ValueError("Minimum feature length must be non-negative")
        return v

    @classmethod
    def whole(cls) -> "RelativeSpec":
        return cls(mode=SpecMode.WHOLE)

    @classmethod
    def absolute(cls, start_offset: int, stop_offset: int,
                 anchor: Anchor = Anchor.FIVE_PRIME) -> "RelativeSpec":
        return cls(
            mode=SpecMode.ABSOLUTE,
            start_offset=start_offset,
            stop_offset=stop_offset,
            anchor=anchor,
        )

    @classmethod
    def fractional(cls, start_fraction: float, stop_fraction: float,
                   anchor: Anchor = Anchor.FIVE_PRIME,
                   min_feature_length: int = 1000) -> "RelativeSpec":
        return cls(
            mode=SpecMode.FRACTIONAL,
            start_fraction=start_fraction,
            stop_fraction=stop_fraction,
            anchor=anchor,
            min_feature_length=min_feature_length,
        )


class Bin(BaseModel):
    """One window of a binned profile, relative to the feature."""

    model_config = {"frozen": True}

    index: int = Field(description="Position of the bin in the layout")
    relative_start: float = Field(description="Relative start (percent or bp)")
    relative_stop: float = Field(description="Relative stop (percent or bp)")
    unit: BinUnit = Field(default=BinUnit.PERCENT, description="Unit of the relative bounds")
    is_flank: bool = Field(default=False, description="Whether the bin lies outside the feature")

    @model_validator(mode="after")
    def validate_span(self):
        """Validate that the bin has a positive span."""
        if self.relative_start >= self.relative_stop:
            raise ValueError("Bin start must be before bin stop")
        return self

    @property
    def size(self) -> float:
        return self.relative_stop - self.relative_start

    @property
    def midpoint(self) -> float:
        return (self.relative_start + self.relative_stop) / 2

    def column_name(self, dataset: str) -> str:
        """Name of the output column for this bin, e.g. ``sample:-10%``."""
        return f"{dataset}:{_format_position(self.relative_start)}{self.unit.suffix}"


def _format_position(value: float) -> str:
    value = round(value, 2)
    if value == int(value):
        return str(int(value))
    return f"{value:g}"


class SignalPoint(NamedTuple):
    """One value reported by a signal source."""

    position: int
    value: float
    strand: int = 0
    length: int = 1


class AggregationResult(BaseModel):
    """Combined value for one region or bin, ``None`` meaning nothing observed."""

    model_config = {"frozen": True}

    value: Optional[float] = Field(default=None, description="Aggregated value")
    method: str = Field(description="Aggregation method used")
    log2: bool = Field(default=False, description="Whether the value is in log2 space")

    @property
    def is_null(self) -> bool:
        return self.value is None


class RowResult(BaseModel):
    """Collected values for one feature, one per bin."""

    feature: Feature = Field(description="Feature the values belong to")
    values: List[AggregationResult] = Field(default_factory=list, description="Values per bin")

    def as_list(self) -> List[Optional[float]]:
        return [result.value for result in self.values]


class WorkerPartition(BaseModel):
    """Contiguous half-open range of table rows owned by one worker."""

    model_config = {"frozen": True}

    index: int = Field(description="Partition index, merge order")
    range_start: int = Field(description="First row (inclusive)")
    range_end: int = Field(description="Last row (exclusive)")

    @model_validator(mode="after")
    def validate_range(self):
        """Validate the row range."""
        if self.range_start < 0 or self.range_end < self.range_start:
            raise ValueError("Partition range is invalid")
        return self

    @property
    def size(self) -> int:
        return self.range_end - self.range_start
