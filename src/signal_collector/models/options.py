"""
Option types shared by the configuration and the collection engine.
"""

from enum import Enum
from pathlib import PurePath
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..errors import ConfigError


class Method(str, Enum):
    """Statistical method used to combine the values of a region."""

    MEAN = "mean"
    MEDIAN = "median"
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    RANGE = "range"
    STDDEV = "stddev"
    COUNT = "count"
    RPM = "rpm"
    RPKM = "rpkm"

    @classmethod
    def parse(cls, name) -> "Method":
        """Look up a method by name, raising ConfigError if unknown."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower())
        except ValueError:
            raise ConfigError(f"unrecognized aggregation method '{name}'") from None

    @property
    def is_normalized(self) -> bool:
        return self in (Method.RPM, Method.RPKM)

    @property
    def zero_when_empty(self) -> bool:
        return self in (Method.SUM, Method.COUNT, Method.RPM, Method.RPKM)


class ValueType(str, Enum):
    """Which attribute of a signal point is collected."""

    SCORE = "score"
    COUNT = "count"
    LENGTH = "length"


class Stranded(str, Enum):
    """Strand of the signal relative to the feature."""

    ALL = "all"
    SENSE = "sense"
    ANTISENSE = "antisense"


class SourceKind(str, Enum):
    """Backend used to read a dataset, fixed when the run is configured."""

    BIGWIG = "bigwig"
    BIGBED = "bigbed"
    BAM = "bam"
    DATABASE = "database"


_EXTENSIONS = {
    ".bw": SourceKind.BIGWIG,
    ".bigwig": SourceKind.BIGWIG,
    ".bb": SourceKind.BIGBED,
    ".bigbed": SourceKind.BIGBED,
    ".bam": SourceKind.BAM,
    ".cram": SourceKind.BAM,
    ".bdg": SourceKind.DATABASE,
    ".bedgraph": SourceKind.DATABASE,
    ".tsv": SourceKind.DATABASE,
    ".txt": SourceKind.DATABASE,
}


def _split_extension(locator: str):
    path = PurePath(locator.replace("file:", "", 1))
    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] == ".gz":
        suffixes = suffixes[:-1]
    extension = suffixes[-1] if suffixes else ""
    stem = path.name
    for suffix in reversed(path.suffixes):
        if suffix.lower() == ".gz" or suffix.lower() == extension:
            stem = stem[: -len(suffix)]
        if suffix.lower() == extension:
            break
    return extension, stem


class SourceSpec(BaseModel):
    """Picklable description of a dataset, opened independently by each worker."""

    model_config = {"frozen": True}

    locator: str = Field(description="File path of the dataset")
    kind: SourceKind = Field(description="Backend reading the dataset")
    name: str = Field(description="Dataset name used in column headers")
    min_mapq: int = Field(default=0, description="Minimum mapping quality for alignments")
    library_size: Optional[int] = Field(
        default=None, description="Total reads of the dataset, for rpm and rpkm"
    )

    @field_validator("min_mapq")
    @classmethod
    def validate_mapq(cls, v):
        """Validate that mapping quality is non-negative."""
        if v < 0:
            raise ValueError("Mapping quality must be non-negative")
        return v

    @field_validator("library_size")
    @classmethod
    def validate_library_size(cls, v):
        """Validate that the library size is positive when given."""
        if v is not None and v <= 0:
            raise ValueError("Library size must be positive")
        return v

    @classmethod
    def from_locator(cls, locator: str, kind: Optional[SourceKind] = None,
                     name: Optional[str] = None, min_mapq: int = 0,
                     library_size: Optional[int] = None) -> "SourceSpec":
        """Resolve the backend of a dataset from its file extension."""
        extension, stem = _split_extension(str(locator))
        if kind is None:
            if extension not in _EXTENSIONS:
                raise ConfigError(f"unable to determine dataset type for '{locator}'")
            kind = _EXTENSIONS[extension]
        return cls(
            locator=str(locator),
            kind=kind,
            name=name or stem,
            min_mapq=min_mapq,
            library_size=library_size,
        )

    @property
    def looks_log2(self) -> bool:
        return "log2" in self.name.lower()
