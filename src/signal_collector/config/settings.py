"""
Configuration settings for the signal collector.
"""

import configparser
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..errors import ConfigError
from ..models.features import RelativeSpec
from ..models.options import Method, SourceSpec, Stranded, ValueType


class RunConfig(BaseModel):
    """Immutable description of one collection run, shared by every worker."""

    model_config = {"frozen": True}

    datasets: List[SourceSpec] = Field(description="Datasets to collect from")
    method: Method = Field(default=Method.MEAN, description="Aggregation method")
    value_type: ValueType = Field(default=ValueType.SCORE, description="Collected value type")
    stranded: Stranded = Field(default=Stranded.ALL, description="Signal strand relative to feature")
    log2: Optional[bool] = Field(
        default=None,
        description="Whether dataset values are log2; inferred from the dataset name when unset"
    )
    library_size: Optional[int] = Field(
        default=None, description="Total library reads for rpm and rpkm"
    )

    # Bin layout
    bin_count: int = Field(default=10, description="Number of bins across the feature body")
    flank_count: int = Field(default=0, description="Number of flanking bins on each side")
    flank_size_bp: Optional[int] = Field(
        default=None, description="Fixed flank bin size in bp; percent-sized when unset"
    )
    long_threshold_bp: int = Field(
        default=3000, description="Regions longer than this are queried bin by bin"
    )
    force_long: bool = Field(default=False, description="Always query bins independently")
    min_length: Optional[int] = Field(
        default=None, description="Features shorter than this are not binned"
    )
    interpolate: bool = Field(default=False, description="Fill short gaps between bins")

    # Single region collection
    relative_spec: RelativeSpec = Field(
        default_factory=RelativeSpec.whole, description="Region collected per feature"
    )

    # Output
    decimal_places: Optional[int] = Field(default=None, description="Decimal places in output")

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, v):
        """Resolve the method name, failing the run for unknown methods."""
        return Method.parse(v)

    @field_validator("bin_count")
    @classmethod
    def validate_bin_count(cls, v):
        """Validate bin count is positive."""
        if v <= 0:
            raise ConfigError("Bin count must be positive")
        return v

    @field_validator("flank_count")
    @classmethod
    def validate_flank_count(cls, v):
        """Validate flank count is non-negative."""
        if v < 0:
            raise ConfigError("Flank count must be non-negative")
        return v

    @field_validator("flank_size_bp", "long_threshold_bp", "library_size")
    @classmethod
    def validate_positive(cls, v):
        """Validate sizes are positive when given."""
        if v is not None and v <= 0:
            raise ConfigError("Sizes must be positive")
        return v

    @field_validator("decimal_places")
    @classmethod
    def validate_decimal_places(cls, v):
        """Validate the number of decimal places."""
        if v is not None and v < 0:
            raise ConfigError("Decimal places must be non-negative")
        return v

    @model_validator(mode="after")
    def validate_collection(self):
        """Check option combinations that cannot produce a result."""
        if not self.datasets:
            raise ConfigError("At least one dataset is required")
        if self.method.is_normalized:
            missing = [d.name for d in self.datasets if self.library_size_for(d) is None]
            if missing:
                raise ConfigError(
                    f"method '{self.method.value}' requires the total library size"
                    f" of {', '.join(missing)}"
                )
        return self

    @property
    def effective_value_type(self) -> ValueType:
        """Value type actually collected; rpm and rpkm always count."""
        if self.method.is_normalized:
            return ValueType.COUNT
        return self.value_type

    def library_size_for(self, dataset: SourceSpec) -> Optional[int]:
        """Library size of a dataset, the run-wide value taking precedence."""
        if self.library_size is not None:
            return self.library_size
        return dataset.library_size

    def is_log2(self, dataset: SourceSpec) -> bool:
        """Whether values of this dataset are log2 transformed."""
        if self.log2 is not None:
            return self.log2
        return dataset.looks_log2


class CollectorSettings(BaseSettings):
    """Ambient settings for running the collector."""

    # Parallel execution
    workers: int = Field(default=4, description="Number of worker processes")
    executor: str = Field(default="process", description="Worker pool type: process or thread")
    min_rows_per_worker: int = Field(
        default=100, description="Minimum rows per worker before reducing parallelism"
    )

    # Output
    output_dir: Path = Field(default=Path("."), description="Output directory")
    compress: bool = Field(default=False, description="Gzip the final table")
    write_summary: bool = Field(default=False, description="Write a profile summary file")
    write_groups: bool = Field(default=False, description="Write a column group file")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Log file path")
    log_format: str = Field(default="console", description="Log format: json or console")

    @field_validator("workers", "min_rows_per_worker")
    @classmethod
    def validate_workers(cls, v):
        """Validate worker counts are positive."""
        if v <= 0:
            raise ValueError("Workers must be positive")
        return v

    @field_validator("executor")
    @classmethod
    def validate_executor(cls, v):
        """Validate the worker pool type."""
        v = v.lower()
        if v not in ("process", "thread"):
            raise ValueError("Executor must be 'process' or 'thread'")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate the log format."""
        if v not in ("json", "console"):
            raise ValueError("Log format must be 'json' or 'console'")
        return v

    model_config = {
        "env_prefix": "SIGNAL_COLLECTOR_",
        "case_sensitive": False,
        "env_file": ".env"
    }

    def ensure_directories(self) -> None:
        """Ensure the output directory exists."""
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def validate_setup(self, datasets: List[SourceSpec]) -> List[str]:
        """Check that every dataset can be found before starting workers."""
        errors = []
        for dataset in datasets:
            path = Path(dataset.locator.replace("file:", "", 1))
            if not path.exists():
                errors.append(f"Dataset not found: {dataset.locator}")
        return errors


def load_settings(config_file_path: Path) -> CollectorSettings:
    """
    Handles loading of collector settings from an ini file.

    Recognised sections are ``[Parallel]`` (WORKERS, EXECUTOR,
    MIN_ROWS_PER_WORKER), ``[Output]`` (OUTPUT_DIR, COMPRESS, SUMMARY,
    GROUPS) and ``[Logging]`` (LOG_LEVEL, LOG_FILE, LOG_FORMAT).
    """
    settings = CollectorSettings()
    config_elem = configparser.ConfigParser()
    config_read = config_elem.read(config_file_path)
    if not config_read:
        raise FileNotFoundError(
            f"Configuration file not found or empty: {config_file_path}"
        )

    values = settings.model_dump()
    if config_elem.has_section("Parallel"):
        section = config_elem["Parallel"]
        values["workers"] = section.getint("WORKERS", values["workers"])
        values["executor"] = section.get("EXECUTOR", values["executor"])
        values["min_rows_per_worker"] = section.getint(
            "MIN_ROWS_PER_WORKER", values["min_rows_per_worker"]
        )
    if config_elem.has_section("Output"):
        section = config_elem["Output"]
        values["output_dir"] = Path(section.get("OUTPUT_DIR", str(values["output_dir"])))
        values["compress"] = section.getboolean("COMPRESS", values["compress"])
        values["write_summary"] = section.getboolean("SUMMARY", values["write_summary"])
        values["write_groups"] = section.getboolean("GROUPS", values["write_groups"])
    if config_elem.has_section("Logging"):
        section = config_elem["Logging"]
        values["log_level"] = section.get("LOG_LEVEL", values["log_level"])
        log_file = section.get("LOG_FILE", None)
        if log_file:
            values["log_file"] = Path(log_file)
        values["log_format"] = section.get("LOG_FORMAT", values["log_format"])
    return CollectorSettings(**values)
