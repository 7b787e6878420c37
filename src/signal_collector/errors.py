"""
Error taxonomy for the signal collector.

Row-local problems (RegionError) are recovered at the row boundary, every
other error aborts the run.
"""


class SignalCollectorError(Exception):
    """Base class for all signal collector errors."""


class RegionError(SignalCollectorError):
    """Invalid or degenerate genomic coordinates."""


class BackendError(SignalCollectorError):
    """A signal source could not be opened or queried."""


class ConfigError(SignalCollectorError):
    """Unusable run configuration, raised before any row is processed."""


class MergeError(SignalCollectorError):
    """Partial worker output is missing or unreadable."""


__all__ = [
    "SignalCollectorError",
    "RegionError",
    "BackendError",
    "ConfigError",
    "MergeError",
]
