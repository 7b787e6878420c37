"""
Core collection modules for the signal collector.
"""

from .collector import collect_bins_frame, collect_region_frame
from .parallel import ParallelCoordinator, plan_partitions

# Import submodules
from . import coordinates
from . import windows
from . import aggregation
from . import binning
from . import interpolation
from . import sources
from . import tables
from . import summary

__all__ = [
    "collect_bins_frame",
    "collect_region_frame",
    "ParallelCoordinator",
    "plan_partitions",
    "coordinates",
    "windows",
    "aggregation",
    "binning",
    "interpolation",
    "sources",
    "tables",
    "summary",
]
