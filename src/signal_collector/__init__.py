"""
Feature Signal Collector

Collects and summarizes genomic signal over features and binned windows
of features.
"""

__version__ = "1.0.0"

# Lazy imports to avoid dependency issues
def get_coordinator():
    """Get the ParallelCoordinator class."""
    from .core.parallel import ParallelCoordinator
    return ParallelCoordinator

def get_run_config():
    """Get the RunConfig class."""
    from .config.settings import RunConfig
    return RunConfig

def get_feature_table():
    """Get the FeatureTable class."""
    from .core.tables import FeatureTable
    return FeatureTable

__all__ = ["get_coordinator", "get_run_config", "get_feature_table"]
