"""
Configuration management for the signal collector.
"""

from .settings import RunConfig, CollectorSettings, load_settings

__all__ = ["RunConfig", "CollectorSettings", "load_settings"]
