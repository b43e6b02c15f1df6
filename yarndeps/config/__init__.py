"""Configuration schema and loading for yarndeps."""

from .loader import load_config
from .schema import AnalyzerConfig, MetadataCacheConfig, YarnConfig

__all__ = [
    "AnalyzerConfig",
    "MetadataCacheConfig",
    "YarnConfig",
    "load_config",
]
