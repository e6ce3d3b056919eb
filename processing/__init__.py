"""
Processing package for the choropleth map pipeline

This package loads regions, metrics and points and negotiates their schemas.
"""

__version__ = "0.1.0"

# Import key entry points for easy access
from .errors import (
    ConfigurationError,
    DataSourceError,
    ExportError,
    InputValidationError,
    MapPipelineError,
    MetricNotFoundError,
)
from .metrics import join_metrics, read_metrics_table, select_join_key
from .points import load_points
from .regions import RegionSource, load_regions

__all__ = [
    "MapPipelineError",
    "ConfigurationError",
    "DataSourceError",
    "InputValidationError",
    "MetricNotFoundError",
    "ExportError",
    "RegionSource",
    "load_regions",
    "join_metrics",
    "read_metrics_table",
    "select_join_key",
    "load_points",
]
