"""
Operations package for the choropleth map pipeline

This package centralizes the operational tools:
- Configuration management
- Pipeline orchestration
- CLI utilities

The Config class is exposed at the package level for convenient imports:
    from ops import Config
"""

from .config_loader import Config

__all__ = ["Config"]
