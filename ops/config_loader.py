"""
Configuration Loader for the Choropleth Map Pipeline

This module provides a centralized way to load and access configuration
settings from a config.yaml file, with built-in defaults for every setting
the pipeline reads.

Usage:
    from ops import Config

    config = Config()
    geometry = config.get_input_path('geometry')
    html_out = config.get_output_path('interactive_map')
    metric = config.get_visualization_setting('metric')
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGE_CONFIG = Path(__file__).parent / "config.yaml"

_MISSING = object()


class Config:
    """Configuration manager for the choropleth map pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "project_name": "Regional Choropleth Maps",
        "description": "Metric-driven choropleth rendering",
        "example": {
            "enabled": True,
            "url": "https://raw.githubusercontent.com/PublicaMundi/MappingAPI/master/data/geojson/us-states.json",
            "timeout_seconds": 30,
            "seed": 42,
        },
        "input_files": {
            "geometry": None,
            "metrics_csv": None,
            "points_csv": None,
        },
        "directories": {"output": "."},
        "output_files": {
            "interactive_map": "interactive_geospatial_map.html",
            "static_image": "static_choropleth.png",
            "metrics_csv": "region_metrics_export.csv",
        },
        "columns": {
            "name_aliases": ["NAME", "Name", "NAMELSAD"],
        },
        "visualization": {
            "metric": "crime_rate",
            "secondary_metric": "pollution_index",
            "metric_label": None,
            "secondary_label": None,
            "title": None,
            "legend_label": None,
            "bins": 6,
            "palette": "YlOrRd",
            "nan_color": "#d3d3d3",
            "border_color": "#BDBDC3",
            "fill_opacity": 0.7,
            "map_center": [37.8, -96.0],
            "zoom_start": 4,
            "tiles": "OpenStreetMap",
            "static_width": 12,
            "static_height": 8,
            "static_dpi": 150,
        },
        "system": {
            "static_crs": "EPSG:3857",
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable PIPELINE_CONFIG_PATH
                        2. config.yaml in current directory
                        3. the config.yaml bundled with the ops package
            overrides: Nested dict merged over the file contents (CLI overrides)
        """
        if config_file is None:
            env_config = os.environ.get("PIPELINE_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            else:
                config_file = PACKAGE_CONFIG
                logger.debug("Using bundled ops/config.yaml")

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.debug(f"Loading config from: {self.config_path}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            self.data: Dict[str, Any] = yaml.safe_load(f) or {}

        if overrides:
            self.apply_overrides(overrides)

        self.output_dir = Path(self.get("directories.output") or ".")

    def apply_overrides(self, overrides: Dict[str, Any]) -> None:
        """Merge nested overrides into the loaded configuration."""
        self._apply_nested_override(self.data, copy.deepcopy(overrides))
        logger.debug(f"Applied config overrides: {overrides}")
        self.output_dir = Path(self.get("directories.output") or ".")

    def _apply_nested_override(self, base_dict: Dict, override_dict: Dict) -> None:
        for key, value in override_dict.items():
            if isinstance(value, dict) and key in base_dict and isinstance(base_dict[key], dict):
                self._apply_nested_override(base_dict[key], value)
            else:
                base_dict[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        # An explicit null does not fall through to DEFAULTS
        value = self._lookup(self.data, keys)
        if value is _MISSING:
            value = self._lookup(self.DEFAULTS, keys)
        if value is _MISSING or value is None:
            return default
        return value

    @staticmethod
    def _lookup(source: Dict[str, Any], keys: List[str]) -> Any:
        value: Any = source
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return _MISSING
        return value

    def get_input_path(self, filename_key: str) -> Optional[Path]:
        """
        Get path to an optional input file, or None when it is not configured.

        Args:
            filename_key: Key for the filename in input_files
        """
        relative_path_str = self.get(f"input_files.{filename_key}")
        if not relative_path_str:
            return None
        return Path(relative_path_str)

    def get_output_path(self, filename_key: str) -> Path:
        """
        Get full path to an output artifact, under the configured output directory.

        Args:
            filename_key: Key for the filename in output_files
        """
        filename = self.get(f"output_files.{filename_key}")
        if not filename:
            raise ValueError(f"Output file key '{filename_key}' not found in config: output_files")
        path = Path(filename)
        if path.is_absolute():
            return path
        return self.output_dir / path

    def get_visualization_setting(self, setting_key: str) -> Any:
        """Get visualization setting with intelligent defaults."""
        return self.get(f"visualization.{setting_key}")

    def get_system_setting(self, setting_key: str) -> Any:
        """Get system setting with intelligent defaults."""
        return self.get(f"system.{setting_key}")

    def get_column_setting(self, setting_key: str) -> Any:
        """Get column naming setting with intelligent defaults."""
        return self.get(f"columns.{setting_key}")

    def validate_input_files(self) -> Dict[str, bool]:
        """Report whether each configured input file exists."""
        results: Dict[str, bool] = {}
        for filename_key in ("geometry", "metrics_csv", "points_csv"):
            path = self.get_input_path(filename_key)
            if path is not None:
                results[filename_key] = path.exists()
        return results

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        logger.info("📋 Configuration Summary")
        logger.info("=" * 50)
        logger.info(f"Project: {self.get('project_name', 'Unknown')}")
        logger.info(f"Description: {self.get('description', 'No description')}")
        logger.info(f"Config file: {self.config_path}")

        if self.get("example.enabled"):
            logger.info(f"🌐 Example dataset: {self.get('example.url')}")

        logger.info("📊 Input Files:")
        validation = self.validate_input_files()
        if not validation:
            logger.info("  (none configured)")
        for file_key, exists in validation.items():
            status = "✅" if exists else "❌"
            logger.info(f"  {status} {file_key}: {self.get_input_path(file_key)}")

        logger.info("🎨 Rendering:")
        logger.info(f"  metric: {self.get_visualization_setting('metric')}")
        logger.info(f"  secondary metric: {self.get_visualization_setting('secondary_metric')}")
        logger.info(f"  bins: {self.get_visualization_setting('bins')}")

        logger.info("📁 Outputs:")
        for key in ("interactive_map", "static_image", "metrics_csv"):
            logger.info(f"  {key}: {self.get_output_path(key)}")

