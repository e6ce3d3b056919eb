#!/usr/bin/env python3
"""
Choropleth Map Pipeline with Click CLI

This script runs the whole choropleth workflow (load regions, join
metrics, load points, render the interactive map, the static image and the
metrics CSV) with the ability to override configuration values from the
command line.

Usage:
    choropleth-map [OPTIONS] [COMMAND]

    # Example dataset with synthetic metrics (default config):
    choropleth-map

    # Local geometry with an external metrics table and a point overlay:
    choropleth-map --geometry data/nc_counties.geojson --metrics-csv data/births.csv \\
        --points-csv data/hospitals.csv --metric births_1974

    # Arbitrary config overrides:
    choropleth-map --set visualization.bins=5 --set visualization.palette=viridis

    # Show the resolved configuration:
    choropleth-map summary
"""

import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
import geopandas as gpd
import yaml  # type: ignore[import-untyped]
from loguru import logger

from ops.config_loader import Config
from processing.errors import InputValidationError, MapPipelineError
from processing.metrics import join_metrics, read_metrics_table
from processing.points import load_points
from processing.regions import RegionSource, load_regions
from rendering.exports import ExportReport, render_outputs
from rendering.options import OutputPaths, RenderOptions

EXIT_TERMINAL_ERROR = 1
EXIT_EXPORT_FAILED = 2


class ConfigContext:
    """Click context object collecting config overrides."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file
        self.overrides: Dict[str, Any] = {}
        self.config: Optional[Config] = None
        self.kwargs: Dict[str, Any] = {}

    def add_override(self, key: str, value: Any) -> None:
        """Add config override using dot notation."""
        keys = key.split(".")
        current = self.overrides
        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value
        logger.debug(f"Added override: {key} = {value}")

    def get_config(self) -> Config:
        """Get config with overrides applied."""
        return Config(self.config_file, overrides=self.overrides or None)


# Custom Click types for better validation
class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if isinstance(value, tuple):
            return value
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        # Auto-parse value type
        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.lower() in ("null", "none"):
            parsed_val = None
        elif val.lstrip("-").isdigit():
            parsed_val = int(val)
        else:
            try:
                parsed_val = float(val)
            except ValueError:
                parsed_val = val

        return key, parsed_val


def load_optional_points(path: Optional[Path]) -> Optional[gpd.GeoDataFrame]:
    """Load the point overlay; a schema problem disables the overlay instead of failing."""
    try:
        return load_points(path)
    except InputValidationError as e:
        logger.warning(f"⚠️ Point overlay disabled: {e}")
        return None


def run_map_pipeline(config: Config) -> ExportReport:
    """
    Run every stage for the given configuration.

    Returns:
        ExportReport with the written artifacts and any per-artifact failures

    Raises:
        MapPipelineError: a terminal error in loading, joining or metric validation
    """
    source = RegionSource.from_config(config)
    options = RenderOptions.from_config(config)
    paths = OutputPaths.from_config(config)

    logger.info("🗺️ Step 1: Loading regions")
    regions = load_regions(source)

    logger.info("🔗 Step 2: Joining metrics")
    metrics_path = config.get_input_path("metrics_csv")
    metrics = read_metrics_table(metrics_path) if metrics_path is not None else None
    regions = join_metrics(regions, metrics)

    logger.info("📍 Step 3: Loading points")
    points = load_optional_points(config.get_input_path("points_csv"))

    logger.info("🎨 Step 4: Rendering")
    return render_outputs(regions, options, paths, points=points)


# Main CLI group
@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config.yaml (default: $PIPELINE_CONFIG_PATH, ./config.yaml, bundled)",
)
@click.option("--example/--no-example", default=None, help="Use the public example dataset")
@click.option("--geometry", type=click.Path(dir_okay=False), help="Local geometry file (implies --no-example)")
@click.option("--metrics-csv", type=click.Path(dir_okay=False), help="External metrics table")
@click.option("--points-csv", type=click.Path(dir_okay=False), help="Point overlay table (lat/lon)")
@click.option("--metric", help="Column to visualize")
@click.option("--secondary-metric", help="Column shown as a second popup line")
@click.option("--html-out", type=click.Path(dir_okay=False), help="Interactive map output file")
@click.option("--image-out", type=click.Path(dir_okay=False), help="Static image output file")
@click.option("--csv-out", type=click.Path(dir_okay=False), help="Metrics CSV output file")
@click.option(
    "--set",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., visualization.bins=5)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be run without executing")
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, **kwargs):
    """
    Choropleth Map Pipeline

    Load region polygons, join optional metrics and points, and render an
    interactive HTML map, a static PNG and a metrics CSV.

    \b
    Examples:
      choropleth-map                                          # Example dataset
      choropleth-map --geometry counties.geojson --metric pop # Local file
      choropleth-map --set visualization.palette=viridis      # Config override
      choropleth-map summary                                  # Show configuration
    """
    setup_logging(verbose=kwargs["verbose"], enable_trace=kwargs["trace"])

    if kwargs.get("log_file"):
        log_file = kwargs["log_file"]
        log_level = "TRACE" if kwargs["trace"] else ("DEBUG" if kwargs["verbose"] else "INFO")
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    logger.debug(f"🔧 CLI arguments received: {kwargs}")

    config_ctx = ConfigContext(kwargs["config_file"])
    ctx.obj = config_ctx

    if kwargs["geometry"]:
        config_ctx.add_override("input_files.geometry", kwargs["geometry"])
        if kwargs["example"] is None:
            config_ctx.add_override("example.enabled", False)
    if kwargs["example"] is not None:
        config_ctx.add_override("example.enabled", kwargs["example"])

    option_keys = {
        "metrics_csv": "input_files.metrics_csv",
        "points_csv": "input_files.points_csv",
        "metric": "visualization.metric",
        "secondary_metric": "visualization.secondary_metric",
        "html_out": "output_files.interactive_map",
        "image_out": "output_files.static_image",
        "csv_out": "output_files.metrics_csv",
    }
    for option, config_key in option_keys.items():
        if kwargs[option]:
            config_ctx.add_override(config_key, kwargs[option])

    for key, value in kwargs["config_overrides"]:
        config_ctx.add_override(key, value)

    try:
        config = config_ctx.get_config()
    except (OSError, yaml.YAMLError) as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(EXIT_TERMINAL_ERROR)

    logger.info(f"📋 Project: {config.get('project_name')}")
    logger.info(f"📋 Description: {config.get('description')}")

    config_ctx.config = config
    config_ctx.kwargs = kwargs

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.pass_context
def run(ctx):
    """Run the full map pipeline."""
    config = ctx.obj.config
    kwargs = ctx.obj.kwargs

    if kwargs.get("dry_run"):
        show_dry_run_info(config)
        return

    start = time.time()
    try:
        report = run_map_pipeline(config)
    except MapPipelineError as e:
        handle_critical_error(e, "Map pipeline", enable_trace=kwargs.get("trace", False))
        ctx.exit(EXIT_TERMINAL_ERROR)

    elapsed = time.time() - start
    logger.info("=" * 60)
    for artifact, path in report.written.items():
        logger.success(f"   ✅ {artifact}: {path}")
    for artifact, error in report.failures.items():
        logger.error(f"   ❌ {artifact}: {error.cause}")
    logger.info(f"⏱️ Total time: {elapsed:.1f}s")

    if not report.ok:
        logger.warning(f"Pipeline completed with {len(report.failures)} failed export(s)")
        ctx.exit(EXIT_EXPORT_FAILED)

    logger.success("🎉 PIPELINE COMPLETE")


@cli.command()
@click.pass_context
def summary(ctx):
    """Show the resolved configuration."""
    ctx.obj.config.print_config_summary()


def show_dry_run_info(config: Config) -> None:
    """Log the stages that would run."""
    source = RegionSource.from_config(config)
    paths = OutputPaths.from_config(config)

    logger.info("🔍 DRY RUN MODE - Showing what would be executed:")
    if source.geometry_path is not None:
        logger.info(f"  1. Load regions from {source.geometry_path}")
    elif source.use_example:
        logger.info(f"  1. Download example regions from {source.example_url}")
    else:
        logger.warning("  1. No geometry source configured - the run would fail")

    metrics_path = config.get_input_path("metrics_csv")
    logger.info(f"  2. Join metrics from {metrics_path}" if metrics_path else "  2. No external metrics")
    points_path = config.get_input_path("points_csv")
    logger.info(f"  3. Load points from {points_path}" if points_path else "  3. No point overlay")
    logger.info(f"  4. Render '{config.get_visualization_setting('metric')}':")
    logger.info(f"     🌐 {paths.interactive_map}")
    logger.info(f"     🖼️ {paths.static_image}")
    logger.info(f"     📊 {paths.metrics_csv}")


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def handle_critical_error(error: Exception, context: str = "", enable_trace: bool = False) -> None:
    """
    Handle critical errors with optional trace logging.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
        enable_trace: Whether TRACE logging is active
    """
    if enable_trace:
        logger.trace("💥 TRACE MODE: Analyzing critical error with full context")
        logger.trace(f"Error context: {context}")
        logger.trace(f"Error type: {type(error).__name__}")
        logger.trace(f"Error args: {error.args}")

        import traceback

        logger.trace("Full traceback:")
        logger.trace("".join(traceback.format_exception(type(error), error, error.__traceback__)))

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"{type(error).__name__}: {error}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


if __name__ == "__main__":
    cli()
