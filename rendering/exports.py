"""
Output artifacts of the render stage.

Each artifact (interactive HTML map, static image, metrics CSV) is attempted
on its own: a failure is logged, recorded as an ExportError, and the
remaining artifacts are still written.
"""

import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import geopandas as gpd
import pandas as pd
from loguru import logger

from processing.data_utils import ensure_output_directory
from processing.errors import ExportError
from processing.schema import describe

from .color_scale import build_color_scale
from .interactive_map import build_interactive_map, save_interactive_map
from .options import OutputPaths, RenderOptions
from .static_map import render_static_map
from .validation import validate_metric

INTERACTIVE_MAP = "interactive_map"
STATIC_IMAGE = "static_image"
METRICS_CSV = "metrics_csv"


@dataclass
class ExportReport:
    """Outcome of every export attempt."""

    written: Dict[str, Path] = field(default_factory=dict)
    failures: Dict[str, ExportError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def attempted(self) -> List[str]:
        return list(self.written) + list(self.failures)


def metrics_table(regions: gpd.GeoDataFrame, options: RenderOptions) -> pd.DataFrame:
    """Geometry-free table of region_id, name, metric and secondary metric."""
    caps = describe(regions)
    columns = ["region_id"]
    if caps.has_name:
        columns.append("name")
    if options.metric not in columns:
        columns.append(options.metric)
    if caps.has(options.secondary_metric) and options.secondary_metric not in columns:
        columns.append(options.secondary_metric)
    return pd.DataFrame(regions[columns])


def export_metrics_csv(
    regions: gpd.GeoDataFrame, options: RenderOptions, output_path: Union[str, Path]
) -> Path:
    """Write the flattened metrics table as UTF-8 CSV with a header row."""
    logger.info(f"💾 Exporting metrics table: {output_path}")
    validate_metric(regions, options.metric)

    table = metrics_table(regions, options)
    output_path = ensure_output_directory(output_path)
    table.to_csv(output_path, index=False, encoding="utf-8")

    logger.success(f"  ✅ Exported {len(table):,} rows with columns {list(table.columns)}")
    return output_path


def _attempt(report: ExportReport, artifact: str, path: Path, action: Callable[[], Path]) -> None:
    try:
        report.written[artifact] = action()
    except Exception as e:
        error = ExportError(artifact, path, e)
        error.__cause__ = e
        report.failures[artifact] = error
        logger.error(f"❌ {error}")
        logger.trace(f"Detailed {artifact} export error:")
        logger.trace(traceback.format_exc())


def render_outputs(
    regions: gpd.GeoDataFrame,
    options: RenderOptions,
    paths: OutputPaths,
    points: Optional[gpd.GeoDataFrame] = None,
) -> ExportReport:
    """
    Render every artifact, attempting each independently.

    The metric is validated first; a missing metric stops the stage before
    any artifact is attempted.

    Raises:
        MetricNotFoundError: metric column absent from ``regions``
    """
    logger.info(f"🎨 Rendering '{options.metric}' for {len(regions):,} regions")
    values = validate_metric(regions, options.metric)
    scale = build_color_scale(values, options.bins, options.palette, options.nan_color)

    report = ExportReport()

    def interactive() -> Path:
        m = build_interactive_map(regions, options, points=points, scale=scale)
        return save_interactive_map(m, paths.interactive_map)

    _attempt(report, INTERACTIVE_MAP, paths.interactive_map, interactive)
    _attempt(
        report,
        STATIC_IMAGE,
        paths.static_image,
        lambda: render_static_map(regions, options, paths.static_image, scale=scale),
    )
    _attempt(
        report,
        METRICS_CSV,
        paths.metrics_csv,
        lambda: export_metrics_csv(regions, options, paths.metrics_csv),
    )

    if report.ok:
        logger.success(f"🎉 All {len(report.written)} artifacts written")
    else:
        logger.warning(
            f"⚠️ {len(report.written)}/{len(report.attempted)} artifacts written; "
            f"failed: {list(report.failures)}"
        )
    return report
