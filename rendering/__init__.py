"""
Rendering package for the choropleth map pipeline

Colour scale, popups, interactive and static maps, and the metrics export.
"""

from .color_scale import ColorScale, build_color_scale
from .exports import ExportReport, export_metrics_csv, render_outputs
from .interactive_map import build_interactive_map, save_interactive_map
from .options import OutputPaths, RenderOptions
from .popups import build_popups
from .static_map import render_static_map
from .validation import validate_metric

__all__ = [
    "ColorScale",
    "build_color_scale",
    "build_popups",
    "validate_metric",
    "build_interactive_map",
    "save_interactive_map",
    "render_static_map",
    "export_metrics_csv",
    "render_outputs",
    "ExportReport",
    "RenderOptions",
    "OutputPaths",
]
