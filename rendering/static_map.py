"""
Static choropleth image export.
"""

from pathlib import Path
from typing import Optional, Union

import geopandas as gpd
import matplotlib.pyplot as plt
from loguru import logger
from matplotlib.patches import Patch

from processing.data_utils import ensure_output_directory

from .color_scale import ColorScale, build_color_scale
from .options import RenderOptions
from .validation import validate_metric


def render_static_map(
    regions: gpd.GeoDataFrame,
    options: RenderOptions,
    output_path: Union[str, Path],
    scale: Optional[ColorScale] = None,
) -> Path:
    """
    Generates and saves a minimalist static choropleth.

    Works on a reprojected copy of ``regions``; nothing is shared with the
    interactive map.

    Args:
        regions: Region collection in WGS84
        options: Rendering options (size, DPI, display CRS, labels)
        output_path: Image file to write
        scale: Pre-built colour scale; built from the metric when omitted

    Returns:
        Path of the written image
    """
    logger.info(f"🖼️ Rendering static map: {output_path}")

    values = validate_metric(regions, options.metric)
    if scale is None:
        scale = build_color_scale(values, options.bins, options.palette, options.nan_color)

    display = regions[[regions.geometry.name]].copy()
    display["fill"] = [scale(v) for v in values]
    if options.static_crs:
        display = display.to_crs(options.static_crs)

    output_path = ensure_output_directory(output_path)

    fig, ax = plt.subplots(figsize=options.static_size, dpi=options.static_dpi)
    try:
        display.plot(
            color=display["fill"].tolist(),
            linewidth=0.5,
            edgecolor=options.border_color,
            ax=ax,
        )

        ax.set_aspect("equal")
        ax.set_axis_off()
        ax.set_title(options.title_text, fontsize=16, fontweight="bold", loc="left")

        handles = []
        if not scale.is_empty:
            handles = [
                Patch(facecolor=color, edgecolor="#666666", label=label)
                for color, label in zip(scale.colors, scale.bin_labels())
            ]
        if values.isna().any() or scale.is_empty:
            handles.append(Patch(facecolor=scale.nan_color, edgecolor="#666666", label="No data"))
        if handles:
            ax.legend(
                handles=handles,
                title=options.legend_text,
                loc="lower left",
                fontsize=9,
                title_fontsize=10,
                frameon=False,
            )

        plt.savefig(
            output_path,
            bbox_inches="tight",
            dpi=options.static_dpi,
            facecolor="white",
            edgecolor="none",
        )
    finally:
        plt.close(fig)

    logger.success(f"  ✅ Static map saved: {output_path}")
    return output_path
