"""
Interactive Folium map: base tiles, choropleth, optional point clusters,
legend and controls.
"""

import html
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import folium
import geopandas as gpd
import pandas as pd
from folium.plugins import MarkerCluster, MiniMap, Search
from loguru import logger

from processing.data_utils import ensure_output_directory
from processing.schema import describe

from .color_scale import ColorScale, build_color_scale
from .options import RenderOptions
from .popups import build_popups, display_name
from .validation import validate_metric

CHOROPLETH_GROUP = "choropleth"
POINTS_GROUP = "Points"


def _map_center(regions: gpd.GeoDataFrame, options: RenderOptions) -> List[float]:
    if options.map_center is not None:
        return [options.map_center[0], options.map_center[1]]
    bounds = regions.total_bounds
    return [(bounds[1] + bounds[3]) / 2, (bounds[0] + bounds[2]) / 2]


def _choropleth_geojson(
    regions: gpd.GeoDataFrame,
    values: pd.Series,
    scale: ColorScale,
    popups: List[str],
) -> Dict[str, Any]:
    """
    GeoJSON for the choropleth layer with only the properties the map needs.

    Popups and fill colours are written into the features by position.
    """
    has_name = describe(regions).has_name
    layer = gpd.GeoDataFrame(
        {
            "region_id": regions["region_id"].astype(int).tolist(),
            "display_name": [display_name(row, has_name) for _, row in regions.iterrows()],
            "value": [None if pd.isna(v) else float(v) for v in values],
        },
        geometry=regions.geometry.values,
        crs=regions.crs,
    )
    if has_name:
        layer["name"] = regions["name"].fillna("").astype(str).tolist()

    data = layer.__geo_interface__
    for i, feature in enumerate(data["features"]):
        properties = feature["properties"]
        properties["popup"] = popups[i]
        properties["fill_color"] = scale(values.iloc[i])
        properties["has_value"] = scale.bin_index(values.iloc[i]) is not None
        properties["value_text"] = "No data" if properties["value"] is None else f"{properties['value']:,.1f}"
    return data


def build_interactive_map(
    regions: gpd.GeoDataFrame,
    options: RenderOptions,
    points: Optional[gpd.GeoDataFrame] = None,
    scale: Optional[ColorScale] = None,
) -> folium.Map:
    """
    Compose the interactive map.

    Args:
        regions: Region collection in WGS84
        options: Rendering options
        points: Optional point overlay in WGS84
        scale: Pre-built colour scale; built from the metric when omitted

    Returns:
        folium.Map ready to save
    """
    logger.info("🗺️ Creating interactive choropleth map...")

    values = validate_metric(regions, options.metric)
    if scale is None:
        scale = build_color_scale(values, options.bins, options.palette, options.nan_color)

    popups = build_popups(
        regions,
        options.metric,
        options.metric_display,
        options.secondary_metric,
        options.secondary_display,
    )

    center = _map_center(regions, options)
    logger.debug(f"  📍 Map center: {center[0]:.4f}, {center[1]:.4f}")

    m = folium.Map(
        location=center,
        zoom_start=options.zoom_start,
        tiles=options.tiles,
        control_scale=True,
        prefer_canvas=True,
    )

    data = _choropleth_geojson(regions, values, scale, popups)
    border_color = options.border_color
    fill_opacity = options.fill_opacity

    choropleth_group = folium.FeatureGroup(name=options.metric_display, show=True)
    choropleth_layer = folium.GeoJson(
        data,
        name=CHOROPLETH_GROUP,
        style_function=lambda feature: {
            "fillColor": feature["properties"]["fill_color"],
            "color": border_color,
            "weight": 1,
            "fillOpacity": fill_opacity if feature["properties"]["has_value"] else 0.3,
        },
        highlight_function=lambda feature: {"weight": 3, "color": "#666666", "fillOpacity": 0.9},
        popup=folium.GeoJsonPopup(fields=["popup"], labels=False, max_width=300),
        tooltip=folium.GeoJsonTooltip(
            fields=["display_name", "value_text"],
            aliases=["Region:", f"{options.metric_display}:"],
            localize=True,
            sticky=False,
        ),
    )
    choropleth_layer.add_to(choropleth_group)
    choropleth_group.add_to(m)
    logger.debug(f"  ✓ Added choropleth layer with {len(data['features'])} regions")

    legend = scale.to_branca(caption=options.legend_text)
    if legend is not None:
        legend.add_to(m)

    if points is not None and len(points) > 0:
        add_point_layer(m, points)
    elif points is not None:
        logger.info("  📭 Point overlay is empty, skipping marker layer")

    if describe(regions).has_name:
        Search(
            layer=choropleth_layer,
            geom_type="Polygon",
            search_label="name",
            placeholder="Search regions",
            collapsed=False,
            position="topright",
        ).add_to(m)
        logger.debug("  🔍 Added name search")

    MiniMap(toggle_display=True).add_to(m)
    folium.LayerControl(collapsed=False).add_to(m)

    title_html = f"""
    <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
    <b>{html.escape(options.title_text)}</b>
    </h3>
    """
    m.get_root().html.add_child(folium.Element(title_html))

    logger.success("  ✅ Interactive map composed")
    return m


def add_point_layer(m: folium.Map, points: gpd.GeoDataFrame) -> MarkerCluster:
    """Add the clustered marker layer for the point overlay."""
    cluster = MarkerCluster(name=POINTS_GROUP)
    for _, point in points.iterrows():
        popup_html = f"<b>{html.escape(str(point['name']))}</b>"
        if point["description"]:
            popup_html += f"<br>{html.escape(str(point['description']))}"
        folium.Marker(
            location=[point["latitude"], point["longitude"]],
            popup=folium.Popup(popup_html, max_width=250),
            tooltip=str(point["name"]),
        ).add_to(cluster)
    cluster.add_to(m)
    logger.debug(f"  📍 Added {len(points):,} clustered point markers")
    return cluster


def save_interactive_map(m: folium.Map, output_path: Union[str, Path]) -> Path:
    """Write the map as a single self-contained HTML file."""
    output_path = ensure_output_directory(output_path)
    m.save(str(output_path))
    logger.success(f"  ✅ Interactive map saved: {output_path}")
    return output_path
