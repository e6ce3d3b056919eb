"""
Per-region popup text for the interactive map.

Popups are attached to the choropleth layer by position, so the list must
stay aligned 1:1 with the region rows.
"""

import html
from typing import List, Optional

import geopandas as gpd
import pandas as pd

from processing.data_utils import clean_numeric
from processing.schema import describe

NO_DATA = "No data"


def format_value(value) -> str:
    """One decimal place, or the no-data marker."""
    if value is None or pd.isna(value):
        return NO_DATA
    return f"{float(value):,.1f}"


def display_name(row: pd.Series, has_name: bool) -> str:
    """The region's name, or ``Region {region_id}`` when it has none."""
    if has_name:
        name = row.get("name")
        if name is not None and not pd.isna(name) and str(name).strip():
            return str(name).strip()
    return f"Region {row['region_id']}"


def build_popups(
    regions: gpd.GeoDataFrame,
    metric: str,
    metric_label: str,
    secondary_metric: Optional[str] = None,
    secondary_label: Optional[str] = None,
) -> List[str]:
    """
    Build one HTML popup per region, in row order.

    Args:
        regions: Region collection carrying ``region_id`` and ``metric``
        metric: Metric column
        metric_label: Display label for the metric
        secondary_metric: Optional second column shown when present
        secondary_label: Display label for the secondary metric

    Returns:
        List with exactly one popup per region
    """
    caps = describe(regions)
    has_name = caps.has_name
    has_secondary = caps.has(secondary_metric)

    values = clean_numeric(regions[metric]).tolist()
    secondary_values = clean_numeric(regions[secondary_metric]).tolist() if has_secondary else None

    popups = []
    for i, (_, row) in enumerate(regions.iterrows()):
        lines = [
            f"<b>{html.escape(display_name(row, has_name))}</b>",
            f"{html.escape(metric_label)}: {format_value(values[i])}",
        ]
        if secondary_values is not None and not pd.isna(secondary_values[i]):
            label = secondary_label or secondary_metric
            lines.append(f"{html.escape(label)}: {format_value(secondary_values[i])}")
        popups.append("<br>".join(lines))

    return popups
