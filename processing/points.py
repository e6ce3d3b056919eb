#!/usr/bin/env python3
"""
Point overlay loading.

Reads a delimited table of locations and turns it into WGS84 point
features for the optional marker layer.
"""

from pathlib import Path
from typing import Optional

import geopandas as gpd
import pandas as pd
from loguru import logger

from .data_utils import WGS84, sanitize_column_names
from .errors import DataSourceError
from .schema import POINT_SCHEMA, describe

COORDINATE_ALIASES = {
    "lat": "latitude",
    "latitude": "latitude",
    "lon": "longitude",
    "lng": "longitude",
    "long": "longitude",
    "longitude": "longitude",
}


def standardize_coordinate_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename lat/lon style columns to ``latitude``/``longitude``."""
    coordinate_mapping = {}
    for col in df.columns:
        target = COORDINATE_ALIASES.get(str(col).lower())
        if target is None or col == target or target in df.columns:
            continue
        if target not in coordinate_mapping.values():
            coordinate_mapping[col] = target

    if coordinate_mapping:
        logger.debug(f"  ✓ Standardized coordinate columns: {coordinate_mapping}")
        df = df.rename(columns=coordinate_mapping)
    return df


def points_from_frame(df: pd.DataFrame) -> gpd.GeoDataFrame:
    """
    Convert a table with latitude/longitude columns into a point GeoDataFrame.

    Raises:
        InputValidationError: latitude or longitude column missing
    """
    df = standardize_coordinate_columns(sanitize_column_names(df))
    POINT_SCHEMA.validate(describe(df))

    df = df.copy()
    df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
    df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")

    initial_count = len(df)
    df = df.dropna(subset=["latitude", "longitude"])
    df = df[(df["latitude"].between(-90, 90)) & (df["longitude"].between(-180, 180))]
    removed_count = initial_count - len(df)
    if removed_count > 0:
        logger.warning(f"  ⚠️ Removed {removed_count:,} points with missing or invalid coordinates")

    df = df.reset_index(drop=True)
    if "name" not in df.columns:
        df["name"] = [f"Point {i}" for i in range(1, len(df) + 1)]
    else:
        fallback = pd.Series([f"Point {i}" for i in range(1, len(df) + 1)], index=df.index)
        df["name"] = df["name"].where(df["name"].notna(), fallback).astype(str)
    if "description" not in df.columns:
        df["description"] = ""
    else:
        df["description"] = df["description"].fillna("").astype(str)

    geometry = gpd.points_from_xy(df["longitude"], df["latitude"])
    points = gpd.GeoDataFrame(df, geometry=geometry, crs=WGS84)
    logger.success(f"  ✅ Created {len(points):,} point features")
    return points


def load_points(path: Optional[Path]) -> Optional[gpd.GeoDataFrame]:
    """
    Load the optional point overlay.

    Returns:
        Point GeoDataFrame in EPSG:4326, or None when no source is configured

    Raises:
        DataSourceError: file missing or unreadable
        InputValidationError: latitude or longitude column missing
    """
    if path is None:
        logger.debug("  No point source configured")
        return None

    path = Path(path)
    logger.info(f"📍 Loading points from {path}")
    if not path.exists():
        logger.error(f"❌ Points file not found: {path}")
        raise DataSourceError(f"Points file not found: {path}")

    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
        logger.error(f"❌ Could not read points file {path}: {e}")
        raise DataSourceError(f"Could not read points file {path}: {e}") from e

    logger.debug(f"  ✓ Read {len(df):,} rows with columns {list(df.columns)}")
    return points_from_frame(df)
