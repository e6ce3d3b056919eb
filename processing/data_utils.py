#!/usr/bin/env python3
"""
data_utils.py - Shared Data Processing Utilities

Common functions used by the loaders, the joiner and the renderer.
"""

import re
from pathlib import Path
from typing import Iterable, Optional, Union

import geopandas as gpd
import pandas as pd
from loguru import logger
from shapely.validation import make_valid

WGS84 = "EPSG:4326"


def sanitize_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Convert column names to clean snake_case format.

    Args:
        df: DataFrame with potentially messy column names

    Returns:
        DataFrame with clean snake_case column names
    """
    logger.debug("🧹 Sanitizing column names...")

    original_cols = df.columns.tolist()

    clean_cols = []
    for col in original_cols:
        clean_col = str(col).strip()

        # Replace spaces and special chars with underscores
        clean_col = re.sub(r"[^\w\s]", "_", clean_col)
        clean_col = re.sub(r"\s+", "_", clean_col)
        clean_col = clean_col.lower()
        clean_col = re.sub(r"_+", "_", clean_col)
        clean_col = clean_col.strip("_")

        if not clean_col or clean_col.isdigit():
            clean_col = f"column_{len(clean_cols)}"

        clean_cols.append(clean_col)

    changed_cols = [(orig, new) for orig, new in zip(original_cols, clean_cols) if orig != new]
    if changed_cols:
        logger.debug(f"  📝 Cleaned {len(changed_cols)} column names:")
        for orig, new in changed_cols[:5]:
            logger.debug(f"    '{orig}' → '{new}'")
        if len(changed_cols) > 5:
            logger.debug(f"    ... and {len(changed_cols) - 5} more")

    df = df.copy()
    df.columns = clean_cols
    return df


def find_column(df: pd.DataFrame, candidates: Iterable[str], description: str = "column") -> Optional[str]:
    """Find the first column whose name matches a candidate exactly, then case-insensitively.

    Args:
        df: DataFrame to search
        candidates: Column names to try, in priority order
        description: Description for logging

    Returns:
        Column name if found, None if not found
    """
    candidates = list(candidates)
    for candidate in candidates:
        if candidate in df.columns:
            return candidate

    lowered = {str(col).lower(): col for col in df.columns}
    for candidate in candidates:
        match = lowered.get(candidate.lower())
        if match is not None:
            logger.debug(f"  📍 Found {description} column: {match} (pattern: {candidate})")
            return match

    logger.debug(f"  No {description} column found for patterns: {candidates}")
    return None


def clean_numeric(series: pd.Series) -> pd.Series:
    """
    Cleans a pandas Series to numeric type, handling commas and percent signs.

    Values that cannot be parsed become NaN ("no value").
    """
    if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
        return series.astype(float)
    s = (
        series.astype(str)
        .str.replace(",", "", regex=False)
        .str.replace("%", "", regex=False)
        .str.strip()
    )
    return pd.to_numeric(s, errors="coerce")


def normalize_to_wgs84(gdf: gpd.GeoDataFrame, source_description: str = "GeoDataFrame") -> gpd.GeoDataFrame:
    """
    Make sure a GeoDataFrame is expressed in WGS84 longitude/latitude.

    Args:
        gdf: Input GeoDataFrame
        source_description: Description for logging

    Returns:
        GeoDataFrame in EPSG:4326
    """
    if gdf.crs is None:
        logger.warning(f"  ⚠️ No CRS on {source_description}, assuming WGS84")
        return gdf.set_crs(WGS84)

    if gdf.crs.to_epsg() != 4326:
        logger.info(f"  🔄 Reprojecting {source_description} from {gdf.crs} to WGS84")
        return gdf.to_crs(WGS84)

    logger.debug(f"  ✓ {source_description} already in WGS84")
    return gdf


def repair_geometries(gdf: gpd.GeoDataFrame, source_description: str = "geometries") -> gpd.GeoDataFrame:
    """Drop missing/empty geometries and repair invalid ones with make_valid."""
    missing = gdf.geometry.isna() | gdf.geometry.is_empty
    missing_count = int(missing.sum())
    if missing_count > 0:
        logger.warning(f"  ⚠️ Dropping {missing_count} features with missing or empty {source_description}")
        gdf = gdf[~missing].copy()

    invalid = ~gdf.geometry.is_valid
    invalid_count = int(invalid.sum())
    if invalid_count > 0:
        logger.warning(f"  ⚠️ Found {invalid_count} invalid {source_description}, fixing...")
        gdf = gdf.copy()
        gdf.loc[invalid, gdf.geometry.name] = gdf.geometry[invalid].apply(make_valid)
        logger.debug("  🔧 Fixed invalid geometries")

    return gdf


def ensure_output_directory(output_path: Union[str, Path]) -> Path:
    """Ensure output directory exists and return Path object.

    Args:
        output_path: Output file path (string or Path)

    Returns:
        Path object with directory created
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path
