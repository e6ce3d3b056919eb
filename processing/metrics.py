#!/usr/bin/env python3
"""
Metric joining for the choropleth pipeline.

External metrics are merged onto the regions with left-join semantics: every
region survives, in its original order, exactly once. The join key is
negotiated from what both tables carry: ``name`` first, then ``region_id``.
"""

from pathlib import Path
from typing import Optional

import geopandas as gpd
import numpy as np
import pandas as pd
from loguru import logger

from .data_utils import sanitize_column_names
from .errors import DataSourceError
from .schema import METRICS_SCHEMA, Capabilities, describe

JOIN_KEY_PRECEDENCE = ("name", "region_id")


def synthesize_example_metrics(regions: gpd.GeoDataFrame, rng: np.random.Generator) -> gpd.GeoDataFrame:
    """
    Attach reproducible sample metrics to the example regions.

    ``crime_rate`` is drawn from [100, 800] and ``pollution_index`` from
    [10, 80], both rounded to one decimal place.
    """
    regions = regions.copy()
    n = len(regions)
    regions["crime_rate"] = np.round(rng.uniform(100, 800, size=n), 1)
    regions["pollution_index"] = np.round(rng.uniform(10, 80, size=n), 1)
    logger.debug(f"  🎲 Synthesized crime_rate and pollution_index for {n} regions")
    return regions


def read_metrics_table(path: Path) -> pd.DataFrame:
    """Read an external metrics CSV and sanitize its column names."""
    path = Path(path)
    logger.info(f"📊 Loading metrics from {path}")

    if not path.exists():
        logger.critical(f"❌ Metrics file not found: {path}")
        raise DataSourceError(f"Metrics file not found: {path}")

    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
        logger.critical(f"❌ Could not read metrics file {path}: {e}")
        raise DataSourceError(f"Could not read metrics file {path}: {e}") from e

    df = sanitize_column_names(df)
    logger.success(f"  ✅ Loaded {len(df):,} metric rows with columns {list(df.columns)}")
    return df


def select_join_key(region_caps: Capabilities, metrics_caps: Capabilities) -> Optional[str]:
    """
    Pick the join key: ``name`` when both sides have it, else ``region_id``
    when the metrics carry it, else None (no join).
    """
    if region_caps.has_name and metrics_caps.has_name:
        return "name"
    if metrics_caps.has_region_id and region_caps.has_region_id:
        return "region_id"
    return None


def _normalize_key(series: pd.Series, key: str) -> pd.Series:
    if key == "region_id":
        return pd.to_numeric(series, errors="coerce").astype("Int64")
    return series.astype("string").str.strip()


def join_metrics(regions: gpd.GeoDataFrame, metrics: Optional[pd.DataFrame]) -> gpd.GeoDataFrame:
    """
    Left-join an external metrics table onto the regions.

    Args:
        regions: Region collection (not modified)
        metrics: External metrics table, or None

    Returns:
        A new GeoDataFrame with one row per input region, in input order.
        Unmatched regions carry NaN in the merged columns. When no join key
        can be negotiated the input is returned unchanged.
    """
    if metrics is None:
        logger.debug("  No external metrics configured, skipping join")
        return regions

    region_caps = describe(regions)
    metrics_caps = describe(metrics)
    METRICS_SCHEMA.validate(metrics_caps)

    key = select_join_key(region_caps, metrics_caps)
    if key is None:
        logger.warning(
            "⚠️ Metrics table has neither 'name' (matching region names) nor 'region_id'; "
            f"skipping join. Metrics columns: {list(metrics_caps.columns)}"
        )
        return regions

    logger.info(f"🔗 Joining {len(metrics):,} metric rows on '{key}'")

    right = metrics.copy()
    right[key] = _normalize_key(right[key], key)

    null_keys = right[key].isna()
    if null_keys.any():
        logger.warning(f"  ⚠️ Dropping {int(null_keys.sum())} metric rows with an empty or invalid '{key}'")
        right = right[~null_keys]

    duplicated = right[key].duplicated(keep="first")
    if duplicated.any():
        logger.warning(f"  ⚠️ Dropping {int(duplicated.sum())} metric rows with duplicate '{key}' (first wins)")
        right = right[~duplicated]

    # Other join-key candidates on the metrics side are not merged
    drop_cols = [c for c in JOIN_KEY_PRECEDENCE if c != key and c in right.columns]
    right = right.drop(columns=drop_cols)

    value_cols = [c for c in right.columns if c != key]
    overlapping = [c for c in value_cols if c in regions.columns]

    left = regions.copy()
    left_key = _normalize_key(left[key], key)
    matched = left_key.isin(right[key])

    aligned = (
        pd.DataFrame({key: left_key})
        .merge(right, on=key, how="left", validate="many_to_one")
        .drop(columns=[key])
    )
    aligned.index = left.index

    for col in value_cols:
        if col in overlapping:
            left[col] = aligned[col].where(matched, left[col])
        else:
            left[col] = aligned[col]

    if overlapping:
        logger.debug(f"  ↪ Replaced matched values in existing columns: {overlapping}")

    matched_count = int(matched.sum())
    logger.info(f"  📍 Matched {matched_count}/{len(left)} regions")
    if matched_count < len(left):
        unmatched = left.loc[~matched, key].head(5).tolist()
        logger.debug(f"     Example unmatched regions: {unmatched}")
    orphan_keys = set(right[key].dropna()) - set(left_key.dropna())
    if orphan_keys:
        logger.debug(f"     {len(orphan_keys)} metric keys matched no region, e.g. {sorted(map(str, orphan_keys))[:5]}")

    logger.success(f"  ✅ Merged columns {value_cols} onto {len(left):,} regions")
    return left
