"""
Fail-fast checks run before anything is drawn.
"""

import geopandas as gpd
import pandas as pd
from loguru import logger

from processing.data_utils import clean_numeric
from processing.errors import MetricNotFoundError
from processing.schema import describe


def validate_metric(regions: gpd.GeoDataFrame, metric: str) -> pd.Series:
    """
    Check that ``metric`` is a column of ``regions`` and return its values as floats.

    Raises:
        MetricNotFoundError: with the list of available (non-geometry) columns
    """
    caps = describe(regions)
    if not caps.has(metric):
        logger.critical(f"❌ Metric column '{metric}' not found")
        logger.info(f"   Available columns: {list(caps.columns)}")
        raise MetricNotFoundError(metric, caps.columns)

    values = clean_numeric(regions[metric])
    missing = int(values.isna().sum())
    if missing == len(values):
        logger.warning(f"⚠️ Metric '{metric}' has no numeric values")
    elif missing > 0:
        logger.info(f"  📭 {missing}/{len(values)} regions have no value for '{metric}'")

    logger.debug(f"  ✓ Metric '{metric}' range: {values.min()} – {values.max()}")
    return values
