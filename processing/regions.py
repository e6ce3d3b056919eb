#!/usr/bin/env python3
"""
Region loading for the choropleth pipeline.

Regions come from exactly one place: the public example dataset (downloaded
on demand, with synthetic metrics attached) or a local vector file. Either
way the result is a GeoDataFrame in WGS84 with a unique integer
``region_id`` and, when the source has one, a ``name`` column.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

import geopandas as gpd
import numpy as np
import pandas as pd
import requests
from loguru import logger

from .data_utils import find_column, normalize_to_wgs84, repair_geometries
from .errors import ConfigurationError, DataSourceError, InputValidationError
from .metrics import synthesize_example_metrics
from .schema import REGION_SCHEMA, describe

if TYPE_CHECKING:
    from ops import Config


@dataclass(frozen=True)
class RegionSource:
    """Where regions come from. Exactly one of ``use_example``/``geometry_path`` may be set."""

    use_example: bool = False
    geometry_path: Optional[Path] = None
    example_url: Optional[str] = None
    timeout_seconds: float = 30
    seed: int = 42
    name_aliases: Tuple[str, ...] = ("NAME", "Name", "NAMELSAD")

    @classmethod
    def from_config(cls, config: "Config") -> "RegionSource":
        return cls(
            use_example=bool(config.get("example.enabled", False)),
            geometry_path=config.get_input_path("geometry"),
            example_url=config.get("example.url"),
            timeout_seconds=float(config.get("example.timeout_seconds", 30)),
            seed=int(config.get("example.seed", 42)),
            name_aliases=tuple(config.get_column_setting("name_aliases") or ()),
        )


def load_regions(source: RegionSource, rng: Optional[np.random.Generator] = None) -> gpd.GeoDataFrame:
    """
    Load the region collection selected by ``source``.

    Args:
        source: Geometry source selection
        rng: Generator for example metrics; defaults to one seeded with ``source.seed``

    Returns:
        GeoDataFrame in EPSG:4326 with a unique ``region_id`` column

    Raises:
        ConfigurationError: no source, or both sources, selected
        DataSourceError: download or file read failed
        InputValidationError: duplicate ids or no usable geometry
    """
    if source.geometry_path is not None and source.use_example:
        raise ConfigurationError(
            f"Both a geometry file ({source.geometry_path}) and the example dataset are enabled; "
            "choose one (disable example.enabled or unset input_files.geometry)"
        )

    if source.geometry_path is not None:
        logger.info(f"🗺️ Loading regions from {source.geometry_path}")
        regions = read_geometry_file(source.geometry_path)
        return normalize_regions(regions, source.name_aliases)

    if source.use_example:
        if not source.example_url:
            raise ConfigurationError("Example mode is enabled but example.url is not set")
        logger.info("🌐 Loading example regions")
        regions = normalize_regions(
            fetch_example_regions(source.example_url, source.timeout_seconds),
            source.name_aliases,
        )
        if rng is None:
            rng = np.random.default_rng(source.seed)
        return synthesize_example_metrics(regions, rng)

    logger.critical("❌ No geometry source configured")
    raise ConfigurationError(
        "No geometry source configured: set input_files.geometry (or --geometry PATH) "
        "or enable the example dataset (example.enabled / --example)"
    )


def read_geometry_file(path: Path) -> gpd.GeoDataFrame:
    """Parse a local vector file, wrapping reader failures in DataSourceError."""
    path = Path(path)
    if not path.exists():
        logger.critical(f"❌ Geometry file not found: {path}")
        raise DataSourceError(f"Geometry file not found: {path}")

    try:
        gdf = gpd.read_file(path)
    except Exception as e:
        logger.critical(f"❌ Could not read geometry file {path}: {e}")
        raise DataSourceError(f"Could not read geometry file {path}: {e}") from e

    logger.success(f"  ✅ Loaded {len(gdf):,} features from {path.name}")
    return gdf


def fetch_example_regions(url: str, timeout_seconds: float) -> gpd.GeoDataFrame:
    """
    Download the example polygon dataset to a temporary file and parse it.

    The temporary directory is removed whether or not parsing succeeds.
    """
    logger.info(f"  📥 Downloading {url} (timeout {timeout_seconds:.0f}s)")

    with tempfile.TemporaryDirectory(prefix="choropleth_example_") as tmp_dir:
        try:
            response = requests.get(url, timeout=timeout_seconds)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            logger.critical(f"❌ Timed out after {timeout_seconds}s downloading {url}")
            raise DataSourceError(f"Timed out after {timeout_seconds}s downloading {url}") from e
        except requests.exceptions.RequestException as e:
            logger.critical(f"❌ Download failed: {e}")
            raise DataSourceError(f"Could not download example dataset from {url}: {e}") from e

        suffix = Path(url.split("?")[0]).suffix or ".geojson"
        download_path = Path(tmp_dir) / f"example_regions{suffix}"
        download_path.write_bytes(response.content)
        logger.debug(f"  💾 Saved {len(response.content):,} bytes to {download_path}")

        return read_geometry_file(download_path)


def normalize_regions(gdf: gpd.GeoDataFrame, name_aliases: Tuple[str, ...] = ()) -> gpd.GeoDataFrame:
    """
    Bring a freshly parsed region collection up to the pipeline contract.

    Drops/repairs bad geometry, resolves the name column, assigns or
    validates ``region_id`` and normalizes the CRS to WGS84.
    """
    logger.debug("🧹 Normalizing region collection...")

    gdf = repair_geometries(gdf, "region geometries")
    gdf = gdf.reset_index(drop=True)

    if len(gdf) == 0:
        raise InputValidationError("Region source contains no features with usable geometry")

    if "name" not in gdf.columns:
        name_col = find_column(gdf, name_aliases, "region name")
        if name_col is not None:
            gdf = gdf.rename(columns={name_col: "name"})
            logger.debug(f"  ✓ Using '{name_col}' as region name")

    if "region_id" not in gdf.columns:
        gdf = assign_region_ids(gdf)
    else:
        gdf = validate_region_ids(gdf)

    REGION_SCHEMA.validate(describe(gdf))

    gdf = normalize_to_wgs84(gdf, "regions")
    logger.success(f"  ✅ {len(gdf):,} regions ready")
    return gdf


def assign_region_ids(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Add ``region_id`` = 1..N in iteration order."""
    gdf = gdf.copy()
    gdf.insert(0, "region_id", np.arange(1, len(gdf) + 1, dtype="int64"))
    logger.debug(f"  🔢 Assigned region_id 1..{len(gdf)}")
    return gdf


def validate_region_ids(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Coerce an existing ``region_id`` column to integers and require uniqueness."""
    ids = pd.to_numeric(gdf["region_id"], errors="coerce")
    bad = ids.isna() | (ids != ids.round())
    if bad.any():
        examples = gdf.loc[bad, "region_id"].head(5).tolist()
        raise InputValidationError(f"region_id must be an integer for every region; bad values: {examples}")

    duplicated = ids[ids.duplicated(keep=False)]
    if len(duplicated) > 0:
        dupes = sorted(set(int(v) for v in duplicated))
        logger.critical(f"❌ Duplicate region_id values: {dupes[:10]}")
        raise InputValidationError(f"region_id values must be unique; duplicates: {dupes[:10]}")

    gdf = gdf.copy()
    gdf["region_id"] = ids.astype("int64")
    return gdf
