"""Tests for region loading: file mode, example mode and source selection."""

import geopandas as gpd
import numpy as np
import pytest
import requests

from processing.errors import ConfigurationError, DataSourceError, InputValidationError
from processing.regions import RegionSource, load_regions, normalize_regions

from tests.helpers import FakeResponse, square_regions

EXAMPLE_URL = "https://example.org/us-states.json"


def test_file_mode_assigns_sequential_ids(geometry_file):
    regions = load_regions(RegionSource(geometry_path=geometry_file))

    assert regions["region_id"].tolist() == [1, 2, 3]
    assert regions["name"].tolist() == ["A", "B", "C"]
    assert regions.crs.to_epsg() == 4326


def test_file_mode_does_not_synthesize_metrics(geometry_file):
    regions = load_regions(RegionSource(geometry_path=geometry_file))

    assert "pollution_index" not in regions.columns
    assert regions["crime_rate"].tolist() == [100, 400, 800]


def test_existing_ids_are_kept(tmp_path):
    gdf = square_regions()
    gdf["region_id"] = [10, 20, 30]
    path = tmp_path / "ids.geojson"
    gdf.to_file(path, driver="GeoJSON")

    regions = load_regions(RegionSource(geometry_path=path))

    assert regions["region_id"].tolist() == [10, 20, 30]


def test_duplicate_ids_are_rejected():
    gdf = square_regions()
    gdf["region_id"] = [1, 1, 2]

    with pytest.raises(InputValidationError, match="unique"):
        normalize_regions(gdf)


def test_name_alias_is_renamed():
    gdf = square_regions(with_ids=False).rename(columns={"name": "NAMELSAD"})

    regions = normalize_regions(gdf, ("NAME", "NAMELSAD"))

    assert regions["name"].tolist() == ["A", "B", "C"]
    assert "NAMELSAD" not in regions.columns


def test_projected_regions_are_normalized_to_wgs84():
    gdf = square_regions().to_crs("EPSG:3857")

    regions = normalize_regions(gdf)

    assert regions.crs.to_epsg() == 4326
    assert list(regions.total_bounds) == pytest.approx([0, 0, 3, 1], abs=1e-6)


def test_empty_geometries_are_dropped():
    gdf = square_regions(with_ids=False)
    gdf.loc[1, "geometry"] = None

    regions = normalize_regions(gdf)

    assert regions["name"].tolist() == ["A", "C"]
    assert regions["region_id"].tolist() == [1, 2]


def test_missing_file_is_a_data_source_error(tmp_path):
    with pytest.raises(DataSourceError, match="not found"):
        load_regions(RegionSource(geometry_path=tmp_path / "missing.geojson"))


def test_neither_source_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="No geometry source"):
        load_regions(RegionSource(use_example=False, geometry_path=None))


def test_both_sources_is_a_configuration_error(geometry_file):
    with pytest.raises(ConfigurationError, match="choose one"):
        load_regions(RegionSource(use_example=True, geometry_path=geometry_file, example_url=EXAMPLE_URL))


def test_example_mode_downloads_with_timeout(fake_download):
    source = RegionSource(use_example=True, example_url=EXAMPLE_URL, timeout_seconds=5)

    regions = load_regions(source)

    assert fake_download == [{"url": EXAMPLE_URL, "timeout": 5}]
    assert isinstance(regions, gpd.GeoDataFrame)
    assert regions["region_id"].tolist() == [1, 2, 3, 4]
    assert regions["name"].tolist() == ["Alabama", "Alaska", "Arizona", "Arkansas"]


def test_example_metrics_are_in_range_and_reproducible(fake_download):
    source = RegionSource(use_example=True, example_url=EXAMPLE_URL, seed=42)

    first = load_regions(source)
    second = load_regions(source)

    assert first["crime_rate"].between(100, 800).all()
    assert first["pollution_index"].between(10, 80).all()
    assert first["crime_rate"].tolist() == second["crime_rate"].tolist()
    assert first["pollution_index"].tolist() == second["pollution_index"].tolist()


def test_example_metrics_follow_the_given_generator(fake_download):
    source = RegionSource(use_example=True, example_url=EXAMPLE_URL)

    regions = load_regions(source, rng=np.random.default_rng(7))
    expected = np.round(np.random.default_rng(7).uniform(100, 800, size=4), 1)

    assert regions["crime_rate"].tolist() == expected.tolist()


def test_download_timeout_is_a_data_source_error(monkeypatch):
    def slow_get(url, timeout=None, **kwargs):
        raise requests.exceptions.Timeout("read timed out")

    monkeypatch.setattr("processing.regions.requests.get", slow_get)

    with pytest.raises(DataSourceError, match="Timed out"):
        load_regions(RegionSource(use_example=True, example_url=EXAMPLE_URL, timeout_seconds=1))


def test_http_error_is_a_data_source_error(monkeypatch):
    monkeypatch.setattr(
        "processing.regions.requests.get",
        lambda url, timeout=None, **kwargs: FakeResponse(b"", status_code=404),
    )

    with pytest.raises(DataSourceError, match="Could not download"):
        load_regions(RegionSource(use_example=True, example_url=EXAMPLE_URL))
