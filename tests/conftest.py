"""
Shared fixtures for the choropleth pipeline tests.

Everything runs offline: regions are small synthetic squares and the
example-dataset download is replaced with a fake response.
"""

import json

import matplotlib

matplotlib.use("Agg")

import pytest  # noqa: E402
import yaml  # noqa: E402
from loguru import logger  # noqa: E402

from rendering.options import OutputPaths, RenderOptions  # noqa: E402
from tests.helpers import FakeResponse, square_regions  # noqa: E402


@pytest.fixture
def regions():
    return square_regions()


@pytest.fixture
def geometry_file(tmp_path):
    """GeoJSON file without region_id, as a user-supplied boundary file would be."""
    path = tmp_path / "regions.geojson"
    square_regions(with_ids=False).to_file(path, driver="GeoJSON")
    return path


@pytest.fixture
def example_geojson_bytes() -> bytes:
    """Raw GeoJSON shaped like the public US states file (NAME property, no ids)."""
    gdf = square_regions(names=("Alabama", "Alaska", "Arizona", "Arkansas"), values=(1, 2, 3, 4), with_ids=False)
    gdf = gdf.drop(columns=["crime_rate"]).rename(columns={"name": "NAME"})
    return json.dumps(gdf.__geo_interface__).encode("utf-8")


@pytest.fixture
def fake_download(monkeypatch, example_geojson_bytes):
    """Replace requests.get in the region loader; records each call."""
    calls = []

    def fake_get(url, timeout=None, **kwargs):
        calls.append({"url": url, "timeout": timeout})
        return FakeResponse(example_geojson_bytes)

    monkeypatch.setattr("processing.regions.requests.get", fake_get)
    return calls


@pytest.fixture
def render_options() -> RenderOptions:
    return RenderOptions(
        metric="crime_rate",
        secondary_metric=None,
        static_size=(4, 3),
        static_dpi=50,
    )


@pytest.fixture
def output_paths(tmp_path) -> OutputPaths:
    out = tmp_path / "out"
    return OutputPaths(
        interactive_map=out / "map.html",
        static_image=out / "map.png",
        metrics_csv=out / "metrics.csv",
    )


@pytest.fixture
def config_file(tmp_path, geometry_file):
    """Config selecting the local geometry file and writing into tmp_path/out."""
    config = {
        "project_name": "Test Maps",
        "example": {"enabled": False},
        "input_files": {"geometry": str(geometry_file)},
        "directories": {"output": str(tmp_path / "out")},
        "visualization": {
            "metric": "crime_rate",
            "secondary_metric": None,
            "static_width": 4,
            "static_height": 3,
            "static_dpi": 50,
        },
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
