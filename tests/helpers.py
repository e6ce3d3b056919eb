"""Builders shared by fixtures and tests."""

import geopandas as gpd
import requests
from shapely.geometry import box


def square_regions(names=("A", "B", "C"), values=(100, 400, 800), with_ids=True) -> gpd.GeoDataFrame:
    """Unit squares laid out west to east, one per name."""
    data = {"name": list(names), "crime_rate": list(values)}
    if with_ids:
        data = {"region_id": list(range(1, len(names) + 1)), **data}
    geometry = [box(i, 0, i + 1, 1) for i in range(len(names))]
    return gpd.GeoDataFrame(data, geometry=geometry, crs="EPSG:4326")


class FakeResponse:
    """Stand-in for requests.Response with just what the loader reads."""

    def __init__(self, content: bytes, status_code: int = 200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")
