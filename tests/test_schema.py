"""Tests for capability descriptors and stage schemas."""

import pandas as pd
import pytest

from processing.errors import InputValidationError
from processing.schema import POINT_SCHEMA, REGION_SCHEMA, describe


def test_describe_excludes_geometry(regions):
    caps = describe(regions)

    assert caps.columns == ("region_id", "name", "crime_rate")
    assert caps.has_name
    assert caps.has_region_id
    assert "geometry" in describe(regions, include_geometry=True).columns


def test_has_handles_none():
    caps = describe(pd.DataFrame({"a": [1]}))

    assert not caps.has(None)
    assert caps.missing(["a", "b"]) == ["b"]


def test_required_and_optional_fields():
    assert POINT_SCHEMA.required == ("latitude", "longitude")
    assert POINT_SCHEMA.optional == ("name", "description")
    assert REGION_SCHEMA.required == ("region_id",)


def test_validate_lists_missing_and_available_columns():
    caps = describe(pd.DataFrame({"latitude": [1.0], "label": ["x"]}))

    with pytest.raises(InputValidationError) as exc_info:
        POINT_SCHEMA.validate(caps)

    assert exc_info.value.missing_fields == ["longitude"]
    assert exc_info.value.available_columns == ["latitude", "label"]
    assert "longitude" in str(exc_info.value)
