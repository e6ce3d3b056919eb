"""
Schema negotiation for pipeline inputs.

Each stage declares the fields it requires and the optional fields it can
use. Stages never probe a table for a column directly; they ask the
``Capabilities`` descriptor built by ``describe``.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import pandas as pd
from loguru import logger

from .errors import InputValidationError


@dataclass(frozen=True)
class FieldSpec:
    """One field a stage understands."""

    name: str
    description: str
    required: bool = False


@dataclass(frozen=True)
class Capabilities:
    """Which columns a table actually carries, in their original order."""

    columns: Tuple[str, ...]

    def has(self, name: Optional[str]) -> bool:
        return name is not None and name in self.columns

    def has_all(self, names: Iterable[str]) -> bool:
        return all(self.has(n) for n in names)

    def missing(self, names: Iterable[str]) -> List[str]:
        return [n for n in names if not self.has(n)]

    @property
    def has_name(self) -> bool:
        return self.has("name")

    @property
    def has_region_id(self) -> bool:
        return self.has("region_id")


def describe(frame: pd.DataFrame, include_geometry: bool = False) -> Capabilities:
    """Build the capability descriptor for a (Geo)DataFrame."""
    columns = [str(c) for c in frame.columns]
    if not include_geometry:
        geometry_name = getattr(frame, "_geometry_column_name", None)
        columns = [c for c in columns if c not in ("geometry", geometry_name)]
    return Capabilities(tuple(columns))


@dataclass(frozen=True)
class StageSchema:
    """Required and optional fields of one pipeline stage."""

    stage: str
    fields: Tuple[FieldSpec, ...]

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.required)

    @property
    def optional(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if not f.required)

    def validate(self, caps: Capabilities) -> Capabilities:
        """Raise InputValidationError unless every required field is present."""
        missing = caps.missing(self.required)
        if missing:
            logger.error(f"❌ {self.stage}: missing required columns {missing}")
            logger.info(f"   Available columns: {list(caps.columns)}")
            raise InputValidationError(
                f"{self.stage} input is missing required columns: {', '.join(missing)}. "
                f"Available columns: {', '.join(caps.columns)}",
                missing_fields=missing,
                available_columns=caps.columns,
            )

        present_optional = [name for name in self.optional if caps.has(name)]
        logger.debug(f"  ✓ {self.stage} schema ok (optional fields present: {present_optional})")
        return caps


REGION_SCHEMA = StageSchema(
    "regions",
    (
        FieldSpec("region_id", "Unique integer region identifier", required=True),
        FieldSpec("name", "Region display name"),
    ),
)

METRICS_SCHEMA = StageSchema(
    "metrics",
    (
        FieldSpec("name", "Join key matched against region names"),
        FieldSpec("region_id", "Join key matched against region ids"),
    ),
)

POINT_SCHEMA = StageSchema(
    "points",
    (
        FieldSpec("latitude", "Latitude in decimal degrees (WGS84)", required=True),
        FieldSpec("longitude", "Longitude in decimal degrees (WGS84)", required=True),
        FieldSpec("name", "Marker label"),
        FieldSpec("description", "Marker popup text"),
    ),
)
