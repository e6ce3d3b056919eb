"""
Binned colour scale shared by the interactive and the static map.

Binning policy: equal-width. The observed domain [min, max] of the metric
is split into ``bins`` intervals of equal width; each interval gets one
colour sampled from a matplotlib colormap. The minimum lands in the first
bin, the maximum in the last. Missing values and values outside the
observed domain get the "no value" colour.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple

import matplotlib as mpl
import numpy as np
import pandas as pd
from branca.colormap import StepColormap
from loguru import logger


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


@dataclass(frozen=True)
class ColorScale:
    """Maps metric values to hex colours through fixed, equal-width bins."""

    vmin: Optional[float]
    vmax: Optional[float]
    thresholds: Tuple[float, ...]
    colors: Tuple[str, ...]
    nan_color: str

    @property
    def bins(self) -> int:
        return len(self.colors)

    @property
    def is_empty(self) -> bool:
        return self.vmin is None

    def bin_index(self, value: Any) -> Optional[int]:
        """Bin of ``value``, or None for missing / out-of-domain values."""
        number = _as_float(value)
        if number is None or self.is_empty:
            return None
        if number < self.vmin or number > self.vmax:
            return None
        index = int(np.searchsorted(self.thresholds, number, side="right")) - 1
        return min(max(index, 0), self.bins - 1)

    def __call__(self, value: Any) -> str:
        index = self.bin_index(value)
        if index is None:
            return self.nan_color
        return self.colors[index]

    def bin_labels(self, precision: int = 1) -> Tuple[str, ...]:
        """Human-readable ``low – high`` label for each bin."""
        return tuple(
            f"{self.thresholds[i]:,.{precision}f} – {self.thresholds[i + 1]:,.{precision}f}"
            for i in range(self.bins)
        )

    def to_branca(self, caption: str = "") -> Optional[StepColormap]:
        """Legend colormap for folium maps, or None when there is nothing to show."""
        if self.is_empty:
            return None
        colormap = StepColormap(
            colors=list(self.colors),
            index=list(self.thresholds),
            vmin=self.thresholds[0],
            vmax=self.thresholds[-1],
        )
        colormap.caption = caption
        return colormap


def palette_colors(palette: str, bins: int) -> Tuple[str, ...]:
    """Sample ``bins`` evenly spaced colours from a matplotlib colormap."""
    cmap = mpl.colormaps[palette].resampled(bins)
    return tuple(mpl.colors.to_hex(cmap(i)) for i in range(bins))


def build_color_scale(
    values: Iterable[Any],
    bins: int = 6,
    palette: str = "YlOrRd",
    nan_color: str = "#d3d3d3",
) -> ColorScale:
    """
    Build the colour scale from the full metric vector.

    Args:
        values: Every region's metric value, missing values included
        bins: Number of colour bins
        palette: matplotlib colormap name
        nan_color: Colour for missing and out-of-domain values

    Returns:
        ColorScale over the observed domain
    """
    if bins < 1:
        raise ValueError(f"bins must be at least 1, got {bins}")

    numeric = pd.to_numeric(pd.Series(list(values), dtype="object"), errors="coerce").astype(float)
    finite = numeric[np.isfinite(numeric)]
    colors = palette_colors(palette, bins)

    if finite.empty:
        logger.warning("⚠️ Metric has no numeric values; every region will use the no-data colour")
        return ColorScale(None, None, (), colors, nan_color)

    vmin = float(finite.min())
    vmax = float(finite.max())
    if vmin == vmax:
        # Single observed value: centre it in the scale
        thresholds = np.linspace(vmin - 0.5, vmax + 0.5, bins + 1)
    else:
        thresholds = np.linspace(vmin, vmax, bins + 1)

    scale = ColorScale(vmin, vmax, tuple(float(t) for t in thresholds), colors, nan_color)
    logger.debug(f"  🎨 Color scale {palette} over [{vmin}, {vmax}] with {bins} equal-width bins")
    logger.debug(f"     Thresholds: {[round(t, 2) for t in scale.thresholds]}")
    return scale
