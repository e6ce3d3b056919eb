"""Tests for the equal-width colour scale."""

import math

import pytest
from branca.colormap import StepColormap

from rendering.color_scale import build_color_scale, palette_colors

NAN_COLOR = "#d3d3d3"


@pytest.fixture
def scale():
    return build_color_scale([100, 400, 800], bins=6, palette="YlOrRd", nan_color=NAN_COLOR)


def test_domain_and_thresholds(scale):
    assert scale.vmin == 100
    assert scale.vmax == 800
    assert scale.bins == 6
    assert len(scale.thresholds) == 7
    assert scale.thresholds[0] == 100
    assert scale.thresholds[-1] == 800


def test_min_and_max_map_to_first_and_last_colors(scale):
    assert scale(100) == scale.colors[0]
    assert scale(800) == scale.colors[-1]
    assert scale.bin_index(400) == 2


def test_missing_and_out_of_domain_values_get_nan_color(scale):
    assert scale(None) == NAN_COLOR
    assert scale(math.nan) == NAN_COLOR
    assert scale(99.9) == NAN_COLOR
    assert scale(800.1) == NAN_COLOR
    assert scale("not a number") == NAN_COLOR


def test_missing_values_do_not_shift_the_domain():
    scale = build_color_scale([None, 10, math.nan, 20], bins=2)

    assert (scale.vmin, scale.vmax) == (10, 20)
    assert scale(10) == scale.colors[0]
    assert scale(20) == scale.colors[1]


def test_single_value_domain_lands_in_middle_bin():
    scale = build_color_scale([5, 5, 5], bins=6)

    assert scale.bin_index(5) in (2, 3)
    assert scale(5) != scale.nan_color
    assert scale(4) == scale.nan_color


def test_all_missing_values_give_empty_scale():
    scale = build_color_scale([None, math.nan], bins=6, nan_color=NAN_COLOR)

    assert scale.is_empty
    assert scale(1) == NAN_COLOR
    assert scale.to_branca("Empty") is None


def test_palette_has_one_distinct_color_per_bin():
    colors = palette_colors("YlOrRd", 6)

    assert len(colors) == 6
    assert len(set(colors)) == 6
    assert all(c.startswith("#") and len(c) == 7 for c in colors)


def test_bin_labels(scale):
    labels = scale.bin_labels()

    assert len(labels) == 6
    assert labels[0].startswith("100.0")
    assert labels[-1].endswith("800.0")


def test_branca_legend(scale):
    legend = scale.to_branca("Crime Rate")

    assert isinstance(legend, StepColormap)
    assert legend.caption == "Crime Rate"
    assert legend.vmin == 100
    assert legend.vmax == 800


def test_zero_bins_rejected():
    with pytest.raises(ValueError):
        build_color_scale([1, 2], bins=0)
