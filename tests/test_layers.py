from __future__ import annotations

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from matplotlib.colors import to_rgba
from shapely.geometry import LineString, MultiLineString, Point, box

from cartoborders.borders import get_outer_borders
from cartoborders.config import RenderStyleConfig
from cartoborders.layers import (
    borders_layer,
    disc_layer,
    prop_symbols_typo_layer,
    render_borders_map,
)


@pytest.fixture
def borders():
    return gpd.GeoDataFrame(
        {
            "id": ["A_B", "B_C", "A_C"],
            "id1": ["A", "B", "A"],
            "id2": ["B", "C", "C"],
        },
        geometry=[
            MultiLineString([LineString([(1, 0), (1, 1)])]),
            MultiLineString([LineString([(2, 0), (2, 1)])]),
            MultiLineString([LineString([(0, 2), (1, 2)]), LineString([(2, 2), (3, 2)])]),
        ],
        crs="EPSG:3857",
    )


@pytest.fixture
def values():
    return pd.DataFrame({"code": ["A", "B", "C"], "pop": [10.0, 20.0, 80.0]})


def test_borders_layer_draws_every_part(borders):
    fig, ax = plt.subplots()
    try:
        borders_layer(borders, ax, col="black", lwd=2)
        assert len(ax.lines) == 4
        assert all(line.get_linewidth() == 2 for line in ax.lines)
    finally:
        plt.close(fig)


def test_borders_layer_rejects_misaligned_widths(borders):
    fig, ax = plt.subplots()
    try:
        with pytest.raises(ValueError, match="line widths"):
            borders_layer(borders, ax, lwd=[1, 2])
    finally:
        plt.close(fig)


def test_disc_layer_relative_widths(borders, values):
    ax, drawn = disc_layer(borders, values, "pop", threshold=0.0, sizemin=1, sizemax=10)
    try:
        disc = dict(zip(drawn["id"], drawn["disc"]))
        assert disc == pytest.approx({"A_B": 2.0, "B_C": 4.0, "A_C": 8.0})
        widths = dict(zip(drawn["id"], drawn["lwd"]))
        assert widths["A_B"] == pytest.approx(1.0)
        assert widths["B_C"] == pytest.approx(4.0)
        assert widths["A_C"] == pytest.approx(10.0)
    finally:
        plt.close(ax.figure)


def test_disc_layer_threshold_hides_small_discontinuities(borders, values):
    ax, drawn = disc_layer(borders, values, "pop", type="abs", threshold=0.5)
    try:
        assert set(drawn["id"]) == {"B_C", "A_C"}
        assert drawn["disc"].min() == pytest.approx(60.0)
    finally:
        plt.close(ax.figure)


def test_disc_layer_skips_unknown_identifiers(borders):
    partial = pd.DataFrame({"code": ["A", "B"], "pop": [10.0, 30.0]})
    ax, drawn = disc_layer(borders, partial, "pop", threshold=0.0)
    try:
        assert drawn["id"].tolist() == ["A_B"]
        assert drawn["lwd"].tolist() == [10.0]
    finally:
        plt.close(ax.figure)


def test_disc_layer_rejects_unknown_type(borders, values):
    with pytest.raises(ValueError, match="type"):
        disc_layer(borders, values, "pop", type="ratio")


def test_render_borders_map_writes_png(tmp_path, three_squares):
    outer = get_outer_borders(three_squares, "name", resolution=1, width=5)
    style = RenderStyleConfig.default()
    path = render_borders_map(three_squares, outer, tmp_path / "maps" / "outer.png", style)
    assert path.exists()
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def towns():
    return gpd.GeoDataFrame(
        {
            "name": ["big", "small", "mid", "unknown"],
            "pop": [400.0, 25.0, 100.0, 100.0],
            "status": ["capital", "village", "village", None],
        },
        geometry=[Point(0, 0), Point(10, 0), Point(20, 0), Point(30, 0)],
        crs="EPSG:3857",
    )


def _facecolors(ax):
    return [tuple(patch.get_facecolor()) for patch in ax.patches]


def test_typo_layer_circles_scale_by_area(towns):
    ax, drawn, palette = prop_symbols_typo_layer(
        towns, "pop", "status", inches=0.4, col=["red", "blue"]
    )
    try:
        assert drawn["name"].tolist() == ["big", "mid", "unknown", "small"]
        radii = [patch.get_radius() for patch in ax.patches]
        assert radii == pytest.approx([0.4, 0.2, 0.2, 0.1])
        assert palette == {"capital": "red", "village": "blue"}
        assert _facecolors(ax) == [
            to_rgba("red"),
            to_rgba("blue"),
            to_rgba("white"),
            to_rgba("blue"),
        ]
    finally:
        plt.close(ax.figure)


def test_typo_layer_squares_follow_fixmax(towns):
    ax, drawn, _ = prop_symbols_typo_layer(
        towns, "pop", "status", inches=0.3, fixmax=1600, symbols="square", col_na="#eeeeee"
    )
    try:
        sides = [patch.get_width() for patch in ax.patches]
        assert sides == pytest.approx([0.15, 0.075, 0.075, 0.0375])
        assert [patch.get_height() for patch in ax.patches] == pytest.approx(sides)
        big = ax.patches[0]
        assert big.get_xy() == pytest.approx((-0.075, -0.075))
        assert drawn["color"].tolist()[2] == "#eeeeee"
    finally:
        plt.close(ax.figure)


def test_typo_layer_bars_stand_on_their_point(towns):
    ax, drawn, _ = prop_symbols_typo_layer(towns, "pop", "status", inches=0.7, symbols="bar")
    try:
        heights = [patch.get_height() for patch in ax.patches]
        assert heights == pytest.approx([0.7, 0.175, 0.175, 0.04375])
        assert drawn["size"].tolist() == pytest.approx(heights)
        for patch in ax.patches:
            assert patch.get_width() == pytest.approx(0.1)
            assert patch.get_xy() == pytest.approx((-0.05, 0.0))
    finally:
        plt.close(ax.figure)


def test_typo_layer_uses_polygon_centroids_and_value_order():
    frame = gpd.GeoDataFrame(
        {"pop": [10.0, 40.0, np.nan], "kind": ["b", "a", "a"]},
        geometry=[box(0, 0, 2, 2), box(10, 10, 14, 14), box(20, 0, 22, 2)],
        crs="EPSG:3857",
    )
    ax, drawn, palette = prop_symbols_typo_layer(
        frame, "pop", "kind", values_order=["b", "a"], col=["green", "orange", "purple"]
    )
    try:
        assert len(drawn) == 2
        assert palette == {"b": "green", "a": "orange"}
        assert drawn["color"].tolist() == ["orange", "green"]
        xmin, xmax = ax.get_xlim()
        assert xmin <= 1.0 and xmax >= 12.0
    finally:
        plt.close(ax.figure)


def test_typo_layer_default_palette_covers_categories(towns):
    ax, _, palette = prop_symbols_typo_layer(towns, "pop", "status")
    try:
        assert set(palette) == {"capital", "village"}
        assert len(set(palette.values())) == 2
    finally:
        plt.close(ax.figure)


@pytest.mark.parametrize(
    "kwargs, match",
    [
        ({"symbols": "star"}, "symbols"),
        ({"col": ["red"]}, "colors"),
        ({"values_order": ["capital"]}, "values_order"),
        ({"fixmax": 0}, "fixmax"),
    ],
)
def test_typo_layer_rejects_bad_arguments(towns, kwargs, match):
    with pytest.raises(ValueError, match=match):
        prop_symbols_typo_layer(towns, "pop", "status", **kwargs)
