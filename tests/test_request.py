from __future__ import annotations

import logging

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Point, box

from cartoborders.request import (
    BorderConfigurationError,
    normalize_features,
    normalize_request,
    resolve_grid_parameters,
)
from conftest import squares_frame


def test_request_keeps_explicit_parameters(three_squares):
    request = normalize_request(three_squares, "name", resolution=2, width=4)
    assert request.id_field == "name"
    assert request.resolution == 2.0
    assert request.width == 4.0
    assert request.crs == three_squares.crs


def test_defaults_follow_feature_extent():
    resolution, width = resolve_grid_parameters((0, 0, 3000, 1500), resolution=None, width=None)
    assert resolution == 20.0
    assert width == 150.0


def test_defaults_fall_back_to_unrounded_values_on_small_extents():
    resolution, width = resolve_grid_parameters((0, 0, 30, 10), resolution=None, width=None)
    assert resolution == pytest.approx(0.2)
    assert width == 2.0


@pytest.mark.parametrize("value", [0, -1, float("nan"), float("inf"), "5", True])
def test_rejects_invalid_resolution(value):
    with pytest.raises(BorderConfigurationError):
        resolve_grid_parameters((0, 0, 10, 10), resolution=value, width=2)


def test_rejects_invalid_width():
    with pytest.raises(BorderConfigurationError, match="width"):
        resolve_grid_parameters((0, 0, 10, 10), resolution=1, width=-3)


def test_warns_on_degenerate_grid(caplog):
    with caplog.at_level(logging.WARNING, logger="cartoborders.request"):
        resolve_grid_parameters((0, 0, 10, 2), resolution=50, width=1)
    assert "degenerate" in caplog.text


def test_missing_input_is_rejected():
    with pytest.raises(BorderConfigurationError, match="required"):
        normalize_request(None, resolution=1, width=1)


def test_plain_dataframe_is_rejected():
    with pytest.raises(BorderConfigurationError, match="GeoDataFrame"):
        normalize_features(pd.DataFrame({"name": ["A", "B"]}))


def test_points_are_rejected():
    frame = gpd.GeoDataFrame({"name": ["a", "b"]}, geometry=[Point(0, 0), Point(1, 1)], crs="EPSG:3857")
    with pytest.raises(BorderConfigurationError, match="Point"):
        normalize_features(frame, "name")


def test_unknown_identifier_field(three_squares):
    with pytest.raises(BorderConfigurationError, match="not found"):
        normalize_features(three_squares, "missing")


def test_identifier_field_by_position(three_squares):
    frame = three_squares.assign(code=[1, 2, 3])
    _, id_field = normalize_features(frame, 1)
    assert id_field == "code"


def test_column_label_wins_over_position():
    frame = gpd.GeoDataFrame(
        {"name": ["A", "B"], 0: ["x", "y"]},
        geometry=[box(0, 0, 1, 1), box(2, 0, 3, 1)],
        crs="EPSG:3857",
    )
    _, id_field = normalize_features(frame, 0)
    assert id_field == 0
    _, default_field = normalize_features(frame[[0, "geometry"]])
    assert default_field == 0


def test_frame_without_attributes_is_rejected():
    frame = gpd.GeoDataFrame(geometry=[box(0, 0, 1, 1)], crs="EPSG:3857")
    with pytest.raises(BorderConfigurationError, match="no identifier column"):
        normalize_features(frame)


def test_rows_without_identifier_are_dropped(caplog):
    frame = squares_frame([("A", 0, 0, 1, 1), (None, 2, 0, 3, 1), ("C", 4, 0, 5, 1)])
    with caplog.at_level(logging.WARNING, logger="cartoborders.request"):
        features, _ = normalize_features(frame, "name")
    assert list(features["name"]) == ["A", "C"]
    assert "Dropping 1 feature" in caplog.text


def test_missing_crs_is_accepted_with_warning(caplog):
    frame = squares_frame([("A", 0, 0, 1, 1)], crs=None)
    with caplog.at_level(logging.WARNING, logger="cartoborders.request"):
        normalize_features(frame, "name")
    assert "no CRS" in caplog.text


def test_res_and_resolution_together_are_rejected(three_squares):
    with pytest.raises(BorderConfigurationError, match="only one"):
        normalize_request(three_squares, "name", resolution=1, res=1, width=2)
