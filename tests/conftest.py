from __future__ import annotations

import geopandas as gpd
import matplotlib
import pytest
from shapely.geometry import box

matplotlib.use("Agg")

PROJECTED_CRS = "EPSG:3857"


def squares_frame(specs, *, id_field="name", crs=PROJECTED_CRS):
    """Build a polygon frame from (identifier, xmin, ymin, xmax, ymax) tuples."""
    return gpd.GeoDataFrame(
        {id_field: [spec[0] for spec in specs]},
        geometry=[box(*spec[1:]) for spec in specs],
        crs=crs,
    )


@pytest.fixture
def three_squares():
    # Three squares over x 0..30 separated by 2-unit gaps, left to right.
    return squares_frame(
        [
            ("A", 0, 0, 9, 8),
            ("B", 11, 0, 19, 8),
            ("C", 21, 0, 30, 8),
        ]
    )


@pytest.fixture
def distant_pair():
    return squares_frame(
        [
            ("A", 0, 0, 8, 8),
            ("B", 18, 0, 26, 8),
        ]
    )


@pytest.fixture
def contiguous_and_island():
    return squares_frame(
        [
            ("A", 0, 0, 4, 4),
            ("B", 4, 0, 8, 4),
            ("C", 10, 0, 14, 4),
        ]
    )
