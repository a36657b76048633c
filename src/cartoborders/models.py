"""Domain models shared across the border pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable

import numpy as np
from rasterio.transform import Affine, from_origin


BORDER_COLUMNS = ("id", "id1", "id2")
OUTER_SUFFIX = "_o"
NA_LABEL = 0


@dataclass(frozen=True, slots=True)
class GridSpec:
    """Regular grid anchored at its upper-left corner, rows growing southward."""

    xmin: float
    ymax: float
    resolution: float
    n_cols: int
    n_rows: int

    @property
    def shape(self) -> tuple[int, int]:
        return (self.n_rows, self.n_cols)

    @property
    def transform(self) -> Affine:
        return from_origin(self.xmin, self.ymax, self.resolution, self.resolution)

    @property
    def xmax(self) -> float:
        return self.xmin + self.n_cols * self.resolution

    @property
    def ymin(self) -> float:
        return self.ymax - self.n_rows * self.resolution

    def center_coordinates(self) -> tuple[np.ndarray, np.ndarray]:
        """Return x and y cell-center arrays with the grid's shape."""
        cols = self.xmin + (np.arange(self.n_cols) + 0.5) * self.resolution
        rows = self.ymax - (np.arange(self.n_rows) + 0.5) * self.resolution
        xs, ys = np.meshgrid(cols, rows)
        return (xs, ys)

    def cell_indices(self, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Nearest-cell lookup for coordinate arrays.

        Returns row and column index arrays plus a mask of coordinates that
        fall inside the grid. Indices outside that mask are clamped to 0.
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        finite = np.isfinite(xs) & np.isfinite(ys)
        with np.errstate(invalid="ignore"):
            cols = np.floor((np.where(finite, xs, self.xmin) - self.xmin) / self.resolution)
            rows = np.floor((self.ymax - np.where(finite, ys, self.ymax)) / self.resolution)
        inside = finite & (rows >= 0) & (cols >= 0) & (rows < self.n_rows) & (cols < self.n_cols)
        rows = np.where(inside, rows, 0).astype(np.intp)
        cols = np.where(inside, cols, 0).astype(np.intp)
        return (rows, cols, inside)


@dataclass(frozen=True, slots=True)
class LabelGrid:
    """Integer label per cell; NA_LABEL marks cells not owned by any region."""

    spec: GridSpec
    labels: np.ndarray

    def __post_init__(self) -> None:
        if self.labels.shape != self.spec.shape:
            raise ValueError(
                f"Label array shape {self.labels.shape} does not match grid shape {self.spec.shape}"
            )

    @property
    def labeled_mask(self) -> np.ndarray:
        return self.labels != NA_LABEL

    @property
    def labeled_count(self) -> int:
        return int(np.count_nonzero(self.labeled_mask))

    def distinct_labels(self) -> tuple[int, ...]:
        values = np.unique(self.labels[self.labeled_mask])
        return tuple(int(v) for v in values)


@dataclass(frozen=True, slots=True)
class ProximityField:
    """Distance (map units) and bearing (radians, 0 = north, clockwise) per cell.

    Labeled cells carry a distance of 0. Cells farther than the search width
    from every labeled cell hold NaN in both arrays.
    """

    distance: np.ndarray
    direction: np.ndarray

    @property
    def resolved_mask(self) -> np.ndarray:
        return ~np.isnan(self.distance)


@dataclass(frozen=True, slots=True)
class BordersRequest:
    """Canonical, validated input for one border extraction call."""

    features: Any
    id_field: Hashable
    resolution: float
    width: float

    @property
    def crs(self) -> Any:
        return self.features.crs
