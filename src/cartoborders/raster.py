"""Rasterizer stage: burn labeled polygons into a regular grid."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import pandas as pd
from rasterio import features as rio_features

from .models import NA_LABEL, GridSpec, LabelGrid


_LOGGER = logging.getLogger("cartoborders.raster")


@dataclass(frozen=True, slots=True)
class IdentifierCoding:
    """Surrogate integer codes (1..N) for the distinct identifiers of a feature set."""

    codes: np.ndarray
    identifiers: tuple[Any, ...]

    @property
    def distinct_count(self) -> int:
        return len(self.identifiers)

    def identifier_for(self, code: int) -> Any:
        return self.identifiers[code - 1]

    @classmethod
    def from_values(cls, values: Sequence[Any]) -> IdentifierCoding:
        codes, uniques = pd.factorize(pd.Series(values), sort=False)
        if (codes < 0).any():
            raise ValueError("Identifier values must not be missing")
        identifiers = tuple(_plain_scalar(v) for v in uniques)
        return cls(codes=codes.astype(np.int32) + 1, identifiers=identifiers)


def build_grid(bounds: Sequence[float], resolution: float, width: float) -> GridSpec:
    """Grid covering ``bounds`` grown by ``width`` on each side."""
    xmin, ymin, xmax, ymax = (float(v) for v in bounds)
    xmin -= width
    ymin -= width
    xmax += width
    ymax += width
    n_cols = max(1, math.ceil((xmax - xmin) / resolution))
    n_rows = max(1, math.ceil((ymax - ymin) / resolution))
    return GridSpec(
        xmin=xmin,
        ymax=ymax,
        resolution=resolution,
        n_cols=n_cols,
        n_rows=n_rows,
    )


def rasterize_features(
    geometries: Sequence[Any],
    codes: Sequence[int],
    grid: GridSpec,
) -> LabelGrid:
    """Label each cell with the code of the polygon covering its center.

    Shapes are burned in input order, so where polygons overlap the one that
    comes last wins the cell.
    """
    if len(geometries) != len(codes):
        raise ValueError("Expected one code per geometry")
    shapes = [(geom, int(code)) for geom, code in zip(geometries, codes) if code != NA_LABEL]
    if not shapes:
        labels = np.full(grid.shape, NA_LABEL, dtype=np.int32)
    else:
        labels = rio_features.rasterize(
            shapes,
            out_shape=grid.shape,
            transform=grid.transform,
            fill=NA_LABEL,
            all_touched=False,
            dtype="int32",
        )
    label_grid = LabelGrid(spec=grid, labels=labels)
    _LOGGER.debug(
        "Rasterized %d feature(s) into %dx%d grid (%d labeled cells).",
        len(shapes),
        grid.n_rows,
        grid.n_cols,
        label_grid.labeled_count,
    )
    return label_grid


def _plain_scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value
