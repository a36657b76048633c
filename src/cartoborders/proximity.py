"""Proximity transform stage: distance and bearing to the nearest labeled cell."""

from __future__ import annotations

import logging
import math

import numpy as np
from scipy import ndimage

from .models import LabelGrid, ProximityField


_LOGGER = logging.getLogger("cartoborders.proximity")


def proximity_transform(grid: LabelGrid, width: float) -> ProximityField:
    """Exact Euclidean distance transform between cell centers.

    Distances are in map units. Bearings follow the compass convention
    (0 = north, clockwise) and point from a cell toward its nearest labeled
    cell. Cells beyond ``width`` are left unresolved (NaN).
    """
    shape = grid.spec.shape
    labeled = grid.labeled_mask
    if not labeled.any():
        _LOGGER.debug("No labeled cell in grid; proximity field is empty.")
        empty = np.full(shape, np.nan, dtype=np.float64)
        return ProximityField(distance=empty, direction=empty.copy())

    res = grid.spec.resolution
    distance, (target_rows, target_cols) = ndimage.distance_transform_edt(
        ~labeled,
        sampling=(res, res),
        return_distances=True,
        return_indices=True,
    )
    rows, cols = np.indices(shape)
    dx = (target_cols - cols) * res
    # Row numbers grow southward.
    dy = (rows - target_rows) * res
    direction = np.mod(np.arctan2(dx, dy), 2.0 * math.pi)
    direction[labeled] = 0.0

    distance = distance.astype(np.float64, copy=False)
    out_of_range = distance > width
    distance[out_of_range] = np.nan
    direction[out_of_range] = np.nan

    _LOGGER.debug(
        "Proximity transform: %d labeled, %d within width, %d unresolved cells.",
        int(np.count_nonzero(labeled)),
        int(np.count_nonzero(~labeled & ~out_of_range)),
        int(np.count_nonzero(out_of_range)),
    )
    return ProximityField(distance=distance, direction=direction)
