"""Nearest-label resolver stage."""

from __future__ import annotations

import logging

import numpy as np

from .models import NA_LABEL, LabelGrid, ProximityField


_LOGGER = logging.getLogger("cartoborders.resolver")


def resolve_nearest_labels(grid: LabelGrid, field: ProximityField) -> LabelGrid:
    """Give every resolved cell the label of its nearest labeled cell.

    The target of each cell is rebuilt from its center, distance and bearing,
    then sampled with a nearest-cell lookup. Unresolved cells and targets
    falling outside the grid stay NA.
    """
    spec = grid.spec
    if field.distance.shape != spec.shape:
        raise ValueError("Proximity field does not match the label grid shape")

    xs, ys = spec.center_coordinates()
    with np.errstate(invalid="ignore"):
        target_x = xs + field.distance * np.sin(field.direction)
        target_y = ys + field.distance * np.cos(field.direction)
    rows, cols, inside = spec.cell_indices(target_x, target_y)

    resolved = np.full(spec.shape, NA_LABEL, dtype=grid.labels.dtype)
    sampled = grid.labels[rows, cols]
    keep = inside & field.resolved_mask
    resolved[keep] = sampled[keep]

    _LOGGER.debug(
        "Resolved %d of %d cells (%d labeled before resolution).",
        int(np.count_nonzero(resolved != NA_LABEL)),
        resolved.size,
        grid.labeled_count,
    )
    return LabelGrid(spec=spec, labels=resolved)
