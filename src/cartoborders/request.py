"""Input normalization for border extraction calls."""

from __future__ import annotations

import logging
import math
import warnings
from typing import Any, Hashable

import geopandas as gpd

from .models import BordersRequest


_LOGGER = logging.getLogger("cartoborders.request")

_POLYGON_TYPES = frozenset({"Polygon", "MultiPolygon"})
_DEFAULT_RESOLUTION_DIVISOR = 150.0
_DEFAULT_WIDTH_DIVISOR = 20.0


class BorderConfigurationError(ValueError):
    """Raised when border extraction input is rejected before any grid work."""


def normalize_features(
    x: Any = None,
    id: str | int | None = None,
    *,
    spdf: Any = None,
    spdfid: str | int | None = None,
) -> tuple[gpd.GeoDataFrame, Hashable]:
    """Fold legacy arguments into one validated feature set and identifier field.

    ``id`` names a column label; an integer that is not a label selects an
    attribute column by position. The first attribute column is the default.
    """
    if spdf is not None or spdfid is not None:
        warnings.warn(
            "spdf and spdfid are deprecated; use x and id instead.",
            FutureWarning,
            stacklevel=3,
        )
    if x is None:
        x = spdf
    if spdfid is not None:
        id = spdfid

    if x is None:
        raise BorderConfigurationError("A polygon feature collection is required")
    if not isinstance(x, gpd.GeoDataFrame):
        raise BorderConfigurationError(
            f"Expected a GeoDataFrame, got {type(x).__name__}"
        )

    _check_planar_crs(x)
    id_field = _resolve_id_field(x, id)
    features = _drop_unusable_rows(x, id_field)
    if features.empty:
        raise BorderConfigurationError("Feature collection has no usable polygon")

    geom_types = set(features.geom_type.unique())
    non_polygonal = sorted(geom_types - _POLYGON_TYPES)
    if non_polygonal:
        raise BorderConfigurationError(
            "Only Polygon/MultiPolygon geometries are supported, found: "
            + ", ".join(non_polygonal)
        )
    return (features, id_field)


def normalize_request(
    x: Any = None,
    id: str | int | None = None,
    resolution: float | None = None,
    width: float | None = None,
    *,
    spdf: Any = None,
    spdfid: str | int | None = None,
    res: float | None = None,
) -> BordersRequest:
    """Build the canonical request for outer border extraction.

    ``res`` is accepted as the historical spelling of ``resolution``.
    """
    if res is not None:
        if resolution is not None:
            raise BorderConfigurationError("Use only one of 'resolution' or 'res'")
        warnings.warn(
            "res is deprecated; use resolution instead.",
            FutureWarning,
            stacklevel=3,
        )
        resolution = res

    features, id_field = normalize_features(x, id, spdf=spdf, spdfid=spdfid)
    resolution, width = resolve_grid_parameters(
        features.total_bounds,
        resolution=resolution,
        width=width,
    )
    return BordersRequest(
        features=features,
        id_field=id_field,
        resolution=resolution,
        width=width,
    )


def resolve_grid_parameters(
    bounds: Any,
    *,
    resolution: float | None,
    width: float | None,
) -> tuple[float, float]:
    """Apply defaults derived from the feature bounding box and validate values."""
    xmin, ymin, xmax, ymax = (float(v) for v in bounds)
    span = max(xmax - xmin, ymax - ymin)

    if resolution is None:
        resolution = _scaled_default(span, _DEFAULT_RESOLUTION_DIVISOR)
        _LOGGER.debug("Using default resolution %s", resolution)
    if width is None:
        width = _scaled_default(span, _DEFAULT_WIDTH_DIVISOR)
        _LOGGER.debug("Using default width %s", width)

    resolution = _positive(resolution, "resolution")
    width = _positive(width, "width")

    shorter_side = min(xmax - xmin, ymax - ymin) + 2.0 * width
    if resolution >= shorter_side:
        _LOGGER.warning(
            "Resolution %s is not smaller than the grid's shorter side %s; the grid is degenerate.",
            resolution,
            shorter_side,
        )
    return (resolution, width)


def _scaled_default(span: float, divisor: float) -> float:
    value = float(round(span / divisor))
    if value > 0:
        return value
    # Rounding collapses small coordinate ranges to zero.
    return span / divisor


def _positive(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BorderConfigurationError(f"Expected a number for '{field_name}'")
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise BorderConfigurationError(f"'{field_name}' must be a positive number, got {value!r}")
    return number


def _check_planar_crs(features: gpd.GeoDataFrame) -> None:
    crs = features.crs
    if crs is None:
        _LOGGER.warning("Feature collection has no CRS; assuming planar coordinates.")
        return
    if crs.is_geographic:
        raise BorderConfigurationError(
            f"Feature collection uses a geographic CRS ({crs.to_string()}); "
            "project it to planar coordinates first."
        )


def _resolve_id_field(features: gpd.GeoDataFrame, id: Hashable | None) -> Hashable:
    attributes = [col for col in features.columns if col != features.geometry.name]
    if id is None:
        if not attributes:
            raise BorderConfigurationError("Feature collection has no identifier column")
        return attributes[0]
    if id in attributes:
        return id
    if isinstance(id, int) and not isinstance(id, bool):
        if id < 0 or id >= len(attributes):
            raise BorderConfigurationError(f"Identifier column index {id} is out of range")
        return attributes[id]
    cols = ", ".join(str(col) for col in attributes)
    raise BorderConfigurationError(f"Identifier field '{id}' not found. Available columns: {cols}")


def _drop_unusable_rows(features: gpd.GeoDataFrame, id_field: Hashable) -> gpd.GeoDataFrame:
    missing_id = features[id_field].isna()
    empty_geom = features.geometry.isna() | features.geometry.is_empty
    unusable = missing_id | empty_geom
    dropped = int(unusable.sum())
    if dropped:
        _LOGGER.warning(
            "Dropping %d feature(s) with a missing identifier or empty geometry.", dropped
        )
    return features.loc[~unusable]
