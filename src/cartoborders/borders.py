"""Public border extraction API: shared (inner) and outer borders between polygons."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import geopandas as gpd
from shapely.ops import unary_union

from .models import BORDER_COLUMNS, OUTER_SUFFIX, BordersRequest
from .proximity import proximity_transform
from .raster import IdentifierCoding, build_grid, rasterize_features
from .request import normalize_features, normalize_request
from .resolver import resolve_nearest_labels
from .vectorize import BorderPiece, dissolve_labels, shared_borders


_LOGGER = logging.getLogger("cartoborders.borders")


def get_outer_borders(
    x: gpd.GeoDataFrame | None = None,
    id: str | int | None = None,
    resolution: float | None = None,
    width: float | None = None,
    *,
    spdf: gpd.GeoDataFrame | None = None,
    spdfid: str | int | None = None,
    res: float | None = None,
) -> gpd.GeoDataFrame:
    """Extract borders between polygons that do not touch (e.g. maritime borders).

    The polygons are rasterized at ``resolution``; every empty cell within
    ``width`` of a polygon is handed to its nearest polygon, and the borders
    of the resulting partition are returned as lines with ``id``, ``id1``
    and ``id2`` fields. Both parameters are in the units of ``x``, which must
    use planar coordinates. Row labels carry an ``"_o"`` suffix so the result
    can be concatenated with :func:`get_borders`.

    ``spdf``/``spdfid``/``res`` are deprecated spellings of
    ``x``/``id``/``resolution``.
    """
    request = normalize_request(
        x,
        id,
        resolution,
        width,
        spdf=spdf,
        spdfid=spdfid,
        res=res,
    )
    return extract_outer_borders(request)


def extract_outer_borders(request: BordersRequest) -> gpd.GeoDataFrame:
    features = request.features
    coding = IdentifierCoding.from_values(features[request.id_field].tolist())
    if coding.distinct_count < 2:
        _LOGGER.info(
            "Only %d distinct identifier(s) in '%s'; no border to extract.",
            coding.distinct_count,
            request.id_field,
        )
        return empty_borders(request.crs)

    grid = build_grid(features.total_bounds, request.resolution, request.width)
    _LOGGER.debug(
        "Outer borders grid: %dx%d cells at resolution %s, width %s.",
        grid.n_rows,
        grid.n_cols,
        request.resolution,
        request.width,
    )
    labeled = rasterize_features(list(features.geometry), coding.codes, grid)
    if labeled.labeled_count == 0:
        _LOGGER.warning(
            "No cell center falls inside any polygon at resolution %s; try a finer resolution.",
            request.resolution,
        )
    field = proximity_transform(labeled, request.width)
    partition = resolve_nearest_labels(labeled, field)
    regions = dissolve_labels(partition)
    pieces = shared_borders(regions, tolerance=request.resolution)

    result = _borders_frame(pieces, coding, crs=request.crs)
    result.index = [f"{idx}{OUTER_SUFFIX}" for idx in range(len(result))]
    _LOGGER.info("Extracted %d outer border(s).", len(result))
    return result


def get_borders(
    x: gpd.GeoDataFrame | None = None,
    id: str | int | None = None,
    *,
    spdf: gpd.GeoDataFrame | None = None,
    spdfid: str | int | None = None,
) -> gpd.GeoDataFrame:
    """Extract the shared boundaries of contiguous polygons.

    Features sharing an identifier are merged first. The result has the same
    ``id``/``id1``/``id2`` layout as :func:`get_outer_borders`.
    """
    features, id_field = normalize_features(x, id, spdf=spdf, spdfid=spdfid)
    coding = IdentifierCoding.from_values(features[id_field].tolist())
    if coding.distinct_count < 2:
        return empty_borders(features.crs)

    grouped: dict[int, list[Any]] = {}
    for geom, code in zip(features.geometry, coding.codes):
        grouped.setdefault(int(code), []).append(geom)
    regions = {code: unary_union(geoms) for code, geoms in grouped.items()}
    pieces = shared_borders(regions)
    result = _borders_frame(pieces, coding, crs=features.crs)
    _LOGGER.info("Extracted %d shared border(s).", len(result))
    return result


def empty_borders(crs: Any = None) -> gpd.GeoDataFrame:
    """Border collection with no rows and the standard identifier fields."""
    return gpd.GeoDataFrame(
        {name: [] for name in BORDER_COLUMNS},
        geometry=[],
        crs=crs,
    )


def format_identifier(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _borders_frame(
    pieces: Sequence[BorderPiece],
    coding: IdentifierCoding,
    *,
    crs: Any,
) -> gpd.GeoDataFrame:
    if not pieces:
        return empty_borders(crs)
    id1 = [coding.identifier_for(code1) for code1, _, _ in pieces]
    id2 = [coding.identifier_for(code2) for _, code2, _ in pieces]
    ids = [f"{format_identifier(a)}_{format_identifier(b)}" for a, b in zip(id1, id2)]
    return gpd.GeoDataFrame(
        {"id": ids, "id1": id1, "id2": id2},
        geometry=[line for _, _, line in pieces],
        crs=crs,
    )
