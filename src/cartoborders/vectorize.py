"""Border vectorizer stage: dissolve labeled cells and extract shared boundaries."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterator, Mapping

import shapely
from rasterio import features as rio_features
from shapely.geometry import LineString, MultiLineString, shape
from shapely.ops import linemerge, unary_union

from .models import LabelGrid


_LOGGER = logging.getLogger("cartoborders.vectorize")

_LINE_TYPES = frozenset({"LineString", "LinearRing"})

BorderPiece = tuple[int, int, MultiLineString]


def dissolve_labels(grid: LabelGrid) -> dict[int, Any]:
    """Merge the cells of each label into one (possibly multi-part) polygon."""
    mask = grid.labeled_mask
    if not mask.any():
        return {}
    parts: dict[int, list[Any]] = defaultdict(list)
    for geom, value in rio_features.shapes(
        grid.labels,
        mask=mask,
        transform=grid.spec.transform,
        connectivity=4,
    ):
        parts[int(value)].append(shape(geom))
    regions = {code: unary_union(polys) for code, polys in sorted(parts.items())}
    _LOGGER.debug("Dissolved grid into %d region(s).", len(regions))
    return regions


def shared_borders(
    regions: Mapping[int, Any],
    *,
    tolerance: float | None = None,
) -> list[BorderPiece]:
    """Shared boundary lines for every pair of touching regions.

    Pairs are returned once, ordered by code, with the smaller code first.
    Regions meeting at a single point do not share a border.
    """
    codes = sorted(regions)
    geoms = [regions[code] for code in codes]
    if len(geoms) < 2:
        return []

    tree = shapely.STRtree(geoms)
    left, right = tree.query(geoms, predicate="intersects")
    pairs = sorted({(int(i), int(j)) for i, j in zip(left, right) if i < j})

    out: list[BorderPiece] = []
    for i, j in pairs:
        line = _shared_line(geoms[i], geoms[j])
        if line is None:
            continue
        if tolerance:
            line = line.simplify(tolerance, preserve_topology=False)
        if line.is_empty or line.length == 0:
            continue
        out.append((codes[i], codes[j], _as_multilinestring(line)))
    _LOGGER.debug("Found %d shared border(s) among %d region(s).", len(out), len(codes))
    return out


def _shared_line(a: Any, b: Any) -> Any | None:
    contact = a.boundary.intersection(b.boundary)
    if contact.is_empty:
        return None
    lines = [part for part in _iter_simple_parts(contact) if part.geom_type in _LINE_TYPES]
    lines = [LineString(part.coords) for part in lines if part.length > 0]
    if not lines:
        return None
    return linemerge(lines)


def _iter_simple_parts(geom: Any) -> Iterator[Any]:
    if hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _iter_simple_parts(part)
    else:
        yield geom


def _as_multilinestring(geom: Any) -> MultiLineString:
    if isinstance(geom, MultiLineString):
        return geom
    if isinstance(geom, LineString):
        return MultiLineString([geom])
    lines = [part for part in _iter_simple_parts(geom) if part.geom_type in _LINE_TYPES]
    return MultiLineString([LineString(part.coords) for part in lines])
