"""Vector dataset reading and border output writing."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import geopandas as gpd


_LOGGER = logging.getLogger("cartoborders.io_vector")

DRIVERS_BY_SUFFIX = {
    ".gpkg": "GPKG",
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".shp": "ESRI Shapefile",
}


def load_features(path: Path, *, layer: str | None = None) -> gpd.GeoDataFrame:
    """Load a polygon layer via GeoPandas."""
    if not path.exists():
        raise FileNotFoundError(f"Input dataset not found: {path}")
    kwargs: dict[str, Any] = {}
    if layer is not None:
        kwargs["layer"] = layer
    features = gpd.read_file(path, **kwargs)
    _LOGGER.info("Loaded %d feature(s) from %s", len(features), path)
    return features


def detect_driver(path: Path, driver: str | None = None) -> str:
    if driver:
        return driver
    detected = DRIVERS_BY_SUFFIX.get(path.suffix.lower())
    if detected is None:
        known = ", ".join(sorted(DRIVERS_BY_SUFFIX))
        raise ValueError(
            f"Cannot infer an output driver for '{path.name}'. Known suffixes: {known}"
        )
    return detected


def write_borders(borders: gpd.GeoDataFrame, path: Path, *, driver: str | None = None) -> Path:
    """Write a border collection; row labels are not persisted."""
    chosen = detect_driver(path, driver)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        path.unlink()
    borders.to_file(path, driver=chosen, index=False)
    _LOGGER.info("Wrote %d border(s) to %s (%s)", len(borders), path, chosen)
    return path
