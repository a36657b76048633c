"""Config-driven border extraction runs with audit reports."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

import geopandas as gpd
import pandas as pd

from .borders import get_borders, get_outer_borders
from .config import AppConfig
from .io_vector import detect_driver, load_features, write_borders
from .layers import render_borders_map
from .request import BorderConfigurationError, normalize_features
from .util import sha256_file, write_json


_LOGGER = logging.getLogger("cartoborders.pipeline")

KIND_OUTER = "outer"
KIND_INNER = "inner"
KIND_ALL = "all"
_KINDS = (KIND_OUTER, KIND_INNER, KIND_ALL)


@dataclass(slots=True)
class BordersReport:
    kind: str
    output_path: Path | None = None
    map_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def run_borders(
    cfg: AppConfig,
    *,
    kind: str = KIND_OUTER,
    resolution: float | None = None,
    width: float | None = None,
    render_map: bool = False,
) -> BordersReport:
    """Extract borders from the configured input and write them out.

    Command-line ``resolution``/``width`` take precedence over config values.
    ``kind`` selects outer borders, inner (shared) borders, or both combined.
    """
    if kind not in _KINDS:
        raise ValueError(f"kind must be one of: {', '.join(_KINDS)}")
    report = BordersReport(kind=kind)
    started = time.perf_counter()

    try:
        features = load_features(cfg.input.path, layer=cfg.input.layer)
    except Exception as exc:
        report.add_error(f"Failed reading input '{cfg.input.path}': {exc}")
        return report
    report.summary["features"] = len(features)

    effective_resolution = resolution if resolution is not None else cfg.borders.resolution
    effective_width = width if width is not None else cfg.borders.width
    try:
        parts: list[gpd.GeoDataFrame] = []
        if kind in (KIND_INNER, KIND_ALL):
            inner = get_borders(features, cfg.input.id_field)
            report.summary["inner_borders"] = len(inner)
            parts.append(inner)
        if kind in (KIND_OUTER, KIND_ALL):
            outer = get_outer_borders(
                features,
                cfg.input.id_field,
                resolution=effective_resolution,
                width=effective_width,
            )
            report.summary["outer_borders"] = len(outer)
            parts.append(outer)
    except BorderConfigurationError as exc:
        report.add_error(f"Rejected input '{cfg.input.path}': {exc}")
        return report

    borders = parts[0] if len(parts) == 1 else _concat_borders(parts)
    report.summary["borders"] = len(borders)
    if borders.empty:
        report.add_warning("No border found; output contains no rows.")

    try:
        report.output_path = write_borders(
            borders,
            cfg.output.borders_path,
            driver=cfg.output.driver,
        )
    except (OSError, ValueError) as exc:
        report.add_error(f"Failed writing borders to '{cfg.output.borders_path}': {exc}")
        return report

    if render_map:
        if cfg.output.map_png is None:
            report.add_warning("Map rendering requested but output.map_png is not configured.")
        else:
            try:
                report.map_path = render_borders_map(
                    features,
                    borders,
                    cfg.output.map_png,
                    cfg.render,
                )
            except (RuntimeError, OSError) as exc:
                report.add_error(f"Failed rendering map to '{cfg.output.map_png}': {exc}")
                return report

    elapsed = time.perf_counter() - started
    report.add_info(f"Border extraction finished in {elapsed:.2f}s")
    write_json(
        cfg.output.manifest_path,
        {
            "config_hash_sha256": sha256_file(cfg.source_path),
            "input": str(cfg.input.path),
            "kind": kind,
            "resolution": effective_resolution,
            "width": effective_width,
            "summary": dict(report.summary),
            "artifacts": {
                "borders": str(report.output_path),
                "map": str(report.map_path) if report.map_path else "",
            },
        },
    )
    return report


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_inputs(cfg: AppConfig) -> ValidationReport:
    """Check that the configured input can be fed to border extraction."""
    report = ValidationReport()
    if not cfg.input.path.exists():
        report.errors.append(f"Missing input dataset: {cfg.input.path}")
        return report
    try:
        detect_driver(cfg.output.borders_path, cfg.output.driver)
    except ValueError as exc:
        report.errors.append(str(exc))
    try:
        features = load_features(cfg.input.path, layer=cfg.input.layer)
        features, id_field = normalize_features(features, cfg.input.id_field)
    except BorderConfigurationError as exc:
        report.errors.append(f"Input rejected: {exc}")
        return report
    except Exception as exc:
        report.errors.append(f"Failed reading input '{cfg.input.path}': {exc}")
        return report

    distinct = int(features[id_field].nunique())
    report.infos.append(f"{len(features)} feature(s), {distinct} distinct '{id_field}' value(s)")
    if features.crs is None:
        report.warnings.append("Input has no CRS; planar coordinates are assumed.")
    if distinct < 2:
        report.warnings.append("Fewer than two distinct identifiers; no border can be extracted.")
    if distinct < len(features):
        report.warnings.append(
            f"{len(features) - distinct} feature(s) share an identifier and will be merged."
        )
    return report


def format_borders_lines(report: BordersReport) -> list[str]:
    lines = [f"Borders ({report.kind}): {'OK' if report.ok else 'FAILED'}"]
    for key in sorted(report.summary):
        lines.append(f"  {key}: {report.summary[key]}")
    if report.output_path is not None:
        lines.append(f"  output: {report.output_path}")
    if report.map_path is not None:
        lines.append(f"  map: {report.map_path}")
    lines.extend(f"  INFO: {msg}" for msg in report.infos)
    lines.extend(f"  WARNING: {msg}" for msg in report.warnings)
    lines.extend(f"  ERROR: {msg}" for msg in report.errors)
    return lines


def format_validation_lines(report: ValidationReport) -> list[str]:
    lines = [f"Validation: {'OK' if report.ok else 'FAILED'}"]
    lines.extend(f"  INFO: {msg}" for msg in report.infos)
    lines.extend(f"  WARNING: {msg}" for msg in report.warnings)
    lines.extend(f"  ERROR: {msg}" for msg in report.errors)
    return lines


def _concat_borders(parts: list[gpd.GeoDataFrame]) -> gpd.GeoDataFrame:
    non_empty = [part for part in parts if not part.empty]
    if not non_empty:
        return parts[0]
    combined = pd.concat(non_empty)
    return gpd.GeoDataFrame(combined, geometry=combined.geometry.name, crs=parts[0].crs)
