"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _optional_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    return _mapping(value, field_name)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _optional_str(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    return _str(value, field_name)


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _optional_positive_float(value: Any, field_name: str) -> float | None:
    if value is None:
        return None
    number = _float(value, field_name)
    if number <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return number


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


def _optional_path(value: Any, field_name: str, root_dir: Path) -> Path | None:
    if value is None:
        return None
    return _path_from_cfg(value, field_name, root_dir)


@dataclass(frozen=True, slots=True)
class InputConfig:
    path: Path
    layer: str | None
    id_field: str | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> InputConfig:
        return cls(
            path=_path_from_cfg(raw.get("path"), "input.path", root_dir),
            layer=_optional_str(raw.get("layer"), "input.layer"),
            id_field=_optional_str(raw.get("id_field"), "input.id_field"),
        )


@dataclass(frozen=True, slots=True)
class BordersConfig:
    resolution: float | None
    width: float | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> BordersConfig:
        return cls(
            resolution=_optional_positive_float(raw.get("resolution"), "borders.resolution"),
            width=_optional_positive_float(raw.get("width"), "borders.width"),
        )

    @classmethod
    def default(cls) -> BordersConfig:
        return cls(resolution=None, width=None)


@dataclass(frozen=True, slots=True)
class OutputConfig:
    borders_path: Path
    driver: str | None
    map_png: Path | None
    manifest_path: Path

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> OutputConfig:
        borders_path = _path_from_cfg(raw.get("borders_path"), "output.borders_path", root_dir)
        manifest_raw = raw.get("manifest_path")
        manifest_path = (
            borders_path.with_name(f"{borders_path.stem}_manifest.json")
            if manifest_raw is None
            else _path_from_cfg(manifest_raw, "output.manifest_path", root_dir)
        )
        return cls(
            borders_path=borders_path,
            driver=_optional_str(raw.get("driver"), "output.driver"),
            map_png=_optional_path(raw.get("map_png"), "output.map_png", root_dir),
            manifest_path=manifest_path,
        )


@dataclass(frozen=True, slots=True)
class RenderStyleConfig:
    width_px: int
    height_px: int
    dpi: int
    background: str
    polygon_fill: str
    polygon_edge: str
    border_color: str
    border_width: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RenderStyleConfig:
        defaults = cls.default()
        width_px = _int(raw.get("width_px", defaults.width_px), "render.width_px")
        height_px = _int(raw.get("height_px", defaults.height_px), "render.height_px")
        dpi = _int(raw.get("dpi", defaults.dpi), "render.dpi")
        if width_px <= 0 or height_px <= 0 or dpi <= 0:
            raise ValueError("render.width_px, render.height_px and render.dpi must be > 0")
        border_width = _float(raw.get("border_width", defaults.border_width), "render.border_width")
        if border_width <= 0:
            raise ValueError("render.border_width must be > 0")
        return cls(
            width_px=width_px,
            height_px=height_px,
            dpi=dpi,
            background=_str(raw.get("background", defaults.background), "render.background"),
            polygon_fill=_str(raw.get("polygon_fill", defaults.polygon_fill), "render.polygon_fill"),
            polygon_edge=_str(raw.get("polygon_edge", defaults.polygon_edge), "render.polygon_edge"),
            border_color=_str(raw.get("border_color", defaults.border_color), "render.border_color"),
            border_width=border_width,
        )

    @classmethod
    def default(cls) -> RenderStyleConfig:
        return cls(
            width_px=1200,
            height_px=900,
            dpi=150,
            background="white",
            polygon_fill="#9e9e9e",
            polygon_edge="#ffffff",
            border_color="#c62828",
            border_width=2.0,
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    input: InputConfig
    borders: BordersConfig
    output: OutputConfig
    render: RenderStyleConfig
    log_file: Path | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        borders_raw = raw.get("borders")
        render_raw = raw.get("render")
        logging_raw = _optional_mapping(raw.get("logging"), "logging")
        return cls(
            source_path=source_path.resolve(),
            input=InputConfig.from_mapping(_mapping(raw.get("input"), "input"), root_dir),
            borders=(
                BordersConfig.default()
                if borders_raw is None
                else BordersConfig.from_mapping(_mapping(borders_raw, "borders"))
            ),
            output=OutputConfig.from_mapping(_mapping(raw.get("output"), "output"), root_dir),
            render=(
                RenderStyleConfig.default()
                if render_raw is None
                else RenderStyleConfig.from_mapping(_mapping(render_raw, "render"))
            ),
            log_file=_optional_path(logging_raw.get("log_file"), "logging.log_file", root_dir),
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
