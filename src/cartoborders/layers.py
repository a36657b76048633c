"""Map layers drawn with matplotlib: borders, discontinuities and proportional symbols."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, Sequence

import geopandas as gpd
import numpy as np
import pandas as pd

from .config import RenderStyleConfig


_LOGGER = logging.getLogger("cartoborders.layers")

_DISC_TYPES = ("rel", "abs")
_SYMBOLS = ("circle", "square", "bar")


def borders_layer(
    borders: gpd.GeoDataFrame,
    ax: Any = None,
    *,
    col: str = "#333333",
    lwd: float | Any = 1.0,
    zorder: int = 3,
) -> Any:
    """Draw border lines on ``ax`` (a new axes when omitted).

    ``lwd`` is either one width for every border or a sequence aligned with
    the rows of ``borders``.
    """
    if ax is None:
        plt = _require_matplotlib()
        _, ax = plt.subplots()
    widths = _broadcast_widths(lwd, len(borders))
    for geometry, width in zip(borders.geometry, widths):
        for coords in _iter_line_coords(geometry):
            ax.plot(
                [float(pt[0]) for pt in coords],
                [float(pt[1]) for pt in coords],
                color=col,
                linewidth=width,
                zorder=zorder,
                solid_joinstyle="round",
                solid_capstyle="round",
            )
    return ax


def disc_layer(
    borders: gpd.GeoDataFrame,
    df: pd.DataFrame,
    var: str,
    *,
    df_id: str | None = None,
    type: str = "rel",
    threshold: float = 0.75,
    sizemin: float = 1.0,
    sizemax: float = 10.0,
    col: str = "red",
    ax: Any = None,
) -> tuple[Any, gpd.GeoDataFrame]:
    """Discontinuity layer: borders drawn with widths scaled to the gap in ``var``.

    ``rel`` compares the two neighbouring values as ``max / min``, ``abs`` as
    ``|v1 - v2|``. Borders whose discontinuity falls below the ``threshold``
    quantile are not drawn. Returns the axes and the drawn borders annotated
    with ``disc`` and ``lwd`` columns.
    """
    if type not in _DISC_TYPES:
        raise ValueError(f"type must be one of: {', '.join(_DISC_TYPES)}")
    if not 0.0 <= threshold <= 1.0:
        raise ValueError("threshold must be between 0 and 1")
    if sizemin <= 0 or sizemax < sizemin:
        raise ValueError("Expected 0 < sizemin <= sizemax")
    if var not in df.columns:
        raise ValueError(f"Variable '{var}' not found in data frame")
    key = df_id or _first_attribute_column(df)

    values = pd.Series(df[var].to_numpy(dtype=float), index=df[key].to_numpy())
    if values.index.has_duplicates:
        raise ValueError(f"Identifier column '{key}' has duplicate values")
    v1 = borders["id1"].map(values).to_numpy(dtype=float)
    v2 = borders["id2"].map(values).to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        if type == "rel":
            disc = np.maximum(v1, v2) / np.minimum(v1, v2)
        else:
            disc = np.abs(v1 - v2)

    annotated = borders.copy()
    annotated["disc"] = disc
    usable = np.isfinite(disc)
    skipped = int((~usable).sum())
    if skipped:
        _LOGGER.warning("Skipping %d border(s) without a finite discontinuity value.", skipped)
    annotated = annotated.loc[usable]
    if annotated.empty:
        annotated["lwd"] = pd.Series(dtype=float)
        return (borders_layer(annotated, ax, col=col), annotated)

    floor = float(np.quantile(annotated["disc"], threshold))
    annotated = annotated.loc[annotated["disc"] >= floor].copy()
    top = float(annotated["disc"].max())
    if top > floor:
        scale = (annotated["disc"] - floor) / (top - floor)
        annotated["lwd"] = sizemin + scale * (sizemax - sizemin)
    else:
        annotated["lwd"] = float(sizemax)
    ax = borders_layer(annotated, ax, col=col, lwd=annotated["lwd"].to_numpy())
    return (ax, annotated)


def prop_symbols_typo_layer(
    x: gpd.GeoDataFrame,
    var: str,
    var2: str,
    *,
    inches: float = 0.3,
    fixmax: float | None = None,
    symbols: str = "circle",
    col: Sequence[str] | None = None,
    col_na: str = "white",
    border: str = "#333333",
    lwd: float = 1.0,
    values_order: Sequence[Any] | None = None,
    zorder: int = 4,
    ax: Any = None,
) -> tuple[Any, gpd.GeoDataFrame, dict[Any, str]]:
    """Proportional symbols sized by ``var`` and filled by the category in ``var2``.

    Symbols sit on point geometries, or on the centroid of anything else.
    ``inches`` is the size of a symbol whose value equals ``fixmax`` (the
    largest ``var`` by default): the radius of a circle, the side of a
    square or the height of a bar. Circles and squares scale by area, bars
    by height. Bars stand on their point.

    Returns the axes, the drawn rows annotated with ``size`` (inches) and
    ``color``, and the category to color mapping.
    """
    if symbols not in _SYMBOLS:
        raise ValueError(f"symbols must be one of: {', '.join(_SYMBOLS)}")
    if inches <= 0:
        raise ValueError("inches must be > 0")
    if fixmax is not None and fixmax <= 0:
        raise ValueError("fixmax must be > 0")
    for name in (var, var2):
        if name not in x.columns:
            raise ValueError(f"Variable '{name}' not found in data frame")

    magnitudes = pd.to_numeric(x[var], errors="coerce").abs()
    usable = magnitudes.notna().to_numpy()
    skipped = int((~usable).sum())
    if skipped:
        _LOGGER.warning("Skipping %d feature(s) without a '%s' value.", skipped, var)
    order = np.argsort(-magnitudes.to_numpy()[usable], kind="stable")
    dots = x.loc[usable].iloc[order].copy()
    magnitudes = magnitudes.loc[usable].iloc[order].to_numpy(dtype=float)

    palette = _typo_palette(dots[var2], col, values_order)
    if fixmax is None:
        fixmax = float(magnitudes.max()) if len(magnitudes) else 0.0
    ratio = magnitudes / fixmax if fixmax > 0 else np.zeros_like(magnitudes)
    if symbols == "bar":
        sizes = inches * ratio
    else:
        sizes = inches * np.sqrt(ratio)
    missing = dots[var2].isna().to_numpy()
    if missing.any():
        _LOGGER.debug("%d symbol(s) without a '%s' category use %s.", int(missing.sum()), var2, col_na)
    dots["size"] = sizes
    dots["color"] = [col_na if na else palette[v] for v, na in zip(dots[var2], missing)]

    plt = _require_matplotlib()
    from matplotlib.patches import Circle, Rectangle
    from matplotlib.transforms import ScaledTranslation

    if ax is None:
        _, ax = plt.subplots()
    fig = ax.figure
    bar_width = inches / 7.0
    anchors = [_symbol_anchor(geometry) for geometry in dots.geometry]
    for (px, py), size, color in zip(anchors, dots["size"], dots["color"]):
        # Patch coordinates are inches from the anchor point.
        offset = fig.dpi_scale_trans + ScaledTranslation(px, py, ax.transData)
        style = dict(transform=offset, facecolor=color, edgecolor=border, linewidth=lwd, zorder=zorder)
        if symbols == "circle":
            patch = Circle((0.0, 0.0), size, **style)
        elif symbols == "square":
            patch = Rectangle((-size / 2.0, -size / 2.0), size, size, **style)
        else:
            patch = Rectangle((-bar_width / 2.0, 0.0), bar_width, size, **style)
        ax.add_patch(patch)
    if anchors:
        ax.update_datalim(anchors)
        ax.autoscale_view()
    return (ax, dots, palette)


def render_borders_map(
    features: gpd.GeoDataFrame,
    borders: gpd.GeoDataFrame,
    output_path: Path,
    style: RenderStyleConfig,
) -> Path:
    """Render polygons plus their border layer into a PNG file."""
    plt = _require_matplotlib()
    dpi = style.dpi
    fig, ax = plt.subplots(figsize=(style.width_px / dpi, style.height_px / dpi), dpi=dpi)
    try:
        fig.patch.set_facecolor(style.background)
        ax.set_facecolor(style.background)
        features.plot(ax=ax, color=style.polygon_fill, edgecolor=style.polygon_edge, linewidth=0.5)
        borders_layer(borders, ax, col=style.border_color, lwd=style.border_width)
        ax.set_aspect("equal")
        ax.set_axis_off()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, format="png")
    finally:
        plt.close(fig)
    _LOGGER.info("Map written to %s", output_path)
    return output_path


def _broadcast_widths(lwd: float | Any, count: int) -> list[float]:
    if np.isscalar(lwd):
        return [float(lwd)] * count
    widths = [float(v) for v in lwd]
    if len(widths) != count:
        raise ValueError(f"Expected {count} line widths, got {len(widths)}")
    return widths


def _iter_line_coords(geometry: Any) -> Iterator[list[tuple[float, float]]]:
    if geometry is None or geometry.is_empty:
        return
    if hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            yield from _iter_line_coords(part)
        return
    if geometry.geom_type in {"LineString", "LinearRing"}:
        coords = list(geometry.coords)
        if len(coords) >= 2:
            yield coords


def _typo_palette(
    categories: pd.Series,
    col: Sequence[str] | None,
    values_order: Sequence[Any] | None,
) -> dict[Any, str]:
    present = list(pd.unique(categories.dropna()))
    if values_order is None:
        ordered = present
    else:
        ordered = list(values_order)
        if len(set(ordered)) != len(ordered) or set(ordered) != set(present):
            raise ValueError("values_order must list every category exactly once")
    if col is None:
        _require_matplotlib()
        from matplotlib import colormaps
        from matplotlib.colors import to_hex

        cmap = colormaps["tab20" if len(ordered) > 10 else "tab10"]
        col = [to_hex(cmap(i % cmap.N)) for i in range(len(ordered))]
    elif len(col) < len(ordered):
        raise ValueError(f"Expected at least {len(ordered)} colors, got {len(col)}")
    return {category: color for category, color in zip(ordered, col)}


def _symbol_anchor(geometry: Any) -> tuple[float, float]:
    point = geometry if geometry.geom_type == "Point" else geometry.centroid
    return (float(point.x), float(point.y))


def _first_attribute_column(df: pd.DataFrame) -> Any:
    geometry_name = df.geometry.name if isinstance(df, gpd.GeoDataFrame) else None
    for col in df.columns:
        if col != geometry_name:
            return col
    raise ValueError("Data frame has no identifier column")


def _require_matplotlib() -> Any:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map layers") from exc
    return plt
