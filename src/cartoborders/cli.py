"""CLI entrypoint for cartoborders."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from .config import AppConfig, load_config
from .pipeline import (
    KIND_ALL,
    KIND_INNER,
    KIND_OUTER,
    format_borders_lines,
    format_validation_lines,
    run_borders,
    validate_inputs,
)
from .util import setup_logging

LOGGER = logging.getLogger("cartoborders.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cartoborders",
        description="Extract inner and outer borders between polygons.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    def add_grid(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--resolution",
            type=float,
            default=None,
            help="Grid cell size in input units (overrides config).",
        )
        p.add_argument(
            "--width",
            type=float,
            default=None,
            help="Maximum search distance in input units (overrides config).",
        )

    outer_p = subparsers.add_parser(
        "outer-borders",
        help="Extract borders between non-contiguous polygons.",
    )
    add_common(outer_p)
    add_grid(outer_p)
    outer_p.add_argument(
        "--with-inner",
        action="store_true",
        help="Also include shared borders of contiguous polygons.",
    )
    outer_p.add_argument(
        "--render",
        action="store_true",
        help="Render a PNG map of the result to output.map_png.",
    )

    inner_p = subparsers.add_parser("borders", help="Extract shared borders of contiguous polygons.")
    add_common(inner_p)
    inner_p.add_argument(
        "--render",
        action="store_true",
        help="Render a PNG map of the result to output.map_png.",
    )

    render_p = subparsers.add_parser(
        "render",
        help="Extract inner and outer borders and render them as a PNG map.",
    )
    add_common(render_p)
    add_grid(render_p)

    validate_p = subparsers.add_parser("validate", help="Validate config and input dataset.")
    add_common(validate_p)

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    setup_logging(cfg.log_file, verbose=args.verbose)
    return cfg


def _run_borders(
    cfg: AppConfig,
    *,
    kind: str,
    resolution: float | None,
    width: float | None,
    render_map: bool,
) -> int:
    report = run_borders(
        cfg,
        kind=kind,
        resolution=resolution,
        width=width,
        render_map=render_map,
    )
    for line in format_borders_lines(report):
        LOGGER.info(line)
    if not report.ok:
        LOGGER.error("Border extraction failed.")
        return 1
    return 0


def _run_validate(cfg: AppConfig) -> int:
    report = validate_inputs(cfg)
    for line in format_validation_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "outer-borders":
        return _run_borders(
            cfg,
            kind=KIND_ALL if args.with_inner else KIND_OUTER,
            resolution=args.resolution,
            width=args.width,
            render_map=bool(args.render),
        )
    if command == "borders":
        return _run_borders(
            cfg,
            kind=KIND_INNER,
            resolution=None,
            width=None,
            render_map=bool(args.render),
        )
    if command == "render":
        return _run_borders(
            cfg,
            kind=KIND_ALL,
            resolution=args.resolution,
            width=args.width,
            render_map=True,
        )
    if command == "validate":
        return _run_validate(cfg)
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
