"""
Command line interface for the CA-66 Agreement Toolkit.

Commands:
    fill       Fill a template from form data (or raw placeholder values)
    positions  List configured positions, optionally for one page
    locate     Find "[NAME]" tokens in a template and print their positions
    calibrate  Stamp a coordinate grid over a template
    preview    Write PNGs outlining every configured position
    inspect    Show page sizes and form fields of a template
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ca66_toolkit import __version__
from ca66_toolkit.overlay.calibration import (
    DEFAULT_GRID_STEP,
    apply_calibration_grid,
    locate_placeholders,
    to_position_config,
)
from ca66_toolkit.overlay.config import OverlayConfig
from ca66_toolkit.overlay.errors import ConfigurationError, RenderError
from ca66_toolkit.overlay.generator import (
    generate_agreement,
    generate_filled_pdf,
    inspect_template,
    open_template,
)
from ca66_toolkit.overlay.registry import PositionRegistry, default_registry
from ca66_toolkit.overlay.visualizer import DEFAULT_DPI, save_position_previews

logger = logging.getLogger("ca66_toolkit.cli")


def _load_registry(args: argparse.Namespace) -> PositionRegistry:
    if args.positions:
        return PositionRegistry.from_json(args.positions)
    return default_registry()


def _load_json(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RenderError(f"Cannot read form data {path}: {e}") from e
    if not isinstance(data, dict):
        raise RenderError(f"Form data {path} must be a JSON object")
    return data


def _cmd_fill(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    config = OverlayConfig(font_file=args.font_file)
    data = _load_json(args.data)

    if args.raw:
        pdf_bytes = generate_filled_pdf(args.template, data, registry=registry, config=config)
        output = args.output or Path.cwd() / "filled.pdf"
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(pdf_bytes)
        logger.info(f"Wrote {output}")
        return 0

    output_dir = args.output.parent if args.output else Path.cwd()
    filename = args.output.name if args.output else None
    result = generate_agreement(
        data, args.template, output_dir,
        registry=registry, config=config, filename=filename,
    )
    if result.report is not None and result.report.fit_warnings:
        logger.warning(f"{len(result.report.fit_warnings)} value(s) wider than their box")
    logger.info(f"Wrote {result.output_path}")
    return 0


def _cmd_positions(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    placements = (
        registry.get_positions_for_page(args.page) if args.page else registry.all_placements()
    )
    for placement in placements:
        pos = placement.position
        width = "-" if pos.max_width is None else f"{pos.max_width:g}"
        print(
            f"p{pos.page:<3} x={pos.x:<7g} y={pos.y:<7g} size={pos.size:<4g} "
            f"w={width:<6} {placement.derived_name:<28} {pos.description}"
        )
    return 0


def _cmd_locate(args: argparse.Namespace) -> int:
    document = open_template(args.template)
    try:
        located = locate_placeholders(document)
    finally:
        document.close()
    print(json.dumps({"placeholders": to_position_config(located)}, indent=2))
    return 0


def _cmd_calibrate(args: argparse.Namespace) -> int:
    document = open_template(args.template)
    try:
        apply_calibration_grid(document, args.step)
        args.output.parent.mkdir(parents=True, exist_ok=True)
        document.save(str(args.output), garbage=3, deflate=True)
    finally:
        document.close()
    logger.info(f"Wrote {args.output}")
    return 0


def _cmd_preview(args: argparse.Namespace) -> int:
    registry = _load_registry(args)
    document = open_template(args.template)
    try:
        save_position_previews(document, registry, args.output, args.dpi)
    finally:
        document.close()
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    info = inspect_template(args.template)
    print(f"Pages: {info.page_count}")
    for number, (width, height) in enumerate(info.page_sizes, start=1):
        print(f"  {number}: {width:g} x {height:g} pt")
    if info.has_form_fields:
        print(f"Form fields ({len(info.form_fields)}):")
        for name in info.form_fields:
            print(f"  {name}")
    else:
        print("No form fields: template uses text placeholders")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ca66-toolkit",
        description="Fill and calibrate the CA-66 airport license agreement PDF template",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--positions", type=Path, help="Custom position table (JSON)")
    sub = parser.add_subparsers(dest="command", required=True)

    fill = sub.add_parser("fill", help="Fill a template from form data")
    fill.add_argument("template", type=Path)
    fill.add_argument("data", type=Path, help="Form data JSON (form-field id -> value)")
    fill.add_argument("-o", "--output", type=Path, help="Output PDF path")
    fill.add_argument("--raw", action="store_true", help="Data is already placeholder -> display string")
    fill.add_argument("--font-file", type=Path, help="TrueType font to embed")
    fill.set_defaults(func=_cmd_fill)

    positions = sub.add_parser("positions", help="List configured positions")
    positions.add_argument("--page", type=int, help="Only this 1-based page")
    positions.set_defaults(func=_cmd_positions)

    locate = sub.add_parser("locate", help="Find placeholder tokens in a template")
    locate.add_argument("template", type=Path)
    locate.set_defaults(func=_cmd_locate)

    calibrate = sub.add_parser("calibrate", help="Stamp a coordinate grid over a template")
    calibrate.add_argument("template", type=Path)
    calibrate.add_argument("-o", "--output", type=Path, required=True)
    calibrate.add_argument("--step", type=int, default=DEFAULT_GRID_STEP, help="Grid spacing in points")
    calibrate.set_defaults(func=_cmd_calibrate)

    preview = sub.add_parser("preview", help="Write position preview PNGs")
    preview.add_argument("template", type=Path)
    preview.add_argument("-o", "--output", type=Path, required=True, help="Output directory")
    preview.add_argument("--dpi", type=int, default=DEFAULT_DPI)
    preview.set_defaults(func=_cmd_preview)

    inspect = sub.add_parser("inspect", help="Show template pages and form fields")
    inspect.add_argument("template", type=Path)
    inspect.set_defaults(func=_cmd_inspect)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        return args.func(args)
    except (ConfigurationError, RenderError) as e:
        logger.error(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
