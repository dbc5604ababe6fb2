"""qrsvg CLI: render styled QR codes to SVG files."""

import argparse
import asyncio
import sys
from pathlib import Path

from qrsvg.errors import QRStyleError
from qrsvg.logging import audit, get_logger, setup_logging
from qrsvg.options import DOT_TYPES, Options, load_options, merge_options

log = get_logger("cli")


def _options_from_args(args) -> Options:
    base = load_options(args.options) if args.options else Options()
    overrides = {
        "data": args.data,
        "width": args.width,
        "height": args.height,
        "image": args.image,
        "qr_options": {
            "error_correction_level": args.ecc,
            "type_number": args.type_number,
            "mode": args.mode,
        },
        "dots_options": {"type": args.dot_type, "color": args.dot_color},
        "background_options": {"color": args.background},
        "image_options": {
            "image_size": args.image_size,
            "image_color": args.image_color,
            "margin": args.image_margin,
            "hide_background_dots": False if args.no_hide_dots else None,
        },
    }
    return merge_options(base, overrides).validate()


def cmd_render(args):
    """Render DATA to an SVG file."""
    from qrsvg.styling import StyledQRCode

    output = Path(args.output)
    qr = StyledQRCode(_options_from_args(args))
    asyncio.run(qr.save(output))

    size = qr.grid.size()
    print(f"Rendered: {output} ({qr.options.width}x{qr.options.height} px, {size}x{size} modules)")
    if qr.options.image:
        print(f"  Image: {qr.options.image} (size {qr.options.image_options.image_size}, "
              f"ECC {qr.options.qr_options.error_correction_level})")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="qrsvg", description="Styled QR code SVG renderer")

    parser.add_argument("-V", "--verbose", action="store_true", help="Enable DEBUG-level logging")
    parser.add_argument("--log-file", default=None, help="Write JSON logs to file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- render ---
    p_render = subparsers.add_parser("render", help="Render a styled QR code to SVG")
    p_render.add_argument("data", help="URL or data to encode")
    p_render.add_argument("-o", "--output", default="output/qr.svg", help="Output SVG path")
    p_render.add_argument("--options", default=None, help="JSON option file merged under the flags")
    p_render.add_argument("--width", type=int, default=None, help="Canvas width in px")
    p_render.add_argument("--height", type=int, default=None, help="Canvas height in px")
    p_render.add_argument("-e", "--ecc", default=None, choices=["L", "M", "Q", "H"], help="Error correction level")
    p_render.add_argument("-v", "--type-number", type=int, default=None, help="QR version 1-40 (0 = auto)")
    p_render.add_argument("--mode", default=None, choices=["numeric", "alphanumeric", "byte"],
                          help="Force the encoding mode")
    p_render.add_argument("--dot-type", default=None, choices=DOT_TYPES, help="Dot shape")
    p_render.add_argument("--dot-color", default=None, help="Dot colour (e.g. '#000')")
    p_render.add_argument("--background", default=None, help="Background colour")
    p_render.add_argument("--image", default=None, help="SVG logo: path, file:// / http(s):// URL or data URI")
    p_render.add_argument("--image-size", type=float, default=None, help="Relative logo size in (0, 1]")
    p_render.add_argument("--image-color", default=None, help="Tint for the logo's foreground path")
    p_render.add_argument("--image-margin", type=int, default=None, help="Logo margin in px")
    p_render.add_argument("--no-hide-dots", action="store_true", help="Keep modules visible under the logo")

    args = parser.parse_args(argv)

    setup_logging(level="DEBUG" if args.verbose else "INFO", log_file=args.log_file)
    audit("cli.start", logger=log, command=args.command, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    commands = {
        "render": cmd_render,
    }
    try:
        commands[args.command](args)
    except (QRStyleError, ValueError) as exc:
        log.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    audit("cli.done", logger=log, command=args.command)


if __name__ == "__main__":
    main()
