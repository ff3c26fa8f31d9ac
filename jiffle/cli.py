"""Command-line entry point for compiling and inspecting Jiffle scripts."""

from __future__ import annotations

import argparse
import logging
import sys

from . import api
from .compiler import normalize_image_params
from .errors import JiffleError

logger = logging.getLogger(__name__)


def _parse_image(text: str) -> tuple[str, str]:
    name, sep, role = text.partition("=")
    if not sep or not name or not role:
        raise argparse.ArgumentTypeError(f"expected NAME=read|write, got {text!r}")
    return name, role


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jiffle", description="Compile raster-algebra scripts"
    )
    parser.add_argument("file", help="Script file to compile ('-' reads stdin)")
    parser.add_argument(
        "--image",
        "-i",
        action="append",
        type=_parse_image,
        default=[],
        metavar="NAME=ROLE",
        help="Image variable and its role (read or write); repeatable",
    )
    parser.add_argument(
        "--model",
        "-m",
        choices=["direct", "indirect"],
        default="direct",
        help="Runtime model for --source (default: direct)",
    )
    parser.add_argument("--ir-only", action="store_true", help="Print the IR as JSON and exit")
    parser.add_argument("--source", action="store_true", help="Print the generated runtime source")
    parser.add_argument(
        "--include-script",
        action="store_true",
        help="Include the script as comments in the generated source",
    )
    parser.add_argument(
        "--read-positions",
        nargs="*",
        metavar="SOURCE",
        default=None,
        help="Print the pixel offsets read from the given (or declared) sources",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _read_script(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path) as f:
        return f.read()


def _format_offsets(offsets: set) -> str:
    return ", ".join(
        "dynamic" if o is None else f"({o[0]}, {o[1]})"
        for o in sorted(offsets, key=lambda o: (o is None, o or (0, 0)))
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        script = _read_script(args.file)
        image_params = normalize_image_params(dict(args.image)) if args.image else None

        if args.read_positions is not None:
            positions = api.read_positions(script, args.read_positions or None)
            print("═══ Read positions ═══")
            for name in sorted(positions):
                print(f"  {name}: {_format_offsets(positions[name])}")
            return 0

        if args.ir_only:
            print(api.dump_ir(script, image_params))
            return 0

        if args.source:
            print(api.generate_source(script, args.model, image_params, args.include_script))
            return 0

        ir = api.compile_script(script, image_params)
        print("═══ Images ═══")
        for image in ir.images:
            print(f"  {image.name}: {image.role.value}")
        print("═══ Destination bands ═══")
        for dest in ir.destination_bands:
            bands = ", ".join(str(b) for b in dest.bands) or "-"
            print(f"  {dest.image}: {bands}{' (dynamic)' if dest.dynamic else ''}")
        if ir.globals:
            print("═══ Variables ═══")
            for var in ir.globals:
                print(f"  {var.name}")
        return 0
    except (JiffleError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
