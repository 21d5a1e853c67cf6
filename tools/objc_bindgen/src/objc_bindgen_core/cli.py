from __future__ import annotations

import argparse
import sys

from ._core_base import OUTPUT_FORMATS, TOOL_VERSION, BindgenError
from .commands import (
    command_generate,
    command_list_headers,
    command_list_slices,
    command_parse,
)


def add_input_arguments(command: argparse.ArgumentParser) -> None:
    command.add_argument("files", nargs="*", help="Objective-C header files to read.")
    command.add_argument("--framework", help="Path to an .xcframework bundle whose public headers are read.")
    command.add_argument("--slice", help="Slice of --framework to use (e.g. ios-arm64). See list-slices.")
    command.add_argument("--config", help="Path to objc_bindgen config JSON.")
    command.add_argument("--no-macro-heuristic", action="store_true", help="Keep upper-snake-case identifiers as tokens.")
    command.add_argument(
        "--extern-macro",
        action="append",
        default=[],
        help="Macro that expands to 'extern' (repeatable).",
    )
    command.add_argument(
        "--skip-macro",
        action="append",
        default=[],
        help="Macro to drop along with its argument list (repeatable).",
    )
    command.add_argument("--output", help="Write output to path instead of stdout.")
    command.add_argument("--check", action="store_true", help="Fail when --output is out of date; print diff.")
    command.add_argument("--dry-run", action="store_true", help="Show what would change without writing.")
    command.add_argument("--fail-on-warnings", action="store_true", help="Treat parse diagnostics as failures.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="objc_bindgen",
        description="Objective-C header parser and C# binding definition generator.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {TOOL_VERSION}")

    sub = parser.add_subparsers(dest="command", required=True)

    parse_cmd = sub.add_parser("parse", help="Parse headers and print the declaration AST as JSON.")
    add_input_arguments(parse_cmd)
    parse_cmd.add_argument("--compact", action="store_true", help="Emit compact JSON instead of pretty-printed.")
    parse_cmd.set_defaults(func=command_parse)

    generate = sub.add_parser("generate", help="Generate C# binding definitions from headers.")
    add_input_arguments(generate)
    generate.add_argument("--output-dir", help="Write one file per header into this directory.")
    generate.add_argument("--namespace", help="Namespace for generated C# (overrides config).")
    generate.add_argument("--format", choices=OUTPUT_FORMATS, help="Output format (overrides config).")
    generate.set_defaults(func=command_generate)

    slices = sub.add_parser("list-slices", help="List the slices of an .xcframework bundle.")
    slices.add_argument("--framework", required=True, help="Path to an .xcframework bundle.")
    slices.set_defaults(func=command_list_slices)

    headers = sub.add_parser("list-headers", help="List the public headers discovery would read.")
    headers.add_argument("--framework", required=True, help="Path to an .xcframework bundle.")
    headers.add_argument("--slice", help="Slice to use instead of the platform default.")
    headers.set_defaults(func=command_list_headers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return int(args.func(args))
    except BindgenError as exc:
        print(f"objc_bindgen error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
