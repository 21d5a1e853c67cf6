from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from .._core_base import BindgenError, load_config
from ..discovery import resolve_headers
from ..lexer import LexerOptions
from ..model import Header
from ..parser import parse_file


def resolve_config(args: argparse.Namespace) -> dict[str, Any]:
    """Load the optional config file and apply command-line overrides on top."""
    config = load_config(Path(args.config).resolve() if getattr(args, "config", None) else None)
    lexer_cfg = config["lexer"]
    if getattr(args, "no_macro_heuristic", False):
        lexer_cfg["macro_heuristic"] = False
    extern_macros = getattr(args, "extern_macro", None) or []
    if extern_macros:
        lexer_cfg["extern_macros"] = [*lexer_cfg.get("extern_macros", []), *extern_macros]
    skip_macros = getattr(args, "skip_macro", None) or []
    if skip_macros:
        lexer_cfg["extra_skip_macros"] = [*lexer_cfg.get("extra_skip_macros", []), *skip_macros]

    output_cfg = config["output"]
    if getattr(args, "namespace", None):
        output_cfg["namespace"] = args.namespace
    if getattr(args, "format", None):
        output_cfg["format"] = args.format
    return config


def lexer_options_from_config(config: dict[str, Any]) -> LexerOptions:
    return LexerOptions.from_config(config.get("lexer"))


def collect_header_paths(args: argparse.Namespace) -> list[Path]:
    paths: list[Path] = []
    for item in getattr(args, "files", None) or []:
        path = Path(item).resolve()
        if not path.is_file():
            raise BindgenError(f"File not found: {path}")
        paths.append(path)

    framework = getattr(args, "framework", None)
    if framework:
        bundle = Path(framework).resolve()
        resolved = resolve_headers(bundle, getattr(args, "slice", None))
        if not resolved:
            raise BindgenError(f"No headers found in {bundle}")
        paths.extend(resolved)
    elif getattr(args, "slice", None):
        raise BindgenError("--slice requires --framework.")

    if not paths:
        raise BindgenError("No input files specified. Provide header files or --framework.")
    return paths


def parse_sources(paths: list[Path], options: LexerOptions) -> list[Header]:
    return [parse_file(path, options) for path in paths]


def report_diagnostics(headers: list[Header]) -> int:
    count = 0
    for header in headers:
        for diagnostic in header.diagnostics:
            print(f"[{header.file}] warning: {diagnostic.describe()}", file=sys.stderr)
            count += 1
    return count


def print_artifact_status(label: str, path: Path, status: str, diff: str, show_diff: bool) -> None:
    print(f"[{label}] {path}: status={status}")
    if show_diff and diff:
        print(diff)
