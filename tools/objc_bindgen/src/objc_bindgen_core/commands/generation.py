from __future__ import annotations

import argparse
from pathlib import Path

from .._core_base import BindgenError, dump_json, write_artifact_if_changed
from ..assembler import assemble_headers
from ..model import Header
from ..render import render_csharp
from .common import (
    collect_header_paths,
    lexer_options_from_config,
    parse_sources,
    print_artifact_status,
    report_diagnostics,
    resolve_config,
)


def _finish(exit_code: int, warning_count: int, args: argparse.Namespace) -> int:
    if warning_count and bool(getattr(args, "fail_on_warnings", False)):
        return max(exit_code, 1)
    return exit_code


def _write_or_print(args: argparse.Namespace, label: str, content: str) -> int:
    if not args.output:
        if args.check:
            raise BindgenError("--check requires --output.")
        print(content, end="" if content.endswith("\n") else "\n")
        return 0
    path = Path(args.output).resolve()
    status, diff = write_artifact_if_changed(path=path, content=content, dry_run=bool(args.dry_run), check=bool(args.check))
    print_artifact_status(label, path, status, diff, show_diff=bool(args.check or args.dry_run))
    return 1 if status == "drift" else 0


def command_parse(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    paths = collect_header_paths(args)
    headers = parse_sources(paths, lexer_options_from_config(config))
    warning_count = report_diagnostics(headers)

    payload = headers[0].as_dict() if len(headers) == 1 else [header.as_dict() for header in headers]
    content = dump_json(payload, compact=bool(args.compact))
    if not content.endswith("\n"):
        content += "\n"
    return _finish(_write_or_print(args, "parse", content), warning_count, args)


def render_headers(headers: list[Header], namespace: str, output_format: str) -> str:
    declaration_sets = assemble_headers(headers)
    if output_format == "json":
        payload = [
            {"file": header.file, "declarations": [decl.as_dict() for decl in declarations]}
            for header, declarations in zip(headers, declaration_sets)
        ]
        return dump_json(payload[0] if len(payload) == 1 else payload)

    sections: list[str] = []
    for header, declarations in zip(headers, declaration_sets):
        text = render_csharp(
            declarations,
            source_name=header.file,
            namespace=namespace,
            forward_declarations=header.forward_declarations,
        )
        if len(headers) > 1:
            text = f"// ========== {header.file} ==========\n{text}"
        sections.append(text)
    return "\n".join(sections)


def command_generate(args: argparse.Namespace) -> int:
    config = resolve_config(args)
    paths = collect_header_paths(args)
    headers = parse_sources(paths, lexer_options_from_config(config))
    warning_count = report_diagnostics(headers)

    output_cfg = config["output"]
    namespace = str(output_cfg.get("namespace") or "")
    output_format = str(output_cfg.get("format") or "csharp")

    if args.output_dir:
        if args.output:
            raise BindgenError("--output and --output-dir are mutually exclusive.")
        exit_code = 0
        out_dir = Path(args.output_dir).resolve()
        suffix = ".json" if output_format == "json" else ".cs"
        # Category merging and typedef lookup still span the whole batch.
        declaration_sets = assemble_headers(headers)
        for header, declarations in zip(headers, declaration_sets):
            if output_format == "json":
                content = dump_json({"file": header.file, "declarations": [decl.as_dict() for decl in declarations]})
            else:
                content = render_csharp(
                    declarations,
                    source_name=header.file,
                    namespace=namespace,
                    forward_declarations=header.forward_declarations,
                )
            path = out_dir / (Path(header.file).stem + suffix)
            status, diff = write_artifact_if_changed(
                path=path,
                content=content,
                dry_run=bool(args.dry_run),
                check=bool(args.check),
            )
            print_artifact_status("generate", path, status, diff, show_diff=bool(args.check or args.dry_run))
            if status == "drift":
                exit_code = 1
        return _finish(exit_code, warning_count, args)

    content = render_headers(headers, namespace, output_format)
    return _finish(_write_or_print(args, "generate", content), warning_count, args)
