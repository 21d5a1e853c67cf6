from __future__ import annotations

import difflib
import json
from pathlib import Path
from typing import Any

TOOL_VERSION = "1.0.0"
DEFAULT_NAMESPACE = "Bindings"
OUTPUT_FORMATS = ("csharp", "json")
DEFAULT_CONFIG: dict[str, Any] = {
    "lexer": {
        "macro_heuristic": True,
        "extern_macros": [],
        "extra_skip_macros": [],
    },
    "output": {
        "namespace": DEFAULT_NAMESPACE,
        "format": "csharp",
    },
}


class BindgenError(Exception):
    pass


class DiscoveryError(BindgenError):
    pass


def load_json(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise BindgenError(f"Unable to read JSON file '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise BindgenError(f"Invalid JSON in '{path}': {exc}") from exc


def dump_json(value: Any, compact: bool = False) -> str:
    if compact:
        return json.dumps(value, separators=(",", ":"))
    return json.dumps(value, indent=2) + "\n"


def get_schema_path(kind: str) -> Path:
    base = Path(__file__).resolve().parents[2] / "schemas"
    mapping = {
        "config": base / "config.schema.json",
    }
    if kind not in mapping:
        raise BindgenError(f"Unknown schema kind: {kind}")
    return mapping[kind]


def validate_with_jsonschema_if_available(kind: str, payload: dict[str, Any]) -> tuple[bool, str | None]:
    schema_path = get_schema_path(kind)
    if not schema_path.exists():
        return False, f"schema file not found: {schema_path}"

    try:
        import jsonschema  # type: ignore
    except Exception:
        return False, "jsonschema package is not installed"

    schema_payload = load_json(schema_path)
    try:
        jsonschema.validate(payload, schema_payload)
    except Exception as exc:
        raise BindgenError(f"{kind} failed JSON schema validation: {exc}") from exc
    return True, None


def _require_string_list(value: Any, label: str) -> None:
    if value is None:
        return
    if not isinstance(value, list) or not all(isinstance(item, str) and item for item in value):
        raise BindgenError(f"{label} must be an array of non-empty strings when specified")


def validate_config_payload(config: dict[str, Any]) -> None:
    if not isinstance(config, dict):
        raise BindgenError("Config root must be a JSON object.")

    unknown = sorted(set(config) - {"lexer", "output"})
    if unknown:
        raise BindgenError(f"Config has unknown top-level keys: {', '.join(unknown)}")

    lexer = config.get("lexer")
    if lexer is not None:
        if not isinstance(lexer, dict):
            raise BindgenError("Config 'lexer' must be an object when specified")
        heuristic = lexer.get("macro_heuristic")
        if heuristic is not None and not isinstance(heuristic, bool):
            raise BindgenError("lexer.macro_heuristic must be boolean when specified")
        _require_string_list(lexer.get("extern_macros"), "lexer.extern_macros")
        _require_string_list(lexer.get("extra_skip_macros"), "lexer.extra_skip_macros")

    output = config.get("output")
    if output is not None:
        if not isinstance(output, dict):
            raise BindgenError("Config 'output' must be an object when specified")
        namespace = output.get("namespace")
        if namespace is not None and (not isinstance(namespace, str) or not namespace):
            raise BindgenError("output.namespace must be a non-empty string when specified")
        output_format = output.get("format")
        if output_format is not None and output_format not in OUTPUT_FORMATS:
            raise BindgenError(f"output.format must be one of: {', '.join(OUTPUT_FORMATS)}")


def load_config(path: Path | None) -> dict[str, Any]:
    merged: dict[str, Any] = {
        "lexer": dict(DEFAULT_CONFIG["lexer"]),
        "output": dict(DEFAULT_CONFIG["output"]),
    }
    if path is None:
        return merged

    payload = load_json(path)
    validate_config_payload(payload)
    validate_with_jsonschema_if_available("config", payload)
    for section in ("lexer", "output"):
        values = payload.get(section)
        if isinstance(values, dict):
            merged[section].update(values)
    return merged


def read_text_if_exists(path: Path) -> str:
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BindgenError(f"Unable to read file '{path}': {exc}") from exc


def read_header_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise BindgenError(f"Unable to read header '{path}': {exc}") from exc


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def normalized_lines(value: str) -> list[str]:
    return value.replace("\r\n", "\n").splitlines()


def compute_unified_diff(old_content: str, new_content: str, old_label: str, new_label: str) -> str:
    diff_lines = difflib.unified_diff(
        normalized_lines(old_content),
        normalized_lines(new_content),
        fromfile=old_label,
        tofile=new_label,
        lineterm="",
    )
    return "\n".join(diff_lines)


def write_artifact_if_changed(
    *,
    path: Path,
    content: str,
    dry_run: bool,
    check: bool,
) -> tuple[str, str]:
    old_content = read_text_if_exists(path)
    if old_content == content:
        return "unchanged", ""
    if check:
        return "drift", compute_unified_diff(old_content, content, f"a/{path}", f"b/{path}")
    if dry_run:
        return "would_write", compute_unified_diff(old_content, content, f"a/{path}", f"b/{path}")
    write_text(path, content)
    return "updated", compute_unified_diff(old_content, content, f"a/{path}", f"b/{path}")
