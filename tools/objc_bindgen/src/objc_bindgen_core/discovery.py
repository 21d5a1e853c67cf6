from __future__ import annotations

import sys
from pathlib import Path

from ._core_base import DiscoveryError


def _slice_dirs(bundle: Path) -> list[Path]:
    if not bundle.is_dir():
        raise DiscoveryError(f"XCFramework not found: {bundle}")
    return sorted(
        (item for item in bundle.iterdir() if item.is_dir() and not item.name.startswith((".", "_"))),
        key=lambda item: item.name,
    )


def list_slices(bundle: Path) -> list[str]:
    return [item.name for item in _slice_dirs(bundle)]


def is_platform_slice(name: str, platform: str) -> bool:
    lowered = name.lower()
    if platform == "darwin":
        return "macos" in lowered
    if platform == "ios":
        return "ios" in lowered and "simulator" not in lowered
    return False


def find_headers_directory(slice_dir: Path) -> Path | None:
    direct = slice_dir / "Headers"
    if direct.is_dir():
        return direct
    for framework in sorted(slice_dir.glob("*.framework")):
        candidate = framework / "Headers"
        if candidate.is_dir():
            return candidate
    return None


def collect_headers(slice_dir: Path) -> list[Path]:
    headers_dir = find_headers_directory(slice_dir)
    if headers_dir is None:
        return []
    return sorted(path for path in headers_dir.rglob("*.h") if path.is_file())


def resolve_headers(bundle: Path, slice_name: str | None = None, platform: str | None = None) -> list[Path]:
    """Return the public headers of one slice of an .xcframework bundle.

    An explicit slice is matched case-insensitively and must exist. Without one,
    the slice for the running platform is preferred, then the first slice; if
    that slice carries no headers every other slice is tried in order.
    """
    slices = _slice_dirs(bundle)
    if not slices:
        raise DiscoveryError(f"No slices found in {bundle}")

    if slice_name is not None:
        for item in slices:
            if item.name.lower() == slice_name.lower():
                return collect_headers(item)
        available = ", ".join(item.name for item in slices)
        raise DiscoveryError(f"Slice '{slice_name}' not found. Available slices: {available}")

    current = platform or sys.platform
    preferred = next((item for item in slices if is_platform_slice(item.name, current)), slices[0])
    headers = collect_headers(preferred)
    if headers:
        return headers
    for item in slices:
        headers = collect_headers(item)
        if headers:
            return headers
    return []
