from __future__ import annotations

import argparse
from pathlib import Path

from ..discovery import list_slices, resolve_headers


def command_list_slices(args: argparse.Namespace) -> int:
    for name in list_slices(Path(args.framework).resolve()):
        print(name)
    return 0


def command_list_headers(args: argparse.Namespace) -> int:
    for path in resolve_headers(Path(args.framework).resolve(), args.slice):
        print(path)
    return 0
