from __future__ import annotations
import os
from pathlib import Path
from typing import Iterable, List, Sequence

from ..core.errors import ArgumentError


def collect_files(args: Sequence[str], extensions: Iterable[str] = (".mp3",)) -> List[Path]:
    """Expand path arguments into the list of files to normalize.

    - no arguments: the current directory
    - a directory: its files (not recursive) whose name ends with one of
      the extensions, case-insensitive, in name order
    - a file: kept if its name ends with one of the extensions
    Duplicates are dropped, first occurrence wins.
    """
    exts = tuple(e.lower() for e in extensions)
    if not args:
        args = ["."]

    files: List[Path] = []
    for arg in args:
        path = Path(arg)
        if not path.exists():
            raise ArgumentError(f"No such file or directory: {arg}")
        if path.is_dir():
            try:
                entries = sorted(os.scandir(path), key=lambda e: e.name)
            except OSError as e:
                raise ArgumentError(f"Cannot read directory {arg}: {e}") from e
            for entry in entries:
                if entry.is_file() and entry.name.lower().endswith(exts):
                    files.append(path / entry.name)
        elif path.name.lower().endswith(exts):
            files.append(path)

    return unique_paths(files)


def unique_paths(paths: Iterable[Path]) -> List[Path]:
    seen = set()
    out: List[Path] = []
    for p in paths:
        key = os.path.normcase(os.path.abspath(p))
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out
