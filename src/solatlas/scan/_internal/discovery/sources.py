"""Source file enumeration and fingerprinting for one project directory."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from solatlas.core.errors import ScanError


@dataclass(frozen=True, slots=True)
class SourceFile:
    path: Path
    relative_path: str  # git-root relative, "/" separated
    content: bytes
    sha256: str
    size_bytes: int
    last_write_at: float


def relative_to_root(path: Path, git_root: Path) -> str:
    return os.path.relpath(path, git_root).replace("\\", "/")


def iter_source_files(
    project_dir: Path,
    excluded_dirs: Iterable[str],
    suffix: str = ".cs",
) -> list[Path]:
    """All files with ``suffix`` below ``project_dir``, in a stable order.

    Excluded directory names match case-insensitively and are never entered.
    """
    excluded = {d.lower() for d in excluded_dirs}
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(project_dir):
        dirnames[:] = sorted(d for d in dirnames if d.lower() not in excluded)
        for name in sorted(filenames):
            if name.lower().endswith(suffix):
                found.append(Path(dirpath) / name)
    return found


def read_source(path: Path, git_root: Path, max_bytes: int | None = None) -> SourceFile:
    """Read one source file and fingerprint it.

    Raises:
        ScanError: When the file is unreadable or larger than ``max_bytes``.
    """
    try:
        stat = path.stat()
        if max_bytes is not None and stat.st_size > max_bytes:
            raise ScanError.source_unreadable(
                str(path), f"{stat.st_size} bytes exceeds limit of {max_bytes}"
            )
        content = path.read_bytes()
    except OSError as e:
        raise ScanError.source_unreadable(str(path), str(e)) from e

    return SourceFile(
        path=path,
        relative_path=relative_to_root(path, git_root),
        content=content,
        sha256=hashlib.sha256(content).hexdigest(),
        size_bytes=len(content),
        last_write_at=stat.st_mtime,
    )
