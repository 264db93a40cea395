"""Solution discovery (.sln / .slnx) and README descriptions."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path

from solatlas.core.errors import ScanError

SOLUTION_SUFFIXES = (".sln", ".slnx")
README_DESCRIPTION_MAX = 4000

# Project("{type-guid}") = "Name", "relative\path.csproj", "{project-guid}"
_SLN_PROJECT_RE = re.compile(
    r'^\s*Project\("\{[^}]*\}"\)\s*=\s*"[^"]*"\s*,\s*"(?P<path>[^"]*)"\s*,',
    re.MULTILINE,
)


def _is_excluded(path: Path, root: Path, excluded: frozenset[str]) -> bool:
    parts = path.relative_to(root).parts[:-1]
    return any(part.lower() in excluded for part in parts)


def find_solutions(repo_dir: Path, excluded_dirs: Iterable[str] = ()) -> list[Path]:
    """Solutions in the repository root; when there are none, anywhere below it."""
    top = sorted(
        p for p in repo_dir.iterdir() if p.is_file() and p.suffix.lower() in SOLUTION_SUFFIXES
    )
    if top:
        return top
    excluded = frozenset(d.lower() for d in excluded_dirs)
    found = [
        p
        for suffix in SOLUTION_SUFFIXES
        for p in repo_dir.rglob(f"*{suffix}")
        if p.is_file() and not _is_excluded(p, repo_dir, excluded)
    ]
    return sorted(found)


def _dedupe_csproj(paths: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for raw in paths:
        path = raw.strip().replace("\\", "/")
        if not path.lower().endswith(".csproj"):
            continue
        if path.lower() in seen:
            continue
        seen.add(path.lower())
        result.append(path)
    return result


def solution_project_paths(solution_path: Path) -> list[str]:
    """``.csproj`` paths referenced by a solution, relative to its directory.

    Raises:
        ScanError: When the solution cannot be read or parsed.
    """
    try:
        content = solution_path.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as e:
        raise ScanError.project_file_invalid(str(solution_path), str(e)) from e

    if solution_path.suffix.lower() == ".slnx":
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise ScanError.project_file_invalid(str(solution_path), str(e)) from e
        paths = (
            el.get("Path", "")
            for el in root.iter()
            if el.tag.rsplit("}", 1)[-1] == "Project"
        )
        return _dedupe_csproj(paths)

    return _dedupe_csproj(m.group("path") for m in _SLN_PROJECT_RE.finditer(content))


def read_readme_description(repo_dir: Path) -> str | None:
    """First non-empty line of README.md that is not a heading."""
    readme = repo_dir / "README.md"
    if not readme.is_file():
        return None
    try:
        with readme.open(encoding="utf-8", errors="replace") as f:
            for line in f:
                text = line.strip()
                if not text or text.startswith("#"):
                    continue
                return text[:README_DESCRIPTION_MAX]
    except OSError:
        return None
    return None
