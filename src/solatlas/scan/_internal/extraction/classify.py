"""Heuristic artifact classification of top-level class declarations.

Rules are evaluated in priority order and the first match wins:

1. Controller  - name ends with ``Controller`` and it derives from
   ``Controller``/``ControllerBase`` (plain or namespace qualified) or carries
   the ``[ApiController]`` marker. Api when marked or deriving from
   ``ControllerBase``, Mvc otherwise.
2. DataContext - some base type's simple name ends with ``DbContext``.
   Identity when that simple name starts with ``IdentityDbContext``.
3. Service     - name ends with ``Service``, the file lives under a
   ``Services`` folder, or it implements ``I<Name>``.
4. Class       - everything else.

All comparisons are case-insensitive.
"""

from __future__ import annotations

from dataclasses import dataclass

from solatlas.scan._internal.parsing.nodes import TypeDeclarationNode
from solatlas.scan.models import ArtifactKind, ArtifactSubKind


@dataclass(frozen=True, slots=True)
class Classification:
    kind: ArtifactKind
    sub_kind: ArtifactSubKind | None
    base_type_name: str | None


def strip_generics(type_text: str) -> str:
    """``Foo<Bar>`` -> ``Foo``."""
    return type_text.split("<", 1)[0].strip()


def generic_arguments(type_text: str) -> list[str]:
    """Top-level generic arguments: ``Dictionary<string, List<int>>`` -> 2 entries."""
    start = type_text.find("<")
    end = type_text.rfind(">")
    if start < 0 or end <= start:
        return []
    args: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in type_text[start + 1 : end]:
        if ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    args.append("".join(current).strip())
    return [a for a in args if a]


def simple_type_name(type_text: str) -> str:
    """Strip generic arguments and any namespace or alias qualifier."""
    name = strip_generics(type_text)
    name = name.rsplit("::", 1)[-1]
    return name.rsplit(".", 1)[-1]


def _matches_base(entry: str, *names: str) -> bool:
    """Exact or namespace-qualified match of a base-list entry."""
    lowered = strip_generics(entry).lower()
    for name in names:
        target = name.lower()
        if lowered == target or lowered.endswith("." + target) or lowered.endswith("::" + target):
            return True
    return False


def _has_api_marker(decl: TypeDeclarationNode) -> bool:
    return any(attr.is_named("ApiController") for attr in decl.attributes)


def classify(decl: TypeDeclarationNode, relative_path: str) -> Classification:
    """Classify a declaration found at a repo-relative, ``/``-separated path."""
    name = decl.name.lower()
    bases = decl.base_types
    base_type_name = bases[0] if bases else None

    api_marker = _has_api_marker(decl)
    if name.endswith("controller"):
        derives_controller = any(_matches_base(b, "Controller", "ControllerBase") for b in bases)
        if derives_controller or api_marker:
            is_api = api_marker or any(_matches_base(b, "ControllerBase") for b in bases)
            sub_kind = ArtifactSubKind.API if is_api else ArtifactSubKind.MVC
            return Classification(ArtifactKind.CONTROLLER, sub_kind, base_type_name)

    for base in bases:
        simple = simple_type_name(base).lower()
        if simple.endswith("dbcontext"):
            identity = simple.startswith("identitydbcontext")
            sub_kind = ArtifactSubKind.IDENTITY if identity else ArtifactSubKind.PLAIN
            return Classification(ArtifactKind.DATA_CONTEXT, sub_kind, base_type_name)

    if (
        name.endswith("service")
        or "/services/" in "/" + relative_path.replace("\\", "/").lower()
        or any(_matches_base(b, "I" + decl.name) for b in bases)
    ):
        return Classification(ArtifactKind.SERVICE, None, base_type_name)

    return Classification(ArtifactKind.CLASS, None, base_type_name)


def split_base_list(bases: tuple[str, ...]) -> tuple[str | None, str | None]:
    """Return (base class simple name, remaining entries joined by ``, ``).

    The first base-list entry is taken as the base class, as written in
    source; the rest are reported as interfaces.
    """
    if not bases:
        return None, None
    base_class = simple_type_name(bases[0]) or None
    interfaces = ", ".join(bases[1:]) or None
    return base_class, interfaces
