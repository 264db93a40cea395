"""Scan module - inventory of .NET repositories into SQLite.

This module provides:
- Discovery: repositories, solutions, projects and source files under a git root
- Parsing: Tree-sitter C# declarations mapped onto a neutral node model
- Extraction: classification, members, annotations, data sets and actions
- Reconciliation: keyed, idempotent updates of the stored inventory
- Grouping: rule-based module/visibility/feature labels

Public API is in `solatlas.scan.ops`:
- ScanCoordinator: High-level orchestration
- ScanSummary, ProjectScanResult: Result types

Internal implementations are in `solatlas.scan._internal/`.
"""

from solatlas.scan._internal.db import Database, ReconcileCounts
from solatlas.scan._internal.grouping import GroupingResolver, ResolveResult
from solatlas.scan.models import (
    Artifact,
    ArtifactKind,
    ArtifactSubKind,
    ClassMember,
    ControllerAction,
    DataSetDeclaration,
    GroupingOverride,
    MemberKind,
    Project,
    Repository,
    Solution,
)
from solatlas.scan.ops import ProjectScanResult, ScanCoordinator, ScanSummary

__all__ = [
    # Public API (ops.py)
    "ScanCoordinator",
    "ScanSummary",
    "ProjectScanResult",
    # Database
    "Database",
    "ReconcileCounts",
    # Grouping
    "GroupingResolver",
    "ResolveResult",
    # Models
    "Artifact",
    "ArtifactKind",
    "ArtifactSubKind",
    "ClassMember",
    "ControllerAction",
    "DataSetDeclaration",
    "GroupingOverride",
    "MemberKind",
    "Project",
    "Repository",
    "Solution",
]
