"""Read-only queries over the scanned inventory.

Every query fans out from artifacts to the members they own. Columns of a
comparison are ordered by (repository, solution, project, relative file path,
span start). Text selectors compare case-insensitively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func
from sqlmodel import col, select

from solatlas.core.errors import QueryError
from solatlas.query.matrix import ComparisonMatrix, LocatedArtifact, build_matrix
from solatlas.scan.models import Artifact, ClassMember, Project, Repository, Solution

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement
    from sqlmodel import Session

    from solatlas.scan._internal.db import Database

logger = structlog.get_logger()


class SelectorMode(str, Enum):
    EXACT = "exact"
    FUZZY = "fuzzy"
    NAME = "name"


class DistinctField(str, Enum):
    CLASS_NAME = "class-name"
    MODULE = "module"
    VISIBILITY = "visibility"
    FEATURE = "feature"


_DISTINCT_COLUMNS = {
    DistinctField.CLASS_NAME: Artifact.logical_name,
    DistinctField.MODULE: Artifact.module,
    DistinctField.VISIBILITY: Artifact.visibility,
    DistinctField.FEATURE: Artifact.feature,
}


def _trimmed(value: str | None) -> str:
    return (value or "").strip()


@dataclass(frozen=True, slots=True)
class ClassSelector:
    """Which artifacts form the columns of a comparison.

    Build one through ``exact``, ``fuzzy`` or ``by_name``.
    """

    mode: SelectorMode
    value: str
    module: str | None = None
    visibility: str | None = None
    feature: str | None = None

    @classmethod
    def exact(cls, key: str) -> ClassSelector:
        return cls(SelectorMode.EXACT, _trimmed(key))

    @classmethod
    def fuzzy(cls, fragment: str) -> ClassSelector:
        return cls(SelectorMode.FUZZY, _trimmed(fragment))

    @classmethod
    def by_name(
        cls,
        name: str,
        *,
        module: str | None = None,
        visibility: str | None = None,
        feature: str | None = None,
    ) -> ClassSelector:
        return cls(
            SelectorMode.NAME,
            _trimmed(name),
            module=_trimmed(module) or None,
            visibility=_trimmed(visibility) or None,
            feature=_trimmed(feature) or None,
        )

    @classmethod
    def from_options(
        cls,
        *,
        key: str | None = None,
        fuzzy: str | None = None,
        name: str | None = None,
        module: str | None = None,
        visibility: str | None = None,
        feature: str | None = None,
    ) -> ClassSelector:
        """Build a selector from mutually exclusive options.

        Raises:
            QueryError: Unless exactly one of key, fuzzy and name is given, or
                when label filters accompany a key selector.
        """
        given = [v for v in (key, fuzzy, name) if v is not None]
        if len(given) != 1:
            raise QueryError.invalid_selector("give exactly one of key, fuzzy or name")
        if name is None and any(v is not None for v in (module, visibility, feature)):
            raise QueryError.invalid_selector("module/visibility/feature filters need a name")
        if key is not None:
            return cls.exact(key)
        if fuzzy is not None:
            return cls.fuzzy(fuzzy)
        return cls.by_name(name or "", module=module, visibility=visibility, feature=feature)

    def conditions(self) -> list[ColumnElement[bool]]:
        value = self.value.lower()
        if self.mode is SelectorMode.EXACT:
            return [func.lower(Artifact.logical_class_key) == value]
        if self.mode is SelectorMode.FUZZY:
            return [
                col(Artifact.logical_class_key).is_not(None),
                col(Artifact.logical_class_key).icontains(self.value, autoescape=True),
            ]
        conditions: list[ColumnElement[bool]] = [
            (func.lower(Artifact.class_name) == value) | (func.lower(Artifact.logical_name) == value)
        ]
        for column, wanted in (
            (Artifact.module, self.module),
            (Artifact.visibility, self.visibility),
            (Artifact.feature, self.feature),
        ):
            if wanted:
                conditions.append(func.lower(column) == wanted.lower())
        return conditions


@dataclass
class ClassVersion:
    """One location of a logical class with its full member list."""

    repository_name: str
    solution_name: str
    project_name: str
    artifact: Artifact
    members: list[ClassMember] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        a = self.artifact
        return {
            "repository_name": self.repository_name,
            "solution_name": self.solution_name,
            "project_name": self.project_name,
            "artifact_id": a.id,
            "logical_class_key": a.logical_class_key,
            "class_name": a.class_name or a.logical_name,
            "namespace": a.namespace,
            "module": a.module,
            "visibility": a.visibility,
            "feature": a.feature,
            "relative_file_path": a.relative_file_path,
            "file_name": a.file_name,
            "base_class_name": a.base_class_name,
            "base_type_name": a.base_type_name,
            "interfaces_raw": a.interfaces_raw,
            "is_abstract": a.is_abstract,
            "is_static": a.is_static,
            "is_partial": a.is_partial,
            "file_sha256": a.file_sha256,
            "file_last_write_at": a.file_last_write_at,
            "file_size_bytes": a.file_size_bytes,
            "members": [
                m.model_dump(exclude={"id", "artifact_id", "project_id", "relative_file_path"})
                for m in self.members
            ],
        }


class ClassQueryService:
    """Comparison, version and value-list queries for the presentation layer."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def build_comparison_matrix(self, selector: ClassSelector) -> ComparisonMatrix | None:
        """Matrix for the selected artifacts, or None when nothing matches."""
        if not selector.value:
            return None
        with self._db.session() as session:
            located = _locate(session, selector.conditions())
            if not located:
                logger.debug("matrix_no_match", mode=selector.mode.value, value=selector.value)
                return None
            members = _members_by_artifact(session, [loc.artifact.id for loc in located])  # type: ignore[misc]

        key = None if selector.mode is SelectorMode.NAME else selector.value
        matrix = build_matrix(located, members, logical_class_key=key)
        if matrix is not None and matrix.header_mismatches:
            logger.info(
                "matrix_header_mismatch",
                logical_class_key=matrix.logical_class_key,
                fields=sorted({m.field for m in matrix.header_mismatches}),
            )
        return matrix

    def get_class_versions(self, logical_class_key: str) -> list[ClassVersion]:
        """Every artifact with exactly this key, in column order."""
        selector = ClassSelector.exact(logical_class_key)
        if not selector.value:
            return []
        with self._db.session() as session:
            located = _locate(session, selector.conditions())
            members = _members_by_artifact(
                session,
                [loc.artifact.id for loc in located],  # type: ignore[misc]
                by_kind=True,
            )
        return [
            ClassVersion(
                repository_name=loc.repository_name,
                solution_name=loc.solution_name,
                project_name=loc.project_name,
                artifact=loc.artifact,
                members=list(members.get(loc.artifact.id, [])),  # type: ignore[arg-type]
            )
            for loc in located
        ]

    def distinct_values(self, field_name: str | DistinctField) -> list[str]:
        """Sorted distinct non-empty values of one artifact field.

        Raises:
            QueryError: If the field is not one of the supported names.
        """
        try:
            which = DistinctField(field_name)
        except ValueError:
            raise QueryError.unknown_field(
                str(field_name), [f.value for f in DistinctField]
            ) from None
        column = _DISTINCT_COLUMNS[which]
        stmt = (
            select(column)
            .where(col(column).is_not(None), column != "")
            .distinct()
            .order_by(column)
        )
        with self._db.session() as session:
            return [v for v in session.exec(stmt).all() if v]


def _locate(session: Session, conditions: list[ColumnElement[bool]]) -> list[LocatedArtifact]:
    stmt = (
        select(Artifact, Repository.name, Solution.name, Project.name)
        .join(Project, Artifact.project_id == Project.id)
        .join(Solution, Project.solution_id == Solution.id)
        .join(Repository, Solution.repository_id == Repository.id)
        .where(*conditions)
        .order_by(
            Repository.name,
            Solution.name,
            Project.name,
            Artifact.relative_file_path,
            Artifact.span_start,
        )
    )
    return [
        LocatedArtifact(
            artifact=artifact,
            repository_name=repository_name,
            solution_name=solution_name,
            project_name=project_name,
        )
        for artifact, repository_name, solution_name, project_name in session.exec(stmt).all()
    ]


def _members_by_artifact(
    session: Session,
    artifact_ids: list[int],
    *,
    by_kind: bool = False,
) -> dict[int, list[ClassMember]]:
    if not artifact_ids:
        return {}
    order = (ClassMember.kind, ClassMember.span_start) if by_kind else (ClassMember.span_start,)
    stmt = (
        select(ClassMember)
        .where(col(ClassMember.artifact_id).in_(artifact_ids))
        .order_by(*order)
    )
    grouped: dict[int, list[ClassMember]] = {}
    for member in session.exec(stmt).all():
        grouped.setdefault(member.artifact_id, []).append(member)
    return grouped
