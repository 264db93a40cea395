"""Class comparison matrix.

Aligns the members of every location of one logical class into a table of
member rows x location columns.

Row order is baseline-first: the first column contributes its member keys in
span order, then every later column appends the keys not seen yet, again in
span order, scanning columns left to right. Schema evolution (new fields
appended) therefore reads top to bottom instead of alphabetically.

A member missing from a location yields an explicit empty cell; rows are never
dropped. Header metadata comes from the first column. Later columns that
disagree with it are reported in ``header_mismatches``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from solatlas.scan.models import Artifact, ClassMember

HEADER_FIELDS: tuple[str, ...] = ("module", "visibility", "feature", "namespace", "class_name")


@dataclass(frozen=True, slots=True)
class LocatedArtifact:
    """An artifact together with the names of the containers it lives in."""

    artifact: Artifact
    repository_name: str
    solution_name: str
    project_name: str

    @property
    def sort_key(self) -> tuple[str, str, str, str, int]:
        a = self.artifact
        return (
            self.repository_name,
            self.solution_name,
            self.project_name,
            a.relative_file_path,
            a.span_start,
        )


@dataclass(frozen=True, slots=True)
class MatrixColumn:
    index: int
    repository_name: str
    solution_name: str
    project_name: str
    artifact_id: int
    relative_file_path: str
    file_sha256: str | None


@dataclass(frozen=True, slots=True)
class MatrixCell:
    """One member at one location. A missing cell has every value None."""

    column_index: int
    present: bool = False
    type_display: str | None = None
    type_raw: str | None = None
    is_required: bool | None = None
    max_length: int | None = None
    sql_type_name: str | None = None

    @property
    def is_missing(self) -> bool:
        return not self.present


@dataclass(frozen=True, slots=True)
class MatrixRow:
    member_kind: str
    member_name: str
    cells: tuple[MatrixCell, ...]

    @property
    def is_uniform(self) -> bool:
        """True when the member exists with the same type everywhere."""
        if any(c.is_missing for c in self.cells):
            return False
        return len({c.type_display for c in self.cells}) <= 1


@dataclass(frozen=True, slots=True)
class HeaderMismatch:
    field: str
    column_index: int
    baseline: str | None
    value: str | None


@dataclass
class ComparisonMatrix:
    logical_class_key: str
    module: str | None
    visibility: str | None
    feature: str | None
    namespace: str | None
    class_name: str
    columns: list[MatrixColumn] = field(default_factory=list)
    rows: list[MatrixRow] = field(default_factory=list)
    header_mismatches: list[HeaderMismatch] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "logical_class_key": self.logical_class_key,
            "module": self.module,
            "visibility": self.visibility,
            "feature": self.feature,
            "namespace": self.namespace,
            "class_name": self.class_name,
            "columns": [
                {
                    "index": c.index,
                    "repository_name": c.repository_name,
                    "solution_name": c.solution_name,
                    "project_name": c.project_name,
                    "artifact_id": c.artifact_id,
                    "relative_file_path": c.relative_file_path,
                    "file_sha256": c.file_sha256,
                }
                for c in self.columns
            ],
            "rows": [
                {
                    "member_kind": r.member_kind,
                    "member_name": r.member_name,
                    "cells": [
                        {
                            "column_index": c.column_index,
                            "present": c.present,
                            "type_display": c.type_display,
                            "type_raw": c.type_raw,
                            "is_required": c.is_required,
                            "max_length": c.max_length,
                            "sql_type_name": c.sql_type_name,
                        }
                        for c in r.cells
                    ],
                }
                for r in self.rows
            ],
            "header_mismatches": [
                {
                    "field": m.field,
                    "column_index": m.column_index,
                    "baseline": m.baseline,
                    "value": m.value,
                }
                for m in self.header_mismatches
            ],
        }


def row_key(member: ClassMember) -> tuple[str, str]:
    return (member.kind.casefold(), member.name.casefold())


def _cell(column_index: int, member: ClassMember | None) -> MatrixCell:
    if member is None:
        return MatrixCell(column_index=column_index)
    return MatrixCell(
        column_index=column_index,
        present=True,
        type_display=member.type_display or member.type_raw,
        type_raw=member.type_raw,
        is_required=member.is_required,
        max_length=member.max_length,
        sql_type_name=member.sql_type_name,
    )


def _header_mismatches(located: Sequence[LocatedArtifact]) -> list[HeaderMismatch]:
    baseline = located[0].artifact
    mismatches: list[HeaderMismatch] = []
    for index, loc in enumerate(located[1:], start=1):
        for name in HEADER_FIELDS:
            expected = getattr(baseline, name)
            actual = getattr(loc.artifact, name)
            if name == "class_name":
                expected = expected or baseline.logical_name
                actual = actual or loc.artifact.logical_name
            if expected != actual:
                mismatches.append(
                    HeaderMismatch(field=name, column_index=index, baseline=expected, value=actual)
                )
    return mismatches


def build_matrix(
    located: Sequence[LocatedArtifact],
    members_by_artifact: Mapping[int, Sequence[ClassMember]],
    *,
    logical_class_key: str | None = None,
) -> ComparisonMatrix | None:
    """Assemble the matrix for artifacts already in column order.

    Returns None when there are no artifacts.
    """
    if not located:
        return None

    columns = [
        MatrixColumn(
            index=i,
            repository_name=loc.repository_name,
            solution_name=loc.solution_name,
            project_name=loc.project_name,
            artifact_id=loc.artifact.id,  # type: ignore[arg-type]
            relative_file_path=loc.artifact.relative_file_path,
            file_sha256=loc.artifact.file_sha256,
        )
        for i, loc in enumerate(located)
    ]

    # Per column lookup; duplicate keys inside one artifact keep the first by span
    lookups: list[dict[tuple[str, str], ClassMember]] = []
    ordered: dict[tuple[str, str], ClassMember] = {}
    for column in columns:
        members = sorted(members_by_artifact.get(column.artifact_id, ()), key=lambda m: m.span_start)
        lookup: dict[tuple[str, str], ClassMember] = {}
        for member in members:
            key = row_key(member)
            lookup.setdefault(key, member)
            ordered.setdefault(key, member)
        lookups.append(lookup)

    rows = [
        MatrixRow(
            member_kind=first.kind,
            member_name=first.name,
            cells=tuple(_cell(c.index, lookups[c.index].get(key)) for c in columns),
        )
        for key, first in ordered.items()
    ]

    head = located[0].artifact
    return ComparisonMatrix(
        logical_class_key=logical_class_key or head.logical_class_key or "",
        module=head.module,
        visibility=head.visibility,
        feature=head.feature,
        namespace=head.namespace,
        class_name=head.class_name or head.logical_name,
        columns=columns,
        rows=rows,
        header_mismatches=_header_mismatches(located),
    )
