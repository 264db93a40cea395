"""Tests for comparison matrix assembly."""

from __future__ import annotations

from solatlas.query.matrix import LocatedArtifact, build_matrix
from solatlas.scan.models import Artifact, ClassMember


def artifact(id: int, **overrides: object) -> Artifact:
    values: dict[str, object] = {
        "id": id,
        "project_id": id,
        "relative_file_path": f"repo{id}/Customer.cs",
        "logical_name": "Customer",
        "span_start": 0,
        "kind": "Class",
        "class_name": "Customer",
        "namespace": "Contoso.Billing",
        "file_name": "Customer.cs",
        "module": "Billing",
        "visibility": "Public",
        "logical_class_key": "Public|Billing|Contoso.Billing.Customer",
        "file_sha256": f"sha{id}",
    }
    values.update(overrides)
    return Artifact(**values)


def member(
    artifact_id: int, name: str, start: int, type_display: str = "int", **extra: object
) -> ClassMember:
    return ClassMember(
        artifact_id=artifact_id,
        project_id=artifact_id,
        relative_file_path="x.cs",
        span_start=start,
        kind="Property",
        name=name,
        type_raw=type_display.split("(")[0],
        type_display=type_display,
        **extra,
    )


def located(a: Artifact, repo: str) -> LocatedArtifact:
    return LocatedArtifact(
        artifact=a, repository_name=repo, solution_name="Main", project_name="Api"
    )


class TestBuildMatrix:
    def test_empty(self) -> None:
        assert build_matrix([], {}) is None

    def test_alignment_with_missing_cells(self) -> None:
        """[Id, Name] vs [Id, Name, Email]: three rows, one missing cell."""
        first, second = artifact(1), artifact(2)
        members = {
            1: [member(1, "Id", 10), member(1, "Name", 40, "string(50)", is_required=True)],
            2: [
                member(2, "Id", 10),
                member(2, "Name", 40, "string(100)", max_length=100),
                member(2, "Email", 80, "string(max)"),
            ],
        }

        matrix = build_matrix([located(first, "a"), located(second, "b")], members)

        assert matrix is not None
        assert [r.member_name for r in matrix.rows] == ["Id", "Name", "Email"]
        email = matrix.rows[2]
        assert email.cells[0].is_missing
        assert email.cells[1].type_display == "string(max)"
        name = matrix.rows[1]
        assert [c.type_display for c in name.cells] == ["string(50)", "string(100)"]
        assert name.cells[0].is_required is True
        assert name.cells[1].max_length == 100
        assert matrix.rows[0].is_uniform
        assert not name.is_uniform
        assert not email.is_uniform

    def test_rows_are_baseline_first(self) -> None:
        """Later columns append unseen members after the baseline's, in span order."""
        first, second = artifact(1), artifact(2)
        members = {
            1: [member(1, "Zeta", 50), member(1, "Alpha", 10)],
            2: [member(2, "Omega", 90), member(2, "Beta", 5), member(2, "Alpha", 20)],
        }

        matrix = build_matrix([located(first, "a"), located(second, "b")], members)

        assert matrix is not None
        assert [r.member_name for r in matrix.rows] == ["Alpha", "Zeta", "Beta", "Omega"]

    def test_member_names_match_case_insensitively(self) -> None:
        members = {1: [member(1, "CustomerId", 10)], 2: [member(2, "customerID", 10)]}

        matrix = build_matrix([located(artifact(1), "a"), located(artifact(2), "b")], members)

        assert matrix is not None
        (row,) = matrix.rows
        assert row.member_name == "CustomerId"
        assert not any(c.is_missing for c in row.cells)

    def test_duplicate_member_keeps_first(self) -> None:
        members = {1: [member(1, "Id", 40, "long"), member(1, "Id", 10, "int")]}

        matrix = build_matrix([located(artifact(1), "a")], members)

        assert matrix is not None
        (row,) = matrix.rows
        assert row.cells[0].type_display == "int"

    def test_type_display_falls_back_to_raw(self) -> None:
        raw_only = ClassMember(
            artifact_id=1,
            project_id=1,
            relative_file_path="x.cs",
            span_start=0,
            kind="Field",
            name="Code",
            type_raw="Guid",
        )

        matrix = build_matrix([located(artifact(1), "a")], {1: [raw_only]})

        assert matrix is not None
        assert matrix.rows[0].cells[0].type_display == "Guid"

    def test_member_with_empty_type_is_present(self) -> None:
        untyped = ClassMember(
            artifact_id=1,
            project_id=1,
            relative_file_path="x.cs",
            span_start=0,
            kind="Field",
            name="Broken",
            type_raw="",
        )

        matrix = build_matrix(
            [located(artifact(1), "a"), located(artifact(2), "b")], {1: [untyped]}
        )

        assert matrix is not None
        (row,) = matrix.rows
        assert [c.is_missing for c in row.cells] == [False, True]
        assert row.cells[0].present
        assert not row.is_uniform

    def test_artifact_without_members_gives_missing_column(self) -> None:
        members = {1: [member(1, "Id", 10)]}

        matrix = build_matrix([located(artifact(1), "a"), located(artifact(2), "b")], members)

        assert matrix is not None
        assert [c.is_missing for c in matrix.rows[0].cells] == [False, True]

    def test_header_from_first_column(self) -> None:
        first = artifact(1)
        second = artifact(2, module="Sales", namespace="Contoso.Sales")

        matrix = build_matrix([located(first, "a"), located(second, "b")], {})

        assert matrix is not None
        assert matrix.module == "Billing"
        assert matrix.namespace == "Contoso.Billing"
        assert matrix.class_name == "Customer"
        assert matrix.logical_class_key == "Public|Billing|Contoso.Billing.Customer"
        assert {(m.field, m.column_index) for m in matrix.header_mismatches} == {
            ("module", 1),
            ("namespace", 1),
        }
        mismatch = next(m for m in matrix.header_mismatches if m.field == "module")
        assert (mismatch.baseline, mismatch.value) == ("Billing", "Sales")

    def test_explicit_key_wins(self) -> None:
        matrix = build_matrix([located(artifact(1), "a")], {}, logical_class_key="custom")

        assert matrix is not None
        assert matrix.logical_class_key == "custom"

    def test_columns(self) -> None:
        matrix = build_matrix([located(artifact(1), "a"), located(artifact(2), "b")], {})

        assert matrix is not None
        assert [(c.index, c.repository_name, c.artifact_id) for c in matrix.columns] == [
            (0, "a", 1),
            (1, "b", 2),
        ]
        assert matrix.columns[1].file_sha256 == "sha2"

    def test_to_dict(self) -> None:
        members = {1: [member(1, "Id", 10)], 2: []}

        matrix = build_matrix([located(artifact(1), "a"), located(artifact(2), "b")], members)

        assert matrix is not None
        data = matrix.to_dict()
        assert data["class_name"] == "Customer"
        assert len(data["columns"]) == 2
        cells = data["rows"][0]["cells"]
        assert cells[0]["type_display"] == "int"
        assert cells[0]["present"] is True
        assert cells[1]["type_display"] is None
        assert cells[1]["present"] is False
        assert data["header_mismatches"] == []
