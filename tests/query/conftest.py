"""Fixtures for query tests: a small, hand-built inventory."""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from sqlmodel import Session

from solatlas.scan import Artifact, ClassMember, Database, Project, Repository, Solution


def _add_project(session: Session, repo_name: str) -> int:
    repo = Repository(name=repo_name, root_relative_path=repo_name)
    session.add(repo)
    session.flush()
    solution = Solution(
        repository_id=repo.id,
        name="Main",
        solution_file_path="Main.sln",
        solution_file="Main.sln",
    )
    session.add(solution)
    session.flush()
    project = Project(
        solution_id=solution.id,
        name="Api",
        relative_project_path=f"{repo_name}/Api/Api.csproj",
    )
    session.add(project)
    session.flush()
    return project.id  # type: ignore[return-value]


def _add_artifact(
    session: Session,
    project_id: int,
    repo_name: str,
    name: str,
    *,
    module: str | None,
    visibility: str | None,
    feature: str | None = None,
    members: tuple[tuple[str, str, str], ...] = (),
) -> None:
    key_parts = f"{visibility or ''}|{module or ''}|Contoso.Billing.{name}"
    artifact = Artifact(
        project_id=project_id,
        relative_file_path=f"{repo_name}/Api/{name}.cs",
        logical_name=name,
        span_start=0,
        kind="Class",
        class_name=name,
        namespace="Contoso.Billing",
        file_name=f"{name}.cs",
        module=module,
        visibility=visibility,
        feature=feature,
        logical_class_key=key_parts,
        file_sha256=f"{repo_name}-{name}",
    )
    session.add(artifact)
    session.flush()
    for start, (kind, member_name, type_display) in enumerate(members):
        session.add(
            ClassMember(
                artifact_id=artifact.id,
                project_id=project_id,
                relative_file_path=artifact.relative_file_path,
                span_start=(start + 1) * 10,
                kind=kind,
                name=member_name,
                type_raw=type_display.split("(")[0],
                type_display=type_display,
            )
        )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def inventory_db(temp_dir: Path) -> Generator[Database, None, None]:
    """Three repositories holding Customer; only two are labelled.

    - alpha: Customer [Id, Name string(50)] and Invoice (feature Invoicing)
    - beta:  Customer [Id, Name string(100), Email]
    - gamma: Customer [Id], no labels
    """
    db = Database(temp_dir / "query.db")
    db.create_all()
    with db.session() as session:
        alpha = _add_project(session, "alpha")
        beta = _add_project(session, "beta")
        gamma = _add_project(session, "gamma")
        _add_artifact(
            session,
            beta,
            "beta",
            "Customer",
            module="Billing",
            visibility="Public",
            members=(
                ("Property", "Id", "int"),
                ("Property", "Name", "string(100)"),
                ("Property", "Email", "string(max)"),
            ),
        )
        _add_artifact(
            session,
            alpha,
            "alpha",
            "Customer",
            module="Billing",
            visibility="Public",
            members=(("Property", "Id", "int"), ("Property", "Name", "string(50)")),
        )
        _add_artifact(
            session,
            alpha,
            "alpha",
            "Invoice",
            module="Billing",
            visibility="Internal",
            feature="Invoicing",
            members=(("Field", "Total", "decimal"), ("Property", "Number", "string(20)")),
        )
        _add_artifact(
            session,
            gamma,
            "gamma",
            "Customer",
            module=None,
            visibility=None,
            members=(("Property", "Id", "int"),),
        )
        session.commit()
    yield db
    db.engine.dispose()
