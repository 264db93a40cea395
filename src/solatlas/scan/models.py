"""SQLModel definitions for the repository inventory.

Single source of truth for all table schemas.

Hierarchy:
- Repository -> Solution -> Project -> Artifact
- Artifact -> ClassMember, DataSetDeclaration, ControllerAction
- GroupingOverride rules stand alone; the resolver copies their labels onto
  artifacts and records the winning rule in ``artifacts.grouping_override_id``.

Artifacts and their children are identified by natural keys so that a
re-scan can reconcile against what is stored instead of replacing it.
Timestamps are epoch seconds.
"""

from enum import Enum

from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field, SQLModel

# ============================================================================
# ENUMS
# ============================================================================


class ArtifactKind(str, Enum):
    """Classification of a top-level class declaration, in priority order."""

    CONTROLLER = "Controller"
    DATA_CONTEXT = "DataContext"
    SERVICE = "Service"
    CLASS = "Class"


class ArtifactSubKind(str, Enum):
    """Refinement of a kind. Only Controller and DataContext carry one."""

    MVC = "Mvc"
    API = "Api"
    PLAIN = "Plain"
    IDENTITY = "Identity"


class MemberKind(str, Enum):
    FIELD = "Field"
    PROPERTY = "Property"


# ============================================================================
# INVENTORY TABLES
# ============================================================================


class Repository(SQLModel, table=True):
    """A direct child directory of the git root."""

    __tablename__ = "repositories"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    root_relative_path: str = Field(unique=True, index=True)
    url: str | None = None
    provider: str | None = None  # GitHub | Unknown
    is_private: bool | None = None  # not knowable offline
    git_first_commit_at: float | None = None
    git_last_commit_at: float | None = None
    git_head_sha: str | None = None
    current_branch: str | None = None
    default_branch: str | None = None
    created_at: float | None = None
    updated_at: float | None = None


class Solution(SQLModel, table=True):
    """A .sln or .slnx file inside a repository."""

    __tablename__ = "solutions"
    __table_args__ = (
        UniqueConstraint("repository_id", "solution_file_path", name="uq_solution_path"),
    )

    id: int | None = Field(default=None, primary_key=True)
    repository_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("repositories.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    name: str = Field(index=True)
    solution_file_path: str = Field(index=True)  # repository relative
    solution_file: str
    description: str | None = None
    runtime_platform: str | None = None  # .NET | .NET Framework
    runtime_version: str | None = None
    created_at: float | None = None
    updated_at: float | None = None


class Project(SQLModel, table=True):
    """A .csproj referenced by a solution."""

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("solution_id", "relative_project_path", name="uq_project_path"),
    )

    id: int | None = Field(default=None, primary_key=True)
    solution_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("solutions.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    name: str = Field(index=True)
    relative_project_path: str = Field(index=True)  # git-root relative
    target_frameworks: str | None = None
    project_type: str | None = None  # Test | Web | Library | App
    platform: str | None = None
    ui_stack: str | None = None
    is_web_app: bool = False
    is_class_library: bool = False
    is_test_project: bool = False
    updated_at: float | None = None


class GroupingOverride(SQLModel, table=True):
    """Grouping rule. Empty selectors are wildcards; module is mandatory."""

    __tablename__ = "grouping_overrides"

    id: int | None = Field(default=None, primary_key=True)
    repository_name: str | None = None
    solution_name: str | None = None
    project_name: str | None = None
    class_name: str | None = None
    module: str
    visibility: str | None = None
    feature: str | None = None
    override_key: str = Field(unique=True, index=True)


# ============================================================================
# SCANNED FACT TABLES
# ============================================================================


class Artifact(SQLModel, table=True):
    """One top-level class declaration (one row per partial part)."""

    __tablename__ = "artifacts"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "relative_file_path", "logical_name", "span_start",
            name="uq_artifact_identity",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("projects.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    # Identity
    relative_file_path: str = Field(index=True)  # git-root relative, "/" separated
    logical_name: str = Field(index=True)
    span_start: int
    # Classification
    kind: str = Field(index=True)
    sub_kind: str | None = None
    base_type_name: str | None = None
    # Shape
    class_name: str | None = Field(default=None, index=True)
    namespace: str | None = None
    file_name: str
    span_length: int = 0
    is_partial: bool = False
    is_abstract: bool = False
    is_static: bool = False
    base_class_name: str | None = None
    interfaces_raw: str | None = None
    # Grouping labels (owned by the resolver)
    module: str | None = Field(default=None, index=True)
    visibility: str | None = Field(default=None, index=True)
    feature: str | None = Field(default=None, index=True)
    grouping_override_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer, ForeignKey("grouping_overrides.id", ondelete="SET NULL"), nullable=True
        ),
    )
    logical_class_key: str | None = Field(default=None, index=True)
    # Fingerprint
    file_sha256: str | None = None
    file_size_bytes: int | None = None
    file_last_write_at: float | None = None
    updated_at: float | None = None


class ClassMember(SQLModel, table=True):
    """A field variable or property of an artifact."""

    __tablename__ = "class_members"
    __table_args__ = (
        UniqueConstraint("artifact_id", "span_start", name="uq_class_member_identity"),
    )

    id: int | None = Field(default=None, primary_key=True)
    artifact_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("artifacts.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    project_id: int = Field(index=True)
    relative_file_path: str
    span_start: int
    span_length: int = 0
    kind: str  # MemberKind value
    name: str = Field(index=True)
    type_raw: str | None = None
    is_nullable: bool = False
    has_getter: bool = False
    has_setter: bool = False
    is_init_only: bool = False
    is_static: bool = False
    is_abstract: bool = False
    is_virtual: bool = False
    is_override: bool = False
    attributes_raw: str | None = None
    # Annotation bag
    is_required: bool = False
    is_key: bool = False
    max_length: int | None = None
    min_length: int | None = None
    sql_type_name: str | None = None
    data_type: str | None = None
    display_name: str | None = None
    display_format_string: str | None = None
    display_format_apply_in_edit_mode: bool = False
    foreign_key: str | None = None
    inverse_property: str | None = None
    # Derived
    type_display: str | None = None
    is_collection: bool = False
    element_type_raw: str | None = None
    updated_at: float | None = None


class DataSetDeclaration(SQLModel, table=True):
    """A ``DbSet<T>`` property declared on a data context."""

    __tablename__ = "dataset_declarations"
    __table_args__ = (
        UniqueConstraint("artifact_id", "span_start", name="uq_dataset_identity"),
    )

    id: int | None = Field(default=None, primary_key=True)
    artifact_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("artifacts.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    project_id: int = Field(index=True)
    relative_file_path: str
    span_start: int
    span_length: int = 0
    context_name: str
    set_name: str
    entity_type: str
    namespace: str | None = None
    updated_at: float | None = None


class ControllerAction(SQLModel, table=True):
    """A public action method on a controller."""

    __tablename__ = "controller_actions"
    __table_args__ = (
        UniqueConstraint("artifact_id", "span_start", name="uq_controller_action_identity"),
    )

    id: int | None = Field(default=None, primary_key=True)
    artifact_id: int = Field(
        sa_column=Column(
            Integer, ForeignKey("artifacts.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    project_id: int = Field(index=True)
    relative_file_path: str
    span_start: int
    span_length: int = 0
    controller_name: str
    action_name: str
    http_method: str = "ANY"
    route: str | None = None
    is_api: bool = False
    is_async: bool = False
    return_type: str | None = None
    parameters: str | None = None
    updated_at: float | None = None
