"""High-level orchestration of a scan.

The ScanCoordinator walks repositories -> solutions -> projects -> source
files and reconciles each project's artifacts and their children against the
database. It enforces these invariants:

- One project's reconciliation is atomic: artifacts, members, data sets and
  actions are written in a single BEGIN IMMEDIATE transaction.
- Per-project lock: only ONE reconciliation of a given project at a time.
- A cancelled project is never reconciled; a partial fresh set would delete
  everything that had not been parsed yet.
- Failures are isolated: an unreadable file is skipped, a broken solution or
  project file is skipped, and a failing repository is recorded in the
  summary while the scan moves on.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable, Hashable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from sqlmodel import select

from solatlas.core.errors import ScanError, SolAtlasError
from solatlas.core.logging import clear_scan_id, set_scan_id
from solatlas.scan._internal.db import (
    ReconcileCounts,
    apply_diff,
    delete_records,
    diff_records,
    normalize_key,
)
from solatlas.scan._internal.discovery import (
    ProjectMetadata,
    SourceFile,
    derive_runtime,
    find_solutions,
    iter_source_files,
    read_git_info,
    read_project_metadata,
    read_readme_description,
    read_source,
    relative_to_root,
    solution_project_paths,
)
from solatlas.scan._internal.extraction import (
    ACTION_FIELDS,
    DATASET_FIELDS,
    MEMBER_FIELDS,
    action_key,
    classify,
    dataset_key,
    extract_actions,
    extract_datasets,
    extract_members,
    logical_class_key,
    member_key,
    split_base_list,
)
from solatlas.scan._internal.grouping import GroupingResolver, ResolveResult
from solatlas.scan._internal.parsing import (
    CSharpDeclarationSource,
    DeclarationSource,
    ParsedSource,
    TypeDeclarationNode,
)
from solatlas.scan.models import (
    Artifact,
    ArtifactKind,
    ArtifactSubKind,
    ClassMember,
    ControllerAction,
    DataSetDeclaration,
    Project,
    Repository,
    Solution,
)

if TYPE_CHECKING:
    from sqlmodel import Session

    from solatlas.config.models import ScanConfig
    from solatlas.scan._internal.db import Database

logger = structlog.get_logger()

# Columns a re-scan refreshes on a matched artifact. Grouping labels and the
# logical class key belong to the resolver and are not listed.
ARTIFACT_FIELDS: tuple[str, ...] = (
    "kind",
    "sub_kind",
    "base_type_name",
    "class_name",
    "namespace",
    "file_name",
    "span_length",
    "is_partial",
    "is_abstract",
    "is_static",
    "base_class_name",
    "interfaces_raw",
    "file_sha256",
    "file_size_bytes",
    "file_last_write_at",
)


def artifact_key(artifact: Artifact) -> tuple[str, str, int]:
    return (artifact.relative_file_path, artifact.logical_name, artifact.span_start)


@dataclass
class ProjectScanResult:
    """Outcome of scanning one project."""

    project_id: int
    project_name: str
    files_scanned: int = 0
    files_skipped: int = 0
    artifacts: ReconcileCounts = field(default_factory=ReconcileCounts)
    members: ReconcileCounts = field(default_factory=ReconcileCounts)
    datasets: ReconcileCounts = field(default_factory=ReconcileCounts)
    actions: ReconcileCounts = field(default_factory=ReconcileCounts)
    cancelled: bool = False

    @property
    def changed(self) -> int:
        return sum(c.changed for c in (self.artifacts, self.members, self.datasets, self.actions))


@dataclass
class ScanSummary:
    """Aggregate result of a full scan."""

    scan_id: str | None = None
    repositories: int = 0
    solutions: int = 0
    projects: int = 0
    files_scanned: int = 0
    files_skipped: int = 0
    artifacts: ReconcileCounts = field(default_factory=ReconcileCounts)
    members: ReconcileCounts = field(default_factory=ReconcileCounts)
    datasets: ReconcileCounts = field(default_factory=ReconcileCounts)
    actions: ReconcileCounts = field(default_factory=ReconcileCounts)
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False
    groupings: ResolveResult | None = None
    duration_seconds: float = 0.0

    def add_project(self, result: ProjectScanResult) -> None:
        self.projects += 1
        self.files_scanned += result.files_scanned
        self.files_skipped += result.files_skipped
        self.artifacts += result.artifacts
        self.members += result.members
        self.datasets += result.datasets
        self.actions += result.actions


@dataclass
class _ParsedFile:
    source: SourceFile
    parsed: ParsedSource


def _is_cancelled(cancel_event: threading.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


class ScanCoordinator:
    """
    Scan orchestration with per-project serialization.

    Usage::

        coordinator = ScanCoordinator(db, config.scan)
        summary = coordinator.scan_all()

        # Re-scan a single stored project
        result = coordinator.scan_project(project_id)
    """

    def __init__(
        self,
        db: Database,
        config: ScanConfig,
        *,
        source: DeclarationSource | None = None,
    ) -> None:
        self.db = db
        self.config = config
        self.git_root = Path(config.git_root_path).expanduser()
        self._source = source or CSharpDeclarationSource()
        self._resolver = GroupingResolver(db)
        self._project_locks: dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _project_lock(self, project_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._project_locks.get(project_id)
            if lock is None:
                lock = threading.Lock()
                self._project_locks[project_id] = lock
            return lock

    # =========================================================================
    # Full scan
    # =========================================================================

    def scan_all(self, cancel_event: threading.Event | None = None) -> ScanSummary:
        """Scan every repository under the git root.

        Raises:
            ScanError: If the git root does not exist.
        """
        if not self.git_root.is_dir():
            raise ScanError.root_not_found(str(self.git_root))

        summary = ScanSummary(scan_id=set_scan_id())
        try:
            return self._scan_all(summary, cancel_event)
        finally:
            clear_scan_id()

    def _scan_all(
        self, summary: ScanSummary, cancel_event: threading.Event | None
    ) -> ScanSummary:
        start = time.perf_counter()
        excluded = {d.lower() for d in self.config.excluded_dirs}
        repo_dirs = sorted(
            p for p in self.git_root.iterdir() if p.is_dir() and p.name.lower() not in excluded
        )
        logger.info("scan_started", git_root=str(self.git_root), repositories=len(repo_dirs))

        for repo_dir in repo_dirs:
            if _is_cancelled(cancel_event):
                summary.cancelled = True
                break
            try:
                self._scan_repository(repo_dir, summary, cancel_event)
            except SolAtlasError as e:
                summary.errors.append(f"{repo_dir.name}: {e}")
                logger.error("repository_scan_failed", repo=repo_dir.name, error=str(e))
            except Exception as e:
                summary.errors.append(f"{repo_dir.name}: {type(e).__name__}: {e}")
                logger.exception("repository_scan_failed", repo=repo_dir.name)
            summary.repositories += 1

        if not summary.cancelled and self.config.resolve_groupings:
            summary.groupings = self._resolver.resolve()

        summary.duration_seconds = time.perf_counter() - start
        logger.info(
            "scan_finished",
            repositories=summary.repositories,
            solutions=summary.solutions,
            projects=summary.projects,
            artifacts_changed=summary.artifacts.changed,
            members_changed=summary.members.changed,
            errors=len(summary.errors),
            cancelled=summary.cancelled,
            duration_sec=round(summary.duration_seconds, 3),
        )
        return summary

    def _scan_repository(
        self,
        repo_dir: Path,
        summary: ScanSummary,
        cancel_event: threading.Event | None,
    ) -> None:
        repo = self._upsert_repository(repo_dir)
        log = logger.bind(repo=repo.name)

        for solution_path in find_solutions(repo_dir, self.config.excluded_dirs):
            if _is_cancelled(cancel_event):
                summary.cancelled = True
                return
            solution = self._upsert_solution(repo, repo_dir, solution_path)
            summary.solutions += 1

            try:
                project_paths = solution_project_paths(solution_path)
            except ScanError as e:
                summary.errors.append(str(e))
                log.warning("solution_unreadable", solution=solution.name, error=e.message)
                continue

            project_ids: list[int] = []
            for relative in project_paths:
                csproj = Path(os.path.normpath(solution_path.parent / relative))
                if not csproj.is_file():
                    log.debug("project_missing", solution=solution.name, project=relative)
                    continue
                project_ids.append(self._upsert_project(solution, csproj))

            for project_id in project_ids:
                if _is_cancelled(cancel_event):
                    summary.cancelled = True
                    return
                result = self.scan_project(project_id, cancel_event)
                if result.cancelled:
                    summary.cancelled = True
                    return
                summary.add_project(result)

            self._update_solution_runtime(solution.id)  # type: ignore[arg-type]

    # =========================================================================
    # Inventory upserts
    # =========================================================================

    def _upsert_repository(self, repo_dir: Path) -> Repository:
        name = repo_dir.name
        info = read_git_info(repo_dir, name, self.config.default_remote_root_url)
        now = time.time()
        with self.db.session() as session:
            repo = session.exec(
                select(Repository).where(Repository.root_relative_path == name)
            ).first()
            if repo is None:
                repo = Repository(name=name, root_relative_path=name, created_at=now)
            repo.name = name
            repo.url = info.url
            repo.provider = info.provider
            repo.is_private = None
            repo.current_branch = info.current_branch
            repo.default_branch = info.default_branch
            repo.git_head_sha = info.head_sha
            repo.git_first_commit_at = info.first_commit_at
            repo.git_last_commit_at = info.last_commit_at
            repo.updated_at = now
            session.add(repo)
            session.commit()
            session.refresh(repo)
            return repo

    def _upsert_solution(self, repo: Repository, repo_dir: Path, solution_path: Path) -> Solution:
        relative = relative_to_root(solution_path, repo_dir)
        now = time.time()
        with self.db.session() as session:
            solution = session.exec(
                select(Solution).where(
                    Solution.repository_id == repo.id,
                    Solution.solution_file_path == relative,
                )
            ).first()
            if solution is None:
                solution = Solution(
                    repository_id=repo.id,  # type: ignore[arg-type]
                    name=solution_path.stem,
                    solution_file_path=relative,
                    solution_file=solution_path.name,
                )
            solution.name = solution_path.stem
            solution.solution_file = solution_path.name
            if solution.description is None:
                solution.description = read_readme_description(repo_dir)
            if solution.created_at is None:
                solution.created_at = repo.git_first_commit_at
            solution.updated_at = now
            session.add(solution)
            session.commit()
            session.refresh(solution)
            return solution

    def _upsert_project(self, solution: Solution, csproj: Path) -> int:
        relative = relative_to_root(csproj, self.git_root)
        try:
            metadata = read_project_metadata(csproj)
        except ScanError as e:
            logger.warning("project_file_unreadable", project=relative, error=e.message)
            metadata = ProjectMetadata()

        with self.db.session() as session:
            project = session.exec(
                select(Project).where(
                    Project.solution_id == solution.id,
                    Project.relative_project_path == relative,
                )
            ).first()
            if project is None:
                project = Project(
                    solution_id=solution.id,  # type: ignore[arg-type]
                    name=csproj.stem,
                    relative_project_path=relative,
                )
            project.name = csproj.stem
            project.target_frameworks = metadata.target_frameworks
            project.project_type = metadata.project_type
            project.platform = metadata.platform
            project.ui_stack = metadata.ui_stack
            project.is_web_app = metadata.is_web_app
            project.is_class_library = metadata.is_class_library
            project.is_test_project = metadata.is_test_project
            project.updated_at = time.time()
            session.add(project)
            session.commit()
            session.refresh(project)
            return project.id  # type: ignore[return-value]

    def _update_solution_runtime(self, solution_id: int) -> None:
        with self.db.session() as session:
            solution = session.get(Solution, solution_id)
            if solution is None:
                return
            tfms = session.exec(
                select(Project.target_frameworks).where(Project.solution_id == solution_id)
            ).all()
            solution.runtime_platform, solution.runtime_version = derive_runtime(tfms)
            session.add(solution)
            session.commit()

    # =========================================================================
    # Project scan
    # =========================================================================

    def scan_project(
        self,
        project_id: int,
        cancel_event: threading.Event | None = None,
    ) -> ProjectScanResult:
        """Parse a stored project's sources and reconcile its records.

        SERIALIZED: Acquires the project's lock for the reconciliation.
        """
        with self.db.session() as session:
            project = session.get(Project, project_id)
            if project is None:
                raise ScanError.project_file_invalid(str(project_id), "unknown project id")
            project_name = project.name
            relative_project_path = project.relative_project_path

        result = ProjectScanResult(project_id=project_id, project_name=project_name)
        project_dir = (self.git_root / relative_project_path).parent
        if not project_dir.is_dir():
            logger.warning("project_dir_missing", project=project_name, path=str(project_dir))
            return result

        files = iter_source_files(project_dir, self.config.excluded_dirs)
        parsed_files = self._parse_files(files, result, cancel_event)
        if _is_cancelled(cancel_event):
            result.cancelled = True
            logger.info("project_scan_cancelled", project=project_name)
            return result

        with self._project_lock(project_id), self.db.immediate_transaction() as session:
            self._reconcile_project(session, project_id, parsed_files, result)

        logger.info(
            "project_scanned",
            project=project_name,
            files=result.files_scanned,
            skipped=result.files_skipped,
            artifacts_inserted=result.artifacts.inserted,
            artifacts_updated=result.artifacts.updated,
            artifacts_deleted=result.artifacts.deleted,
            members_changed=result.members.changed,
        )
        return result

    def _parse_one(self, path: Path, cancel_event: threading.Event | None) -> _ParsedFile | None:
        if _is_cancelled(cancel_event):
            return None
        max_bytes = self.config.max_file_size_mb * 1024 * 1024
        try:
            source = read_source(path, self.git_root, max_bytes)
            parsed = self._source.parse(source.content, source.relative_path)
        except ScanError as e:
            logger.warning("source_skipped", path=str(path), error=e.message)
            return None
        if parsed.has_errors:
            logger.debug("source_has_syntax_errors", path=source.relative_path)
        return _ParsedFile(source=source, parsed=parsed)

    def _parse_files(
        self,
        files: list[Path],
        result: ProjectScanResult,
        cancel_event: threading.Event | None,
    ) -> list[_ParsedFile]:
        if self.config.max_workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                outcomes = list(pool.map(lambda p: self._parse_one(p, cancel_event), files))
        else:
            outcomes = []
            for path in files:
                if _is_cancelled(cancel_event):
                    break
                outcomes.append(self._parse_one(path, cancel_event))

        parsed = [o for o in outcomes if o is not None]
        result.files_scanned = len(parsed)
        result.files_skipped = len(files) - len(parsed)
        return parsed

    def _fresh_artifacts(
        self, project_id: int, parsed_files: list[_ParsedFile]
    ) -> tuple[list[Artifact], dict[tuple[Hashable, ...], tuple[TypeDeclarationNode, _ParsedFile]]]:
        fresh: list[Artifact] = []
        origins: dict[tuple[Hashable, ...], tuple[TypeDeclarationNode, _ParsedFile]] = {}
        for item in parsed_files:
            src = item.source
            for decl in item.parsed.top_level_classes():
                verdict = classify(decl, src.relative_path)
                base_class, interfaces = split_base_list(decl.base_types)
                artifact = Artifact(
                    project_id=project_id,
                    relative_file_path=src.relative_path,
                    logical_name=decl.name,
                    span_start=decl.span_start,
                    kind=verdict.kind.value,
                    sub_kind=verdict.sub_kind.value if verdict.sub_kind else None,
                    base_type_name=verdict.base_type_name,
                    class_name=decl.name,
                    namespace=decl.namespace,
                    file_name=src.path.name,
                    span_length=decl.span_length,
                    is_partial=decl.has_modifier("partial"),
                    is_abstract=decl.has_modifier("abstract"),
                    is_static=decl.has_modifier("static"),
                    base_class_name=base_class,
                    interfaces_raw=interfaces,
                    logical_class_key=logical_class_key(None, None, decl.namespace, decl.name),
                    file_sha256=src.sha256,
                    file_size_bytes=src.size_bytes,
                    file_last_write_at=src.last_write_at,
                )
                fresh.append(artifact)
                origins.setdefault(normalize_key(artifact_key(artifact)), (decl, item))
        return fresh, origins

    def _reconcile_project(
        self,
        session: Session,
        project_id: int,
        parsed_files: list[_ParsedFile],
        result: ProjectScanResult,
    ) -> None:
        now = time.time()
        fresh, origins = self._fresh_artifacts(project_id, parsed_files)

        stored = session.exec(select(Artifact).where(Artifact.project_id == project_id)).all()
        artifact_diff = diff_records(stored, fresh, artifact_key, ARTIFACT_FIELDS)
        # Artifact deletes wait until children no longer reference them
        result.artifacts = apply_diff(
            session, artifact_diff, ARTIFACT_FIELDS, now=now, include_deletes=False
        )
        for row, _ in artifact_diff.updates:
            row.logical_class_key = logical_class_key(
                row.visibility, row.module, row.namespace, row.class_name
            )
            session.add(row)

        surviving = [row for row, _ in artifact_diff.updates]
        surviving += artifact_diff.unchanged
        surviving += artifact_diff.inserts

        fresh_members: list[ClassMember] = []
        fresh_datasets: list[DataSetDeclaration] = []
        fresh_actions: list[ControllerAction] = []
        for row in surviving:
            decl, item = origins[normalize_key(artifact_key(row))]
            scope = {
                "artifact_id": row.id,
                "project_id": project_id,
                "relative_file_path": row.relative_file_path,
            }
            fresh_members.extend(extract_members(decl, **scope))  # type: ignore[arg-type]
            if row.kind == ArtifactKind.DATA_CONTEXT.value:
                fresh_datasets.extend(extract_datasets(decl, **scope))  # type: ignore[arg-type]
            elif row.kind == ArtifactKind.CONTROLLER.value:
                fresh_actions.extend(
                    extract_actions(
                        decl,
                        item.parsed.declarations,
                        is_api=row.sub_kind == ArtifactSubKind.API.value,
                        **scope,  # type: ignore[arg-type]
                    )
                )

        result.members = self._reconcile_children(
            session, ClassMember, project_id, fresh_members, member_key, MEMBER_FIELDS, now
        )
        result.datasets = self._reconcile_children(
            session, DataSetDeclaration, project_id, fresh_datasets, dataset_key, DATASET_FIELDS, now
        )
        result.actions = self._reconcile_children(
            session, ControllerAction, project_id, fresh_actions, action_key, ACTION_FIELDS, now
        )

        result.artifacts.deleted = delete_records(session, artifact_diff.deletes)

    def _reconcile_children(
        self,
        session: Session,
        model: type[Any],
        project_id: int,
        fresh: list[Any],
        key: Callable[[Any], tuple[Any, ...]],
        fields: tuple[str, ...],
        now: float,
    ) -> ReconcileCounts:
        stored = session.exec(select(model).where(model.project_id == project_id)).all()
        diff = diff_records(stored, fresh, key, fields)
        return apply_diff(session, diff, fields, now=now)

    # =========================================================================
    # Groupings
    # =========================================================================

    @property
    def resolver(self) -> GroupingResolver:
        return self._resolver
