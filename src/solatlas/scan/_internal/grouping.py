"""Grouping resolver: assigns module/visibility/feature labels to artifacts.

A rule matches an artifact when every non-empty selector equals, ignoring
case, the artifact's repository, solution, project or class name. Among the
matching rules the most specific one (most non-empty selectors) wins; ties go
to the most recently created rule (largest id). Artifacts with no matching
rule have their labels cleared.

Labels are recomputed wholesale on every run, so adding, editing or removing a
rule is picked up by the next resolve without any migration.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from sqlmodel import select

from solatlas.core.errors import QueryError
from solatlas.scan._internal.extraction.annotations import logical_class_key
from solatlas.scan.models import Artifact, GroupingOverride, Project, Repository, Solution

if TYPE_CHECKING:
    from sqlmodel import Session

    from solatlas.scan._internal.db import Database

logger = structlog.get_logger()

SELECTOR_FIELDS = ("repository_name", "solution_name", "project_name", "class_name")


@dataclass(frozen=True, slots=True)
class ArtifactScope:
    """The names a rule's selectors are compared against."""

    repository_name: str | None
    solution_name: str | None
    project_name: str | None
    class_name: str | None


@dataclass(frozen=True, slots=True)
class Labels:
    module: str | None = None
    visibility: str | None = None
    feature: str | None = None
    grouping_override_id: int | None = None


@dataclass
class ResolveResult:
    """Counters from one resolver run."""

    artifacts_seen: int = 0
    artifacts_changed: int = 0
    artifacts_cleared: int = 0
    rules: int = 0


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _clean(value: str | None) -> str | None:
    return None if _blank(value) else value.strip()  # type: ignore[union-attr]


def build_override_key(
    repository_name: str | None,
    solution_name: str | None,
    project_name: str | None,
    class_name: str | None,
    module: str,
    visibility: str | None,
    feature: str | None,
) -> str:
    """Human-readable unique key: ``repo|sol|proj|class|module|visibility|feature``."""
    parts = (repository_name, solution_name, project_name, class_name, module, visibility, feature)
    return "|".join(p or "" for p in parts)


def specificity(rule: GroupingOverride) -> int:
    return sum(0 if _blank(getattr(rule, name)) else 1 for name in SELECTOR_FIELDS)


def rule_matches(rule: GroupingOverride, scope: ArtifactScope) -> bool:
    for name in SELECTOR_FIELDS:
        selector = getattr(rule, name)
        if _blank(selector):
            continue
        actual = getattr(scope, name)
        if actual is None or selector.strip().casefold() != actual.casefold():
            return False
    return True


def select_rule(rules: Sequence[GroupingOverride], scope: ArtifactScope) -> GroupingOverride | None:
    """Most specific matching rule; ties broken by the largest id."""
    best: GroupingOverride | None = None
    best_rank: tuple[int, int] = (-1, -1)
    for rule in rules:
        if not rule_matches(rule, scope):
            continue
        rank = (specificity(rule), rule.id or 0)
        if rank > best_rank:
            best, best_rank = rule, rank
    return best


def labels_for(rule: GroupingOverride | None) -> Labels:
    if rule is None:
        return Labels()
    return Labels(
        module=rule.module,
        visibility=rule.visibility,
        feature=rule.feature,
        grouping_override_id=rule.id,
    )


def apply_labels(artifact: Artifact, labels: Labels) -> bool:
    """Copy labels onto the artifact; return True when anything changed."""
    key = logical_class_key(
        labels.visibility, labels.module, artifact.namespace, artifact.class_name
    )
    current = (
        artifact.module,
        artifact.visibility,
        artifact.feature,
        artifact.grouping_override_id,
        artifact.logical_class_key,
    )
    target = (labels.module, labels.visibility, labels.feature, labels.grouping_override_id, key)
    if current == target:
        return False
    (
        artifact.module,
        artifact.visibility,
        artifact.feature,
        artifact.grouping_override_id,
        artifact.logical_class_key,
    ) = target
    return True


class GroupingResolver:
    """Resolves labels for every stored artifact in one transaction."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def resolve(self) -> ResolveResult:
        result = ResolveResult()
        now = time.time()
        with self._db.immediate_transaction() as session:
            rules = list(session.exec(select(GroupingOverride)).all())
            result.rules = len(rules)
            for artifact, scope in _artifact_scopes(session):
                result.artifacts_seen += 1
                rule = select_rule(rules, scope)
                if apply_labels(artifact, labels_for(rule)):
                    artifact.updated_at = now
                    session.add(artifact)
                    result.artifacts_changed += 1
                    if rule is None:
                        result.artifacts_cleared += 1
        logger.info(
            "groupings_resolved",
            rules=result.rules,
            artifacts=result.artifacts_seen,
            changed=result.artifacts_changed,
            cleared=result.artifacts_cleared,
        )
        return result

    # =========================================================================
    # Rule management
    # =========================================================================

    def add_rule(
        self,
        *,
        module: str,
        visibility: str | None = None,
        feature: str | None = None,
        repository_name: str | None = None,
        solution_name: str | None = None,
        project_name: str | None = None,
        class_name: str | None = None,
    ) -> tuple[GroupingOverride, bool]:
        """Create a rule. Returns (rule, created); an identical rule is reused."""
        module_clean = _clean(module)
        if module_clean is None:
            raise QueryError.invalid_selector("a grouping rule needs a module")
        values = {
            "repository_name": _clean(repository_name),
            "solution_name": _clean(solution_name),
            "project_name": _clean(project_name),
            "class_name": _clean(class_name),
            "module": module_clean,
            "visibility": _clean(visibility),
            "feature": _clean(feature),
        }
        key = build_override_key(**values)  # type: ignore[arg-type]
        with self._db.session() as session:
            existing = session.exec(
                select(GroupingOverride).where(GroupingOverride.override_key == key)
            ).first()
            if existing is not None:
                return existing, False
            rule = GroupingOverride(override_key=key, **values)
            session.add(rule)
            session.commit()
            session.refresh(rule)
            logger.info("grouping_rule_added", rule_id=rule.id, override_key=key)
            return rule, True

    def list_rules(self) -> list[GroupingOverride]:
        with self._db.session() as session:
            return list(session.exec(select(GroupingOverride).order_by(GroupingOverride.id)).all())

    def remove_rule(self, rule_id: int) -> None:
        with self._db.session() as session:
            rule = session.get(GroupingOverride, rule_id)
            if rule is None:
                raise QueryError.rule_not_found(rule_id)
            session.delete(rule)
            session.commit()
        logger.info("grouping_rule_removed", rule_id=rule_id)


def _artifact_scopes(session: Session) -> Iterable[tuple[Artifact, ArtifactScope]]:
    stmt = (
        select(Artifact, Project.name, Solution.name, Repository.name)
        .join(Project, Artifact.project_id == Project.id)
        .join(Solution, Project.solution_id == Solution.id)
        .join(Repository, Solution.repository_id == Repository.id)
    )
    for artifact, project_name, solution_name, repository_name in session.exec(stmt).all():
        scope = ArtifactScope(
            repository_name=repository_name,
            solution_name=solution_name,
            project_name=project_name,
            class_name=artifact.class_name or artifact.logical_name,
        )
        yield artifact, scope
