"""``DbSet<T>`` declarations on data contexts."""

from __future__ import annotations

from solatlas.scan._internal.extraction.classify import generic_arguments, simple_type_name
from solatlas.scan._internal.parsing.nodes import MemberNodeKind, TypeDeclarationNode
from solatlas.scan.models import DataSetDeclaration

DATASET_FIELDS: tuple[str, ...] = (
    "relative_file_path",
    "span_length",
    "context_name",
    "set_name",
    "entity_type",
    "namespace",
)


def dataset_key(record: DataSetDeclaration) -> tuple[int, int]:
    return (record.artifact_id, record.span_start)


def dataset_entity_type(type_text: str) -> str | None:
    """Entity type of ``DbSet<T>`` (optionally namespace qualified), else None."""
    text = "".join(type_text.split())
    if simple_type_name(text) != "DbSet":
        return None
    args = generic_arguments(text)
    if len(args) != 1:
        return None
    return args[0]


def extract_datasets(
    decl: TypeDeclarationNode,
    *,
    artifact_id: int,
    project_id: int,
    relative_file_path: str,
) -> list[DataSetDeclaration]:
    records: list[DataSetDeclaration] = []
    for node in decl.members:
        if node.kind is not MemberNodeKind.PROPERTY or not node.is_public:
            continue
        entity = dataset_entity_type(node.type_text)
        if entity is None:
            continue
        records.append(
            DataSetDeclaration(
                artifact_id=artifact_id,
                project_id=project_id,
                relative_file_path=relative_file_path,
                span_start=node.span_start,
                span_length=node.span_length,
                context_name=decl.name,
                set_name=node.name,
                entity_type=entity,
                namespace=decl.namespace,
            )
        )
    return records
