"""Member extraction: public fields and properties of an artifact."""

from __future__ import annotations

from solatlas.scan._internal.extraction.annotations import (
    detect_collection,
    extract_annotations,
    type_display,
)
from solatlas.scan._internal.parsing.nodes import MemberNode, MemberNodeKind, TypeDeclarationNode
from solatlas.scan.models import ClassMember, MemberKind

# Columns refreshed when a stored member matches a fresh one.
MEMBER_FIELDS: tuple[str, ...] = (
    "relative_file_path",
    "span_length",
    "kind",
    "name",
    "type_raw",
    "is_nullable",
    "has_getter",
    "has_setter",
    "is_init_only",
    "is_static",
    "is_abstract",
    "is_virtual",
    "is_override",
    "attributes_raw",
    "is_required",
    "is_key",
    "max_length",
    "min_length",
    "sql_type_name",
    "data_type",
    "display_name",
    "display_format_string",
    "display_format_apply_in_edit_mode",
    "foreign_key",
    "inverse_property",
    "type_display",
    "is_collection",
    "element_type_raw",
)


def member_key(member: ClassMember) -> tuple[int, int]:
    return (member.artifact_id, member.span_start)


def _accessor_flags(node: MemberNode) -> tuple[bool, bool, bool]:
    if node.kind is not MemberNodeKind.PROPERTY:
        return False, False, False
    if node.is_expression_bodied and not node.accessors:
        return True, False, False
    has_init = "init" in node.accessors
    return "get" in node.accessors, "set" in node.accessors or has_init, has_init


def build_member(
    node: MemberNode,
    *,
    artifact_id: int,
    project_id: int,
    relative_file_path: str,
) -> ClassMember:
    bag = extract_annotations(node.attributes)
    type_raw = node.type_text or None
    is_collection, element_type = detect_collection(type_raw)
    has_getter, has_setter, is_init_only = _accessor_flags(node)
    kind = MemberKind.FIELD if node.kind is MemberNodeKind.FIELD else MemberKind.PROPERTY

    return ClassMember(
        artifact_id=artifact_id,
        project_id=project_id,
        relative_file_path=relative_file_path,
        span_start=node.span_start,
        span_length=node.span_length,
        kind=kind.value,
        name=node.name,
        type_raw=type_raw,
        is_nullable=node.is_nullable,
        has_getter=has_getter,
        has_setter=has_setter,
        is_init_only=is_init_only,
        is_static=node.has_modifier("static"),
        is_abstract=node.has_modifier("abstract"),
        is_virtual=node.has_modifier("virtual"),
        is_override=node.has_modifier("override"),
        attributes_raw=";".join(a.text for a in node.attributes) or None,
        is_required=bag.is_required,
        is_key=bag.is_key,
        max_length=bag.max_length,
        min_length=bag.min_length,
        sql_type_name=bag.sql_type_name,
        data_type=bag.data_type,
        display_name=bag.display_name,
        display_format_string=bag.display_format_string,
        display_format_apply_in_edit_mode=bag.display_format_apply_in_edit_mode,
        foreign_key=bag.foreign_key,
        inverse_property=bag.inverse_property,
        type_display=type_display(
            type_raw,
            sql_type_name=bag.sql_type_name,
            data_type=bag.data_type,
            max_length=bag.max_length,
        ),
        is_collection=is_collection,
        element_type_raw=element_type,
    )


def extract_members(
    decl: TypeDeclarationNode,
    *,
    artifact_id: int,
    project_id: int,
    relative_file_path: str,
) -> list[ClassMember]:
    """One member per public field variable or public property, in span order."""
    members = [
        build_member(
            node,
            artifact_id=artifact_id,
            project_id=project_id,
            relative_file_path=relative_file_path,
        )
        for node in decl.members
        if node.kind in (MemberNodeKind.FIELD, MemberNodeKind.PROPERTY) and node.is_public
    ]
    members.sort(key=lambda m: m.span_start)
    return members
