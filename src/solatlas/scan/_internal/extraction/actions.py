"""Controller action endpoints.

An action is a public, non-static method without ``[NonAction]``. The HTTP
method comes from ``[HttpGet]``-style attributes or ``[AcceptVerbs]`` and
defaults to ``ANY``. The route is the controller-level ``[Route]`` (taken
from any partial part declared in the same file) combined with the method's
own template.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from solatlas.scan._internal.parsing.nodes import (
    ArgumentKind,
    AttributeNode,
    MemberNode,
    MemberNodeKind,
    TypeDeclarationNode,
)
from solatlas.scan.models import ControllerAction

ACTION_FIELDS: tuple[str, ...] = (
    "relative_file_path",
    "span_length",
    "controller_name",
    "action_name",
    "http_method",
    "route",
    "is_api",
    "is_async",
    "return_type",
    "parameters",
)

_HTTP_ATTRIBUTES = {
    "httpget": "GET",
    "httppost": "POST",
    "httpput": "PUT",
    "httpdelete": "DELETE",
    "httppatch": "PATCH",
}


def action_key(record: ControllerAction) -> tuple[int, int]:
    return (record.artifact_id, record.span_start)


def _string_args(attr: AttributeNode) -> list[str]:
    return [a.value for a in attr.arguments if a.kind is ArgumentKind.STRING]


def _first_string(attr: AttributeNode) -> str | None:
    values = _string_args(attr)
    return values[0] if values else None


def route_template(attributes: Iterable[AttributeNode]) -> str | None:
    for attr in attributes:
        if attr.is_named("Route"):
            template = _first_string(attr)
            if template and template.strip():
                return template
    return None


def http_method_and_route(attributes: Iterable[AttributeNode]) -> tuple[str | None, str | None]:
    method: str | None = None
    route: str | None = None
    for attr in attributes:
        name = attr.simple_name.lower()
        if name in _HTTP_ATTRIBUTES:
            method = _HTTP_ATTRIBUTES[name]
            if route is None:
                route = _first_string(attr)
        elif name == "acceptverbs":
            verbs = _string_args(attr)
            if verbs:
                method = ",".join(v.upper() for v in verbs)
        elif name == "route" and route is None:
            route = _first_string(attr)
    return method, route


def combine_routes(controller_route: str | None, method_route: str | None) -> str | None:
    if not controller_route or not controller_route.strip():
        return method_route
    if not method_route or not method_route.strip():
        return controller_route
    return f"{controller_route.strip().rstrip('/')}/{method_route.strip().lstrip('/')}"


def is_async_return(return_type: str) -> bool:
    return return_type.startswith("Task") or "Task<" in return_type


def format_parameters(node: MemberNode) -> str | None:
    if not node.parameters:
        return None
    return ", ".join(f"{p.type_text or 'var'} {p.name}".strip() for p in node.parameters)


def controller_route(
    decl: TypeDeclarationNode, file_declarations: Sequence[TypeDeclarationNode]
) -> str | None:
    """First ``[Route]`` template on any same-named declaration in the file."""
    for candidate in file_declarations:
        if candidate.name != decl.name:
            continue
        template = route_template(candidate.attributes)
        if template:
            return template
    return None


def extract_actions(
    decl: TypeDeclarationNode,
    file_declarations: Sequence[TypeDeclarationNode],
    *,
    artifact_id: int,
    project_id: int,
    relative_file_path: str,
    is_api: bool,
) -> list[ControllerAction]:
    prefix = controller_route(decl, file_declarations)
    actions: list[ControllerAction] = []
    for node in decl.members:
        if node.kind is not MemberNodeKind.METHOD:
            continue
        if not node.is_public or node.has_modifier("static"):
            continue
        if any(attr.is_named("NonAction") for attr in node.attributes):
            continue
        method, route = http_method_and_route(node.attributes)
        actions.append(
            ControllerAction(
                artifact_id=artifact_id,
                project_id=project_id,
                relative_file_path=relative_file_path,
                span_start=node.span_start,
                span_length=node.span_length,
                controller_name=decl.name,
                action_name=node.name,
                http_method=method or "ANY",
                route=combine_routes(prefix, route),
                is_api=is_api,
                is_async=is_async_return(node.type_text),
                return_type=node.type_text or None,
                parameters=format_parameters(node),
            )
        )
    return actions
