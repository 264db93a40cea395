"""C# declaration source backed by Tree-sitter.

Walks a compilation unit and emits class-like declarations with their
attributes, base list and members. Only syntax is used; nothing is resolved.

Namespace handling:
- Block namespaces nest, and their names compose (``A { namespace B }`` is ``A.B``).
- A file-scoped namespace applies to every following declaration of the
  compilation unit, whether the grammar nests those declarations under it or
  leaves them as siblings.
- Preprocessor blocks (``#if``/``#region``) are transparent.

Spans are byte offsets into the file content.
"""

from __future__ import annotations

import threading
from typing import Any

import tree_sitter
import tree_sitter_c_sharp

from solatlas.core.errors import ScanError
from solatlas.scan._internal.parsing.nodes import (
    ArgumentKind,
    AttributeArgument,
    AttributeNode,
    DeclarationSource,
    MemberNode,
    MemberNodeKind,
    ParameterNode,
    ParsedSource,
    TypeDeclarationNode,
)

_LANGUAGE = tree_sitter.Language(tree_sitter_c_sharp.language())

_TYPE_DECLARATIONS = {
    "class_declaration": "class",
    "struct_declaration": "struct",
    "record_declaration": "record",
    "record_struct_declaration": "record",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
}

_ACCESSOR_KEYWORDS = frozenset({"get", "set", "init"})


def _text(node: Any) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _is_preprocessor(node: Any) -> bool:
    return node.type.startswith("preproc_")


def _join_namespace(outer: str | None, inner: str) -> str:
    inner = "".join(inner.split())
    return f"{outer}.{inner}" if outer else inner


class CSharpDeclarationSource(DeclarationSource):
    """Tree-sitter based DeclarationSource for ``.cs`` files.

    Tree-sitter parsers are not thread safe; each thread lazily gets its own.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _parser(self) -> tree_sitter.Parser:
        parser: tree_sitter.Parser | None = getattr(self._local, "parser", None)
        if parser is None:
            parser = tree_sitter.Parser()
            parser.language = _LANGUAGE
            self._local.parser = parser
        return parser

    def handles(self, path: str) -> bool:
        return path.lower().endswith(".cs")

    def parse(self, content: bytes, path: str) -> ParsedSource:
        """Parse one file. Syntax errors degrade to a partial tree.

        Raises:
            ScanError: If tree-sitter rejects the input outright.
        """
        try:
            tree = self._parser().parse(content)
        except ValueError as e:
            raise ScanError.parse_failed(path, str(e)) from e
        root = tree.root_node
        result = ParsedSource(path=path, has_errors=root.has_error)
        self._walk_container(root, None, True, result.declarations)
        return result

    # =========================================================================
    # Containers
    # =========================================================================

    def _walk_container(
        self,
        container: Any,
        namespace: str | None,
        top_level: bool,
        out: list[TypeDeclarationNode],
    ) -> None:
        current_ns = namespace
        for child in container.named_children:
            kind = child.type
            if kind == "namespace_declaration":
                ns = _join_namespace(current_ns, _text(child.child_by_field_name("name")))
                body = child.child_by_field_name("body")
                if body is not None:
                    self._walk_container(body, ns, top_level, out)
            elif kind == "file_scoped_namespace_declaration":
                current_ns = _join_namespace(current_ns, _text(child.child_by_field_name("name")))
                self._walk_container(child, current_ns, top_level, out)
            elif _is_preprocessor(child):
                self._walk_container(child, current_ns, top_level, out)
            elif kind in _TYPE_DECLARATIONS:
                decl = self._type_declaration(child, current_ns, top_level)
                if decl is not None:
                    out.append(decl)
                body = child.child_by_field_name("body")
                if body is not None:
                    self._walk_container(body, current_ns, False, out)

    # =========================================================================
    # Type declarations
    # =========================================================================

    def _type_declaration(
        self, node: Any, namespace: str | None, top_level: bool
    ) -> TypeDeclarationNode | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = _text(name_node)
        if not name:
            return None

        base_types: list[str] = []
        for child in node.children:
            if child.type == "base_list":
                base_types = self._base_list(child)

        members: list[MemberNode] = []
        body = node.child_by_field_name("body")
        if body is not None:
            self._collect_members(body, members)

        return TypeDeclarationNode(
            name=name,
            keyword=_TYPE_DECLARATIONS[node.type],
            span_start=node.start_byte,
            span_length=node.end_byte - node.start_byte,
            namespace=namespace or None,
            modifiers=self._modifiers(node),
            base_types=tuple(base_types),
            attributes=self._attributes(node),
            members=tuple(members),
            is_top_level=top_level,
        )

    def _base_list(self, node: Any) -> list[str]:
        bases: list[str] = []
        for child in node.named_children:
            if child.type == "argument_list":
                continue
            if child.type == "primary_constructor_base_type":
                inner = child.named_children[0] if child.named_children else None
                text = _text(inner)
            else:
                text = _text(child)
            text = "".join(text.split())
            if text:
                bases.append(text)
        return bases

    def _modifiers(self, node: Any) -> frozenset[str]:
        found: set[str] = set()
        for child in node.children:
            if child.type == "modifier":
                found.add(_text(child).strip())
            elif child.type == "modifiers":
                found.update(_text(m).strip() for m in child.children)
        return frozenset(m for m in found if m)

    # =========================================================================
    # Attributes
    # =========================================================================

    def _attributes(self, node: Any) -> tuple[AttributeNode, ...]:
        attributes: list[AttributeNode] = []
        for child in node.children:
            if child.type != "attribute_list":
                continue
            for attr in child.named_children:
                if attr.type != "attribute":
                    continue
                parsed = self._attribute(attr)
                if parsed is not None:
                    attributes.append(parsed)
        return tuple(attributes)

    def _attribute(self, node: Any) -> AttributeNode | None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            named = [c for c in node.named_children if c.type != "attribute_argument_list"]
            name_node = named[0] if named else None
        name = "".join(_text(name_node).split())
        if not name:
            return None

        arguments: list[AttributeArgument] = []
        for child in node.named_children:
            if child.type != "attribute_argument_list":
                continue
            for arg in child.named_children:
                if arg.type == "attribute_argument":
                    parsed = self._attribute_argument(arg)
                    if parsed is not None:
                        arguments.append(parsed)
        return AttributeNode(name=name, arguments=tuple(arguments), text=_text(node))

    def _attribute_argument(self, node: Any) -> AttributeArgument | None:
        name: str | None = None
        expression: Any = None
        children = node.children
        for i, child in enumerate(children):
            if child.type in ("name_equals", "name_colon"):
                ident = next((c for c in child.named_children if c.type == "identifier"), None)
                name = _text(ident) if ident is not None else _text(child).rstrip("=:").strip()
            elif child.type in ("=", ":") and i > 0 and children[i - 1].type == "identifier":
                name = _text(children[i - 1])
        named = [c for c in node.named_children if c.type not in ("name_equals", "name_colon")]
        if named:
            expression = named[-1]
        if expression is None:
            return None
        if name is not None and _text(expression) == name:
            return None
        value, kind = self._argument_value(expression)
        return AttributeArgument(value=value, kind=kind, name=name)

    def _argument_value(self, node: Any) -> tuple[str, ArgumentKind]:
        kind = node.type
        text = _text(node)
        if kind == "string_literal":
            return text[1:-1] if len(text) >= 2 else text, ArgumentKind.STRING
        if kind == "verbatim_string_literal":
            return text[2:-1] if len(text) >= 3 else text, ArgumentKind.STRING
        if kind == "raw_string_literal":
            return text.strip('"'), ArgumentKind.STRING
        if kind in ("integer_literal", "real_literal"):
            return text, ArgumentKind.NUMBER
        if kind == "boolean_literal":
            return text.lower(), ArgumentKind.BOOLEAN
        if kind == "invocation_expression":
            function = node.child_by_field_name("function")
            if _text(function) == "nameof":
                arguments = node.child_by_field_name("arguments")
                inner = arguments.named_children[0] if arguments and arguments.named_children else None
                if inner is not None:
                    return "".join(_text(inner).split()), ArgumentKind.NAMEOF
        return text, ArgumentKind.EXPRESSION

    # =========================================================================
    # Members
    # =========================================================================

    def _collect_members(self, body: Any, out: list[MemberNode]) -> None:
        for child in body.named_children:
            kind = child.type
            if kind == "field_declaration":
                out.extend(self._fields(child))
            elif kind == "property_declaration":
                prop = self._property(child)
                if prop is not None:
                    out.append(prop)
            elif kind == "method_declaration":
                method = self._method(child)
                if method is not None:
                    out.append(method)
            elif _is_preprocessor(child):
                self._collect_members(child, out)

    def _fields(self, node: Any) -> list[MemberNode]:
        declaration = next(
            (c for c in node.named_children if c.type == "variable_declaration"), None
        )
        if declaration is None:
            return []
        type_node = declaration.child_by_field_name("type")
        modifiers = self._modifiers(node)
        attributes = self._attributes(node)
        nullable = _is_nullable(type_node)

        fields: list[MemberNode] = []
        for declarator in declaration.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                name_node = next(
                    (c for c in declarator.named_children if c.type == "identifier"), None
                )
            name = _text(name_node)
            if not name:
                continue
            fields.append(
                MemberNode(
                    kind=MemberNodeKind.FIELD,
                    name=name,
                    span_start=declarator.start_byte,
                    span_length=declarator.end_byte - declarator.start_byte,
                    type_text=_text(type_node),
                    modifiers=modifiers,
                    attributes=attributes,
                    is_nullable=nullable,
                )
            )
        return fields

    def _property(self, node: Any) -> MemberNode | None:
        name = _text(node.child_by_field_name("name"))
        type_node = node.child_by_field_name("type")
        if not name or type_node is None:
            return None

        accessors: set[str] = set()
        expression_bodied = False
        for child in node.named_children:
            if child.type == "accessor_list":
                for accessor in child.named_children:
                    if accessor.type == "accessor_declaration":
                        keyword = self._accessor_keyword(accessor)
                        if keyword:
                            accessors.add(keyword)
            elif child.type == "arrow_expression_clause":
                expression_bodied = True

        return MemberNode(
            kind=MemberNodeKind.PROPERTY,
            name=name,
            span_start=node.start_byte,
            span_length=node.end_byte - node.start_byte,
            type_text=_text(type_node),
            modifiers=self._modifiers(node),
            attributes=self._attributes(node),
            is_nullable=_is_nullable(type_node),
            accessors=frozenset(accessors),
            is_expression_bodied=expression_bodied,
        )

    def _accessor_keyword(self, node: Any) -> str | None:
        name_node = node.child_by_field_name("name")
        if name_node is not None and _text(name_node) in _ACCESSOR_KEYWORDS:
            return _text(name_node)
        for child in node.children:
            if child.type in _ACCESSOR_KEYWORDS:
                return child.type
        return None

    def _method(self, node: Any) -> MemberNode | None:
        name = _text(node.child_by_field_name("name"))
        if not name:
            return None
        return_type = node.child_by_field_name("returns") or node.child_by_field_name("type")

        parameters: list[ParameterNode] = []
        parameter_list = node.child_by_field_name("parameters")
        if parameter_list is not None:
            for param in parameter_list.named_children:
                if param.type != "parameter":
                    continue
                parameters.append(
                    ParameterNode(
                        type_text=_text(param.child_by_field_name("type")),
                        name=_text(param.child_by_field_name("name")),
                    )
                )

        return MemberNode(
            kind=MemberNodeKind.METHOD,
            name=name,
            span_start=node.start_byte,
            span_length=node.end_byte - node.start_byte,
            type_text=_text(return_type),
            modifiers=self._modifiers(node),
            attributes=self._attributes(node),
            parameters=tuple(parameters),
        )


def _is_nullable(type_node: Any) -> bool:
    if type_node is None:
        return False
    return type_node.type == "nullable_type" or _text(type_node).rstrip().endswith("?")
