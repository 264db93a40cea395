"""Declaration parsing: neutral node model plus the C# Tree-sitter source."""

from solatlas.scan._internal.parsing.csharp import CSharpDeclarationSource
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

__all__ = [
    "ArgumentKind",
    "AttributeArgument",
    "AttributeNode",
    "CSharpDeclarationSource",
    "DeclarationSource",
    "MemberNode",
    "MemberNodeKind",
    "ParameterNode",
    "ParsedSource",
    "TypeDeclarationNode",
]
