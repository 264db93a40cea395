"""Language-neutral declaration nodes produced by a DeclarationSource.

Everything downstream of parsing (classification, annotation extraction,
action and data set extraction) reads these nodes only, so the concrete
parser can be swapped without touching the core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class ArgumentKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NAMEOF = "nameof"  # value holds the inner expression text
    EXPRESSION = "expression"


@dataclass(frozen=True, slots=True)
class AttributeArgument:
    """One attribute argument. ``name`` is set for named arguments only."""

    value: str
    kind: ArgumentKind = ArgumentKind.EXPRESSION
    name: str | None = None

    @property
    def is_named(self) -> bool:
        return self.name is not None

    def as_int(self) -> int | None:
        if self.kind is not ArgumentKind.NUMBER:
            return None
        try:
            return int(self.value.rstrip("uUlL"), 0)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class AttributeNode:
    """An attribute application such as ``[MaxLength(50)]``."""

    name: str  # as written, possibly qualified
    arguments: tuple[AttributeArgument, ...] = ()
    text: str = ""

    @property
    def simple_name(self) -> str:
        """Name without namespace qualifier or ``Attribute`` suffix."""
        name = self.name.rsplit(".", 1)[-1].rsplit("::", 1)[-1]
        if name.lower().endswith("attribute") and len(name) > len("attribute"):
            name = name[: -len("attribute")]
        return name

    def is_named(self, simple_name: str) -> bool:
        return self.simple_name.lower() == simple_name.lower()

    @property
    def positional(self) -> tuple[AttributeArgument, ...]:
        return tuple(a for a in self.arguments if not a.is_named)

    def named(self, name: str) -> AttributeArgument | None:
        for arg in self.arguments:
            if arg.name is not None and arg.name.lower() == name.lower():
                return arg
        return None


class MemberNodeKind(str, Enum):
    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"


@dataclass(frozen=True, slots=True)
class ParameterNode:
    type_text: str
    name: str


@dataclass(frozen=True, slots=True)
class MemberNode:
    """A member of a type declaration.

    Fields are emitted one node per declared variable, each with the span of
    its own declarator, so ``public int A, B;`` yields two nodes.
    """

    kind: MemberNodeKind
    name: str
    span_start: int
    span_length: int
    type_text: str = ""
    modifiers: frozenset[str] = frozenset()
    attributes: tuple[AttributeNode, ...] = ()
    is_nullable: bool = False
    # Properties
    accessors: frozenset[str] = frozenset()  # subset of {"get", "set", "init"}
    is_expression_bodied: bool = False
    # Methods
    parameters: tuple[ParameterNode, ...] = ()

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers

    @property
    def is_public(self) -> bool:
        return "public" in self.modifiers


@dataclass(frozen=True, slots=True)
class TypeDeclarationNode:
    """A class declaration with everything the classifier and extractors read."""

    name: str
    span_start: int
    span_length: int
    keyword: str = "class"  # class, struct, record, interface, enum
    namespace: str | None = None
    modifiers: frozenset[str] = frozenset()
    base_types: tuple[str, ...] = ()
    attributes: tuple[AttributeNode, ...] = ()
    members: tuple[MemberNode, ...] = ()
    is_top_level: bool = True

    def has_modifier(self, modifier: str) -> bool:
        return modifier in self.modifiers

    @property
    def is_public_class(self) -> bool:
        return self.keyword == "class" and "public" in self.modifiers


@dataclass
class ParsedSource:
    """All declarations found in one file."""

    path: str
    declarations: list[TypeDeclarationNode] = field(default_factory=list)
    has_errors: bool = False

    def top_level_classes(self) -> list[TypeDeclarationNode]:
        return [d for d in self.declarations if d.is_top_level and d.is_public_class]


class DeclarationSource(ABC):
    """Turns source bytes into declaration nodes.

    Implementations must be deterministic: the same bytes always produce the
    same spans, which is what makes natural keys stable across scans.
    """

    @abstractmethod
    def parse(self, content: bytes, path: str) -> ParsedSource:
        """Parse one file. Syntax errors degrade to partial results, not exceptions."""

    @abstractmethod
    def handles(self, path: str) -> bool:
        """Whether this source understands the given file name."""
