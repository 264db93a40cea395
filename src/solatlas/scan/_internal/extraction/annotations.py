"""Annotation bag, type display and collection detection for members.

Attribute names match with or without the ``Attribute`` suffix and with any
namespace qualifier stripped. For every bag field the first attribute that
sets it wins.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from solatlas.scan._internal.extraction.classify import simple_type_name, strip_generics
from solatlas.scan._internal.parsing.nodes import ArgumentKind, AttributeArgument, AttributeNode

COLLECTION_TYPES = frozenset(
    {
        "List",
        "IList",
        "ICollection",
        "IEnumerable",
        "IReadOnlyList",
        "IReadOnlyCollection",
        "HashSet",
    }
)

_STRING_TYPES = frozenset({"string", "system.string"})


@dataclass
class AnnotationBag:
    """Validation and mapping annotations found on one member."""

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


def argument_text(arg: AttributeArgument | None) -> str | None:
    """String literals yield their value, ``nameof(X)`` yields ``X``, else the expression."""
    if arg is None:
        return None
    return arg.value


def _first_positional(attr: AttributeNode) -> AttributeArgument | None:
    positional = attr.positional
    return positional[0] if positional else None


def _first_positional_int(attr: AttributeNode) -> int | None:
    for arg in attr.positional:
        if arg.kind is ArgumentKind.NUMBER:
            return arg.as_int()
    return None


def extract_annotations(attributes: Iterable[AttributeNode]) -> AnnotationBag:
    bag = AnnotationBag()
    for attr in attributes:
        name = attr.simple_name.lower()
        if name == "required":
            bag.is_required = True
        elif name == "key":
            bag.is_key = True
        elif name == "maxlength":
            if bag.max_length is None:
                bag.max_length = _first_positional_int(attr)
        elif name == "minlength":
            if bag.min_length is None:
                bag.min_length = _first_positional_int(attr)
        elif name == "stringlength":
            if bag.max_length is None:
                bag.max_length = _first_positional_int(attr)
            if bag.min_length is None:
                minimum = attr.named("MinimumLength")
                bag.min_length = minimum.as_int() if minimum is not None else None
        elif name == "column":
            if bag.sql_type_name is None:
                bag.sql_type_name = argument_text(attr.named("TypeName"))
        elif name == "datatype":
            if bag.data_type is None:
                bag.data_type = argument_text(_first_positional(attr))
        elif name == "display":
            if bag.display_name is None:
                bag.display_name = argument_text(attr.named("Name"))
        elif name == "foreignkey":
            if bag.foreign_key is None:
                bag.foreign_key = argument_text(_first_positional(attr))
        elif name == "inverseproperty":
            if bag.inverse_property is None:
                bag.inverse_property = argument_text(_first_positional(attr))
        elif name == "displayformat":
            if bag.display_format_string is None:
                bag.display_format_string = argument_text(attr.named("DataFormatString"))
            apply = attr.named("ApplyFormatInEditMode")
            if apply is not None and apply.value.lower() == "true":
                bag.display_format_apply_in_edit_mode = True
    return bag


def type_display(
    type_raw: str | None,
    *,
    sql_type_name: str | None = None,
    data_type: str | None = None,
    max_length: int | None = None,
) -> str | None:
    """Normalized type rendering used by the comparison matrix.

    Examples::

        type_display("string", max_length=50)               -> "string(50)"
        type_display("string")                              -> "string(max)"
        type_display("decimal", sql_type_name="decimal(18,2)") -> "decimal(18,2)"
        type_display("string", sql_type_name="nvarchar(50)")   -> "string(nvarchar(50))"
        type_display("DateTime", sql_type_name="date")      -> "DateTime(date)"
    """
    if not type_raw:
        return None
    base = type_raw.strip().removesuffix("?").strip()

    if sql_type_name:
        storage = sql_type_name.strip()
        storage_name = storage.split("(", 1)[0].strip()
        if storage_name.casefold() == base.casefold():
            return storage
        return f"{base}({storage})"

    if data_type:
        lowered = data_type.strip().lower()
        if lowered.startswith(("decimal(", "numeric(")):
            return lowered

    if base.lower() in _STRING_TYPES:
        return f"string({max_length})" if max_length is not None else "string(max)"

    return base


def detect_collection(type_raw: str | None) -> tuple[bool, str | None]:
    """Return (is_collection, element type text) for ``Outer<Inner>`` collection types."""
    if not type_raw:
        return False, None
    text = type_raw.strip().removesuffix("?")
    first = text.find("<")
    last = text.rfind(">")
    if first <= 0 or last <= first:
        return False, None
    outer = simple_type_name(strip_generics(text))
    if outer not in COLLECTION_TYPES:
        return False, None
    return True, text[first + 1 : last]


def logical_class_key(
    visibility: str | None,
    module: str | None,
    namespace: str | None,
    class_name: str | None,
) -> str | None:
    """``Visibility|Module|Namespace.ClassName``; None without a class name."""
    if not class_name:
        return None
    qualified = f"{namespace}.{class_name}" if namespace else class_name
    return f"{visibility or ''}|{module or ''}|{qualified.rstrip('.')}"
