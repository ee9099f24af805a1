# Copyright 2026-present Kensho Technologies, LLC.
"""Type references as they appear in GraphQL introspection, and their wire-syntax rendering.

Introspection describes a field or argument type as a chain of wrappers, e.g. the wire type
"[users_insert_input!]!" is reported as:

    {"kind": "NON_NULL", "name": None, "ofType":
        {"kind": "LIST", "name": None, "ofType":
            {"kind": "NON_NULL", "name": None, "ofType":
                {"kind": "INPUT_OBJECT", "name": "users_insert_input", "ofType": None}}}}

All unwrapping of such chains goes through resolve_type_ref() in this module.
"""
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Mapping, Optional

from graphql import parse_type
from graphql.error import GraphQLSyntaxError
from graphql.language.ast import ListTypeNode, NamedTypeNode, NonNullTypeNode, TypeNode

from ..exceptions import SchemaError


@unique
class TypeKind(Enum):
    """The kinds of types reported by GraphQL introspection."""

    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    SCALAR = "SCALAR"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"
    LIST = "LIST"
    NON_NULL = "NON_NULL"


WRAPPER_KINDS = frozenset({TypeKind.LIST, TypeKind.NON_NULL})
SELECTABLE_KINDS = frozenset({TypeKind.OBJECT, TypeKind.INTERFACE})


@dataclass(frozen=True)
class TypeRef:
    """A (possibly wrapped) reference to a named type."""

    kind: TypeKind
    name: Optional[str] = None  # Present only when kind is not a wrapper kind.
    of_type: Optional["TypeRef"] = None  # Present only when kind is a wrapper kind.

    @classmethod
    def from_introspection(cls, type_data: Mapping[str, Any]) -> "TypeRef":
        """Build a TypeRef from an introspection "type" object ({kind, name, ofType})."""
        try:
            kind = TypeKind(type_data["kind"])
        except (KeyError, TypeError, ValueError) as e:
            raise SchemaError(
                "Invalid type reference in introspection: {}".format(type_data)
            ) from e

        of_type_data = type_data.get("ofType")
        of_type = cls.from_introspection(of_type_data) if of_type_data is not None else None
        return cls(kind=kind, name=type_data.get("name"), of_type=of_type)


@dataclass(frozen=True)
class UnwrappedTypeRef:
    """A type reference with its NON_NULL / LIST wrappers peeled off into flags."""

    base_name: str
    base_kind: TypeKind
    is_list: bool = False
    is_non_null: bool = False
    is_list_item_non_null: bool = False


def resolve_type_ref(type_ref: TypeRef) -> UnwrappedTypeRef:
    """Unwrap the NON_NULL and LIST wrappers of a type reference.

    Supports the shapes T, T!, [T], [T!], [T]! and [T!]!. Anything that still has a
    wrapper after that (e.g. a list of lists) has no name at its terminal position and
    is rejected.

    Args:
        type_ref: the reference to unwrap

    Returns:
        UnwrappedTypeRef with the base type's name and kind, plus the wrapper flags

    Raises:
        SchemaError: if the terminal type reached after unwrapping has no name
    """
    is_list = False
    is_non_null = False
    is_list_item_non_null = False
    current: Optional[TypeRef] = type_ref

    if current is not None and current.kind == TypeKind.NON_NULL:
        is_non_null = True
        current = current.of_type
    if current is not None and current.kind == TypeKind.LIST:
        is_list = True
        current = current.of_type
        if current is not None and current.kind == TypeKind.NON_NULL:
            is_list_item_non_null = True
            current = current.of_type
    if is_list and current is not None and current.kind == TypeKind.NON_NULL:
        is_list_item_non_null = True
        current = current.of_type

    if current is None or current.kind in WRAPPER_KINDS or not current.name:
        raise SchemaError(
            "Cannot determine the base type name of type reference {}.".format(type_ref)
        )

    return UnwrappedTypeRef(
        base_name=current.name,
        base_kind=current.kind,
        is_list=is_list,
        is_non_null=is_non_null,
        is_list_item_non_null=is_list_item_non_null,
    )


def render_type_ref(unwrapped: UnwrappedTypeRef) -> str:
    """Render an unwrapped type reference in GraphQL wire syntax, e.g. "[Int!]!"."""
    type_string = unwrapped.base_name
    if unwrapped.is_list:
        type_string = "[{}{}]".format(type_string, "!" if unwrapped.is_list_item_non_null else "")
    if unwrapped.is_non_null:
        type_string += "!"
    return type_string


def render_wire_type(type_ref: TypeRef) -> str:
    """Render a type reference in GraphQL wire syntax, as used in variable declarations."""
    return render_type_ref(resolve_type_ref(type_ref))


def _type_ref_from_type_node(type_node: TypeNode, named_kind: TypeKind) -> TypeRef:
    """Convert a parsed GraphQL type AST node into a TypeRef."""
    if isinstance(type_node, NonNullTypeNode):
        return TypeRef(
            kind=TypeKind.NON_NULL, of_type=_type_ref_from_type_node(type_node.type, named_kind)
        )
    elif isinstance(type_node, ListTypeNode):
        return TypeRef(
            kind=TypeKind.LIST, of_type=_type_ref_from_type_node(type_node.type, named_kind)
        )
    elif isinstance(type_node, NamedTypeNode):
        return TypeRef(kind=named_kind, name=type_node.name.value)
    else:
        raise AssertionError("Unreachable code reached: unexpected type node {}".format(type_node))


def type_ref_from_wire_string(wire_type: str, named_kind: TypeKind = TypeKind.SCALAR) -> TypeRef:
    """Build a TypeRef from GraphQL wire syntax such as "[users_order_by!]".

    Args:
        wire_type: the type in GraphQL syntax
        named_kind: the kind to assign to the innermost named type, since wire syntax
                    does not carry it

    Returns:
        the equivalent TypeRef
    """
    try:
        type_node = parse_type(wire_type)
    except GraphQLSyntaxError as e:
        raise SchemaError("Invalid GraphQL type syntax: {}".format(wire_type)) from e
    return _type_ref_from_type_node(type_node, named_kind)
