# Copyright 2026-present Kensho Technologies, LLC.
from collections import OrderedDict
from dataclasses import dataclass, field
from hashlib import sha256
import json
import logging
from threading import Lock
from typing import Any, Dict, Mapping, Optional, Tuple

from graphql import GraphQLSchema, introspection_from_schema

from ..exceptions import SchemaError
from ..typedefs import OperationType
from .type_refs import SELECTABLE_KINDS, TypeKind, TypeRef, UnwrappedTypeRef, resolve_type_ref


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArgumentDescriptor:
    """An argument declared on a field."""

    name: str
    type: TypeRef


@dataclass(frozen=True)
class FieldDescriptor:
    """A field declared on an object or interface type."""

    name: str
    type: TypeRef
    args: Tuple[ArgumentDescriptor, ...] = ()

    # Lookup table for args, derived from the args tuple.
    _args_by_name: Dict[str, ArgumentDescriptor] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        """Index the args by name, enforcing unique argument names within the field."""
        args_by_name: Dict[str, ArgumentDescriptor] = {}
        for arg in self.args:
            if arg.name in args_by_name:
                raise SchemaError(
                    'Field "{}" declares argument "{}" more than once.'.format(self.name, arg.name)
                )
            args_by_name[arg.name] = arg
        object.__setattr__(self, "_args_by_name", args_by_name)

    def get_arg(self, arg_name: str) -> Optional[ArgumentDescriptor]:
        """Return the named argument of this field, or None if it is not declared."""
        return self._args_by_name.get(arg_name)

    def has_arg(self, arg_name: str) -> bool:
        """Return True if the field declares an argument with the given name."""
        return arg_name in self._args_by_name

    @property
    def unwrapped_type(self) -> UnwrappedTypeRef:
        """Return the field's return type with its wrappers peeled off."""
        return resolve_type_ref(self.type)


@dataclass(frozen=True)
class TypeDescriptor:
    """A named type. Only object and interface types carry fields."""

    kind: TypeKind
    name: str
    fields: Tuple[FieldDescriptor, ...] = ()

    _fields_by_name: Dict[str, FieldDescriptor] = field(
        init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        """Index the fields by name."""
        object.__setattr__(self, "_fields_by_name", {f.name: f for f in self.fields})

    @property
    def is_selectable(self) -> bool:
        """Return True if a selection set may be requested on values of this type."""
        return self.kind in SELECTABLE_KINDS

    def get_field(self, field_name: str) -> Optional[FieldDescriptor]:
        """Return the named field of this type, or None if it does not exist."""
        return self._fields_by_name.get(field_name)

    def has_field(self, field_name: str) -> bool:
        """Return True if the type declares a field with the given name."""
        return field_name in self._fields_by_name


def _get_root_name(schema_data: Mapping[str, Any], key: str) -> Optional[str]:
    """Return the name of the root type stored under the given key, if any."""
    root_data = schema_data.get(key)
    if not root_data:
        return None
    return root_data.get("name")


def _build_argument_descriptor(arg_data: Mapping[str, Any]) -> ArgumentDescriptor:
    try:
        name = arg_data["name"]
        type_data = arg_data["type"]
    except (KeyError, TypeError) as e:
        raise SchemaError("Invalid argument in introspection: {}".format(arg_data)) from e
    return ArgumentDescriptor(name=name, type=TypeRef.from_introspection(type_data))


def _build_field_descriptor(field_data: Mapping[str, Any]) -> FieldDescriptor:
    try:
        name = field_data["name"]
        type_data = field_data["type"]
    except (KeyError, TypeError) as e:
        raise SchemaError("Invalid field in introspection: {}".format(field_data)) from e

    args = tuple(_build_argument_descriptor(arg_data) for arg_data in field_data.get("args") or ())
    return FieldDescriptor(name=name, type=TypeRef.from_introspection(type_data), args=args)


def _build_type_descriptor(type_data: Mapping[str, Any]) -> TypeDescriptor:
    try:
        kind = TypeKind(type_data["kind"])
        name = type_data["name"]
    except (KeyError, ValueError) as e:
        raise SchemaError("Invalid type in introspection: {}".format(type_data)) from e

    fields: Tuple[FieldDescriptor, ...] = ()
    if kind in SELECTABLE_KINDS:
        fields = tuple(
            _build_field_descriptor(field_data) for field_data in type_data.get("fields") or ()
        )
    return TypeDescriptor(kind=kind, name=name, fields=fields)


def _unwrap_introspection_payload(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the __schema object from any of the accepted introspection payload shapes.

    Accepted shapes are the HTTP envelope {"data": {"__schema": ...}}, the execution result
    data {"__schema": ...}, and the bare __schema object itself.
    """
    if not isinstance(payload, Mapping):
        raise SchemaError("Expected a mapping introspection payload, got: {}".format(type(payload)))

    if "data" in payload and isinstance(payload["data"], Mapping):
        payload = payload["data"]
    if "__schema" in payload:
        payload = payload["__schema"]

    if not isinstance(payload, Mapping) or "types" not in payload:
        raise SchemaError(
            "Invalid introspection payload: expected a __schema object with a types list."
        )
    return payload


class SchemaIndex:
    """Read-only index over an introspected schema.

    Built once per schema load and shared across many compilations. Nothing mutates it
    after construction, so it is safe to share across threads.
    """

    def __init__(
        self,
        types: Mapping[str, TypeDescriptor],
        query_type_name: str,
        mutation_type_name: Optional[str] = None,
        subscription_type_name: Optional[str] = None,
    ) -> None:
        """Create a SchemaIndex. Prefer the from_introspection() constructor."""
        self._types = dict(types)
        self.query_type_name = query_type_name
        self.mutation_type_name = mutation_type_name
        self.subscription_type_name = subscription_type_name

        for root_name in (query_type_name, mutation_type_name, subscription_type_name):
            if root_name is None:
                continue
            root_type = self._types.get(root_name)
            if root_type is None or root_type.kind != TypeKind.OBJECT:
                raise SchemaError(
                    'Root type "{}" is missing from the schema types, or is not an object '
                    "type.".format(root_name)
                )

    @classmethod
    def from_introspection(cls, payload: Mapping[str, Any]) -> "SchemaIndex":
        """Build the index from the result of a GraphQL introspection query."""
        schema_data = _unwrap_introspection_payload(payload)

        query_type_name = _get_root_name(schema_data, "queryType")
        if not query_type_name:
            raise SchemaError("Introspection payload does not declare a query root type.")

        types: Dict[str, TypeDescriptor] = {}
        for type_data in schema_data["types"]:
            type_descriptor = _build_type_descriptor(type_data)
            types[type_descriptor.name] = type_descriptor

        logger.debug("Indexed introspected schema with %d types.", len(types))
        return cls(
            types,
            query_type_name,
            mutation_type_name=_get_root_name(schema_data, "mutationType"),
            subscription_type_name=_get_root_name(schema_data, "subscriptionType"),
        )

    @classmethod
    def from_graphql_schema(cls, schema: GraphQLSchema) -> "SchemaIndex":
        """Build the index from a graphql-core schema object, by introspecting it."""
        return cls.from_introspection(introspection_from_schema(schema))

    def get_type(self, type_name: Optional[str]) -> Optional[TypeDescriptor]:
        """Return the named type, or None if the schema has no such type."""
        if type_name is None:
            return None
        return self._types.get(type_name)

    def get_field(self, type_name: Optional[str], field_name: str) -> Optional[FieldDescriptor]:
        """Return the named field of the named type, or None if either does not exist."""
        type_descriptor = self.get_type(type_name)
        if type_descriptor is None:
            return None
        return type_descriptor.get_field(field_name)

    def get_root_type_name(self, operation_type: OperationType) -> Optional[str]:
        """Return the name of the root type for the given operation type, if the schema has one."""
        if operation_type == "query":
            return self.query_type_name
        elif operation_type == "mutation":
            return self.mutation_type_name
        elif operation_type == "subscription":
            return self.subscription_type_name
        else:
            raise AssertionError("Unknown operation type: {}".format(operation_type))

    def __len__(self) -> int:
        """Return the number of named types in the schema."""
        return len(self._types)


def compute_introspection_fingerprint(payload: Mapping[str, Any]) -> str:
    """Compute a fingerprint compactly representing all the data in the introspection payload.

    The fingerprint is not sensitive to dict key order. Two payloads with the same fingerprint
    describe the same schema.

    Args:
        payload: the introspection payload, in any shape accepted by SchemaIndex

    Returns:
        hex digest of the canonical JSON form of the payload
    """
    text = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return sha256(text.encode("utf-8")).hexdigest()


# Least recently used indexes are evicted beyond this many distinct schemas.
SCHEMA_INDEX_CACHE_SIZE = 16

_schema_index_cache: "OrderedDict[str, SchemaIndex]" = OrderedDict()
_schema_index_cache_lock = Lock()


def get_schema_index(payload: Mapping[str, Any]) -> SchemaIndex:
    """Return the SchemaIndex for the payload, building it only if its content was not seen yet.

    At most SCHEMA_INDEX_CACHE_SIZE indexes are kept, so hosts that reload changing schemas
    do not accumulate stale indexes.
    """
    fingerprint = compute_introspection_fingerprint(payload)
    with _schema_index_cache_lock:
        schema_index = _schema_index_cache.get(fingerprint)
        if schema_index is not None:
            _schema_index_cache.move_to_end(fingerprint)
            return schema_index

        logger.debug("Building schema index for fingerprint %s.", fingerprint)
        schema_index = SchemaIndex.from_introspection(payload)
        _schema_index_cache[fingerprint] = schema_index
        while len(_schema_index_cache) > SCHEMA_INDEX_CACHE_SIZE:
            evicted_fingerprint, _ = _schema_index_cache.popitem(last=False)
            logger.debug("Evicted schema index for fingerprint %s.", evicted_fingerprint)
    return schema_index


def clear_schema_index_cache() -> None:
    """Drop every cached SchemaIndex."""
    with _schema_index_cache_lock:
        _schema_index_cache.clear()
