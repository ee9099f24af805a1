# Copyright 2026-present Kensho Technologies, LLC.
"""The caller-facing request object, and the parsed form of its "returning" shape.

Callers describe the selection they want back in a loose format:

    returning="id name"                              # whitespace-separated field names
    returning=["id", {"accounts": ["id", "provider"]}]
    returning={"accounts": {"where": {...}, "limit": 5, "returning": ["id"]}}

That input is parsed exactly once, when the Request is constructed, into the ReturningSpec
variant defined here. The compiler only ever sees the parsed form.
"""
import dataclasses
from dataclasses import dataclass, field
import re
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import InvalidRequestError
from .typedefs import REQUEST_OPERATIONS, RequestOperation


# Keys of a nested field specification that are bound as arguments of the field.
NESTED_ARGUMENT_KEYS = ("where", "limit", "offset", "order_by", "distinct_on")

# Every key of a nested field specification with a reserved meaning.
RESERVED_NESTED_KEYS = frozenset(NESTED_ARGUMENT_KEYS + ("alias", "returning"))

_BASE_NAME_PATTERN = re.compile(r"^\s*(\w+)")


@dataclass(frozen=True)
class ColumnFunction:
    """Marker for a call of a column function, e.g. count(columns: [...]) inside an aggregate.

    Example:
        returning={"aggregate": {"count": ColumnFunction(["id"], distinct=True)}}
    """

    columns: Sequence[str]
    distinct: Optional[bool] = None


@dataclass(frozen=True)
class RawField:
    """A field given as plain text; emitted verbatim, without any schema lookup."""

    text: str


@dataclass(frozen=True)
class FieldToggle:
    """A field given as name -> bool: included as-is when True, dropped when False."""

    name: str
    include: bool


@dataclass(frozen=True)
class FieldSubselection:
    """A field given as name -> list (or whitespace-separated string) of sub-fields."""

    name: str
    children: Tuple["FieldSpec", ...]


@dataclass(frozen=True)
class NestedField:
    """A field given as name -> mapping, possibly with arguments, an alias and a returning shape.

    Keys of the mapping outside RESERVED_NESTED_KEYS are kept in "extras" unparsed: whether
    they are arguments, sub-fields or aggregate return fields depends on the schema.
    """

    name: str
    alias: Optional[str] = None
    arguments: Tuple[Tuple[str, Any], ...] = ()
    returning: Optional[Tuple["FieldSpec", ...]] = None
    extras: Tuple[Tuple[str, Any], ...] = ()


@dataclass(frozen=True)
class ColumnFunctionField:
    """A field given as name -> ColumnFunction."""

    name: str
    function: ColumnFunction


FieldSpec = Union[RawField, FieldToggle, FieldSubselection, NestedField, ColumnFunctionField]


@dataclass(frozen=True)
class ReturningList:
    """Top-level returning given as a list or string: it replaces the default fields."""

    entries: Tuple[FieldSpec, ...]


@dataclass(frozen=True)
class ReturningTree:
    """Top-level returning given as a mapping: it is merged into the default fields."""

    entries: Tuple[FieldSpec, ...]


ReturningSpec = Union[ReturningList, ReturningTree]


def get_base_name(text: str) -> Optional[str]:
    """Return the leading field name of a rendered selection, e.g. "aggregate { count }"."""
    match = _BASE_NAME_PATTERN.match(text)
    return match.group(1) if match else None


def get_field_spec_name(spec: FieldSpec) -> Optional[str]:
    """Return the schema field name a field spec refers to (never its alias)."""
    if isinstance(spec, RawField):
        return get_base_name(spec.text)
    return spec.name


def _split_field_names(text: str) -> Tuple[FieldSpec, ...]:
    return tuple(RawField(token) for token in text.split())


def parse_field_entry(name: str, value: Any) -> FieldSpec:
    """Parse one name -> value entry of a returning shape."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidRequestError("Invalid field name in returning: {!r}".format(name))
    name = name.strip()

    if isinstance(value, ColumnFunction):
        return ColumnFunctionField(name, value)
    elif isinstance(value, bool):
        return FieldToggle(name, value)
    elif value is None:
        return FieldToggle(name, False)
    elif isinstance(value, str):
        return FieldSubselection(name, _split_field_names(value))
    elif isinstance(value, (list, tuple)):
        return FieldSubselection(name, parse_field_list(value))
    elif isinstance(value, Mapping):
        alias = value.get("alias")
        if alias is not None and not isinstance(alias, str):
            raise InvalidRequestError(
                'Alias of field "{}" must be a string, got: {!r}'.format(name, alias)
            )
        returning = None
        if value.get("returning") is not None:
            returning = parse_nested_returning(value["returning"])
        arguments = tuple(
            (key, argument_value)
            for key, argument_value in value.items()
            if key in NESTED_ARGUMENT_KEYS
        )
        extras = tuple(
            (key, extra_value)
            for key, extra_value in value.items()
            if key not in RESERVED_NESTED_KEYS
        )
        return NestedField(
            name, alias=alias, arguments=arguments, returning=returning, extras=extras
        )
    else:
        raise InvalidRequestError(
            'Unsupported specification for field "{}": {!r}'.format(name, value)
        )


def parse_field_mapping(mapping: Mapping[str, Any]) -> Tuple[FieldSpec, ...]:
    """Parse every name -> value entry of a mapping, in order."""
    return tuple(parse_field_entry(name, value) for name, value in mapping.items())


def parse_field_list(items: Sequence[Any]) -> Tuple[FieldSpec, ...]:
    """Parse a list of field names and single-entry (or multi-entry) field mappings."""
    result = []
    for item in items:
        if isinstance(item, str):
            if item.strip():
                result.append(RawField(item.strip()))
        elif isinstance(item, Mapping):
            result.extend(parse_field_mapping(item))
        else:
            raise InvalidRequestError("Unsupported entry in returning list: {!r}".format(item))
    return tuple(result)


def parse_nested_returning(value: Any) -> Tuple[FieldSpec, ...]:
    """Parse the "returning" key of a nested field specification."""
    if isinstance(value, str):
        return _split_field_names(value)
    elif isinstance(value, (list, tuple)):
        return parse_field_list(value)
    elif isinstance(value, Mapping):
        return parse_field_mapping(value)
    else:
        raise InvalidRequestError("Unsupported nested returning shape: {!r}".format(value))


def parse_returning(value: Any) -> Optional[ReturningSpec]:
    """Parse the top-level returning shape of a request.

    Args:
        value: None, a whitespace-separated string, a list, or a mapping

    Returns:
        None when the default fields should be used, ReturningList when the given fields
        replace the defaults, ReturningTree when they are merged into the defaults

    Raises:
        InvalidRequestError: if the shape is not supported
    """
    if value is None:
        return None
    elif isinstance(value, str):
        return ReturningList(_split_field_names(value))
    elif isinstance(value, (list, tuple)):
        return ReturningList(parse_field_list(value))
    elif isinstance(value, Mapping):
        return ReturningTree(parse_field_mapping(value))
    else:
        raise InvalidRequestError("Unsupported returning shape: {!r}".format(value))


# Alternative spellings of request keys accepted by Request.from_mapping().
_KEY_ALIASES = {
    "table": "collection",
    "_set": "set_values",
    "var_counter": "incoming_var_counter",
    "varCounter": "incoming_var_counter",
}


@dataclass(frozen=True)
class Request:
    """A declarative description of one operation on one collection.

    Immutable for the duration of a compilation. Use Request.from_mapping() to build one from
    a plain dictionary.
    """

    operation: RequestOperation
    collection: str
    where: Optional[Mapping[str, Any]] = None
    returning: Any = None
    aggregate: Optional[Mapping[str, Any]] = None
    object: Optional[Mapping[str, Any]] = None
    objects: Optional[Sequence[Mapping[str, Any]]] = None
    pk_columns: Optional[Mapping[str, Any]] = None
    set_values: Optional[Mapping[str, Any]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    order_by: Any = None
    distinct_on: Any = None
    fragments: Tuple[str, ...] = ()
    incoming_var_counter: int = 1

    # Extra root field arguments, bound by name when the field declares them.
    # Unlike the fields above, a None value here is bound as an explicit null.
    arguments: Mapping[str, Any] = field(default_factory=dict)

    returning_spec: Optional[ReturningSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate the request and parse its returning shape."""
        if self.operation not in REQUEST_OPERATIONS:
            raise InvalidRequestError(
                "Invalid operation type: {}. Allowed types: {}".format(
                    self.operation, ", ".join(REQUEST_OPERATIONS)
                )
            )
        if not isinstance(self.collection, str) or not self.collection.strip():
            raise InvalidRequestError("A collection name must be specified.")
        if (
            not isinstance(self.incoming_var_counter, int)
            or isinstance(self.incoming_var_counter, bool)
            or self.incoming_var_counter < 0
        ):
            raise InvalidRequestError(
                "The variable counter must be a non-negative integer, got: {!r}".format(
                    self.incoming_var_counter
                )
            )
        if self.aggregate is not None and not isinstance(self.aggregate, Mapping):
            raise InvalidRequestError(
                "Aggregate must be a mapping, got: {!r}".format(self.aggregate)
            )

        object.__setattr__(self, "fragments", tuple(self.fragments))
        object.__setattr__(self, "returning_spec", parse_returning(self.returning))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Request":
        """Build a Request from a plain dictionary, accepting the alternative key spellings."""
        known_fields = {f.name for f in dataclasses.fields(cls) if f.init}
        kwargs: Dict[str, Any] = {}
        unknown_keys = []
        for key, value in mapping.items():
            field_name = _KEY_ALIASES.get(key, key)
            if field_name not in known_fields:
                unknown_keys.append(key)
            elif field_name in kwargs:
                raise InvalidRequestError(
                    'Request key "{}" was given more than once, under different '
                    "spellings.".format(field_name)
                )
            else:
                kwargs[field_name] = value

        if unknown_keys:
            raise InvalidRequestError("Unknown request keys: {}".format(sorted(unknown_keys)))
        if "operation" not in kwargs or "collection" not in kwargs:
            raise InvalidRequestError("Both operation and collection must be specified.")
        return cls(**kwargs)

    @property
    def is_aggregate(self) -> bool:
        """Return True if the request asks for the aggregate form of the collection."""
        return self.aggregate is not None

    @property
    def has_single_object(self) -> bool:
        """Return True if a single insert payload was given, without a bulk one."""
        return self.object is not None and self.objects is None

    def with_operation(self, operation: RequestOperation) -> "Request":
        """Return a copy of this request targeting a different operation."""
        return dataclasses.replace(self, operation=operation)


RequestInput = Union[Request, Mapping[str, Any]]


def as_request(request: RequestInput) -> Request:
    """Return the given Request, or build one from the given mapping."""
    if isinstance(request, Request):
        return request
    elif isinstance(request, Mapping):
        return Request.from_mapping(request)
    else:
        raise InvalidRequestError("Expected a Request or a mapping, got: {!r}".format(request))
