# Copyright 2026-present Kensho Technologies, LLC.
from dataclasses import dataclass
import logging
from typing import List, Tuple

import funcy

from ..exceptions import UnresolvedFieldError
from ..request import Request
from ..schema import FieldDescriptor, SchemaIndex
from ..typedefs import (
    AGGREGATE_SUFFIX,
    BY_PK_SUFFIX,
    MUTATION_OPERATIONS,
    MUTATION_PREFIXES,
    ONE_SUFFIX,
    OPERATION_TYPE_FOR_REQUEST_OPERATION,
    READ_OPERATIONS,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedField:
    """The root field chosen for a request."""

    name: str
    descriptor: FieldDescriptor
    root_type_name: str
    candidates: Tuple[str, ...]  # Every candidate name, in the order they were tried.

    @property
    def is_by_pk(self) -> bool:
        """Return True if the field addresses a single row by its primary key."""
        return self.name.endswith(BY_PK_SUFFIX)

    @property
    def is_one(self) -> bool:
        """Return True if the field is the single-object variant of an insert."""
        return self.name.endswith(ONE_SUFFIX)


def get_candidate_field_names(request: Request) -> List[str]:
    """Return the root field names that may implement the request, in priority order.

    The order matters: an aggregate request must never resolve to the plain collection field,
    and a request with primary key columns must never resolve to the bulk field.

    Args:
        request: the request to find a root field for

    Returns:
        de-duplicated list of candidate names; the first one the schema declares wins
    """
    collection = request.collection
    operation = request.operation
    prefix = MUTATION_PREFIXES.get(operation, "")

    candidates = []
    if request.is_aggregate:
        candidates.append(collection + AGGREGATE_SUFFIX)
    elif request.pk_columns is not None and operation != "insert":
        candidates.append(prefix + collection + BY_PK_SUFFIX)
    else:
        if operation == "insert" and request.has_single_object:
            candidates.append(prefix + collection + ONE_SUFFIX)
        if operation in MUTATION_OPERATIONS:
            candidates.append(prefix + collection)

    candidates.append(collection)
    return funcy.ldistinct(candidates)


def resolve_root_field(schema_index: SchemaIndex, request: Request) -> ResolvedField:
    """Choose the single root field that the request's document will invoke.

    Args:
        schema_index: the schema to search
        request: the request to resolve

    Returns:
        ResolvedField describing the first candidate that exists on the operation's root type

    Raises:
        UnresolvedFieldError: if the schema has no root type for the operation, or none of
                              the candidate names exist on it
    """
    operation_type = OPERATION_TYPE_FOR_REQUEST_OPERATION[request.operation]
    candidates = tuple(get_candidate_field_names(request))

    root_type_name = schema_index.get_root_type_name(operation_type)
    if root_type_name is None:
        raise UnresolvedFieldError(candidates, None)

    root_type = schema_index.get_type(root_type_name)
    if root_type is None:
        raise AssertionError(
            'Root type "{}" is not in the schema index. This is a bug.'.format(root_type_name)
        )

    name = funcy.first(candidate for candidate in candidates if root_type.has_field(candidate))
    if name is None:
        raise UnresolvedFieldError(candidates, root_type_name)

    if name == request.collection and request.operation not in READ_OPERATIONS:
        logger.debug(
            'Resolved %s on "%s" to the bare collection field of root type "%s".',
            request.operation,
            request.collection,
            root_type_name,
        )

    descriptor = root_type.get_field(name)
    if descriptor is None:
        raise AssertionError(
            "Unreachable code reached: {} {} {}".format(name, root_type_name, candidates)
        )

    return ResolvedField(
        name=name,
        descriptor=descriptor,
        root_type_name=root_type_name,
        candidates=candidates,
    )
