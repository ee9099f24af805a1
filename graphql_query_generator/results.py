# Copyright 2026-present Kensho Technologies, LLC.
"""Helpers for turning the result of executing a compiled document into the caller's data."""
from typing import Any, Mapping, Optional

from graphql import ExecutionResult

from .exceptions import QueryExecutionError
from .typedefs import BY_PK_SUFFIX


def extract_operation_data(
    resolved_field_name: str,
    data: Optional[Mapping[str, Any]],
    collection: str,
    is_aggregate: bool,
) -> Any:
    """Return the part of an execution result's data that the caller asked for.

    Aggregate results are returned whole, since callers may select several aggregate fields.
    Other results are unwrapped by the root field name. If the result has nothing under that
    name, it is unwrapped by the bare collection name instead; for by-pk fields the bare
    collection returns a list, so a one-element list becomes its element and an empty list
    becomes None.

    Args:
        resolved_field_name: the root field the document invoked
        data: the "data" member of the execution result
        collection: the collection name of the request
        is_aggregate: whether the request was an aggregate request

    Returns:
        the extracted data, or None if there is none
    """
    if data is None:
        return None
    if is_aggregate:
        return data

    extracted = data.get(resolved_field_name)
    if extracted is None and data.get(collection) is not None:
        extracted = data[collection]
        if resolved_field_name.endswith(BY_PK_SUFFIX) and isinstance(extracted, list):
            if len(extracted) == 1:
                extracted = extracted[0]
            elif not extracted:
                extracted = None
    return extracted


def check_execution_result(result: ExecutionResult) -> Optional[Mapping[str, Any]]:
    """Return the data of an execution result, raising QueryExecutionError if it has errors."""
    if result.errors:
        raise QueryExecutionError(result.errors)
    return result.data
