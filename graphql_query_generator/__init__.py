# Copyright 2026-present Kensho Technologies, LLC.
"""Commonly-used functions and data types from this package."""
from typing import Any, Mapping

from .compiler import (  # noqa
    CompiledQuery,
    Diagnostic,
    DiagnosticCode,
    QueryGenerator,
    generate_query,
)
from .exceptions import (  # noqa
    GraphQLQueryGeneratorError,
    InvalidConfigurationError,
    InvalidRequestError,
    MalformedDocumentError,
    QueryExecutionError,
    SchemaError,
    UnresolvedFieldError,
)
from .request import ColumnFunction, Request, RequestInput  # noqa
from .results import check_execution_result, extract_operation_data  # noqa
from .schema import SchemaIndex, clear_schema_index_cache, get_schema_index  # noqa
from .subscriptions import (  # noqa
    DispatcherConfig,
    DispatcherState,
    QueryTransport,
    SubscriptionDispatcher,
    subscribe,
)


__package_name__ = "graphql-query-generator"
__version__ = "1.0.0"


def generate_query_from_introspection(
    introspection: Mapping[str, Any], request: RequestInput
) -> CompiledQuery:
    """Compile a request against the schema described by an introspection result.

    The schema index built from the introspection result is cached, keyed by the content of
    the introspection result, so repeated calls with the same schema do not rebuild it.

    Args:
        introspection: the result of the standard introspection query, either the whole
                       response ({"data": {"__schema": ...}}) or its "__schema" part
        request: the Request to compile, or a mapping that Request.from_mapping() accepts

    Returns:
        CompiledQuery with the document, its variables and any non-fatal diagnostics
    """
    return generate_query(get_schema_index(introspection), request)
