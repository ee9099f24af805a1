# Copyright 2026-present Kensho Technologies, LLC.
"""Front end of the GraphQL query generator.

A request is compiled into a single GraphQL document in the following steps:

1. The root field is resolved. Naming conventions of generated GraphQL schemas produce several
   root fields per collection (users, users_by_pk, users_aggregate, insert_users,
   insert_users_one, delete_users_by_pk, ...). The request's shape decides which of them are
   candidates, and the first candidate that the schema declares on the right root type wins.
2. Every declared argument of the root field that the request provides a value for is bound
   to a fresh variable, in the order the schema declares the arguments.
3. The selection of the root field is compiled from the request's returning shape, resolving
   each requested field against the schema and binding nested field arguments to variables.
   For bulk mutations, the selection describes the affected rows, and is compiled against the
   row type rather than the mutation payload type.
4. Bulk mutation selections are wrapped in the "affected_rows" + "returning" envelope.
5. The document is rendered, parsed to make sure it is valid GraphQL, and returned.

Variables are named v1, v2, ... starting from the request's incoming_var_counter. The counter
is threaded through all the steps as part of an immutable CompilationState, and the next
unused value is returned so that callers combining several documents can avoid collisions.

Compilation never mutates shared state and performs no I/O, so a single SchemaIndex may be
used by any number of concurrent compilations.
"""
from typing import Optional

from ..request import RequestInput, as_request
from ..schema import SchemaIndex
from ..typedefs import OPERATION_TYPE_FOR_REQUEST_OPERATION
from .argument_binding import CompilationState, bind_root_arguments
from .common import CompiledQuery
from .field_resolution import resolve_root_field
from .mutation_shapes import apply_mutation_envelope, find_mutation_envelope
from .query_assembly import assemble_query
from .selection_compiler import compile_root_selection


def generate_query(schema_index: SchemaIndex, request: RequestInput) -> CompiledQuery:
    """Compile a request into a GraphQL document against the given schema.

    Args:
        schema_index: the schema the document is generated for
        request: the Request to compile, or a mapping that Request.from_mapping() accepts

    Returns:
        CompiledQuery with the document, its variables and any non-fatal diagnostics

    Raises:
        InvalidRequestError: if the request is structurally unusable
        UnresolvedFieldError: if no candidate root field exists in the schema
        SchemaError: if the schema describes a type reference that cannot be unwrapped
        MalformedDocumentError: if the generated document does not parse
    """
    request = as_request(request)
    operation_type = OPERATION_TYPE_FOR_REQUEST_OPERATION[request.operation]

    resolved_field = resolve_root_field(schema_index, request)
    field = resolved_field.descriptor
    path = (field.name,)
    state = CompilationState(counter=request.incoming_var_counter)

    root_arguments, state = bind_root_arguments(request, field, state)

    envelope, state = find_mutation_envelope(schema_index, request.operation, field, state)
    selection_type_name: Optional[str]
    if envelope is not None:
        selection_type_name = envelope.row_type_name
    else:
        selection_type_name = field.unwrapped_type.base_name

    items, state = compile_root_selection(
        schema_index,
        request,
        selection_type_name,
        request.is_aggregate and envelope is None,
        state,
        path,
    )
    if envelope is not None:
        items = apply_mutation_envelope(items)

    return assemble_query(
        operation_type, field.name, root_arguments, items, state, fragments=request.fragments
    )


class QueryGenerator:
    """A reusable query generator bound to one schema.

    Example:
        generator = QueryGenerator(SchemaIndex.from_introspection(introspection_result))
        compiled = generator({"operation": "query", "collection": "users", "limit": 10})
    """

    def __init__(self, schema_index: SchemaIndex) -> None:
        """Bind the generator to a schema index."""
        self.schema_index = schema_index

    def generate(self, request: RequestInput) -> CompiledQuery:
        """Compile a request. See generate_query() for details."""
        return generate_query(self.schema_index, request)

    def __call__(self, request: RequestInput) -> CompiledQuery:
        """Compile a request. See generate_query() for details."""
        return self.generate(request)
