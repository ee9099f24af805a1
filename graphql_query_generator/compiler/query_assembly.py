# Copyright 2026-present Kensho Technologies, LLC.
"""Render the final GraphQL document and make sure it parses."""
from typing import Any, Mapping, Sequence

from graphql import DocumentNode, parse, print_ast
from graphql.error import GraphQLSyntaxError

from ..exceptions import MalformedDocumentError
from ..typedefs import OperationType
from .argument_binding import CompilationState
from .common import CompiledQuery
from .selection_compiler import render_selection_block


def get_operation_name(operation_type: OperationType, field_name: str) -> str:
    """Return the operation name for a document, e.g. "QueryUsersByPk" for users_by_pk.

    Args:
        operation_type: the GraphQL operation keyword, e.g. "query"
        field_name: the resolved root field name

    Returns:
        the capitalized keyword followed by the root field name in PascalCase
    """
    pascal_case_field_name = "".join(
        part[:1].upper() + part[1:] for part in field_name.split("_") if part
    )
    return operation_type.capitalize() + pascal_case_field_name


def render_document_text(
    operation_type: OperationType,
    operation_name: str,
    variable_declarations: str,
    field_name: str,
    root_arguments: Sequence[str],
    items: Sequence[str],
    fragments: Sequence[str] = (),
) -> str:
    """Render the text of a single-operation document invoking one root field.

    An empty list of items renders the root field without a selection body, as required
    for fields returning scalars or enums.
    """
    header = "{} {}".format(operation_type, operation_name)
    if variable_declarations:
        header += "({})".format(variable_declarations)

    field_head = field_name
    if root_arguments:
        field_head += "({})".format(", ".join(root_arguments))
    field_text = render_selection_block(field_head, items) if items else field_head

    document_parts = [render_selection_block(header, [field_text])]
    document_parts.extend(fragment.strip() for fragment in fragments if fragment.strip())
    return "\n\n".join(document_parts) + "\n"


def parse_document(document_text: str, variables: Mapping[str, Any]) -> DocumentNode:
    """Parse a generated document, reraising GraphQL library errors with the document attached.

    Args:
        document_text: the rendered document
        variables: the variables the document will be sent with, for diagnosis

    Returns:
        the parsed document

    Raises:
        MalformedDocumentError: if the text is not syntactically valid GraphQL
    """
    try:
        return parse(document_text)
    except GraphQLSyntaxError as e:
        raise MalformedDocumentError(document_text, variables, e) from e


def assemble_query(
    operation_type: OperationType,
    field_name: str,
    root_arguments: Sequence[str],
    items: Sequence[str],
    state: CompilationState,
    fragments: Sequence[str] = (),
) -> CompiledQuery:
    """Render, validate and package a compiled document.

    Args:
        operation_type: the GraphQL operation keyword
        field_name: the resolved root field name
        root_arguments: rendered root field arguments, such as "where: $v1"
        items: the rendered selections of the root field
        state: the final compilation state, holding variables and diagnostics
        fragments: fragment definitions to append to the document verbatim

    Returns:
        CompiledQuery whose document_text is the canonical printing of the parsed document

    Raises:
        MalformedDocumentError: if the rendered text does not parse
    """
    operation_name = get_operation_name(operation_type, field_name)
    variables = state.variable_map
    document_text = render_document_text(
        operation_type,
        operation_name,
        state.render_declarations(),
        field_name,
        root_arguments,
        items,
        fragments,
    )
    document = parse_document(document_text, variables)

    return CompiledQuery(
        document_text=print_ast(document),
        document=document,
        variables=variables,
        resolved_field_name=field_name,
        advanced_var_counter=state.counter,
        operation_type=operation_type,
        operation_name=operation_name,
        diagnostics=state.diagnostics,
    )
