# Copyright 2026-present Kensho Technologies, LLC.
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Mapping, Tuple

from graphql import DocumentNode

from ..typedefs import OperationType


@unique
class DiagnosticCode(Enum):
    """Kinds of non-fatal problems found while compiling a request."""

    # A requested field does not exist on its parent type, so it was dropped.
    UNKNOWN_FIELD = "unknown_field"

    # A requested argument is not declared on its field, so it was dropped.
    UNKNOWN_ARGUMENT = "unknown_argument"

    # The insert field declares both singular and plural payload arguments.
    AMBIGUOUS_INSERT_PAYLOAD = "ambiguous_insert_payload"

    # The insert payload could not be matched to any payload argument of the field.
    UNMATCHED_INSERT_PAYLOAD = "unmatched_insert_payload"

    # A bulk mutation's payload type lacks the affected_rows / returning envelope.
    MISSING_MUTATION_ENVELOPE = "missing_mutation_envelope"


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem found while compiling a request.

    The path locates the problem in the selection: the names of the fields leading to it,
    starting from the root field.
    """

    code: DiagnosticCode
    message: str
    path: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CompiledQuery:
    """The output of compiling one request. Produced once and never mutated."""

    # The document, printed in canonical GraphQL form.
    document_text: str

    # The parsed document, ready for transports that accept ASTs.
    document: DocumentNode

    # Variable name (without the "$") -> value, for every variable the document declares.
    variables: Mapping[str, Any]

    # The root field that the document invokes, e.g. "users_by_pk".
    resolved_field_name: str

    # The next unused variable number, for callers that combine several documents.
    advanced_var_counter: int

    operation_type: OperationType
    operation_name: str
    diagnostics: Tuple[Diagnostic, ...] = ()
