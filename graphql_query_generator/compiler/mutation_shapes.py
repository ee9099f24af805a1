# Copyright 2026-present Kensho Technologies, LLC.
"""Bulk mutation responses: the "affected_rows" + "returning { ... }" envelope.

Bulk mutations (e.g. delete_users) return a payload object wrapping the affected rows,
whereas by-pk and single-insert mutations (delete_users_by_pk, insert_users_one) return
the row itself. Callers describe the rows they want back in both cases; for bulk mutations
that selection is compiled against the row type and then wrapped in the envelope.
"""
from dataclasses import dataclass
import logging
from typing import List, Optional, Sequence, Tuple

from ..request import get_base_name
from ..schema import FieldDescriptor, SchemaIndex
from ..typedefs import BY_PK_SUFFIX, MUTATION_OPERATIONS, ONE_SUFFIX
from .argument_binding import CompilationState, report_diagnostic
from .common import DiagnosticCode
from .selection_compiler import render_selection_block


AFFECTED_ROWS_FIELD = "affected_rows"
RETURNING_FIELD = "returning"


@dataclass(frozen=True)
class MutationEnvelope:
    """The payload type of a bulk mutation, and the type of the rows it wraps."""

    payload_type_name: str
    row_type_name: str


def is_bulk_mutation(operation: str, field_name: str) -> bool:
    """Return True if the operation is a mutation on a bulk (neither by-pk nor _one) field."""
    return (
        operation in MUTATION_OPERATIONS
        and not field_name.endswith(BY_PK_SUFFIX)
        and not field_name.endswith(ONE_SUFFIX)
    )


def find_mutation_envelope(
    schema_index: SchemaIndex, operation: str, field: FieldDescriptor, state: CompilationState
) -> Tuple[Optional[MutationEnvelope], CompilationState]:
    """Determine whether the root field's selection must be wrapped in the bulk envelope.

    Args:
        schema_index: the schema
        operation: the request operation
        field: the resolved root field
        state: the compilation state

    Returns:
        tuple (MutationEnvelope if the field is a bulk mutation whose payload type declares
        both "affected_rows" and "returning", else None; new state). A bulk mutation without
        the envelope is reported as a diagnostic: some custom mutations are shaped differently
        on purpose, so their selection is left untouched.
    """
    if not is_bulk_mutation(operation, field.name):
        return None, state

    payload_type_name = field.unwrapped_type.base_name
    payload_type = schema_index.get_type(payload_type_name)
    returning_field = payload_type.get_field(RETURNING_FIELD) if payload_type else None

    if payload_type is None or returning_field is None or not payload_type.has_field(
        AFFECTED_ROWS_FIELD
    ):
        state = report_diagnostic(
            state,
            DiagnosticCode.MISSING_MUTATION_ENVELOPE,
            'Mutation "{}" does not return the standard "{}" and "{}" fields. Leaving its '
            "selection unchanged.".format(field.name, AFFECTED_ROWS_FIELD, RETURNING_FIELD),
            path=(field.name,),
            level=logging.DEBUG,
        )
        return None, state

    envelope = MutationEnvelope(
        payload_type_name=payload_type_name,
        row_type_name=returning_field.unwrapped_type.base_name,
    )
    return envelope, state


def apply_mutation_envelope(items: Sequence[str]) -> List[str]:
    """Wrap row selections into "affected_rows" followed by "returning { ... }".

    Any "affected_rows" the caller selected among the rows is dropped, since the envelope
    already selects it. If no row selections remain, "returning" is left out entirely.
    """
    row_items = [item for item in items if get_base_name(item) != AFFECTED_ROWS_FIELD]
    envelope_items = [AFFECTED_ROWS_FIELD]
    if row_items:
        envelope_items.append(render_selection_block(RETURNING_FIELD, row_items))
    return envelope_items
