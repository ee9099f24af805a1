# Copyright 2026-present Kensho Technologies, LLC.
"""Compile parsed returning specifications into GraphQL selection text.

Selections are resolved against the schema one level at a time: each field is looked up on
its parent type, and its sub-selection is compiled against the field's own return type.
Requested fields that the schema does not have are dropped with a diagnostic, never raised:
a renamed or removed field must not break an unrelated part of a large selection.
"""
from itertools import chain
from textwrap import indent
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import funcy

from ..request import (
    ColumnFunctionField,
    FieldSpec,
    FieldSubselection,
    FieldToggle,
    NestedField,
    RawField,
    Request,
    ReturningList,
    get_base_name,
    get_field_spec_name,
    parse_field_entry,
)
from ..schema import FieldDescriptor, SchemaIndex, TypeDescriptor
from ..typedefs import AGGREGATE_SUFFIX
from .argument_binding import CompilationState, bind_field_arguments, report_diagnostic
from .common import DiagnosticCode


TYPENAME_FIELD = "__typename"

# Fields selected by default at the root, in this order, when the root type has them.
DEFAULT_ROOT_FIELDS = ("id", "name", "email", "created_at", "updated_at")


def render_selection_block(head: str, items: Sequence[str]) -> str:
    """Render a field head followed by a braced, indented list of selections."""
    return "{} {{\n{}\n}}".format(head, indent("\n".join(items), "  "))


def synthesize_default_selection(
    schema_index: SchemaIndex, type_name: Optional[str], aggregate_container: bool = False
) -> List[str]:
    """Return the selections to use for a type when the caller did not ask for any.

    Args:
        schema_index: the schema
        type_name: the type the selections are made on
        aggregate_container: whether the type is the result of an "_aggregate" field

    Returns:
        list of rendered selections; empty for scalar and enum types, which take no body
    """
    type_descriptor = schema_index.get_type(type_name)
    if type_descriptor is None or not type_descriptor.is_selectable:
        return []

    if aggregate_container:
        aggregate_field = type_descriptor.get_field("aggregate")
        if aggregate_field is None:
            return [TYPENAME_FIELD]
        aggregate_type = schema_index.get_type(aggregate_field.unwrapped_type.base_name)
        if aggregate_type is not None and aggregate_type.has_field("count"):
            return [render_selection_block("aggregate", ["count"])]
        return [render_selection_block("aggregate", [TYPENAME_FIELD])]

    if type_descriptor.has_field("id"):
        return ["id"]
    return [TYPENAME_FIELD]


def synthesize_root_defaults(
    schema_index: SchemaIndex, type_name: Optional[str], aggregate_container: bool
) -> List[str]:
    """Return the default selections of the root field of a document."""
    if aggregate_container:
        return synthesize_default_selection(schema_index, type_name, aggregate_container=True)

    type_descriptor = schema_index.get_type(type_name)
    if type_descriptor is None or not type_descriptor.is_selectable:
        return []

    defaults = [name for name in DEFAULT_ROOT_FIELDS if type_descriptor.has_field(name)]
    return defaults or [TYPENAME_FIELD]


def _render_field(
    schema_index: SchemaIndex,
    head: str,
    items: Sequence[str],
    type_name: str,
    aggregate_container: bool = False,
) -> str:
    """Render a field with its selections, synthesizing default selections if there are none."""
    type_descriptor = schema_index.get_type(type_name)
    if type_descriptor is None or not type_descriptor.is_selectable:
        return head

    if not items:
        items = synthesize_default_selection(schema_index, type_name, aggregate_container)
    return render_selection_block(head, items)


def _merge_field_specs(*spec_groups: Iterable[FieldSpec]) -> Tuple[FieldSpec, ...]:
    """Merge field specs by field name, keeping first positions and the last spec given."""
    merged: Dict[str, FieldSpec] = {}
    for spec in chain(*spec_groups):
        key = get_field_spec_name(spec) or repr(spec)
        merged[key] = spec
    return tuple(merged.values())


def _is_extra_argument(
    field: FieldDescriptor, return_type: Optional[TypeDescriptor], key: str
) -> bool:
    """Return True if a non-reserved key of a nested field spec names one of its arguments."""
    return field.has_arg(key) and (return_type is None or not return_type.has_field(key))


def _compile_column_function(
    schema_index: SchemaIndex,
    spec: ColumnFunctionField,
    field: FieldDescriptor,
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[str, CompilationState]:
    if not field.has_arg("columns"):
        state = report_diagnostic(
            state,
            DiagnosticCode.UNKNOWN_ARGUMENT,
            'Field "{}" does not declare a "columns" argument. Rendering it without '
            "arguments.".format(field.name),
            path=path,
        )
        return _render_field(schema_index, spec.name, (), field.unwrapped_type.base_name), state

    argument_items = [("columns", list(spec.function.columns))]
    if spec.function.distinct is not None:
        argument_items.append(("distinct", spec.function.distinct))
    rendered_arguments, state = bind_field_arguments(field, argument_items, state, path)
    return "{}({})".format(spec.name, ", ".join(rendered_arguments)), state


def _compile_nested_field(
    schema_index: SchemaIndex,
    spec: NestedField,
    field: FieldDescriptor,
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[str, CompilationState]:
    return_type_name = field.unwrapped_type.base_name
    return_type = schema_index.get_type(return_type_name)
    is_aggregate_field = spec.name.endswith(AGGREGATE_SUFFIX)

    argument_items = list(spec.arguments)
    if is_aggregate_field:
        # Everything that is not reserved describes what the aggregate returns,
        # e.g. "aggregate" or "nodes".
        return_fields = [parse_field_entry(key, value) for key, value in spec.extras]
        child_specs = _merge_field_specs(spec.returning or (), return_fields)
    else:
        extra_arguments, extra_fields = funcy.lsplit(
            lambda item: _is_extra_argument(field, return_type, item[0]), spec.extras
        )
        argument_items.extend(extra_arguments)
        child_specs = tuple(spec.returning or ()) + tuple(
            parse_field_entry(key, value) for key, value in extra_fields
        )

    rendered_arguments, state = bind_field_arguments(field, argument_items, state, path)
    items, state = compile_field_specs(schema_index, child_specs, return_type_name, state, path)

    head = "{}: {}".format(spec.alias, spec.name) if spec.alias else spec.name
    if rendered_arguments:
        head += "({})".format(", ".join(rendered_arguments))
    return (
        _render_field(
            schema_index, head, items, return_type_name, aggregate_container=is_aggregate_field
        ),
        state,
    )


def compile_field_spec(
    schema_index: SchemaIndex,
    spec: FieldSpec,
    parent_type_name: Optional[str],
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[str, CompilationState]:
    """Compile one field specification into selection text.

    Args:
        schema_index: the schema
        spec: the parsed field specification
        parent_type_name: the type on which the field is selected
        state: the compilation state before this field
        path: the names of the fields leading to the parent type, for diagnostics

    Returns:
        tuple (selection text, new state); the text is empty if the field was dropped
    """
    if isinstance(spec, RawField):
        return spec.text.strip(), state

    field_path = path + (spec.name,)
    field = schema_index.get_field(parent_type_name, spec.name)
    if field is None:
        state = report_diagnostic(
            state,
            DiagnosticCode.UNKNOWN_FIELD,
            'Field "{}" not found in type "{}". Skipping.'.format(spec.name, parent_type_name),
            path=field_path,
        )
        return "", state

    return_type_name = field.unwrapped_type.base_name
    is_aggregate = spec.name.endswith(AGGREGATE_SUFFIX)

    if isinstance(spec, FieldToggle):
        if not spec.include:
            return "", state
        rendered = _render_field(schema_index, spec.name, (), return_type_name, is_aggregate)
        return rendered, state
    elif isinstance(spec, ColumnFunctionField):
        return _compile_column_function(schema_index, spec, field, state, field_path)
    elif isinstance(spec, FieldSubselection):
        items, state = compile_field_specs(
            schema_index, spec.children, return_type_name, state, field_path
        )
        rendered = _render_field(schema_index, spec.name, items, return_type_name, is_aggregate)
        return rendered, state
    elif isinstance(spec, NestedField):
        return _compile_nested_field(schema_index, spec, field, state, field_path)
    else:
        raise AssertionError("Unreachable code reached: unexpected field spec {}".format(spec))


def compile_field_specs(
    schema_index: SchemaIndex,
    specs: Iterable[FieldSpec],
    parent_type_name: Optional[str],
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[List[str], CompilationState]:
    """Compile field specifications in order, leaving out the ones that were dropped."""
    items = []
    for spec in specs:
        rendered, state = compile_field_spec(schema_index, spec, parent_type_name, state, path)
        if rendered:
            items.append(rendered)
    return items, state


def _merge_specs_into_items(
    schema_index: SchemaIndex,
    items: List[str],
    specs: Iterable[FieldSpec],
    type_name: Optional[str],
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[List[str], CompilationState]:
    """Compile specs and append them, replacing existing items that select the same field.

    Items are matched by field name, not by alias: {"name": {"alias": "n"}} replaces a
    default "name" with "n: name", and {"name": False} removes it.
    """
    custom_items = []
    for spec in specs:
        rendered, state = compile_field_spec(schema_index, spec, type_name, state, path)
        base_name = get_field_spec_name(spec)
        items = [item for item in items if get_base_name(item) != base_name]
        if rendered:
            custom_items.append(rendered)
    return items + custom_items, state


def compile_root_selection(
    schema_index: SchemaIndex,
    request: Request,
    type_name: Optional[str],
    aggregate_container: bool,
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[List[str], CompilationState]:
    """Compile the selections of the root field of a document.

    A returning list or string replaces the default selections entirely. A returning mapping
    is merged into the defaults by field name. No returning at all yields the defaults.
    The request's aggregate mapping, if any, becomes the "aggregate { ... }" selection.

    Args:
        schema_index: the schema
        request: the request being compiled
        type_name: the type on which the root selections are made
        aggregate_container: whether the root field is an "_aggregate" field
        state: the compilation state before the selections
        path: the root field name, for diagnostics

    Returns:
        tuple (list of rendered selections, new state)
    """
    returning = request.returning_spec
    type_descriptor = schema_index.get_type(type_name)
    if type_descriptor is None or not type_descriptor.is_selectable:
        # Scalar and enum results take no selection body.
        if returning is not None or request.aggregate:
            state = report_diagnostic(
                state,
                DiagnosticCode.UNKNOWN_FIELD,
                'Type "{}" has no fields to select. Ignoring the requested selections.'.format(
                    type_name
                ),
                path=path,
            )
        return [], state

    if isinstance(returning, ReturningList):
        items, state = compile_field_specs(schema_index, returning.entries, type_name, state, path)
    else:
        items = synthesize_root_defaults(schema_index, type_name, aggregate_container)
        if returning is not None:
            items, state = _merge_specs_into_items(
                schema_index, items, returning.entries, type_name, state, path
            )

    if aggregate_container and request.aggregate:
        aggregate_spec = parse_field_entry("aggregate", dict(request.aggregate))
        items, state = _merge_specs_into_items(
            schema_index, items, (aggregate_spec,), type_name, state, path
        )

    return items, state
