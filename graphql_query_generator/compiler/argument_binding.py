# Copyright 2026-present Kensho Technologies, LLC.
from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Tuple

from ..request import Request
from ..schema import ArgumentDescriptor, FieldDescriptor, render_wire_type
from ..typedefs import BY_PK_SUFFIX, ONE_SUFFIX, READ_OPERATIONS
from .common import Diagnostic, DiagnosticCode


logger = logging.getLogger(__name__)

# Root field arguments filled from the same-named request attribute.
_PASSTHROUGH_ARGUMENTS = ("limit", "offset", "order_by")

# Sentinel for "no value found", since None is a legitimate (explicit null) value.
_NOT_FOUND = object()


@dataclass(frozen=True)
class CompilationState:
    """Everything a compilation accumulates besides rendered text.

    Every compile step takes a state and returns a new one alongside its result; states are
    never mutated. This keeps the variable counter correct regardless of the order in which
    nested selections are compiled.
    """

    counter: int
    variables: Tuple[Tuple[str, Any], ...] = ()
    declarations: Tuple[Tuple[str, str], ...] = ()  # (variable name, wire type)
    diagnostics: Tuple[Diagnostic, ...] = ()

    def bind(self, argument: ArgumentDescriptor, value: Any) -> Tuple[str, "CompilationState"]:
        """Allocate a fresh variable for the argument's value.

        Args:
            argument: the declared argument the variable is passed to; its type becomes the
                      declared type of the variable
            value: the value of the variable

        Returns:
            tuple (variable name without "$", new state)
        """
        wire_type = render_wire_type(argument.type)
        variable_name = "v{}".format(self.counter)

        declarations = self.declarations
        if all(declared_name != variable_name for declared_name, _ in declarations):
            declarations = declarations + ((variable_name, wire_type),)

        new_state = CompilationState(
            counter=self.counter + 1,
            variables=self.variables + ((variable_name, value),),
            declarations=declarations,
            diagnostics=self.diagnostics,
        )
        return variable_name, new_state

    def add_diagnostic(self, diagnostic: Diagnostic) -> "CompilationState":
        """Return a new state that additionally records the given diagnostic."""
        return CompilationState(
            counter=self.counter,
            variables=self.variables,
            declarations=self.declarations,
            diagnostics=self.diagnostics + (diagnostic,),
        )

    @property
    def variable_map(self) -> Dict[str, Any]:
        """Return variable name -> value for every bound variable."""
        return dict(self.variables)

    def render_declarations(self) -> str:
        """Render the variable declarations, e.g. "$v1: users_bool_exp, $v2: Int"."""
        return ", ".join(
            "${}: {}".format(variable_name, wire_type)
            for variable_name, wire_type in self.declarations
        )


def report_diagnostic(
    state: CompilationState,
    code: DiagnosticCode,
    message: str,
    path: Tuple[str, ...] = (),
    level: int = logging.DEBUG,
) -> CompilationState:
    """Log a non-fatal problem and record it on the returned state."""
    logger.log(level, "%s (at %s)", message, ".".join(path) or "<root>")
    return state.add_diagnostic(Diagnostic(code=code, message=message, path=path))


def _find_insert_payload(
    request: Request, field: FieldDescriptor, arg_name: str, state: CompilationState
) -> Tuple[Any, CompilationState]:
    """Find the value of the "objects" or "object" argument of an insert field."""
    is_one_field = field.name.endswith(ONE_SUFFIX)
    declares_both = field.has_arg("objects") and field.has_arg("object")

    if arg_name == "objects":
        if declares_both and not is_one_field:
            state = report_diagnostic(
                state,
                DiagnosticCode.AMBIGUOUS_INSERT_PAYLOAD,
                'Field "{}" declares both "object" and "objects" arguments; '
                'binding the payload to "objects".'.format(field.name),
                path=(field.name,),
                level=logging.WARNING,
            )
        if request.objects is not None:
            return list(request.objects), state
        logger.debug(
            'Passing single "object" to bulk field "%s" as a one-element list.', field.name
        )
        return [request.object], state

    # The singular "object" argument.
    if declares_both and not is_one_field:
        return _NOT_FOUND, state
    if request.object is not None:
        return request.object, state
    if request.objects is not None and len(request.objects) == 1:
        return request.objects[0], state

    state = report_diagnostic(
        state,
        DiagnosticCode.UNMATCHED_INSERT_PAYLOAD,
        'Field "{}" accepts a single "object", but {} objects were given.'.format(
            field.name, len(request.objects or ())
        ),
        path=(field.name,),
        level=logging.WARNING,
    )
    return _NOT_FOUND, state


def _find_root_argument_value(
    request: Request, field: FieldDescriptor, arg_name: str, state: CompilationState
) -> Tuple[Any, CompilationState]:
    """Find the value of one declared argument of the root field, by priority of its sources."""
    if request.pk_columns is not None:
        if arg_name == "pk_columns":
            return request.pk_columns, state
        if field.name.endswith(BY_PK_SUFFIX) and arg_name in request.pk_columns:
            return request.pk_columns[arg_name], state

    if arg_name == "_set" and request.set_values is not None:
        return request.set_values, state

    if arg_name in ("objects", "object") and (
        request.objects is not None or request.object is not None
    ):
        value, state = _find_insert_payload(request, field, arg_name, state)
        if value is not _NOT_FOUND:
            return value, state

    if arg_name == "where" and request.where is not None:
        return request.where, state

    if (
        arg_name == "distinct_on"
        and request.distinct_on is not None
        and request.operation in READ_OPERATIONS
    ):
        return request.distinct_on, state

    if arg_name in _PASSTHROUGH_ARGUMENTS and getattr(request, arg_name) is not None:
        return getattr(request, arg_name), state

    if arg_name in request.arguments:
        return request.arguments[arg_name], state

    return _NOT_FOUND, state


def bind_root_arguments(
    request: Request, field: FieldDescriptor, state: CompilationState
) -> Tuple[List[str], CompilationState]:
    """Bind a variable for every declared argument of the root field that the request fills.

    Arguments are visited in the order the schema declares them. Arguments the request does
    not provide a value for are omitted entirely.

    Args:
        request: the request being compiled
        field: the resolved root field
        state: the compilation state before binding

    Returns:
        tuple (rendered arguments such as "where: $v1", new state)
    """
    rendered_arguments = []
    for argument in field.args:
        value, state = _find_root_argument_value(request, field, argument.name, state)
        if value is _NOT_FOUND:
            continue
        variable_name, state = state.bind(argument, value)
        rendered_arguments.append("{}: ${}".format(argument.name, variable_name))
    return rendered_arguments, state


def bind_field_arguments(
    field: FieldDescriptor,
    argument_items: Iterable[Tuple[str, Any]],
    state: CompilationState,
    path: Tuple[str, ...],
) -> Tuple[List[str], CompilationState]:
    """Bind a variable for each caller-supplied argument of a nested field, in caller order.

    Args:
        field: the nested field the arguments are passed to
        argument_items: (argument name, value) pairs; None values are bound as explicit nulls
        state: the compilation state before binding
        path: the selection path of the field, for diagnostics

    Returns:
        tuple (rendered arguments such as "limit: $v3", new state)
    """
    rendered_arguments = []
    bound_names = set()
    for arg_name, value in argument_items:
        if arg_name in bound_names:
            continue
        argument = field.get_arg(arg_name)
        if argument is None:
            state = report_diagnostic(
                state,
                DiagnosticCode.UNKNOWN_ARGUMENT,
                'Argument "{}" is not declared on field "{}". Skipping.'.format(
                    arg_name, field.name
                ),
                path=path,
            )
            continue
        variable_name, state = state.bind(argument, value)
        rendered_arguments.append("{}: ${}".format(arg_name, variable_name))
        bound_names.add(arg_name)
    return rendered_arguments, state
