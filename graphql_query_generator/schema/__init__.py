# Copyright 2026-present Kensho Technologies, LLC.
from .schema_index import (  # noqa
    ArgumentDescriptor,
    FieldDescriptor,
    SchemaIndex,
    TypeDescriptor,
    clear_schema_index_cache,
    compute_introspection_fingerprint,
    get_schema_index,
)
from .type_refs import (  # noqa
    TypeKind,
    TypeRef,
    UnwrappedTypeRef,
    render_type_ref,
    render_wire_type,
    resolve_type_ref,
    type_ref_from_wire_string,
)
