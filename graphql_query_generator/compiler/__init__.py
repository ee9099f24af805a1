# Copyright 2026-present Kensho Technologies, LLC.
from .common import CompiledQuery, Diagnostic, DiagnosticCode  # noqa
from .compiler_frontend import QueryGenerator, generate_query  # noqa
