# Copyright 2026-present Kensho Technologies, LLC.
"""The boundary between the dispatcher and the host application's GraphQL client."""
from typing import Any, AsyncIterator, Mapping, Protocol

from graphql import DocumentNode, ExecutionResult


class QueryTransport(Protocol):
    """A GraphQL client owned by the host application.

    The dispatcher never manages connections: it only runs documents through this interface.
    Errors may be reported either by raising from execute() or from the stream returned by
    open(), or as ExecutionResult.errors.
    """

    # Whether the transport can deliver subscription results as they happen.
    supports_push: bool

    async def execute(
        self, document: DocumentNode, variables: Mapping[str, Any]
    ) -> ExecutionResult:
        """Run a query or mutation document once and return its result."""

    def open(
        self, document: DocumentNode, variables: Mapping[str, Any]
    ) -> AsyncIterator[ExecutionResult]:
        """Start a subscription document and return the stream of its results.

        Closing the stream (e.g. via aclose()) must unsubscribe.
        """
