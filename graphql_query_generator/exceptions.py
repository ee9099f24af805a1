# Copyright 2026-present Kensho Technologies, LLC.
from typing import Any, Mapping, Optional, Sequence


class GraphQLQueryGeneratorError(Exception):
    """Generic error when generating or dispatching GraphQL documents."""


class SchemaError(GraphQLQueryGeneratorError):
    """Exception raised when the introspected schema is malformed or unusable.

    For example:
    - a type reference chain ends in a type without a name;
    - the introspection payload has no query root type;
    - the introspection payload is not shaped like a GraphQL introspection result.
    """


class InvalidRequestError(GraphQLQueryGeneratorError):
    """Exception raised when a request cannot be interpreted.

    For example:
    - the operation is not one of query, subscription, insert, update, delete;
    - the collection name is missing;
    - the returning specification has an unsupported shape.
    """


class UnresolvedFieldError(GraphQLQueryGeneratorError):
    """Exception raised when no candidate field name exists on the target root type."""

    def __init__(self, candidates: Sequence[str], root_type_name: Optional[str]) -> None:
        """Record every candidate tried and the root that was searched."""
        self.candidates = tuple(candidates)
        self.root_type_name = root_type_name
        if root_type_name is None:
            location = "a root type the schema does not declare"
        else:
            location = 'root type "{}"'.format(root_type_name)
        super().__init__(
            "None of the candidate fields {} exist on {}.".format(list(self.candidates), location)
        )


class MalformedDocumentError(GraphQLQueryGeneratorError):
    """Exception raised when an assembled document fails to parse.

    Carries the offending document text and its variables verbatim, for diagnosis.
    """

    def __init__(self, document_text: str, variables: Mapping[str, Any], cause: Exception) -> None:
        """Record the document text and variables that produced the parse failure."""
        self.document_text = document_text
        self.variables = dict(variables)
        super().__init__(
            "Failed to parse generated GraphQL document: {}\n"
            "Document:\n{}\nVariables: {}".format(cause, document_text, self.variables)
        )


class InvalidConfigurationError(GraphQLQueryGeneratorError):
    """Exception raised when dispatcher configuration values are out of range."""


class QueryExecutionError(GraphQLQueryGeneratorError):
    """Exception raised when an execution result reports GraphQL errors."""

    def __init__(self, errors: Sequence[Any]) -> None:
        """Keep the original GraphQL errors available to the consumer."""
        self.errors = list(errors)
        super().__init__(
            "GraphQL execution returned errors: {}".format(
                [getattr(error, "message", error) for error in self.errors]
            )
        )
