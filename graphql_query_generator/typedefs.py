# Copyright 2026-present Kensho Technologies, LLC.
from typing import Dict, Literal


# The kinds of request a caller may submit.
RequestOperation = Literal["query", "subscription", "insert", "update", "delete"]

# The GraphQL operation types that requests compile to.
OperationType = Literal["query", "mutation", "subscription"]

REQUEST_OPERATIONS = ("query", "subscription", "insert", "update", "delete")
MUTATION_OPERATIONS = frozenset({"insert", "update", "delete"})
READ_OPERATIONS = frozenset({"query", "subscription"})

OPERATION_TYPE_FOR_REQUEST_OPERATION: Dict[str, OperationType] = {
    "query": "query",
    "subscription": "subscription",
    "insert": "mutation",
    "update": "mutation",
    "delete": "mutation",
}

# Field name suffixes and prefixes of the naming conventions for generated root fields.
AGGREGATE_SUFFIX = "_aggregate"
BY_PK_SUFFIX = "_by_pk"
ONE_SUFFIX = "_one"
MUTATION_PREFIXES: Dict[str, str] = {
    "insert": "insert_",
    "update": "update_",
    "delete": "delete_",
}
