# Copyright 2026-present Kensho Technologies, LLC.
import unittest

from graphql import ExecutionResult, GraphQLError

from ..exceptions import QueryExecutionError
from ..results import check_execution_result, extract_operation_data


class ExtractOperationDataTests(unittest.TestCase):
    def test_unwrap_by_resolved_field_name(self) -> None:
        data = {"users": [{"id": "u1"}]}
        self.assertEqual([{"id": "u1"}], extract_operation_data("users", data, "users", False))

        data = {"users_by_pk": {"id": "u1"}}
        self.assertEqual({"id": "u1"}, extract_operation_data("users_by_pk", data, "users", False))

    def test_aggregate_passes_through(self) -> None:
        data = {"users_aggregate": {"aggregate": {"count": 3}}}
        self.assertEqual(data, extract_operation_data("users_aggregate", data, "users", True))

    def test_fallback_to_collection_name(self) -> None:
        self.assertEqual(
            {"id": "u1"},
            extract_operation_data("users_by_pk", {"users": [{"id": "u1"}]}, "users", False),
        )
        self.assertIsNone(extract_operation_data("users_by_pk", {"users": []}, "users", False))
        self.assertEqual(
            [{"id": "u1"}, {"id": "u2"}],
            extract_operation_data(
                "users_by_pk", {"users": [{"id": "u1"}, {"id": "u2"}]}, "users", False
            ),
        )
        self.assertEqual(
            [{"id": "u1"}],
            extract_operation_data("insert_users", {"users": [{"id": "u1"}]}, "users", False),
        )

    def test_missing_data(self) -> None:
        self.assertIsNone(extract_operation_data("users", None, "users", False))
        self.assertIsNone(extract_operation_data("users", {}, "users", False))
        self.assertIsNone(
            extract_operation_data("users_by_pk", {"users_by_pk": None}, "users", False)
        )


class CheckExecutionResultTests(unittest.TestCase):
    def test_data_is_returned(self) -> None:
        data = {"users": []}
        self.assertEqual(data, check_execution_result(ExecutionResult(data=data)))

    def test_errors_are_raised(self) -> None:
        error = GraphQLError("permission denied")
        with self.assertRaises(QueryExecutionError) as context:
            check_execution_result(ExecutionResult(data=None, errors=[error]))
        self.assertEqual([error], context.exception.errors)
        self.assertIn("permission denied", str(context.exception))
