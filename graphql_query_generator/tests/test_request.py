# Copyright 2026-present Kensho Technologies, LLC.
import unittest

from ..exceptions import InvalidRequestError
from ..request import (
    ColumnFunction,
    ColumnFunctionField,
    FieldSubselection,
    FieldToggle,
    NestedField,
    RawField,
    Request,
    ReturningList,
    ReturningTree,
    as_request,
    get_base_name,
    parse_returning,
)


class ReturningParsingTests(unittest.TestCase):
    def test_no_returning(self) -> None:
        self.assertIsNone(parse_returning(None))

    def test_whitespace_separated_string(self) -> None:
        self.assertEqual(
            ReturningList((RawField("id"), RawField("name"), RawField("email"))),
            parse_returning("  id name\n email "),
        )

    def test_list(self) -> None:
        returning = parse_returning(["id", "name: full_name", {"accounts": ["id", "provider"]}])
        self.assertEqual(
            ReturningList(
                (
                    RawField("id"),
                    RawField("name: full_name"),
                    FieldSubselection("accounts", (RawField("id"), RawField("provider"))),
                )
            ),
            returning,
        )

    def test_mapping(self) -> None:
        returning = parse_returning(
            {
                "name": True,
                "email": False,
                "created_at": None,
                "accounts": "id provider",
                "accounts_aggregate": {"aggregate": {"count": ColumnFunction(["id"])}},
            }
        )
        self.assertEqual(
            ReturningTree(
                (
                    FieldToggle("name", True),
                    FieldToggle("email", False),
                    FieldToggle("created_at", False),
                    FieldSubselection("accounts", (RawField("id"), RawField("provider"))),
                    NestedField(
                        "accounts_aggregate",
                        extras=(("aggregate", {"count": ColumnFunction(["id"])}),),
                    ),
                )
            ),
            returning,
        )

    def test_nested_field(self) -> None:
        returning = parse_returning(
            {
                "accounts": {
                    "alias": "github_accounts",
                    "where": {"provider": {"_eq": "github"}},
                    "limit": 5,
                    "returning": ["id", {"user": "id"}],
                    "provider": True,
                }
            }
        )
        self.assertEqual(
            ReturningTree(
                (
                    NestedField(
                        "accounts",
                        alias="github_accounts",
                        arguments=(("where", {"provider": {"_eq": "github"}}), ("limit", 5)),
                        returning=(
                            RawField("id"),
                            FieldSubselection("user", (RawField("id"),)),
                        ),
                        extras=(("provider", True),),
                    ),
                )
            ),
            returning,
        )

    def test_column_function(self) -> None:
        returning = parse_returning({"count": ColumnFunction(["id", "name"], distinct=True)})
        self.assertEqual(
            ReturningTree(
                (ColumnFunctionField("count", ColumnFunction(["id", "name"], distinct=True)),)
            ),
            returning,
        )

    def test_invalid_shapes(self) -> None:
        invalid_returning_values = [
            42,
            ["id", 42],
            {"accounts": 42},
            {"accounts": {"alias": 42}},
            {"accounts": {"returning": 42}},
            {"": True},
        ]
        for returning in invalid_returning_values:
            with self.assertRaises(InvalidRequestError):
                parse_returning(returning)

    def test_get_base_name(self) -> None:
        self.assertEqual("aggregate", get_base_name("aggregate {\n  count\n}"))
        self.assertEqual("accounts", get_base_name("  accounts(limit: $v1) { id }"))
        self.assertEqual("n", get_base_name("n: name"))
        self.assertIsNone(get_base_name("...UserFields"))


class RequestTests(unittest.TestCase):
    def test_returning_is_parsed_once(self) -> None:
        request = Request(operation="query", collection="users", returning="id name")
        self.assertEqual(
            ReturningList((RawField("id"), RawField("name"))), request.returning_spec
        )

    def test_from_mapping(self) -> None:
        request = Request.from_mapping(
            {
                "operation": "update",
                "table": "users",
                "pk_columns": {"id": "u1"},
                "_set": {"name": "New"},
                "varCounter": 4,
                "fragments": ["fragment F on users { id }"],
            }
        )
        self.assertEqual("update", request.operation)
        self.assertEqual("users", request.collection)
        self.assertEqual({"name": "New"}, request.set_values)
        self.assertEqual(4, request.incoming_var_counter)
        self.assertEqual(("fragment F on users { id }",), request.fragments)

    def test_from_mapping_errors(self) -> None:
        invalid_mappings = [
            {"operation": "query"},
            {"collection": "users"},
            {"operation": "query", "collection": "users", "bogus": 1},
            {"operation": "query", "table": "users", "collection": "users"},
        ]
        for mapping in invalid_mappings:
            with self.assertRaises(InvalidRequestError):
                Request.from_mapping(mapping)

    def test_validation(self) -> None:
        invalid_kwargs = [
            {"operation": "select", "collection": "users"},
            {"operation": "query", "collection": ""},
            {"operation": "query", "collection": "   "},
            {"operation": "query", "collection": "users", "incoming_var_counter": -1},
            {"operation": "query", "collection": "users", "incoming_var_counter": True},
            {"operation": "query", "collection": "users", "aggregate": ["count"]},
        ]
        for kwargs in invalid_kwargs:
            with self.assertRaises(InvalidRequestError):
                Request(**kwargs)

    def test_flags(self) -> None:
        self.assertTrue(Request("query", "users", aggregate={}).is_aggregate)
        self.assertFalse(Request("query", "users").is_aggregate)
        self.assertTrue(Request("insert", "users", object={"name": "a"}).has_single_object)
        self.assertFalse(
            Request(
                "insert", "users", object={"name": "a"}, objects=[{"name": "b"}]
            ).has_single_object
        )

    def test_with_operation(self) -> None:
        request = Request("subscription", "users", returning=["id"], limit=3)
        query_request = request.with_operation("query")
        self.assertEqual("query", query_request.operation)
        self.assertEqual(3, query_request.limit)
        self.assertEqual(request.returning_spec, query_request.returning_spec)
        self.assertEqual("subscription", request.operation)

    def test_as_request(self) -> None:
        request = Request("query", "users")
        self.assertIs(request, as_request(request))
        self.assertEqual(request, as_request({"operation": "query", "collection": "users"}))
        with self.assertRaises(InvalidRequestError):
            as_request("users")
