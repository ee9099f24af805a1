import asyncio
import json

from graphql_query_generator import (
    DispatcherConfig,
    QueryGenerator,
    SchemaIndex,
    generate_query,
    subscribe,
)

# Load the result of running the standard introspection query against the GraphQL server.
with open("<path to introspection result>.json") as f:
    schema_index = SchemaIndex.from_introspection(json.load(f))

# Compile a query. Requests are plain mappings or graphql_query_generator.Request objects.
compiled = generate_query(
    schema_index,
    {
        "operation": "query",
        "table": "users",
        "where": {"email": {"_ilike": "%@example.com"}},
        "returning": ["id", "name", {"accounts": {"limit": 5, "returning": ["provider"]}}],
        "limit": 10,
    },
)
print(compiled.document_text)
print(compiled.variables)

# Reuse one generator for many requests against the same schema.
generator = QueryGenerator(schema_index)
update = generator(
    {
        "operation": "update",
        "table": "users",
        "pk_columns": {"id": "<user id>"},
        "_set": {"name": "New name"},
        "returning": ["id", "name"],
    }
)


# Subscribe through the host application's GraphQL client, which must provide
# supports_push, execute() and open() as described by graphql_query_generator.QueryTransport.
async def watch_users(transport) -> None:
    dispatcher = subscribe(
        schema_index,
        {"operation": "subscription", "table": "users", "returning": ["id", "name"]},
        transport,
        on_data=print,
        on_error=print,
        config=DispatcherConfig(min_delivery_interval_ms=500, poll_interval_ms=2000),
    )
    await asyncio.sleep(60)
    dispatcher.cancel()
