"""
Unit tests for the GraphQLClient facade.
"""

import pytest

from dynapage import GraphQLClient, QueryDescriptor
from dynapage.controller import WalkState
from dynapage.exceptions import GraphQLError, NullResultError
from dynapage.models import DynamoQueryInput

GET_USER = QueryDescriptor(
    document="query GetUser($input: GetUserInput) { getUser(input: $input) { id name } }",
    operation_name="getUser",
)

AUDIT_DATA = QueryDescriptor(
    document="query Audit($input: QueryInput) { getFailedDrivesAuditData(input: $input) }",
    operation_name="getFailedDrivesAuditData",
)


@pytest.mark.asyncio
class TestQuery:
    async def test_returns_operation_result(self, transport):
        transport.queue({"data": {"getUser": {"id": "42", "name": "Ada"}}})
        client = GraphQLClient(transport)

        user = await client.query("user", GET_USER, {"id": "42"})

        assert user == {"id": "42", "name": "Ada"}
        assert transport.variables == [{"input": {"id": "42"}}]

    async def test_same_key_and_input_is_memoized(self, transport):
        transport.queue({"data": {"getUser": {"id": "42"}}})
        client = GraphQLClient(transport)

        await client.query("user", GET_USER, {"id": "42"})
        await client.query("user", GET_USER, {"id": "42"})

        assert transport.call_count == 1

    async def test_different_input_is_fetched(self, transport):
        transport.queue({"data": {"getUser": {"id": "1"}}}, {"data": {"getUser": {"id": "2"}}})
        client = GraphQLClient(transport)

        await client.query("user", GET_USER, {"id": "1"})
        await client.query("user", GET_USER, {"id": "2"})

        assert transport.call_count == 2

    async def test_no_input_sends_no_variables(self, transport):
        transport.queue({"data": {"getUser": {"id": "me"}}})
        client = GraphQLClient(transport)

        await client.query("me", GET_USER)

        assert transport.variables == [{}]

    async def test_errors_are_raised(self, transport):
        transport.queue({"data": {"getUser": None}})
        client = GraphQLClient(transport)

        with pytest.raises(NullResultError):
            await client.query("user", GET_USER, {"id": "404"})


@pytest.mark.asyncio
class TestDynamoQuery:
    async def test_scan_returns_list(self, transport):
        transport.queue({"data": {"getFailedDrivesAuditData": [{"id": 1}, {"id": 2}]}})
        client = GraphQLClient(transport)

        rows = await client.dynamo_query(
            "failedDrives", AUDIT_DATA, DynamoQueryInput(Operation="scan")
        )

        assert rows == [{"id": 1}, {"id": 2}]
        assert transport.variables == [{"input": {"Operation": "scan"}}]

    async def test_mapping_input_is_validated(self, transport):
        transport.queue({"data": {"getFailedDrivesAuditData": []}})
        client = GraphQLClient(transport)

        await client.dynamo_query(
            "failedDrives",
            AUDIT_DATA,
            {"Operation": "query", "KeyConditionExpression": "pk = :pk", "Limit": 5},
        )

        assert transport.variables[0]["input"] == {
            "Operation": "query",
            "KeyConditionExpression": "pk = :pk",
            "Limit": 5,
        }

    async def test_non_list_result_fails(self, transport):
        transport.queue({"data": {"getFailedDrivesAuditData": {"not": "a list"}}})
        client = GraphQLClient(transport)

        with pytest.raises(GraphQLError, match="Expected a list"):
            await client.dynamo_query("failedDrives", AUDIT_DATA)


@pytest.mark.asyncio
class TestPaginate:
    async def test_walks_all_pages(self, transport, get_items_query, page_builder):
        transport.queue(page_builder([1, 2], "t1"), page_builder([3], None))
        client = GraphQLClient(transport)

        walk = client.paginate(("infiniteQueryExample",), get_items_query, {"PrimaryKey": "pk"})
        items = await walk.collect()

        assert items == [1, 2, 3]
        assert transport.variables == [
            {"input": {"PrimaryKey": "pk"}},
            {"input": {"PrimaryKey": "pk", "NextToken": "t1"}},
        ]

    async def test_same_identity_returns_same_walk(self, transport, get_items_query, page_builder):
        transport.queue(page_builder([1], None))
        client = GraphQLClient(transport)

        first = client.paginate(("items",), get_items_query)
        second = client.paginate(("items",), get_items_query)
        await first.wait()

        assert first is second
        assert transport.call_count == 1

    async def test_option_overrides(self, transport, get_items_query, page_builder):
        transport.queue(page_builder([1], "t1"), page_builder([2], "t2"))
        client = GraphQLClient(transport)

        walk = client.paginate(("items",), get_items_query, auto_continue=False)
        await walk.wait()

        assert walk.items == [1]
        assert walk.state is WalkState.HAS_MORE
        assert transport.call_count == 1

    async def test_trace_sink_sees_walk(
        self, transport, get_items_query, page_builder, trace_events
    ):
        transport.queue(page_builder([1], "t1"), page_builder([2], None))
        client = GraphQLClient(transport, trace_sink=trace_events.append)

        await client.paginate(("items",), get_items_query).collect()

        names = [e.name for e in trace_events]
        assert names == [
            "request_started",
            "token_transformed",
            "page_appended",
            "request_started",
            "token_transformed",
            "page_appended",
            "walk_exhausted",
        ]
        assert trace_events[-1].fields == {"page_count": 2, "item_count": 2}
