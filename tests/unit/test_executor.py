"""
Unit tests for QueryExecutor response validation and error mapping.
"""

from unittest.mock import AsyncMock

import aiohttp
import pytest

from dynapage.exceptions import (
    EmptyResponseError,
    GraphQLError,
    MissingOperationError,
    NullResultError,
    TransportError,
)
from dynapage.executor import QueryExecutor
from dynapage.telemetry import Tracer


@pytest.mark.asyncio
class TestQueryExecutorRun:
    async def test_returns_unwrapped_operation(self, transport, executor, get_items_query):
        transport.queue({"data": {"getItems": {"Items": [1], "NextToken": None}}})

        result = await executor.run(get_items_query, {"input": {"PK": "a"}})

        assert result == {"Items": [1], "NextToken": None}
        assert transport.calls == [(get_items_query.document, {"input": {"PK": "a"}})]

    async def test_sends_exactly_one_request(self, transport, executor, get_items_query):
        transport.queue({"data": None})

        with pytest.raises(EmptyResponseError):
            await executor.run(get_items_query)
        assert transport.call_count == 1

    async def test_error_list_fails(self, transport, executor, get_items_query, error_builder):
        transport.queue(error_builder("Not Authorized", "Throttled"))

        with pytest.raises(GraphQLError) as exc_info:
            await executor.run(get_items_query)

        error = exc_info.value
        assert error.messages == ["Not Authorized", "Throttled"]
        assert "Not Authorized, Throttled" in error.message
        assert error.operation == "getItems"

    async def test_error_list_alongside_data_still_fails(
        self, transport, executor, get_items_query, error_builder
    ):
        transport.queue(error_builder("partial", data={"getItems": {"Items": [1]}}))

        with pytest.raises(GraphQLError):
            await executor.run(get_items_query)

    async def test_empty_error_list_is_ignored(self, transport, executor, get_items_query):
        transport.queue({"data": {"getItems": []}, "errors": []})
        assert await executor.run(get_items_query) == []

    async def test_missing_operation(self, transport, executor, get_items_query):
        transport.queue({"data": {"somethingElse": {}}})

        with pytest.raises(MissingOperationError) as exc_info:
            await executor.run(get_items_query)
        assert exc_info.value.operation == "getItems"

    async def test_null_operation(self, transport, executor, get_items_query):
        transport.queue({"data": {"getItems": None}})

        with pytest.raises(NullResultError):
            await executor.run(get_items_query)

    async def test_malformed_envelope(self, transport, executor, get_items_query):
        transport.queue(["not", "an", "object"])

        with pytest.raises(TransportError, match="Malformed"):
            await executor.run(get_items_query)

    async def test_transport_exception_is_normalized(self, transport, executor, get_items_query):
        transport.queue(aiohttp.ServerDisconnectedError())

        with pytest.raises(TransportError) as exc_info:
            await executor.run(get_items_query)
        assert exc_info.value.operation == "getItems"
        assert isinstance(exc_info.value.original_error, aiohttp.ServerDisconnectedError)

    async def test_accepts_bare_coroutine_function(self, get_items_query):
        async def call(document, variables):
            return {"data": {"getItems": {"ok": True}}}

        executor = QueryExecutor(call)
        assert await executor.run(get_items_query) == {"ok": True}

    async def test_accepts_transport_object(self, get_items_query):
        transport = AsyncMock()
        transport.execute.return_value = {"data": {"getItems": "x"}}

        executor = QueryExecutor(transport)
        assert await executor.run(get_items_query, {"a": 1}) == "x"
        transport.execute.assert_awaited_once_with(get_items_query.document, {"a": 1})

    async def test_failures_reach_trace_sink(
        self, transport, get_items_query, error_builder, trace_events
    ):
        executor = QueryExecutor(transport, tracer=Tracer(trace_events.append))
        transport.queue(error_builder("denied"))

        with pytest.raises(GraphQLError):
            await executor.run(get_items_query, page_index=3)

        names = [e.name for e in trace_events]
        assert names == ["request_started", "fetch_failed"]
        failed = trace_events[-1]
        assert failed.operation == "getItems"
        assert failed.fields["page_index"] == 3
        assert failed.fields["error_type"] == "GraphQLError"
