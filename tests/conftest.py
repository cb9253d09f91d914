"""
Shared pytest fixtures and configuration for Dynapage tests.

This module provides a scripted in-memory transport, query descriptors and
page builders used across unit and integration tests.
"""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from dynapage import QueryDescriptor, QueryExecutor

LIST_ITEMS_DOCUMENT = """
query GetItems($input: GetItemsInput) {
  getItems(input: $input) {
    Items
    NextToken
  }
}
"""


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests against a local server")


class ScriptedTransport:
    """
    Transport returning queued responses in order and recording every request.

    A queued exception is raised instead of returned. With ``gate`` set, each
    call waits on it before answering, which lets tests hold a request in flight.
    """

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses: list[Any] = list(responses or [])
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.gate: asyncio.Event | None = None

    def queue(self, *responses: Any) -> "ScriptedTransport":
        self.responses.extend(responses)
        return self

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def variables(self) -> list[dict[str, Any]]:
        return [v for _, v in self.calls]

    async def execute(self, document: str, variables: dict[str, Any]) -> Any:
        self.calls.append((document, variables))
        if self.gate is not None:
            await self.gate.wait()
        if not self.responses:
            raise AssertionError("ScriptedTransport ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def items_page(items: list[Any] | None, token: Any = None, operation: str = "getItems") -> dict:
    """Builds a GraphQL response body for one page."""
    return {"data": {operation: {"Items": items, "NextToken": token}}}


def error_body(*messages: str, data: Any = None) -> dict:
    return {
        "data": data,
        "errors": [{"message": m, "errorType": "DynamoDB:ValidationException"} for m in messages],
    }


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def executor(transport: ScriptedTransport) -> QueryExecutor:
    return QueryExecutor(transport)


@pytest.fixture
def get_items_query() -> QueryDescriptor:
    return QueryDescriptor(document=LIST_ITEMS_DOCUMENT, operation_name="getItems")


@pytest.fixture
def page_builder() -> Callable[..., dict]:
    return items_page


@pytest.fixture
def error_builder() -> Callable[..., dict]:
    return error_body


@pytest.fixture
def trace_events() -> list:
    """A list collecting TraceEvents; pass ``trace_events.append`` as sink."""
    return []
