from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from ._logging import logger
from .exceptions import (
    DynapageError,
    EmptyResponseError,
    GraphQLError,
    MissingOperationError,
    NullResultError,
    TransportError,
    handle_transport_errors,
)
from .models import GraphQLResponse, QueryDescriptor
from .telemetry import Tracer


class Transport(Protocol):
    """Anything able to send one GraphQL document and return the decoded JSON body."""

    async def execute(self, document: str, variables: dict[str, Any]) -> Any: ...


TransportCallable = Callable[[str, dict[str, Any]], Awaitable[Any]]


class QueryExecutor:
    """
    Runs exactly one GraphQL request and unwraps the named operation.

    Every failure is raised as a DynapageError subclass, so callers never
    branch on transport-specific exception types. Retries are left to the
    caller.
    """

    def __init__(
        self, transport: Transport | TransportCallable, tracer: Tracer | None = None
    ) -> None:
        # Accept both transport objects and bare coroutine functions
        execute = getattr(transport, "execute", None)
        self._execute: TransportCallable = (
            execute if callable(execute) else transport  # type: ignore[assignment]
        )
        self.tracer = tracer or Tracer()

    async def run(
        self,
        query: QueryDescriptor,
        variables: dict[str, Any] | None = None,
        page_index: int | None = None,
    ) -> Any:
        """
        Sends the request and returns ``data[operation_name]``.

        Raises:
            GraphQLError: The response carries a non-empty ``errors`` list.
            EmptyResponseError: No errors but no ``data`` either.
            MissingOperationError: The operation key is absent from ``data``.
            NullResultError: The operation resolved to null.
            TransportError: The request failed or the envelope is malformed.
        """
        operation = query.operation_name
        variables = variables or {}

        try:
            self.tracer.request_started(
                operation=operation, page_index=page_index, variables=variables
            )

            with handle_transport_errors(operation=operation):
                raw = await self._execute(query.document, variables)

            return self._unwrap(operation, raw)
        except DynapageError as e:
            self.tracer.fetch_failed(operation=operation, page_index=page_index, error=e)
            raise

    def _unwrap(self, operation: str, raw: Any) -> Any:
        try:
            response = GraphQLResponse.model_validate(raw)
        except PydanticValidationError as e:
            raise TransportError(
                message=f"Malformed GraphQL response for operation: {operation}",
                operation=operation,
                original_error=e,
            ) from e

        # Any error entry fails the page, even when data came back alongside it
        if response.errors:
            raise GraphQLError(
                messages=response.error_messages,
                operation=operation,
                error_types=[e.error_type for e in response.errors],
            )

        if response.data is None:
            raise EmptyResponseError(operation)

        if operation not in response.data:
            raise MissingOperationError(operation)

        result = response.data[operation]
        if result is None:
            raise NullResultError(operation)

        logger.debug("GraphQL request succeeded", extra={"operation": operation})
        return result
