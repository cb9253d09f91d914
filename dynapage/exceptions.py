import asyncio
from collections.abc import Generator, Sequence
from contextlib import contextmanager

import aiohttp
from botocore.exceptions import BotoCoreError, ClientError


class DynapageError(Exception):
    """
    Base exception for all Dynapage errors.

    Every failure surfaced by the library has the same shape: a readable
    message, the underlying messages reported by the backend (if any) and the
    GraphQL operation that was being executed.
    """

    def __init__(
        self,
        message: str,
        messages: Sequence[str] | None = None,
        operation: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.messages = list(messages) if messages else []
        self.operation = operation
        self.original_error = original_error


class GraphQLError(DynapageError):
    """Raised when the response carries one or more application-level errors."""

    def __init__(
        self,
        messages: Sequence[str],
        operation: str | None = None,
        error_types: Sequence[str | None] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        joined = ", ".join(messages) or "Unknown GraphQL error"
        super().__init__(f"GraphQL Query Error: {joined}", messages, operation, original_error)
        self.error_types = [t for t in (error_types or []) if t]


class EmptyResponseError(DynapageError):
    """Raised when the response has neither errors nor data."""

    def __init__(self, operation: str, original_error: Exception | None = None) -> None:
        super().__init__(
            f"No data returned for operation: {operation}",
            operation=operation,
            original_error=original_error,
        )


class MissingOperationError(DynapageError):
    """Raised when the operation key is absent from the response data."""

    def __init__(self, operation: str, original_error: Exception | None = None) -> None:
        super().__init__(
            f"Operation '{operation}' missing from response data",
            operation=operation,
            original_error=original_error,
        )


class NullResultError(DynapageError):
    """Raised when the operation resolved to an explicit null."""

    def __init__(self, operation: str, original_error: Exception | None = None) -> None:
        super().__init__(
            f"Null data returned for operation: {operation}",
            operation=operation,
            original_error=original_error,
        )


class TransportError(DynapageError):
    """Raised when the request could not be completed (network, HTTP, credentials)."""

    def __init__(
        self,
        message: str = "Transport failure",
        operation: str | None = None,
        status: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, [message], operation, original_error)
        self.status = status


@contextmanager
def handle_transport_errors(operation: str | None = None) -> Generator[None, None, None]:
    """
    Context manager that catches exceptions raised by a transport call
    and raises the appropriate DynapageError subclass.

    Errors that are already DynapageError instances pass through unchanged.

    Args:
        operation: GraphQL operation name for better error messages

    Usage:
        with handle_transport_errors(operation="listUsers"):
            response = await transport.execute(document, variables)
    """
    try:
        yield
    except DynapageError:
        raise
    except aiohttp.ClientResponseError as e:
        raise TransportError(
            message=f"HTTP {e.status} from GraphQL endpoint: {e.message}",
            operation=operation,
            status=e.status,
            original_error=e,
        ) from e
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransportError(
            message=f"Network error ({type(e).__name__}): {e!s}",
            operation=operation,
            original_error=e,
        ) from e
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        error_message = e.response.get("Error", {}).get("Message", str(e))
        raise TransportError(
            message=f"AWS error ({error_code}): {error_message}",
            operation=operation,
            original_error=e,
        ) from e
    except BotoCoreError as e:
        raise TransportError(
            message=f"AWS credentials or signing failed: {e!s}",
            operation=operation,
            original_error=e,
        ) from e
    except Exception as e:
        # Unknown error: wrap in generic TransportError
        raise TransportError(
            message=f"Unknown error occurred ({type(e).__name__}): {e!s}",
            operation=operation,
            original_error=e,
        ) from e
