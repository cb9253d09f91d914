"""Structured trace events for paginated fetches.

Events are logged through the ``dynapage`` logger and, when a sink is
injected, handed to it as ``TraceEvent`` objects. Sinks run synchronously on
the event loop and should not block.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ._logging import logger, redact_token
from .tokens import is_exhausted


@dataclass(frozen=True)
class TraceEvent:
    name: str
    operation: str | None
    fields: dict[str, Any] = field(default_factory=dict)


TraceSink = Callable[[TraceEvent], None]


class Tracer:
    """Emits trace events at the request, token, page and error boundaries."""

    def __init__(self, sink: TraceSink | None = None) -> None:
        self._sink = sink

    def _emit(
        self, name: str, operation: str | None, level: int, message: str, **fields: Any
    ) -> None:
        logger.log(level, message, extra={"event": name, "operation": operation, **fields})
        if self._sink is not None:
            self._sink(TraceEvent(name=name, operation=operation, fields=fields))

    def request_started(self, *, operation: str, page_index: int | None, variables: Any) -> None:
        """Log the start of one GraphQL request.

        Args:
            operation: GraphQL operation name
            page_index: Zero-based page index, None outside a pagination walk
            variables: Request variables (only their hash is recorded)
        """
        self._emit(
            "request_started",
            operation,
            logging.DEBUG,
            "Executing GraphQL request",
            page_index=page_index,
            variables_hash=redact_token(variables),
        )

    def token_transformed(self, *, operation: str, page_index: int, token: Any) -> None:
        exhausted = is_exhausted(token)
        self._emit(
            "token_transformed",
            operation,
            logging.DEBUG,
            "Continuation token resolved",
            page_index=page_index,
            exhausted=exhausted,
            token_hash=None if exhausted else redact_token(token),
        )

    def page_appended(self, *, operation: str, page_index: int, item_count: int) -> None:
        self._emit(
            "page_appended",
            operation,
            logging.INFO,
            "Page appended",
            page_index=page_index,
            item_count=item_count,
        )

    def walk_exhausted(self, *, operation: str, page_count: int, item_count: int) -> None:
        self._emit(
            "walk_exhausted",
            operation,
            logging.INFO,
            "Pagination walk exhausted",
            page_count=page_count,
            item_count=item_count,
        )

    def fetch_failed(self, *, operation: str, page_index: int | None, error: Exception) -> None:
        """Log a failed request.

        Args:
            operation: GraphQL operation name
            page_index: Zero-based index of the page that failed
            error: The normalized error
        """
        self._emit(
            "fetch_failed",
            operation,
            logging.ERROR,
            "GraphQL request failed",
            page_index=page_index,
            error_type=type(error).__name__,
            error_message=str(error),
        )
