"""
Continuation control for paginated GraphQL queries.

A ``PaginatedQuery`` walks one paginated query from its first page until the
backend stops returning a continuation token. Each completed fetch decides,
synchronously, whether to schedule the next one; at most one request per walk
is ever in flight, and pages are appended strictly in fetch order.
"""

import asyncio
import time
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from ._logging import logger
from .config import PaginationOptions
from .exceptions import DynapageError
from .pagination import (
    PageSequence,
    append_page,
    build_variables,
    extract_items,
    flatten_pages,
    next_token_of,
)
from .tokens import is_exhausted

if TYPE_CHECKING:
    from .cache import QueryCache
    from .executor import QueryExecutor
    from .models import QueryDescriptor
    from .telemetry import Tracer


class WalkState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    HAS_MORE = "has_more"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class PaginatedQuery:
    """
    Handle on one pagination walk.

    Exposes the fetched ``pages``, the flattened ``items`` and the walk state.
    With ``auto_continue`` enabled the next page is requested as soon as the
    previous one lands with a token; otherwise call ``fetch_next()``.

    Usage:
        walk = PaginatedQuery(("users",), executor, LIST_USERS, {"input": {}}, options)
        walk.fetch_next()
        users = await walk.collect()
    """

    def __init__(
        self,
        identity: Sequence[Any],
        executor: "QueryExecutor",
        query: "QueryDescriptor",
        variables: Mapping[str, Any] | None,
        options: PaginationOptions,
        tracer: "Tracer | None" = None,
    ) -> None:
        self.identity = tuple(identity)
        self.query = query
        self.options = options
        self._executor = executor
        self._tracer = tracer or executor.tracer
        self._initial_variables = dict(variables or {})

        # Internal state of the walk
        self._pages: PageSequence = ()
        self._items: list[Any] = []
        self._items_source: PageSequence = ()
        self._next_token: Any = None  # None until the first page lands
        self._state = WalkState.IDLE
        self._error: DynapageError | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._discarded = False
        self.updated_at: float | None = None

    def __repr__(self) -> str:
        return (
            f"PaginatedQuery(operation={self.query.operation_name!r}, "
            f"state={self._state.value}, pages={len(self._pages)})"
        )

    # --- OBSERVABLE STATE ---

    @property
    def state(self) -> WalkState:
        return self._state

    @property
    def pages(self) -> PageSequence:
        return self._pages

    @property
    def items(self) -> list[Any]:
        """Items of every page in fetch order. Recomputed whenever a page is appended."""
        if self._items_source is not self._pages:
            self._items = flatten_pages(self._pages, self.options.item_path)
            self._items_source = self._pages
        return list(self._items)

    @property
    def has_more(self) -> bool:
        """False once the backend stopped returning a continuation token."""
        return self._state is not WalkState.EXHAUSTED

    @property
    def is_fetching(self) -> bool:
        return self._inflight is not None

    @property
    def error(self) -> DynapageError | None:
        return self._error

    @property
    def is_discarded(self) -> bool:
        return self._discarded

    @property
    def operation(self) -> str:
        return self.query.operation_name

    # --- TRANSITIONS ---

    def fetch_next(self) -> "asyncio.Task[None] | None":
        """
        Requests the next page.

        Returns the task running the request. If a request is already in
        flight, that task is returned and nothing new is sent. Returns None
        when the walk is exhausted or discarded. On a failed walk this retries
        the page that failed. Must be called from a running event loop.
        """
        if self._discarded:
            logger.debug("Ignoring fetch on discarded walk", extra={"operation": self.operation})
            return None
        if self._inflight is not None:
            return self._inflight
        if self._state is WalkState.EXHAUSTED:
            return None

        loop = asyncio.get_running_loop()
        resume_state = self._state
        self._error = None
        self._state = WalkState.FETCHING
        self._inflight = loop.create_task(
            self._fetch(self._next_token, len(self._pages), resume_state),
            name=f"dynapage:{self.operation}:{len(self._pages)}",
        )
        return self._inflight

    async def _fetch(self, token: Any, page_index: int, resume_state: WalkState) -> None:
        try:
            try:
                variables = build_variables(self._initial_variables, token, self.options)
            except ValueError as e:
                raise DynapageError(str(e), operation=self.operation, original_error=e) from e
            payload = await self._executor.run(self.query, variables, page_index=page_index)
        except DynapageError as e:
            if self._discarded:
                self._state = resume_state
            else:
                self._error = e
                self._state = WalkState.FAILED
            return
        except BaseException:
            # Cancelled or broken collaborator: leave the walk where it was
            self._state = resume_state
            raise
        finally:
            self._inflight = None

        if self._discarded:
            self._state = resume_state
            logger.debug(
                "Dropping page fetched for a discarded walk",
                extra={"operation": self.operation, "page_index": page_index},
            )
            return

        page = {self.operation: payload}
        next_token = next_token_of(page, self.options)
        exhausted = is_exhausted(next_token)

        # State is final before any trace event runs
        self._pages = append_page(self._pages, page)
        self._next_token = next_token
        self.updated_at = time.monotonic()
        self._state = WalkState.EXHAUSTED if exhausted else WalkState.HAS_MORE

        self._tracer.token_transformed(
            operation=self.operation, page_index=page_index, token=next_token
        )
        self._tracer.page_appended(
            operation=self.operation,
            page_index=page_index,
            item_count=len(extract_items(page, self.options.item_path)),
        )

        if exhausted:
            self._tracer.walk_exhausted(
                operation=self.operation,
                page_count=len(self._pages),
                item_count=len(self.items),
            )
            return

        if self.options.auto_continue and not self._page_limit_reached():
            self.fetch_next()

    def _page_limit_reached(self) -> bool:
        max_pages = self.options.max_pages
        return max_pages is not None and len(self._pages) >= max_pages

    def discard(self) -> None:
        """
        Stops the walk. A request already in flight completes, but its page
        is dropped.
        """
        if self._discarded:
            return
        self._discarded = True
        logger.debug(
            "Walk discarded",
            extra={
                "operation": self.operation,
                "page_count": len(self._pages),
                "in_flight": self.is_fetching,
            },
        )

    # --- AWAITING ---

    async def wait(self) -> "PaginatedQuery":
        """Waits until no request is in flight, following auto-continuation."""
        while self._inflight is not None:
            # Shielded so that cancelling the waiter leaves the fetch running
            await asyncio.shield(self._inflight)
        return self

    async def collect(self) -> list[Any]:
        """
        Walks until the backend runs out of pages and returns every item.

        Drives the walk with ``fetch_next()`` when auto-continuation is off.
        Stops early at ``max_pages`` or when the walk is discarded.

        Raises:
            DynapageError: The walk failed. Pages fetched so far stay on the handle.
        """
        while True:
            await self.wait()
            if self._error is not None:
                raise self._error
            if self._state is WalkState.EXHAUSTED or self._page_limit_reached():
                break
            if self.fetch_next() is None:
                break
        return self.items


def begin_paginated_query(
    identity: Iterable[Any],
    query: "QueryDescriptor",
    initial_variables: Mapping[str, Any] | None,
    item_path: str,
    token_field: str,
    allowed_token_fields: Iterable[str] | None = None,
    *,
    executor: "QueryExecutor",
    cache: "QueryCache | None" = None,
    token_path: str | None = None,
    token_variable: str | None = None,
    token_renames: Mapping[str, str] | None = None,
    input_key: str | None = "input",
    auto_continue: bool = True,
    max_pages: int | None = None,
    start: bool = True,
) -> PaginatedQuery:
    """
    Creates the walk for ``identity`` (or reuses the cached one) and starts it.

    Args:
        identity: Segments identifying this walk, e.g. ``("users", {"team": "a"})``
        query: The paginated query
        initial_variables: Variables of the first page
        item_path: Dotted path to the items inside a page, e.g. ``"listUsers.Items"``
        token_field: Name of the continuation field, e.g. ``"NextToken"``
        allowed_token_fields: Allow-list for object tokens
        executor: Executor used for every request
        cache: Share walks between callers using the same identity
        token_path: Where the token lives; defaults to ``"<operation>.<token_field>"``
        token_variable: Variable name for the token; defaults to ``token_field``
        token_renames: Key renames applied to object tokens
        input_key: Variable the token is nested under, None for top level
        auto_continue: Request each next page automatically
        max_pages: Stop auto-continuation after this many pages
        start: Request the first page right away (needs a running event loop)
    """
    identity = tuple(identity)
    options = PaginationOptions(
        item_path=item_path,
        token_path=token_path or f"{query.operation_name}.{token_field}",
        token_variable=token_variable or token_field,
        input_key=input_key,
        allowed_token_fields=(
            tuple(allowed_token_fields) if allowed_token_fields is not None else None
        ),
        token_renames=dict(token_renames or {}),
        auto_continue=auto_continue,
        max_pages=max_pages,
    )

    def factory() -> PaginatedQuery:
        return PaginatedQuery(identity, executor, query, initial_variables, options)

    walk = cache.paginate(identity, factory) if cache is not None else factory()
    if start and walk.state is WalkState.IDLE:
        walk.fetch_next()
    return walk
