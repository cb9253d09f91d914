"""
Page aggregation for Dynapage.

A pagination walk keeps its pages in an append-only tuple. Items are never
stored separately: they are derived from the pages by resolving an item path
on each page and concatenating the results in fetch order.

This module also provides ``fetch_page`` for callers that keep the cursor
themselves (e.g. an HTTP API handing the cursor back to its own client).
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .tokens import is_exhausted, transform_token

if TYPE_CHECKING:
    from .config import PaginationOptions
    from .executor import QueryExecutor
    from .models import QueryDescriptor

T = TypeVar("T")

Page = dict[str, Any]
PageSequence = tuple[Page, ...]
Path = str | Sequence[str | int]


def split_path(path: Path) -> tuple[str | int, ...]:
    """
    Splits a dotted path into segments.

    Numeric segments of a dotted string stay strings; pass a sequence with
    ints to index into lists.
    """
    if isinstance(path, str):
        return tuple(segment for segment in path.split(".") if segment)
    return tuple(path)


def resolve_path(data: Any, path: Path) -> Any:
    """Returns the value at ``path`` inside ``data``, or None if any segment is missing."""
    current = data
    for segment in split_path(path):
        if isinstance(current, Mapping):
            current = current.get(segment)
        elif isinstance(current, list) and isinstance(segment, int):
            if not -len(current) <= segment < len(current):
                return None
            current = current[segment]
        else:
            return None
        if current is None:
            return None
    return current


def append_page(pages: PageSequence, page: Page) -> PageSequence:
    """Returns a new sequence with ``page`` at the end. The input is left untouched."""
    return (*pages, page)


def extract_items(page: Page, item_path: Path) -> list[Any]:
    """
    Resolves the item list of a single page.

    Missing or null values give an empty list, a list gives its elements and
    any other value is treated as a single item.
    """
    value = resolve_path(page, item_path)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def flatten_pages(pages: Sequence[Page], item_path: Path) -> list[Any]:
    """Concatenates the items of every page, in page order. Duplicates are kept."""
    items: list[Any] = []
    for page in pages:
        items.extend(extract_items(page, item_path))
    return items


@dataclass
class PageResult(Generic[T]):
    """
    Represents a single page of results with pagination cursor.

    Attributes:
        items: Items extracted from this page
        next_token: Cursor for the next page (NO_MORE_PAGES if none)
        count: Number of items in this page
        page: The raw page, keyed by operation name
    """

    items: list[T]
    next_token: Any
    count: int
    page: Page | None = None

    @property
    def has_more(self) -> bool:
        """Returns True if there are more pages available."""
        return not is_exhausted(self.next_token)

    @property
    def cursor(self) -> Any:
        """The next token, or None when there are no more pages."""
        return None if is_exhausted(self.next_token) else self.next_token


def build_variables(
    variables: Mapping[str, Any] | None, token: Any, options: "PaginationOptions"
) -> dict[str, Any]:
    """
    Returns a copy of ``variables`` with the token placed where the next request expects it.

    With ``token=None`` (first page) the variables are copied unchanged.
    """
    result = dict(variables or {})
    if token is None or is_exhausted(token):
        return result

    if options.input_key is None:
        result[options.token_variable] = token
        return result

    nested = result.get(options.input_key) or {}
    if not isinstance(nested, Mapping):
        raise ValueError(
            f"Variable '{options.input_key}' must be an object to carry the continuation token"
        )
    result[options.input_key] = {**nested, options.token_variable: token}
    return result


def next_token_of(page: Page, options: "PaginationOptions") -> Any:
    """Reads and normalizes the continuation token of a page."""
    raw = resolve_path(page, options.token_path)
    return transform_token(raw, options.allowed_token_fields, options.token_renames)


async def fetch_page(
    executor: "QueryExecutor",
    query: "QueryDescriptor",
    variables: Mapping[str, Any] | None,
    options: "PaginationOptions",
    token: Any = None,
) -> PageResult[Any]:
    """
    Fetches a single page and returns it with the cursor for the next one.

    Args:
        executor: Executor used for the request
        query: The paginated query
        variables: Variables of the first page
        options: Where items and tokens live in the page
        token: The cursor returned by a previous call. None for the first page.

    Usage:
        first = await fetch_page(executor, LIST_USERS, {"input": {}}, options)
        if first.has_more:
            second = await fetch_page(executor, LIST_USERS, {"input": {}}, options, first.cursor)
    """
    payload = await executor.run(query, build_variables(variables, token, options))
    page = {query.operation_name: payload}
    items = extract_items(page, options.item_path)
    next_token = next_token_of(page, options)
    return PageResult(
        items=items,
        next_token=next_token,
        count=len(items),
        page=page,
    )
