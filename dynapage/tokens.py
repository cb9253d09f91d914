"""
Continuation token handling.

A backend returns a continuation value with every page. Before it can be sent
back with the next request it is normalized here: absent values end the walk,
strings pass through untouched, and objects are filtered down to the fields
the next request accepts.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Final

# AppSync adds this to every object type it returns; input types reject it.
TYPENAME_KEY: Final = "__typename"


class _NoMorePages:
    """Sentinel type marking the end of a pagination walk."""

    _instance: "_NoMorePages | None" = None

    def __new__(cls) -> "_NoMorePages":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_MORE_PAGES"


NO_MORE_PAGES: Final = _NoMorePages()


def is_exhausted(token: Any) -> bool:
    """Returns True if the token is the end-of-walk sentinel."""
    return token is NO_MORE_PAGES


def strip_typename(value: Any) -> Any:
    """Recursively removes ``__typename`` keys from mappings and lists."""
    if isinstance(value, Mapping):
        return {k: strip_typename(v) for k, v in value.items() if k != TYPENAME_KEY}
    if isinstance(value, list):
        return [strip_typename(v) for v in value]
    return value


def transform_token(
    raw: Any,
    allowed_fields: Iterable[str] | None = None,
    renames: Mapping[str, str] | None = None,
) -> Any:
    """
    Normalizes a raw continuation value into the shape the next request expects.

    Args:
        raw: The continuation value found in the last page.
        allowed_fields: For object tokens, the only keys kept (in this order).
        renames: For object tokens, maps response field names to the
                 names the next request expects. Applied after filtering.

    Returns:
        NO_MORE_PAGES when ``raw`` is None, the value itself for primitives,
        or a new dict for object tokens. An empty dict is still a token.
    """
    if raw is None or raw is NO_MORE_PAGES:
        return NO_MORE_PAGES

    # Strings (and other primitives) are already encoded; never re-encode them.
    if not isinstance(raw, Mapping):
        return raw

    if allowed_fields is not None:
        token = {field: raw[field] for field in allowed_fields if field in raw}
    else:
        token = strip_typename(raw)

    if renames:
        token = {renames.get(k, k): v for k, v in token.items()}

    return token
