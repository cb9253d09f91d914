from .cache import QueryCache
from .client import GraphQLClient
from .config import PaginationOptions, TransportSettings
from .controller import PaginatedQuery, WalkState, begin_paginated_query
from .exceptions import (
    DynapageError,
    EmptyResponseError,
    GraphQLError,
    MissingOperationError,
    NullResultError,
    TransportError,
)
from .executor import QueryExecutor
from .models import DynamoQueryInput, GraphQLResponse, QueryDescriptor
from .pagination import PageResult, append_page, fetch_page, flatten_pages
from .telemetry import TraceEvent, Tracer
from .tokens import NO_MORE_PAGES, is_exhausted, transform_token
from .transport import AppSyncTransport

__all__ = [
    "GraphQLClient",
    "QueryDescriptor",
    "DynamoQueryInput",
    "GraphQLResponse",
    # Pagination engine
    "begin_paginated_query",
    "PaginatedQuery",
    "PaginationOptions",
    "WalkState",
    "PageResult",
    "fetch_page",
    "append_page",
    "flatten_pages",
    "transform_token",
    "is_exhausted",
    "NO_MORE_PAGES",
    # Collaborators
    "QueryExecutor",
    "QueryCache",
    "AppSyncTransport",
    "TransportSettings",
    # Observability
    "Tracer",
    "TraceEvent",
    # Exceptions
    "DynapageError",
    "GraphQLError",
    "EmptyResponseError",
    "MissingOperationError",
    "NullResultError",
    "TransportError",
]
