from collections.abc import Iterable, Mapping
from typing import Any

from ._logging import logger, redact_token
from .cache import QueryCache
from .config import PaginationOptions
from .controller import PaginatedQuery, WalkState
from .exceptions import GraphQLError
from .executor import QueryExecutor, Transport, TransportCallable
from .models import DynamoQueryInput, QueryDescriptor
from .telemetry import TraceSink, Tracer


class GraphQLClient:
    """
    Query entry point combining a transport, an executor and a shared cache.

    Three query shapes are supported:
      - ``query``: a single object returned under the operation key,
      - ``dynamo_query``: a list returned by a DynamoDB-backed resolver,
      - ``paginate``: a paginated list walked page by page.

    Usage:
        async with AppSyncTransport(url, api_key=key) as transport:
            client = GraphQLClient(transport)
            user = await client.query("user", GET_USER, {"id": "42"})
            walk = client.paginate(("users",), LIST_USERS, {"Team": "core"})
            users = await walk.collect()
    """

    def __init__(
        self,
        transport: Transport | TransportCallable,
        cache: QueryCache | None = None,
        trace_sink: TraceSink | None = None,
    ) -> None:
        self.tracer = Tracer(trace_sink)
        self.executor = QueryExecutor(transport, tracer=self.tracer)
        self.cache = cache or QueryCache()

    async def query(
        self,
        cache_key: str,
        query: QueryDescriptor,
        query_input: Any | None = None,
        *,
        stale_time: float | None = None,
    ) -> Any:
        """
        Runs ``query`` with ``{"input": query_input}`` and returns the operation result.

        Results are memoized under ``(cache_key, query_input)``; concurrent
        identical calls share one request.
        """
        dumped = _dump_input(query_input)
        variables = {} if dumped is None else {"input": dumped}
        identity = (cache_key, dumped)

        logger.debug(
            "Loading query",
            extra={"operation": query.operation_name, "input_hash": redact_token(variables)},
        )

        async def fetcher() -> Any:
            return await self.executor.run(query, variables)

        return await self.cache.fetch(identity, fetcher, stale_time=stale_time)

    async def dynamo_query(
        self,
        cache_key: str,
        query: QueryDescriptor,
        query_input: DynamoQueryInput | Mapping[str, Any] | None = None,
        *,
        stale_time: float | None = None,
    ) -> list[Any]:
        """
        Runs a DynamoDB-backed list query (``Operation`` ``scan`` or ``query``).

        Raises:
            GraphQLError: The operation did not return a list.
        """
        if query_input is not None and not isinstance(query_input, DynamoQueryInput):
            query_input = DynamoQueryInput.model_validate(query_input)

        result = await self.query(cache_key, query, query_input, stale_time=stale_time)
        if not isinstance(result, list):
            raise GraphQLError(
                messages=[f"Expected a list for operation: {query.operation_name}"],
                operation=query.operation_name,
            )
        return result

    def paginate(
        self,
        identity: Iterable[Any],
        query: QueryDescriptor,
        query_input: Any | None = None,
        *,
        items_key: str | None = "Items",
        token_key: str = "NextToken",
        options: PaginationOptions | None = None,
        start: bool = True,
        **option_overrides: Any,
    ) -> PaginatedQuery:
        """
        Returns the pagination walk for ``identity``, started on first use.

        By default the page shape is ``{operation: {Items: [...], NextToken: ...}}``
        and the token is sent back as ``input.NextToken``. Pass ``options`` for
        any other layout, or keyword overrides such as ``allowed_token_fields``,
        ``token_renames``, ``auto_continue`` or ``max_pages``.
        """
        identity = tuple(identity)
        if options is None:
            options = PaginationOptions.for_operation(
                query.operation_name, items_key=items_key, token_key=token_key, **option_overrides
            )
        dumped = _dump_input(query_input)
        if dumped is None:
            variables: dict[str, Any] = {}
        elif options.input_key:
            variables = {options.input_key: dumped}
        else:
            variables = dict(dumped)

        def factory() -> PaginatedQuery:
            return PaginatedQuery(identity, self.executor, query, variables, options, self.tracer)

        walk = self.cache.paginate(identity, factory)
        if start and walk.state is WalkState.IDLE:
            walk.fetch_next()
        return walk


def _dump_input(query_input: Any) -> Any:
    if query_input is None:
        return None
    if isinstance(query_input, DynamoQueryInput):
        return query_input.to_variables()
    if hasattr(query_input, "model_dump"):
        return query_input.model_dump(exclude_none=True)
    return query_input
