"""
Infinite Query Example

Walks every page of a paginated AppSync query. Each response carries a page of
``Items`` and a ``NextToken``; the walk keeps requesting pages until the token
comes back empty.

Configure the endpoint with APPSYNC_GRAPHQL_URL and APPSYNC_API_KEY (or leave
the key unset to sign requests with your AWS credentials).
"""

import asyncio
import logging

from dynapage import AppSyncTransport, GraphQLClient, QueryDescriptor, TransportSettings

logging.basicConfig(level=logging.INFO)

GET_INFINITE_QUERY_EXAMPLE = QueryDescriptor(
    document="""
    query GetInfiniteQueryExample($input: InfiniteQueryExampleInput) {
      getInfiniteQueryExample(input: $input) {
        Items
        NextToken
      }
    }
    """,
    operation_name="getInfiniteQueryExample",
)


async def main() -> None:
    settings = TransportSettings.from_env()

    async with AppSyncTransport.from_settings(settings) as transport:
        client = GraphQLClient(transport, trace_sink=lambda event: print(f"  {event.name}"))

        walk = client.paginate(
            ("infiniteQueryExample",),
            GET_INFINITE_QUERY_EXAMPLE,
            {"PrimaryKey": "PrimaryKeyValue"},
        )
        items = await walk.collect()

        print(f"\nFetched {len(items)} items over {len(walk.pages)} pages")
        for item in items[:5]:
            print(f"  - {item}")

        # Same identity returns the cached walk, no new requests
        again = client.paginate(("infiniteQueryExample",), GET_INFINITE_QUERY_EXAMPLE)
        print(f"\nCached walk reused: {again is walk}, state={again.state.value}")

        # Manual paging: one page per call
        manual = client.paginate(
            ("infiniteQueryExample", "manual"),
            GET_INFINITE_QUERY_EXAMPLE,
            {"PrimaryKey": "PrimaryKeyValue", "Limit": 10},
            auto_continue=False,
        )
        await manual.wait()
        while manual.has_more:
            manual.fetch_next()
            await manual.wait()
            if manual.error:
                print(f"Page failed: {manual.error}")
                break
            print(f"Loaded page {len(manual.pages)} ({len(manual.items)} items so far)")


if __name__ == "__main__":
    asyncio.run(main())
