"""
DynamoDB Query Example

Fetches a whole list in one request through a resolver that accepts a
DynamoDB-style query input (scan or key query). Results are memoized per
cache key and input for the stale time given.
"""

import asyncio

from dynapage import (
    AppSyncTransport,
    DynamoQueryInput,
    GraphQLClient,
    GraphQLError,
    QueryDescriptor,
    TransportSettings,
)

GET_FAILED_DRIVES_AUDIT_DATA = QueryDescriptor(
    document="""
    query GetFailedDrivesAuditData($input: DynamoDBQueryInput) {
      getFailedDrivesAuditData(input: $input) {
        DeviceId
        DriveSerial
        FailedAt
      }
    }
    """,
    operation_name="getFailedDrivesAuditData",
)

FIVE_MINUTES = 5 * 60


async def main() -> None:
    settings = TransportSettings.from_env()

    async with AppSyncTransport.from_settings(settings) as transport:
        client = GraphQLClient(transport)

        # Full table scan
        drives = await client.dynamo_query(
            "failedDrives",
            GET_FAILED_DRIVES_AUDIT_DATA,
            DynamoQueryInput(Operation="scan"),
            stale_time=FIVE_MINUTES,
        )
        print(f"Failed drives: {len(drives)}")

        # Served from cache while fresh
        await client.dynamo_query(
            "failedDrives",
            GET_FAILED_DRIVES_AUDIT_DATA,
            DynamoQueryInput(Operation="scan"),
            stale_time=FIVE_MINUTES,
        )

        # Key query on an index, newest first
        recent = DynamoQueryInput(
            Operation="query",
            IndexName="DeviceIndex",
            KeyConditionExpression="#device = :device",
            ExpressionAttributeNames={"#device": "DeviceId"},
            ExpressionAttributeValues={":device": "device-42"},
            ScanIndexForward=False,
            Limit=20,
        )
        try:
            device_drives = await client.dynamo_query(
                "failedDrives", GET_FAILED_DRIVES_AUDIT_DATA, recent
            )
        except GraphQLError as e:
            print(f"Query rejected: {e.messages} ({e.error_types})")
        else:
            print(f"device-42: {len(device_drives)} failed drives")


if __name__ == "__main__":
    asyncio.run(main())
