from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class QueryDescriptor(BaseModel):
    """
    A GraphQL document together with the operation whose result it reads.

    ``operation_name`` is the key under ``data`` holding the result
    (e.g. ``listUsers``), not the optional name after the ``query`` keyword.
    """

    model_config = ConfigDict(frozen=True)

    document: str = Field(min_length=1)
    operation_name: str = Field(min_length=1)

    def __str__(self) -> str:
        return self.operation_name


class GraphQLErrorEntry(BaseModel):
    """One entry of the ``errors`` list returned by AppSync."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message: str = "Unknown GraphQL error"
    path: list[str | int] | None = None
    error_type: str | None = Field(default=None, alias="errorType")
    locations: Any | None = None


class GraphQLResponse(BaseModel):
    """The envelope of a GraphQL HTTP response."""

    model_config = ConfigDict(extra="allow")

    data: dict[str, Any] | None = None
    errors: list[GraphQLErrorEntry] | None = None

    @property
    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors or []]


class DynamoQueryInput(BaseModel):
    """
    Input for AppSync resolvers that forward a DynamoDB Query or Scan.

    Field names follow the DynamoDB API so the resolver can pass them through.
    Unknown fields are allowed and forwarded unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    Operation: Literal["query", "scan"] = "scan"
    IndexName: str | None = None
    KeyConditionExpression: str | None = None
    FilterExpression: str | None = None
    ProjectionExpression: str | None = None
    ExpressionAttributeNames: dict[str, str] | None = None
    ExpressionAttributeValues: dict[str, Any] | None = None
    Limit: int | None = Field(default=None, gt=0)
    ScanIndexForward: bool | None = None
    ExclusiveStartKey: dict[str, Any] | None = None

    def to_variables(self) -> dict[str, Any]:
        """Dumps the input without unset fields, ready for the ``input`` variable."""
        return self.model_dump(exclude_none=True)
