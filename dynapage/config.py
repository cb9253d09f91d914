import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PaginationOptions:
    """
    Declarative description of where a paginated query keeps its data.

    Paths are dotted strings resolved against a page stored as
    ``{operation_name: payload}``, e.g. ``"listUsers.Items"``.

    Attributes:
        item_path: Path to the item list inside each page.
        token_path: Path to the continuation value inside each page.
        token_variable: Name of the variable carrying the token on the next request.
        input_key: Variable the token is nested under (``None`` puts it at top level).
        allowed_token_fields: Allow-list applied to object tokens.
        token_renames: Key renames applied to object tokens after filtering.
        auto_continue: Fetch the next page as soon as the previous one lands.
        max_pages: Stop auto-continuation after this many pages.
    """

    item_path: str
    token_path: str
    token_variable: str = "NextToken"
    input_key: str | None = "input"
    allowed_token_fields: tuple[str, ...] | None = None
    token_renames: Mapping[str, str] = field(default_factory=dict)
    auto_continue: bool = True
    max_pages: int | None = None

    def __post_init__(self) -> None:
        if not self.item_path:
            raise ValueError("item_path must not be empty")
        if not self.token_path:
            raise ValueError("token_path must not be empty")
        if not self.token_variable:
            raise ValueError("token_variable must not be empty")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        if self.allowed_token_fields is not None:
            # Accept any iterable but keep the frozen dataclass hashable
            object.__setattr__(self, "allowed_token_fields", tuple(self.allowed_token_fields))

    @classmethod
    def for_operation(
        cls,
        operation_name: str,
        items_key: str | None = "Items",
        token_key: str = "NextToken",
        **kwargs: Any,
    ) -> "PaginationOptions":
        """
        Builds options for the common AppSync shape
        ``{operation: {items_key: [...], token_key: ...}}``.

        With ``items_key=None`` the operation value itself is the item list.
        """
        item_path = f"{operation_name}.{items_key}" if items_key else operation_name
        kwargs.setdefault("token_variable", token_key)
        return cls(item_path=item_path, token_path=f"{operation_name}.{token_key}", **kwargs)


@dataclass(frozen=True)
class TransportSettings:
    """
    Connection settings for an AppSync GraphQL endpoint.

    Exactly one auth mode is used: API key, then bearer token, then IAM
    (SigV4 with the default boto3 credential chain).
    """

    url: str
    api_key: str | None = None
    auth_token: str | None = None
    region: str | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"GraphQL URL must be http(s), got '{self.url}'")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @property
    def auth_mode(self) -> str:
        if self.api_key:
            return "API_KEY"
        if self.auth_token:
            return "AUTH_TOKEN"
        return "AWS_IAM"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TransportSettings":
        """
        Reads settings from APPSYNC_GRAPHQL_URL, APPSYNC_API_KEY,
        APPSYNC_AUTH_TOKEN, AWS_REGION and APPSYNC_TIMEOUT.
        """
        env = os.environ if environ is None else environ
        url = env.get("APPSYNC_GRAPHQL_URL")
        if not url:
            raise ValueError("APPSYNC_GRAPHQL_URL is not set")

        timeout_raw = env.get("APPSYNC_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else 30.0
        except ValueError as e:
            raise ValueError(f"APPSYNC_TIMEOUT must be a number, got '{timeout_raw}'") from e

        return cls(
            url=url,
            api_key=env.get("APPSYNC_API_KEY") or None,
            auth_token=env.get("APPSYNC_AUTH_TOKEN") or None,
            region=env.get("AWS_REGION") or None,
            timeout=timeout,
        )
