import json
import re
from typing import Any

import aiohttp
import boto3
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.exceptions import NoCredentialsError, NoRegionError

from ._logging import logger
from .config import TransportSettings

# https://<api-id>.appsync-api.<region>.amazonaws.com/graphql
_APPSYNC_REGION_RE = re.compile(r"\.appsync-api\.([a-z0-9-]+)\.amazonaws\.com")


def region_from_url(url: str) -> str | None:
    """Extracts the AWS region from a default AppSync endpoint URL."""
    match = _APPSYNC_REGION_RE.search(url)
    return match.group(1) if match else None


class AppSyncTransport:
    """
    Sends GraphQL requests to an AWS AppSync endpoint.

    Supports the three auth modes used by AppSync clients: API key,
    bearer token (Cognito User Pools / OIDC) and IAM. IAM requests are signed
    with SigV4 using credentials from a boto3 session.

    Architectural Note:
    -------------------
    The aiohttp session is created lazily and must be closed with ``close()``
    (or by using the transport as an async context manager). Closing is
    idempotent; a closed transport reopens a session on the next request.
    """

    def __init__(
        self,
        url: str,
        *,
        api_key: str | None = None,
        auth_token: str | None = None,
        region: str | None = None,
        boto_session: boto3.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.settings = TransportSettings(
            url=url, api_key=api_key, auth_token=auth_token, region=region, timeout=timeout
        )
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._boto_session = boto_session
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(
        cls, settings: TransportSettings, boto_session: boto3.Session | None = None
    ) -> "AppSyncTransport":
        return cls(
            settings.url,
            api_key=settings.api_key,
            auth_token=settings.auth_token,
            region=settings.region,
            boto_session=boto_session,
            timeout=settings.timeout,
        )

    @property
    def url(self) -> str:
        return self.settings.url

    @property
    def auth_mode(self) -> str:
        return self.settings.auth_mode

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    def _get_boto_session(self) -> boto3.Session:
        # Created on first IAM request so API key users never touch the credential chain
        if self._boto_session is None:
            self._boto_session = boto3.Session()
        return self._boto_session

    @property
    def region(self) -> str:
        region = (
            self.settings.region
            or region_from_url(self.url)
            or self._get_boto_session().region_name
        )
        if not region:
            raise NoRegionError()
        return region

    def _sign(self, body: str, headers: dict[str, str]) -> dict[str, str]:
        """Returns ``headers`` plus the SigV4 headers for an IAM request."""
        credentials = self._get_boto_session().get_credentials()
        if credentials is None:
            raise NoCredentialsError()

        request = AWSRequest(method="POST", url=self.url, data=body, headers=headers)
        SigV4Auth(credentials.get_frozen_credentials(), "appsync", self.region).add_auth(request)
        return dict(request.headers.items())

    def build_headers(self, body: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.settings.api_key:
            headers["x-api-key"] = self.settings.api_key
            return headers
        if self.settings.auth_token:
            headers["Authorization"] = self.settings.auth_token
            return headers
        return self._sign(body, headers)

    async def execute(self, document: str, variables: dict[str, Any]) -> Any:
        """
        POSTs one GraphQL request and returns the decoded JSON body.

        JSON bodies are returned even for 4xx/5xx responses, since AppSync
        reports auth and validation failures as an ``errors`` list. Non-JSON
        error responses raise ``aiohttp.ClientResponseError``.
        """
        body = json.dumps({"query": document, "variables": variables})
        headers = self.build_headers(body)

        logger.debug(
            "Sending AppSync request",
            extra={"auth_mode": self.auth_mode, "body_size": len(body)},
        )

        async with self.session.post(self.url, data=body, headers=headers) as response:
            if response.content_type == "application/json":
                payload = await response.json()
                if response.status >= 400 and not (
                    isinstance(payload, dict) and payload.get("errors")
                ):
                    response.raise_for_status()
                return payload

            response.raise_for_status()
            raise aiohttp.ContentTypeError(
                response.request_info,
                response.history,
                status=response.status,
                message=f"Unexpected content type '{response.content_type}'",
            )

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "AppSyncTransport":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        await self.close()
