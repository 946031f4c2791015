"""GraphQL executor used by generated clients.

Handles HTTP communication, error handling, and response parsing.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class GraphQLError(Exception):
    """Exception raised for GraphQL errors."""

    def __init__(self, message: str, errors: list[dict[str, Any]]):
        self.message = message
        self.errors = errors
        super().__init__(message)


class GraphQLRequestError(GraphQLError):
    """Transport-level failure: the request never produced a GraphQL response."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, [{"message": message}])


class GraphQLExecutor:
    """Executes GraphQL documents against an endpoint.

    Examples:
        executor = GraphQLExecutor(url, headers={"Authorization": f"Bearer {token}"})
        data = await executor.execute("query { currentUser { id } }")

        # Share an existing client (tests use httpx.MockTransport)
        executor = GraphQLExecutor(url, client=httpx.AsyncClient(transport=transport))
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the executor.

        Args:
            url: GraphQL endpoint URL
            headers: Extra request headers (authentication and the like)
            timeout: Request timeout in seconds
            client: Optional pre-built HTTP client; the executor will not close it
        """
        self.url = url
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = client
        self._owns_client = client is None

    def set_header(self, name: str, value: str | None):
        """Set or remove (``value=None``) a request header."""
        if value is None:
            self.headers.pop(name, None)
        else:
            self.headers[name] = value

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "GraphQLExecutor":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Execute a GraphQL document.

        Args:
            query: GraphQL document text
            variables: Operation variables
            operation_name: Name of the operation to run

        Returns:
            The 'data' portion of the response

        Raises:
            GraphQLRequestError: On HTTP or transport failures
            GraphQLError: If the response contains errors
        """
        client = await self._get_client()

        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = self._serialize_variables(variables)
        if operation_name:
            payload["operationName"] = operation_name

        logger.debug("POST %s operation=%s", self.url, operation_name)
        try:
            response = await client.post(self.url, json=payload, headers=self.headers)
        except httpx.HTTPError as e:
            raise GraphQLRequestError(f"Request to {self.url} failed: {e}") from e

        if response.status_code >= 400 and not _is_graphql_body(response):
            raise GraphQLRequestError(
                f"HTTP {response.status_code} from {self.url}", status_code=response.status_code
            )

        try:
            result = response.json()
        except ValueError as e:
            raise GraphQLRequestError(
                f"Invalid JSON response from {self.url}", status_code=response.status_code
            ) from e

        if result.get("errors"):
            error_messages = "; ".join(e.get("message", str(e)) for e in result["errors"])
            raise GraphQLError(f"GraphQL errors: {error_messages}", result["errors"])

        return result.get("data") or {}

    def _serialize_variables(self, variables: dict[str, Any]) -> dict[str, Any]:
        """Serialize variables for the GraphQL request.

        Top-level ``None`` values are dropped so omitted arguments are
        never sent as explicit nulls.
        """
        return {
            key: _serialize_value(value) for key, value in variables.items() if value is not None
        }


def _serialize_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True, mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    return value


def _is_graphql_body(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return "json" in content_type
