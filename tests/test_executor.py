"""Tests for the GraphQL executor, using httpx.MockTransport."""

import asyncio
import json
from datetime import date, datetime
from enum import Enum
from uuid import UUID

import httpx
import pytest

from gql_sdkgen.core.executor import GraphQLError, GraphQLExecutor, GraphQLRequestError

URL = "https://api.example.com/graphql"


class Role(Enum):
    ADMIN = "ADMIN"


def make_executor(handler, headers=None):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GraphQLExecutor(URL, headers=headers, client=client), client


class TestExecute:
    """Tests for GraphQLExecutor.execute."""

    def test_returns_data(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"currentUser": {"id": "u1"}}})

        executor, _ = make_executor(handler)
        data = asyncio.run(executor.execute("query { currentUser { id } }"))
        assert data == {"currentUser": {"id": "u1"}}

    def test_payload(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            seen["headers"] = request.headers
            return httpx.Response(200, json={"data": {}})

        executor, _ = make_executor(handler, headers={"Authorization": "Bearer t0ken"})
        asyncio.run(
            executor.execute(
                "query UserQuery($id: UUID!) { user(id: $id) { id } }",
                {
                    "id": UUID("12345678-1234-5678-1234-567812345678"),
                    "role": Role.ADMIN,
                    "since": date(2024, 1, 15),
                    "at": datetime(2024, 1, 15, 10, 30),
                    "where": {"tags": ("a", "b")},
                    "after": None,
                },
                operation_name="UserQuery",
            )
        )
        body = seen["body"]
        assert body["operationName"] == "UserQuery"
        assert body["variables"] == {
            "id": "12345678-1234-5678-1234-567812345678",
            "role": "ADMIN",
            "since": "2024-01-15",
            "at": "2024-01-15T10:30:00",
            "where": {"tags": ["a", "b"]},
        }
        assert seen["headers"]["authorization"] == "Bearer t0ken"
        assert seen["headers"]["content-type"] == "application/json"

    def test_no_variables_key_when_empty(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"ping": "pong"}})

        executor, _ = make_executor(handler)
        asyncio.run(executor.execute("{ ping }"))
        assert seen["body"] == {"query": "{ ping }"}

    def test_missing_data_is_empty(self):
        executor, _ = make_executor(lambda request: httpx.Response(200, json={}))
        assert asyncio.run(executor.execute("{ ping }")) == {}


class TestErrors:
    """Tests for error handling."""

    def test_graphql_errors(self):
        def handler(request):
            return httpx.Response(
                200, json={"data": None, "errors": [{"message": "denied"}, {"message": "again"}]}
            )

        executor, _ = make_executor(handler)
        with pytest.raises(GraphQLError) as exc_info:
            asyncio.run(executor.execute("{ secret }"))
        assert exc_info.value.message == "GraphQL errors: denied; again"
        assert len(exc_info.value.errors) == 2
        assert not isinstance(exc_info.value, GraphQLRequestError)

    def test_error_status_with_graphql_body(self):
        def handler(request):
            return httpx.Response(400, json={"errors": [{"message": "bad variable"}]})

        executor, _ = make_executor(handler)
        with pytest.raises(GraphQLError) as exc_info:
            asyncio.run(executor.execute("{ ping }"))
        assert not isinstance(exc_info.value, GraphQLRequestError)

    def test_http_error(self):
        executor, _ = make_executor(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(GraphQLRequestError) as exc_info:
            asyncio.run(executor.execute("{ ping }"))
        assert exc_info.value.status_code == 502

    def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>", headers={"content-type": "text/html"})

        executor, _ = make_executor(handler)
        with pytest.raises(GraphQLRequestError, match="Invalid JSON"):
            asyncio.run(executor.execute("{ ping }"))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        executor, _ = make_executor(handler)
        with pytest.raises(GraphQLRequestError, match="failed"):
            asyncio.run(executor.execute("{ ping }"))


class TestClientLifecycle:
    """Tests for headers and client ownership."""

    def test_set_header(self):
        executor = GraphQLExecutor(URL)
        executor.set_header("Authorization", "Bearer x")
        assert executor.headers["Authorization"] == "Bearer x"
        executor.set_header("Authorization", None)
        assert "Authorization" not in executor.headers

    def test_shared_client_is_not_closed(self):
        executor, client = make_executor(lambda request: httpx.Response(200, json={"data": {}}))
        asyncio.run(executor.close())
        assert not client.is_closed

    def test_context_manager(self):
        async def run():
            async with GraphQLExecutor(URL) as executor:
                client = await executor._get_client()
            return client

        assert asyncio.run(run()).is_closed
