"""Lazy operations returned by generated model methods.

Nothing is sent until ``execute()`` (or one of the ``unwrap`` helpers)
is awaited:

    op = client.user.find_many(select={"id": True}, first=10)
    op.to_graphql()           # the document text
    result = await op.execute()
    if result.ok:
        users = result.data["nodes"]
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from .document_builder import Document
from .executor import GraphQLError, GraphQLExecutor

T = TypeVar("T")
D = TypeVar("D")


@dataclass
class QueryResult(Generic[T]):
    """Outcome of an executed operation; errors are captured, not raised."""
    ok: bool
    data: T | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        return "; ".join(str(e.get("message", e)) for e in self.errors)


class OperationBuilder(Generic[T]):
    """A built document bound to an executor and a response transform."""

    def __init__(
        self,
        executor: GraphQLExecutor,
        document: Document,
        transform: Callable[[dict[str, Any]], T] | None = None,
    ):
        self._executor = executor
        self.document = document
        self._transform = transform

    def to_graphql(self) -> str:
        return self.document.text

    @property
    def variables(self) -> dict[str, Any]:
        return self.document.variables

    async def execute(self) -> QueryResult[T]:
        try:
            data = await self._executor.execute(
                self.document.text,
                self.document.variables,
                operation_name=self.document.operation_name,
            )
        except GraphQLError as e:
            return QueryResult(ok=False, errors=list(e.errors))
        value = self._transform(data) if self._transform else data
        return QueryResult(ok=True, data=value)

    async def unwrap(self) -> T:
        """Return the data or raise ``GraphQLError``."""
        result = await self.execute()
        if not result.ok:
            raise GraphQLError(f"GraphQL errors: {result.error_message}", result.errors)
        return result.data  # type: ignore[return-value]

    async def unwrap_or(self, default: D) -> T | D:
        result = await self.execute()
        return result.data if result.ok else default  # type: ignore[return-value]

    async def unwrap_or_else(self, on_error: Callable[[list[dict[str, Any]]], D]) -> T | D:
        result = await self.execute()
        if result.ok:
            return result.data  # type: ignore[return-value]
        return on_error(result.errors)
