"""Lexical store protocols for dependency injection."""
from typing import Any, Protocol, runtime_checkable

from ..models.document import RawRow


@runtime_checkable
class QueryRunnerProtocol(Protocol):
    """Something that can run a parameterized query."""

    async def fetch_all(self, sql: str, params: dict[str, Any]) -> list[RawRow]:
        """Run `sql` with bound `params` and return rows as mappings.

        Raises:
            BackendError: Pool timeout, connection or query failure.
        """
        ...

    async def aclose(self) -> None:
        """Dispose of pooled connections."""
        ...


@runtime_checkable
class LexicalStoreProtocol(Protocol):
    """Protocol for full-text search storage."""

    async def search(
        self,
        query_text: str,
        table: str,
        search_field: str,
        return_field: str,
        limit: int,
    ) -> list[RawRow]:
        """Full-text match of `query_text` against `search_field`.

        Args:
            query_text: Raw user query, always sent as a bound parameter.
            table: Table name.
            search_field: Column with the full-text index.
            return_field: "*" or comma-separated columns to project.
            limit: Maximum number of rows.

        Returns:
            Matching rows projected to `return_field`.
        """
        ...

    async def aclose(self) -> None:
        ...
