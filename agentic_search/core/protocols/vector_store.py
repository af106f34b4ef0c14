"""Vector store protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import RawHit


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for similarity search storage."""

    payload_field: str

    async def search(
        self,
        vector: list[float],
        collection: str,
        limit: int,
        threshold: float,
    ) -> list[RawHit]:
        """Top-k similarity search.

        Hits whose payload lacks `payload_field` are skipped.

        Args:
            vector: Query vector.
            collection: Collection name.
            limit: Maximum number of hits.
            threshold: Minimum similarity score.

        Returns:
            Scored hits, best first.

        Raises:
            BackendError: Network, HTTP or response-shape failure.
        """
        ...

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        ...
