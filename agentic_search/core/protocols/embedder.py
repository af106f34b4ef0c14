"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable
import numpy as np


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    async def embed(self, text: str) -> np.ndarray:
        """Embed a query string.

        Args:
            text: Query text.

        Returns:
            1-D float32 embedding vector.

        Raises:
            EmbeddingError: Service answered with a failure.
            TransportError: Service unreachable.
        """
        ...

    async def aclose(self) -> None:
        """Release the underlying HTTP client."""
        ...
