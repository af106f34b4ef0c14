"""LLM protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import Document


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for chat-completion client."""

    async def synthesize(self, query: str, documents: list[Document]) -> str:
        """Answer the query from the given documents.

        Args:
            query: Original user query.
            documents: Ranked evidence.

        Returns:
            Synthesized answer text.

        Raises:
            ChatError: Service answered with a failure.
            TransportError: Service unreachable.
        """
        ...

    async def rerank(self, query: str, documents: list[Document]) -> list[int]:
        """Order documents by relevance to the query.

        Returns:
            0-based indices into `documents`, most relevant first.
        """
        ...

    async def aclose(self) -> None:
        ...
