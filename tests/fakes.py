"""In-memory stand-ins for the search collaborators."""

import asyncio
from typing import Optional

import numpy as np

from agentic_search.core.models.document import Document, RawHit, RawRow


class FakeEmbedder:
    def __init__(self, vector=(0.1, 0.2, 0.3), error: Optional[Exception] = None):
        self.vector = vector
        self.error = error
        self.calls: list[str] = []
        self.closed = False

    async def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return np.asarray(self.vector, dtype=np.float32)

    async def aclose(self) -> None:
        self.closed = True


class FakeVectorStore:
    """Returns the given hits as-is, without applying limit or threshold."""

    def __init__(
        self,
        hits: Optional[list[RawHit]] = None,
        error: Optional[Exception] = None,
        payload_field: str = "text",
    ):
        self.hits = hits or []
        self.error = error
        self.payload_field = payload_field
        self.calls: list[tuple] = []
        self.closed = False

    async def search(self, vector, collection, limit, threshold) -> list[RawHit]:
        self.calls.append((vector, collection, limit, threshold))
        if self.error is not None:
            raise self.error
        return list(self.hits)

    async def aclose(self) -> None:
        self.closed = True


class FakeLexicalStore:
    def __init__(
        self,
        rows: Optional[list[RawRow]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.rows = rows or []
        self.error = error
        self.delay = delay
        self.calls: list[tuple] = []
        self.cancelled = False
        self.closed = False

    async def search(self, query_text, table, search_field, return_field, limit) -> list[RawRow]:
        self.calls.append((query_text, table, search_field, return_field, limit))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return list(self.rows)

    async def aclose(self) -> None:
        self.closed = True


class FakeChat:
    def __init__(
        self,
        answer: str = "synthesized answer",
        order: Optional[list[int]] = None,
        error: Optional[Exception] = None,
    ):
        self.answer = answer
        self.order = order
        self.error = error
        self.calls: list[tuple[str, str, list[Document]]] = []
        self.closed = False

    async def synthesize(self, query: str, documents: list[Document]) -> str:
        self.calls.append(("synthesize", query, list(documents)))
        if self.error is not None:
            raise self.error
        return self.answer

    async def rerank(self, query: str, documents: list[Document]) -> list[int]:
        self.calls.append(("rerank", query, list(documents)))
        if self.error is not None:
            raise self.error
        return self.order if self.order is not None else list(range(len(documents)))

    async def aclose(self) -> None:
        self.closed = True


class FakeQueryRunner:
    def __init__(self, rows: Optional[list[RawRow]] = None):
        self.rows = rows or []
        self.calls: list[tuple[str, dict]] = []
        self.closed = False

    async def fetch_all(self, sql: str, params: dict) -> list[RawRow]:
        self.calls.append((sql, params))
        return list(self.rows)

    async def aclose(self) -> None:
        self.closed = True
