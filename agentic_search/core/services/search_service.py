"""Search service - orchestrates vector and keyword search."""

import asyncio
import json
import logging
from typing import Any, Optional

from ...config.search_config import PostProcessing, SearchConfiguration, SearchMode
from ...errors import AgenticSearchError, ConfigError
from ..models.document import Document, Provenance, RawHit, RawRow, SearchResult
from ..protocols.embedder import EmbedderProtocol
from ..protocols.lexical_store import LexicalStoreProtocol
from ..protocols.llm import LLMProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..strategies.scoring import (
    DeduplicateStrategy,
    LimitStrategy,
    ScoreOrderStrategy,
    ScoreThresholdStrategy,
    ScoringStrategy,
)

logger = logging.getLogger(__name__)


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


class SearchOrchestrator:
    """Runs the active backends for a query and merges their documents.

    The mode (vector, keyword or both) is fixed at construction. In
    combined mode both backends are queried concurrently, their documents
    are ordered by score with vector documents first on ties, and
    duplicates by normalized content are dropped. Keyword rows carry no
    native relevance, so they get the constant `lexical_score`.
    """

    def __init__(
        self,
        config: SearchConfiguration,
        embedder: Optional[EmbedderProtocol] = None,
        vector_store: Optional[VectorStoreProtocol] = None,
        lexical_store: Optional[LexicalStoreProtocol] = None,
        llm: Optional[LLMProtocol] = None,
    ):
        """Initialize orchestrator.

        Args:
            config: Immutable search configuration.
            embedder: Embedding client (vector and combined modes).
            vector_store: Vector store (vector and combined modes).
            lexical_store: Keyword store (keyword and combined modes).
            llm: Chat client (keyword and combined modes).

        Raises:
            ConfigError: If a collaborator required by the mode is missing.
        """
        self._config = config
        self._mode = config.mode
        self._embedder = embedder
        self._vector_store = vector_store
        self._lexical_store = lexical_store
        self._llm = llm

        if self._mode in (SearchMode.VECTOR, SearchMode.COMBINED):
            if embedder is None or vector_store is None:
                raise ConfigError("Vector search requires an embedder and a vector store")
        if self._mode in (SearchMode.LEXICAL, SearchMode.COMBINED):
            if lexical_store is None or llm is None:
                raise ConfigError("Keyword search requires a lexical store and a chat client")

        self._strategies: list[ScoringStrategy] = [
            ScoreThresholdStrategy(config.score_threshold),
            ScoreOrderStrategy(),
        ]
        if self._mode is SearchMode.COMBINED:
            self._strategies.append(DeduplicateStrategy())
        self._strategies.append(LimitStrategy(config.limit))

    @property
    def mode(self) -> SearchMode:
        return self._mode

    async def search(self, query: str) -> SearchResult:
        """Search documents for a query.

        Args:
            query: Free-text query, passed to the backends unchanged.

        Returns:
            Ranked documents, plus a synthesized answer when the chat
            step succeeds in keyword or combined mode.

        Raises:
            BackendError: A store call failed.
            UpstreamError: The embedding service failed.
            TransportError: An upstream was unreachable.
            ConfigError: No backend is enabled.
        """
        if self._mode is SearchMode.VECTOR:
            documents = await self._search_vector(query)
        elif self._mode is SearchMode.LEXICAL:
            documents = await self._search_lexical(query)
        elif self._mode is SearchMode.COMBINED:
            vector_docs, lexical_docs = await self._search_both(query)
            documents = vector_docs + lexical_docs
        else:
            raise ConfigError("No search backend is enabled")

        for strategy in self._strategies:
            documents = strategy.apply(query, documents)

        result = SearchResult(documents=documents)
        if self._mode is not SearchMode.VECTOR and documents:
            result = await self._post_process(query, result)

        logger.info(
            f"Search ({self._mode.value}): returned {len(result.documents)}/"
            f"{self._config.limit} docs for '{query[:50]}...'"
        )
        return result

    async def _search_both(self, query: str) -> tuple[list[Document], list[Document]]:
        """Run both paths concurrently; the first failure cancels the other."""
        vector_task = asyncio.ensure_future(self._search_vector(query))
        lexical_task = asyncio.ensure_future(self._search_lexical(query))
        try:
            return tuple(await asyncio.gather(vector_task, lexical_task))
        except BaseException:
            for task in (vector_task, lexical_task):
                task.cancel()
            # Wait for the cancelled path to release its connection.
            await asyncio.gather(vector_task, lexical_task, return_exceptions=True)
            raise

    async def _search_vector(self, query: str) -> list[Document]:
        vector_config = self._config.vector
        query_vector = await self._embedder.embed(query)

        hits = await self._vector_store.search(
            query_vector.tolist(),
            vector_config.collection,
            self._config.limit,
            self._config.score_threshold,
        )
        hits = hits[: self._config.limit]

        return [self._hit_to_document(hit, vector_config.payload_field) for hit in hits]

    async def _search_lexical(self, query: str) -> list[Document]:
        lexical_config = self._config.lexical
        rows = await self._lexical_store.search(
            query,
            lexical_config.table_name,
            lexical_config.search_field,
            lexical_config.return_field,
            self._config.limit,
        )

        documents = []
        for row in rows:
            document = self._row_to_document(row)
            if document is not None:
                documents.append(document)
        return documents

    def _hit_to_document(self, hit: RawHit, payload_field: str) -> Document:
        return Document(
            content=_to_text(hit.payload[payload_field]),
            score=hit.score,
            source=Provenance.VECTOR,
        )

    def _row_to_document(self, row: RawRow) -> Optional[Document]:
        if not row:
            logger.warning("Skipping empty row")
            return None

        if len(row) == 1:
            value = next(iter(row.values()))
            if value is None:
                logger.warning("Skipping row with NULL return field")
                return None
            content = _to_text(value)
        else:
            content = json.dumps(row, ensure_ascii=False, default=str)

        return Document(
            content=content,
            score=self._config.lexical_score,
            source=Provenance.LEXICAL,
        )

    async def _post_process(self, query: str, result: SearchResult) -> SearchResult:
        """Best-effort chat step; failures return the documents unchanged."""
        try:
            if self._config.post_processing is PostProcessing.RERANK:
                order = await self._llm.rerank(query, result.documents)
                return SearchResult(documents=[result.documents[i] for i in order])

            answer = await self._llm.synthesize(query, result.documents)
            return SearchResult(documents=result.documents, answer=answer)
        except AgenticSearchError as e:
            logger.warning(f"Chat {self._config.post_processing.value} failed, returning documents: {e}")
            return result

    async def aclose(self) -> None:
        """Release clients and pooled connections."""
        for client in (self._embedder, self._vector_store, self._lexical_store, self._llm):
            if client is not None:
                await client.aclose()
