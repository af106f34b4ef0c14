import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.search_config import SearchConfiguration, SearchMode
from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def is_registered(self, interface: type) -> bool:
        return interface in self._factories

    def reset(self) -> None:
        """Reset factories and singletons (for testing)."""
        self._factories.clear()
        self._singletons.clear()
        self._singleton_flags.clear()


container = Container()


def configure_container(config: SearchConfiguration, settings: Settings) -> Container:
    """Configure container with the collaborators the search mode needs.

    Args:
        config: Resolved search configuration.
        settings: Application settings (timeouts, pool bounds).

    Returns:
        Configured container.

    Raises:
        ConfigError: If the keyword statement or TLS setup is invalid.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.lexical_store import LexicalStoreProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.search_service import SearchOrchestrator
    from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder
    from .infrastructure.lexical_stores.sql_store import (
        SqlLexicalStore,
        build_search_statement,
        create_query_runner,
    )
    from .infrastructure.llm.openai_chat import OpenAIChatClient
    from .infrastructure.vector_stores.qdrant_store import QdrantVectorStore
    from .presentation.mcp_server import SearchToolServer

    mode = config.mode

    if mode in (SearchMode.VECTOR, SearchMode.COMBINED):
        container.register(
            EmbedderProtocol,
            lambda: OpenAIEmbedder(
                base_url=config.embedding_service.base_url,
                api_key=config.embedding_service.api_key,
                model=config.embedding_service.model,
                timeout=settings.http_timeout,
            ),
            singleton=True,
        )

        container.register(
            VectorStoreProtocol,
            lambda: QdrantVectorStore(
                base_url=config.vector.base_url,
                payload_field=config.vector.payload_field,
                api_key=config.vector.api_key,
                timeout=settings.http_timeout,
            ),
            singleton=True,
        )

    if mode in (SearchMode.LEXICAL, SearchMode.COMBINED):
        # Fail at startup, not on the first request.
        build_search_statement(
            config.lexical.table_name,
            config.lexical.search_field,
            config.lexical.return_field,
            config.lexical.dialect,
        )

        container.register(
            LexicalStoreProtocol,
            lambda: SqlLexicalStore(
                runner=create_query_runner(
                    config.lexical.connection,
                    pool_size=settings.tidb_pool_size,
                    pool_timeout=settings.tidb_pool_timeout,
                ),
                dialect=config.lexical.dialect,
            ),
            singleton=True,
        )

        container.register(
            LLMProtocol,
            lambda: OpenAIChatClient(
                base_url=config.chat_service.base_url,
                api_key=config.chat_service.api_key,
                model=config.chat_service.model,
                timeout=settings.http_timeout,
            ),
            singleton=True,
        )

    def optional(interface: type[T]) -> T | None:
        return container.resolve(interface) if container.is_registered(interface) else None

    container.register(
        SearchOrchestrator,
        lambda: SearchOrchestrator(
            config=config,
            embedder=optional(EmbedderProtocol),
            vector_store=optional(VectorStoreProtocol),
            lexical_store=optional(LexicalStoreProtocol),
            llm=optional(LLMProtocol),
        ),
        singleton=True,
    )

    container.register(
        SearchToolServer,
        lambda: SearchToolServer(
            orchestrator=container.resolve(SearchOrchestrator),
            request_timeout=settings.request_timeout,
        ),
        singleton=True,
    )

    logger.info(f"Container configured for {mode.value} search")
    return container
