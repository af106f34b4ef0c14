from pathlib import Path

import pytest

from agentic_search.config.search_config import (
    DatabaseConnection,
    LexicalBackendConfig,
    ServiceDescriptor,
    VectorBackendConfig,
)


@pytest.fixture
def vector_backend() -> VectorBackendConfig:
    return VectorBackendConfig(
        collection="docs",
        payload_field="text",
        base_url="http://qdrant.test",
    )


@pytest.fixture
def lexical_backend() -> LexicalBackendConfig:
    connection = DatabaseConnection(
        username="user",
        password="secret",
        host="db.test",
        port=4000,
        database="kb",
        ssl_ca=Path("/etc/ssl/ca.pem"),
    )
    return LexicalBackendConfig(
        table_name="articles",
        database="kb",
        connection=connection,
        search_field="content",
        return_field="content",
    )


@pytest.fixture
def embedding_service() -> ServiceDescriptor:
    return ServiceDescriptor(base_url="http://embed.test/v1", model="embed-small")


@pytest.fixture
def chat_service() -> ServiceDescriptor:
    return ServiceDescriptor(base_url="http://chat.test/v1", api_key="sk-test")
