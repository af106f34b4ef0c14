"""Resolved, immutable search configuration."""
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import ConfigError


_CONNECTION_RE = re.compile(r"^mysql://([^:]+):([^@]+)@([^:/]+):(\d+)/(.+)$")


class SearchMode(Enum):
    """Active backend combination."""
    VECTOR = "vector"
    LEXICAL = "lexical"
    COMBINED = "combined"


class PostProcessing(Enum):
    """What the chat service does with the merged documents."""
    SYNTHESIZE = "synthesize"
    RERANK = "rerank"


class FullTextDialect(Enum):
    """Full-text predicate flavour of the relational store."""
    TIDB = "tidb"
    MYSQL = "mysql"


@dataclass(frozen=True)
class ServiceDescriptor:
    """OpenAI-compatible service endpoint (embedding or chat)."""
    base_url: str
    api_key: Optional[str] = None
    model: Optional[str] = None


@dataclass(frozen=True)
class VectorBackendConfig:
    """Qdrant collection to search."""
    collection: str
    payload_field: str
    base_url: str
    api_key: Optional[str] = None


@dataclass(frozen=True)
class DatabaseConnection:
    """Connection descriptor the relational pool is built from."""
    username: str
    password: str
    host: str
    port: int
    database: str
    ssl_ca: Path

    def __repr__(self) -> str:
        return (
            f"DatabaseConnection(username={self.username!r}, host={self.host!r}, "
            f"port={self.port}, database={self.database!r}, ssl_ca={str(self.ssl_ca)!r})"
        )


@dataclass(frozen=True)
class LexicalBackendConfig:
    """Relational table searched with a full-text predicate."""
    table_name: str
    database: str
    connection: DatabaseConnection
    search_field: str = "content"
    return_field: str = "*"
    dialect: FullTextDialect = FullTextDialect.TIDB


@dataclass(frozen=True)
class SearchConfiguration:
    """Built once at startup and shared read-only by every request."""
    vector: Optional[VectorBackendConfig] = None
    lexical: Optional[LexicalBackendConfig] = None
    limit: int = 10
    score_threshold: float = 0.5
    embedding_service: Optional[ServiceDescriptor] = None
    chat_service: Optional[ServiceDescriptor] = None
    lexical_score: float = 1.0
    post_processing: PostProcessing = PostProcessing.SYNTHESIZE

    def __post_init__(self) -> None:
        if self.vector is None and self.lexical is None:
            raise ConfigError("At least one of the vector or lexical backends must be configured")
        if self.vector is not None and self.embedding_service is None:
            raise ConfigError("Vector search requires an embedding service")
        if self.lexical is not None and self.chat_service is None:
            raise ConfigError("Keyword search requires a chat service")
        if self.limit < 1:
            raise ConfigError(f"limit must be at least 1, got {self.limit}")
        if not 0.0 <= self.score_threshold <= 1.0:
            raise ConfigError(
                f"score_threshold must be within [0, 1], got {self.score_threshold}"
            )
        if not 0.0 <= self.lexical_score <= 1.0:
            raise ConfigError(
                f"lexical_score must be within [0, 1], got {self.lexical_score}"
            )

    @property
    def mode(self) -> SearchMode:
        if self.vector is not None and self.lexical is not None:
            return SearchMode.COMBINED
        if self.vector is not None:
            return SearchMode.VECTOR
        return SearchMode.LEXICAL


def parse_connection_string(conn: str, ssl_ca: Path) -> DatabaseConnection:
    """Parse `mysql://<USERNAME>:<PASSWORD>@<HOST>:<PORT>/<DATABASE>`.

    Raises:
        ConfigError: If the string does not match the pattern.
    """
    match = _CONNECTION_RE.match(conn)
    if match is None:
        raise ConfigError(
            "Invalid connection string! The pattern should be "
            "`mysql://<USERNAME>:<PASSWORD>@<HOST>:<PORT>/<DATABASE>`"
        )

    username, password, host, port, database = match.groups()
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ConfigError(f"Invalid database port: {port}")

    return DatabaseConnection(
        username=username,
        password=password,
        host=host,
        port=port_number,
        database=database,
        ssl_ca=ssl_ca,
    )
