"""Error taxonomy shared by the search backends and the orchestrator."""
from enum import Enum
from typing import Optional


class AgenticSearchError(Exception):
    """Base class for all search errors."""

    kind = "search_error"


class ConfigError(AgenticSearchError):
    """Invalid or missing configuration."""

    kind = "config_error"


class TransportError(AgenticSearchError):
    """Upstream could not be reached."""

    kind = "transport_error"


class UpstreamError(AgenticSearchError):
    """Upstream was reached but answered with a failure."""

    kind = "upstream_error"

    def __init__(self, status: int, body: str, message: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message or f"upstream returned {status}: {body[:200]}")


class EmbeddingError(UpstreamError):
    kind = "embedding_error"


class ChatError(UpstreamError):
    kind = "chat_error"


class BackendErrorKind(Enum):
    """Sub-kind of a store failure."""
    HTTP = "http"
    TRANSPORT = "transport"
    MALFORMED = "malformed"
    POOL_TIMEOUT = "pool_timeout"  # retryable
    QUERY = "query"


class BackendError(AgenticSearchError):
    """Store-specific failure (vector store or relational store)."""

    kind = "backend_error"

    def __init__(
        self,
        message: str,
        kind: BackendErrorKind = BackendErrorKind.QUERY,
        status: Optional[int] = None,
    ):
        self.error_kind = kind
        self.status = status
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Whether a caller may retry the request as-is."""
        return self.error_kind is BackendErrorKind.POOL_TIMEOUT
