"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .vector_store import VectorStoreProtocol
from .lexical_store import LexicalStoreProtocol, QueryRunnerProtocol
from .llm import LLMProtocol

__all__ = [
    "EmbedderProtocol",
    "VectorStoreProtocol",
    "LexicalStoreProtocol",
    "QueryRunnerProtocol",
    "LLMProtocol",
]
