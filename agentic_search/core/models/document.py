"""Document domain models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

RawRow = dict[str, Any]


class Provenance(Enum):
    """Backend a document came from."""
    VECTOR = "vector"
    LEXICAL = "lexical"


@dataclass
class RawHit:
    """Scored point returned by the vector store."""
    payload: dict[str, Any]
    score: float


@dataclass(frozen=True)
class Document:
    """Normalized search hit."""
    content: str
    score: float
    source: Provenance

    @property
    def normalized_content(self) -> str:
        """Content key used for deduplication."""
        return " ".join(self.content.split()).casefold()

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "score": self.score,
            "source": self.source.value,
        }


@dataclass
class SearchResult:
    """Search output: ranked documents and an optional synthesized answer."""
    documents: list[Document] = field(default_factory=list)
    answer: Optional[str] = None


def format_context(documents: list[Document]) -> str:
    """Format documents as numbered context for an LLM."""
    return "\n\n".join(f"[{i}] {d.content}" for i, d in enumerate(documents, 1))
