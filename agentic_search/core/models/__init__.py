"""Domain models."""
from .document import (
    Document,
    Provenance,
    RawHit,
    RawRow,
    SearchResult,
    format_context,
)

__all__ = [
    "Document",
    "Provenance",
    "RawHit",
    "RawRow",
    "SearchResult",
    "format_context",
]
