
import logging
from abc import ABC, abstractmethod

from ..models.document import Document

logger = logging.getLogger(__name__)


class ScoringStrategy(ABC):
    """Base class for scoring strategies."""

    @abstractmethod
    def apply(self, query: str, results: list[Document]) -> list[Document]:
        """Apply strategy to results."""
        ...


class ScoreThresholdStrategy(ScoringStrategy):
    """Drop documents scoring below a fixed threshold."""

    def __init__(self, threshold: float = 0.5):
        """Initialize strategy.

        Args:
            threshold: Minimum score to keep a document.
        """
        self._threshold = threshold

    def apply(self, query: str, results: list[Document]) -> list[Document]:
        """Filter results below threshold."""
        filtered = [r for r in results if r.score >= self._threshold]

        if len(filtered) < len(results):
            logger.info(
                f"Score threshold: {len(results)} → {len(filtered)} "
                f"(min_allowed={self._threshold:.2f})"
            )

        return filtered


class ScoreOrderStrategy(ScoringStrategy):
    """Sort by score, descending. Ties keep their incoming order."""

    def apply(self, query: str, results: list[Document]) -> list[Document]:
        return sorted(results, key=lambda r: r.score, reverse=True)


class DeduplicateStrategy(ScoringStrategy):
    """Keep the first document for each normalized content.

    Expects ordered input, so the first instance is the highest-scored one.
    """

    def apply(self, query: str, results: list[Document]) -> list[Document]:
        seen = set()
        unique = []
        for result in results:
            key = result.normalized_content
            if key not in seen:
                seen.add(key)
                unique.append(result)

        if len(unique) < len(results):
            logger.info(f"Dedup: {len(results)} → {len(unique)}")

        return unique


class LimitStrategy(ScoringStrategy):
    """Keep the top `limit` documents."""

    def __init__(self, limit: int = 10):
        self._limit = limit

    def apply(self, query: str, results: list[Document]) -> list[Document]:
        return results[: self._limit]
