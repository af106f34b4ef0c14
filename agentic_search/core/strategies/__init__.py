"""Scoring and filtering strategies."""
from .scoring import (
    DeduplicateStrategy,
    LimitStrategy,
    ScoreOrderStrategy,
    ScoreThresholdStrategy,
    ScoringStrategy,
)

__all__ = [
    "ScoringStrategy",
    "ScoreThresholdStrategy",
    "ScoreOrderStrategy",
    "DeduplicateStrategy",
    "LimitStrategy",
]
