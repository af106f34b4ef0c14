"""Core business services."""
from .search_service import SearchOrchestrator

__all__ = [
    "SearchOrchestrator",
]
