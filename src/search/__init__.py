"""
Search module - semantic search coordinator and debounced search sessions.
"""

from search.coordinator import SearchCoordinator
from search.session import SearchOutcome, SearchSession

__all__ = ["SearchCoordinator", "SearchSession", "SearchOutcome"]
