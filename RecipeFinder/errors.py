"""Error hierarchy for the recipe finder.

Validation errors (``InvalidParameter``, ``GraphError``) are raised before a
search begins. Reachability outcomes (``TargetNotFound``, ``NoPathFound``)
are raised by ``RecipeFinder.search``. ``SearchExhausted`` is attached to a
``SearchResult`` alongside any partial trees instead of being raised.
"""
from __future__ import annotations

from typing import Optional


class RecipeFinderError(Exception):
    """Base class for every error surfaced by the engine."""


class GraphError(RecipeFinderError):
    """Raised when a recipe table cannot be indexed."""


class InvalidParameter(RecipeFinderError, ValueError):
    """Raised when a search request carries an out-of-range parameter."""


class TargetNotFound(RecipeFinderError):
    """Raised when the target is neither in the table nor a base element."""

    def __init__(self, target: str):
        super().__init__(f"Element not found in recipe table: {target!r}")
        self.target = target


class NoPathFound(RecipeFinderError):
    """Raised when the frontier empties without reaching the target."""

    def __init__(self, target: str, nodes_visited: int = 0):
        super().__init__(
            f"No derivation of {target!r} from the base elements "
            f"({nodes_visited} elements visited)"
        )
        self.target = target
        self.nodes_visited = nodes_visited


class MergeError(RecipeFinderError):
    """Raised when trees with different root elements are merged."""


class SearchExhausted(RecipeFinderError):
    """Visit or time budget ran out before the search completed."""

    def __init__(self, target: str, nodes_visited: int, reason: Optional[str] = None):
        detail = reason or "visit budget exceeded"
        super().__init__(
            f"Search for {target!r} stopped after {nodes_visited} visits: {detail}"
        )
        self.target = target
        self.nodes_visited = nodes_visited
        self.reason = detail
