"""Enumerate structurally distinct derivation trees for one target.

The first tree is always the one the chosen strategy found. Further trees
come from swapping in alternative recipes: at every node the recipe the
strategy recorded is tried first, then the remaining recipes in table
order. Only recipes whose ingredients are derivable from the base elements
are considered, and no element may appear below itself, so every
enumerated tree is a valid derivation.

Enumeration is lazy. It stops once ``max_paths`` distinct trees are
collected, the recipe choices run out, or the visit budget is spent.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Collection, Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Set, Tuple,
)

from .errors import InvalidParameter, SearchExhausted
from .graph import Combination, RecipeGraph
from .search import BudgetTracker, SearchBudget
from .search_logging import SearchLogger
from .tree import DEFAULT_MAX_TREE_DEPTH, CanonicalKey, DerivationNode, Leaf, Pair

MIN_PATHS = 1
MAX_PATHS = 100

# Visit cap applied when the budget leaves enumeration unbounded
DEFAULT_ENUMERATION_VISITS = 200_000


def validate_max_paths(max_paths: object) -> int:
    """Return ``max_paths`` if it is an int in [1, 100], else raise InvalidParameter."""
    if isinstance(max_paths, bool) or not isinstance(max_paths, int):
        raise InvalidParameter(f"maxPaths must be an integer, got {max_paths!r}")
    if not MIN_PATHS <= max_paths <= MAX_PATHS:
        raise InvalidParameter(
            f"maxPaths must be between {MIN_PATHS} and {MAX_PATHS}, got {max_paths}"
        )
    return max_paths


class _BudgetSpent(Exception):
    pass


@dataclass
class Enumeration:
    """Trees collected by one enumeration, in discovery order."""
    target: str
    trees: List[DerivationNode] = field(default_factory=list)
    nodes_visited: int = 0
    exhausted: Optional[SearchExhausted] = None


class MultiPathEnumerator:
    """
    Collect up to ``max_paths`` distinct derivations of a target.

    Parameters
    ----------
    graph : RecipeGraph
    base_elements : sequence of str
    max_paths : int
        1 to 100 inclusive.
    budget : SearchBudget, optional
        Visit and time limits for the enumeration phase.
    """

    def __init__(
        self,
        graph: RecipeGraph,
        base_elements: Sequence[str],
        max_paths: int = 1,
        budget: Optional[SearchBudget] = None,
        logger: Optional[SearchLogger] = None,
        max_tree_depth: int = DEFAULT_MAX_TREE_DEPTH,
    ):
        self.graph = graph
        self.base_elements = tuple(dict.fromkeys(base_elements))
        self._bases: FrozenSet[str] = frozenset(self.base_elements)
        self.max_paths = validate_max_paths(max_paths)
        budget = budget or SearchBudget()
        if budget.max_visits is None:
            budget = SearchBudget(DEFAULT_ENUMERATION_VISITS, budget.timeout_ms)
        self.budget = budget
        self.logger = logger
        self.max_tree_depth = max_tree_depth
        self._reachable: Optional[FrozenSet[str]] = None

    @property
    def reachable(self) -> FrozenSet[str]:
        if self._reachable is None:
            self._reachable = self.graph.reachable_from(self.base_elements)
        return self._reachable

    def enumerate(
        self,
        target: str,
        first: Optional[DerivationNode] = None,
        preferred: Optional[Mapping[str, Combination]] = None,
    ) -> Enumeration:
        """
        Collect distinct trees for ``target``.

        Parameters
        ----------
        target : str
        first : DerivationNode, optional
            The strategy's own tree; always returned first when given.
        preferred : mapping, optional
            product -> Combination tried before other recipes (the
            strategy's parent map).

        Returns
        -------
        Enumeration
            Fewer than ``max_paths`` trees when alternatives run out; that
            is a normal result, not an error.
        """
        result = Enumeration(target=target)
        seen_keys: Set[CanonicalKey] = set()
        tracker = self.budget.tracker()

        def offer(tree: DerivationNode) -> bool:
            key = tree.canonical_key()
            duplicate = key in seen_keys
            if not duplicate:
                seen_keys.add(key)
                result.trees.append(tree)
            if self.logger is not None:
                self.logger.log_alternative(len(result.trees) - 1, tree, duplicate)
            return len(result.trees) >= self.max_paths

        if first is not None and offer(first):
            return result

        try:
            derivations = self._derive(target, frozenset(), 0, preferred or {}, tracker, {})
            for tree in derivations:
                if offer(tree):
                    break
        except _BudgetSpent:
            result.exhausted = SearchExhausted(target, tracker.visits, tracker.reason)
            if self.logger is not None:
                self.logger.log_budget_exhausted("multi", target, tracker.visits, tracker.reason or "")

        result.nodes_visited = tracker.visits
        if self.logger is not None:
            self.logger.log_enumeration_complete(len(result.trees), self.max_paths, tracker.visits)
        return result

    def recipe_choices(
        self,
        element: str,
        preferred: Mapping[str, Combination],
        excluded: Collection[str] = (),
    ) -> List[Combination]:
        """Usable recipes for ``element``: preferred first, then table order."""
        reachable = self.reachable
        choices: List[Combination] = []
        first = preferred.get(element)
        if first is not None:
            choices.append(first)
        for combo in self.graph.recipes_for(element):
            if first is not None and combo.key() == first.key():
                continue
            choices.append(combo)
        return [
            combo for combo in choices
            if all(i in reachable and i not in excluded and i != element for i in combo.ingredients)
        ]

    def _derive(
        self,
        element: str,
        ancestors: FrozenSet[str],
        depth: int,
        preferred: Mapping[str, Combination],
        tracker: BudgetTracker,
        finished: Dict[Tuple[str, FrozenSet[str]], List[DerivationNode]],
    ) -> Iterator[DerivationNode]:
        """
        Yield derivations of ``element`` that avoid ``ancestors``.

        ``finished`` holds every (element, ancestors) pair whose derivations
        were produced to the end, empty lists included. Depth always equals
        ``len(ancestors)``, so the pair fixes the output and a repeat is
        replayed instead of explored again.
        """
        if not tracker.allow():
            raise _BudgetSpent()
        tracker.spend()

        key = (element, ancestors)
        if key in finished:
            yield from finished[key]
            return

        produced: List[DerivationNode] = []
        if element in self._bases:
            produced.append(Leaf(element))
            yield produced[0]
        elif depth < self.max_tree_depth:
            below = ancestors | {element}
            for combo in self.recipe_choices(element, preferred, below):
                for left in self._derive(
                    combo.ingredient_a, below, depth + 1, preferred, tracker, finished
                ):
                    for right in self._derive(
                        combo.ingredient_b, below, depth + 1, preferred, tracker, finished
                    ):
                        tree = Pair(element, left, right)
                        produced.append(tree)
                        yield tree
        # Only reached when the caller consumed everything
        finished[key] = produced

