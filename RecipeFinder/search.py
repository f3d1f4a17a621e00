"""Search strategies: breadth-first, depth-first and bidirectional.

All strategies share one admission rule. An element counts as reachable
once it has been expanded (popped from the frontier). While expanding
``current``, every combination of ``current`` with itself or with an
already-expanded partner admits its product, unless the product was
admitted before. The combination that admitted a product is recorded in
the parent map; the first one wins.

With a FIFO frontier this admits elements in order of derivation height,
so the first tree found by ``bfs`` has minimum depth. A LIFO frontier
(``dfs``) follows table order greedily and gives no such guarantee.
"""
from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Type

from .errors import NoPathFound, SearchExhausted, TargetNotFound
from .graph import Combination, RecipeGraph
from .search_logging import SearchLogger
from .trace import StepTraceRecorder
from .tree import DEFAULT_MAX_TREE_DEPTH, DerivationNode, Leaf, Pair, reconstruct_tree

ALGORITHMS: Tuple[str, ...] = ("bfs", "dfs", "bidirectional")


@dataclass(frozen=True)
class SearchBudget:
    """
    Resource limits threaded into a search.

    Attributes
    ----------
    max_visits : int | None
        Maximum number of frontier pops (None = unlimited). ``0`` allows no
        visits at all; the finder passes it on once a shared budget is
        spent.
    timeout_ms : float | None
        Wall-clock limit in milliseconds (None = unlimited).

    The YAML config and ``--max-visits`` spell "unlimited" as ``0``;
    ``BudgetOptions.to_budget`` and the CLI turn that into None before a
    ``SearchBudget`` is built.
    """
    max_visits: Optional[int] = None
    timeout_ms: Optional[float] = None

    def tracker(self) -> "BudgetTracker":
        return BudgetTracker(self)


UNLIMITED = SearchBudget()


class BudgetTracker:
    """Counts visits against a ``SearchBudget`` for one search call."""

    def __init__(self, budget: Optional[SearchBudget] = None):
        self.budget = budget or UNLIMITED
        self.visits = 0
        self.reason: Optional[str] = None
        self._started = time.perf_counter()

    def allow(self) -> bool:
        """True while another visit fits in the budget."""
        if self.reason is not None:
            return False
        max_visits = self.budget.max_visits
        if max_visits is not None and self.visits >= max_visits:
            self.reason = f"visit budget of {max_visits} exceeded"
            return False
        timeout_ms = self.budget.timeout_ms
        if timeout_ms is not None and self.elapsed_ms() >= timeout_ms:
            self.reason = f"time budget of {timeout_ms:.0f}ms exceeded"
            return False
        return True

    def spend(self) -> None:
        self.visits += 1

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000.0

    @property
    def exhausted(self) -> bool:
        return self.reason is not None


@dataclass
class SearchOutcome:
    """What a single strategy run produced."""
    target: str
    algorithm: str
    tree: Optional[DerivationNode] = None
    parents: Dict[str, Combination] = field(default_factory=dict)
    nodes_visited: int = 0
    exhausted: Optional[SearchExhausted] = None

    @property
    def found(self) -> bool:
        return self.tree is not None


class SearchStrategy:
    """
    Base class for strategies.

    One instance may run several searches; all mutable search state lives
    in local variables of ``run``.
    """
    name = ""

    def __init__(
        self,
        graph: RecipeGraph,
        base_elements: Sequence[str],
        budget: Optional[SearchBudget] = None,
        observer: Optional[StepTraceRecorder] = None,
        logger: Optional[SearchLogger] = None,
        max_tree_depth: int = DEFAULT_MAX_TREE_DEPTH,
    ):
        self.graph = graph
        self.base_elements: Tuple[str, ...] = tuple(dict.fromkeys(base_elements))
        self._bases: Set[str] = set(self.base_elements)
        self.budget = budget or UNLIMITED
        self.observer = observer
        self.logger = logger
        self.max_tree_depth = max_tree_depth

    def run(self, target: str) -> SearchOutcome:
        """
        Search for ``target``.

        Raises
        ------
        TargetNotFound
            Target is neither a base element nor in the graph.
        NoPathFound
            The frontier emptied without reaching the target.
        """
        self._check_target(target)
        if target in self._bases:
            if self.observer is not None:
                self.observer.record(None, self.base_elements, {}, True, self.base_elements)
            return SearchOutcome(target=target, algorithm=self.name, tree=Leaf(target))
        return self._search(target)

    def _search(self, target: str) -> SearchOutcome:
        raise NotImplementedError

    def _check_target(self, target: str) -> None:
        if target not in self._bases and not self.graph.has_element(target):
            raise TargetNotFound(target)

    def _exhausted(self, target: str, tracker: BudgetTracker) -> SearchExhausted:
        condition = SearchExhausted(target, tracker.visits, tracker.reason)
        if self.logger is not None:
            self.logger.log_budget_exhausted(self.name, target, tracker.visits, condition.reason)
        return condition

    def _no_path(self, target: str, tracker: BudgetTracker) -> NoPathFound:
        if self.logger is not None:
            self.logger.log_no_path(target, tracker.visits)
        return NoPathFound(target, tracker.visits)

    def _expand_forward(
        self,
        current: str,
        expanded: Set[str],
        seen: Dict[str, None],
        parents: Dict[str, Combination],
    ) -> List[str]:
        """Expand ``current``; return newly admitted products in admission order."""
        expanded.add(current)
        admitted: List[str] = []
        for combo in self.graph.uses(current):
            product = combo.product
            if combo.partner_of(current) in expanded and product not in seen:
                seen[product] = None
                parents[product] = combo
                admitted.append(product)
        return admitted


class _ForwardSearch(SearchStrategy):
    """Shared loop for frontier-from-base strategies."""

    def _push_initial(self, frontier: Deque[str]) -> None:
        frontier.extend(self.base_elements)

    def _pop(self, frontier: Deque[str]) -> str:
        raise NotImplementedError

    def _search(self, target: str) -> SearchOutcome:
        tracker = self.budget.tracker()
        frontier: Deque[str] = deque()
        self._push_initial(frontier)
        seen: Dict[str, None] = dict.fromkeys(self.base_elements)
        expanded: Set[str] = set()
        parents: Dict[str, Combination] = {}
        found = False

        if self.observer is not None:
            self.observer.record(None, frontier, parents, False, seen)

        while frontier:
            if not tracker.allow():
                break
            current = self._pop(frontier)
            tracker.spend()

            admitted = []
            for product in self._expand_forward(current, expanded, seen, parents):
                admitted.append(product)
                frontier.append(product)
                if product == target:
                    found = True
                    break

            if self.observer is not None:
                self.observer.record(current, frontier, parents, found, seen)
            if self.logger is not None:
                self.logger.log_expansion(self.name, tracker.visits, current, len(frontier), admitted)
            if found:
                break

        outcome = SearchOutcome(
            target=target,
            algorithm=self.name,
            parents=parents,
            nodes_visited=tracker.visits,
        )
        if found:
            outcome.tree = reconstruct_tree(target, parents, self._bases, self.max_tree_depth)
        elif tracker.exhausted:
            outcome.exhausted = self._exhausted(target, tracker)
        else:
            raise self._no_path(target, tracker)
        return outcome


class BreadthFirstSearch(_ForwardSearch):
    """FIFO frontier; the first tree found has minimum depth."""
    name = "bfs"

    def _pop(self, frontier: Deque[str]) -> str:
        return frontier.popleft()


class DepthFirstSearch(_ForwardSearch):
    """
    LIFO frontier; the most recently admitted element is expanded next.

    Base elements are stacked so the first one listed is expanded first.
    The tree found depends on combination-table order and is not depth
    minimal.
    """
    name = "dfs"

    def _push_initial(self, frontier: Deque[str]) -> None:
        frontier.extend(reversed(self.base_elements))

    def _pop(self, frontier: Deque[str]) -> str:
        return frontier.pop()


class BidirectionalSearch(SearchStrategy):
    """
    Alternates a forward step from the base elements with a backward step
    from the target.

    The backward side walks from a product to its ingredient pairs. The two
    sides meet when an element is known to both. The tree is then spliced:
    backward recipes from the target down to forward-known elements, whose
    subtrees come from the forward parent map. A meeting whose splice still
    has unresolved leaves does not end the search; once the forward side
    admits the target itself the splice is always complete.
    """
    name = "bidirectional"

    def _search(self, target: str) -> SearchOutcome:
        tracker = self.budget.tracker()
        bases = self._bases

        fwd_frontier: Deque[str] = deque(self.base_elements)
        fwd_seen: Dict[str, None] = dict.fromkeys(self.base_elements)
        fwd_expanded: Set[str] = set()
        fwd_parents: Dict[str, Combination] = {}
        fwd_trees: Dict[str, DerivationNode] = {}

        bwd_frontier: Deque[str] = deque([target])
        bwd_seen: Dict[str, None] = {target: None}
        bwd_recipes: Dict[str, Tuple[Combination, ...]] = {}
        bwd_discovered: Dict[str, Combination] = {}

        tree: Optional[DerivationNode] = None
        forward_turn = True

        if self.observer is not None:
            self.observer.record(None, fwd_frontier, {}, False, fwd_seen, bwd_frontier)

        while fwd_frontier:
            if not tracker.allow():
                break
            use_forward = forward_turn or not bwd_frontier
            forward_turn = not forward_turn
            meeting = False

            if use_forward:
                current = fwd_frontier.popleft()
                tracker.spend()
                admitted = self._expand_forward(current, fwd_expanded, fwd_seen, fwd_parents)
                fwd_frontier.extend(admitted)
                meeting = any(product in bwd_seen for product in admitted)
            else:
                current = bwd_frontier.popleft()
                tracker.spend()
                admitted = []
                if current not in bases:
                    recipes = tuple(
                        combo for combo in self.graph.recipes_for(current)
                        if current not in combo.ingredients
                    )
                    bwd_recipes[current] = recipes
                    if recipes:
                        bwd_discovered.setdefault(current, recipes[0])
                    for combo in recipes:
                        for ingredient in combo.ingredients:
                            if ingredient not in bwd_seen:
                                bwd_seen[ingredient] = None
                                bwd_frontier.append(ingredient)
                                admitted.append(ingredient)
                    # Only a recipe whose ingredients already resolve can
                    # complete a splice that failed before this step
                    meeting = any(
                        all(i in fwd_seen or i in bwd_recipes for i in combo.ingredients)
                        for combo in recipes
                    )

            if meeting:
                tree = self._splice(target, fwd_parents, fwd_seen, bwd_recipes, fwd_trees)

            if self.observer is not None:
                discovered = dict(bwd_discovered)
                discovered.update(fwd_parents)
                seen = dict(fwd_seen)
                seen.update(bwd_seen)
                self.observer.record(
                    current, fwd_frontier, discovered, tree is not None, seen, bwd_frontier
                )
            if self.logger is not None:
                side = "forward" if use_forward else "backward"
                self.logger.log_expansion(
                    f"{self.name}/{side}", tracker.visits, current,
                    len(fwd_frontier) + len(bwd_frontier), admitted,
                )
            if tree is not None:
                break

        outcome = SearchOutcome(target=target, algorithm=self.name, nodes_visited=tracker.visits)
        if tree is not None:
            outcome.tree = tree
            outcome.parents = {combo.product: combo for combo in tree.combinations()}
        elif tracker.exhausted:
            outcome.parents = fwd_parents
            outcome.exhausted = self._exhausted(target, tracker)
        else:
            # Forward side exhausted: every derivable element is known, so
            # no splice can succeed either.
            raise self._no_path(target, tracker)
        return outcome

    def _splice(
        self,
        target: str,
        fwd_parents: Mapping[str, Combination],
        fwd_seen: Mapping[str, None],
        bwd_recipes: Mapping[str, Tuple[Combination, ...]],
        fwd_trees: Dict[str, DerivationNode],
    ) -> Optional[DerivationNode]:
        """
        Join the backward recipes to forward-known subtrees, or None if incomplete.

        ``fwd_trees`` carries forward subtrees between splices of one search;
        a forward parent never changes once recorded.
        """
        bases = self._bases
        memo: Dict[str, Optional[DerivationNode]] = {}
        # Ancestor cuts seen so far; a failure with no cut below it is final
        cuts = [0]

        def resolve(element: str, ancestors: Set[str]) -> Optional[DerivationNode]:
            if element in memo:
                return memo[element]
            if element in ancestors:
                cuts[0] += 1
                return None
            cuts_before = cuts[0]
            result: Optional[DerivationNode] = None
            if element in bases:
                result = Leaf(element)
            elif element in fwd_seen:
                result = reconstruct_tree(
                    element, fwd_parents, bases, self.max_tree_depth, memo=fwd_trees
                )
            elif element in bwd_recipes:
                ancestors.add(element)
                for combo in bwd_recipes[element]:
                    left = resolve(combo.ingredient_a, ancestors)
                    if left is None:
                        continue
                    right = resolve(combo.ingredient_b, ancestors)
                    if right is not None:
                        result = Pair(element, left, right)
                        break
                ancestors.discard(element)
            if result is not None or cuts[0] == cuts_before:
                memo[element] = result
            return result

        return resolve(target, set())


STRATEGIES: Dict[str, Type[SearchStrategy]] = {
    BreadthFirstSearch.name: BreadthFirstSearch,
    DepthFirstSearch.name: DepthFirstSearch,
    BidirectionalSearch.name: BidirectionalSearch,
}


def get_strategy(name: str) -> Type[SearchStrategy]:
    """Look up a strategy class by algorithm name."""
    try:
        return STRATEGIES[name]
    except KeyError:
        raise KeyError(f"Unknown algorithm {name!r}; expected one of {', '.join(ALGORITHMS)}") from None
