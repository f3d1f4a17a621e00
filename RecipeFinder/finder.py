"""Search facade: validation, strategy dispatch, multi-path and tracing.

``RecipeFinder`` owns one immutable ``RecipeGraph`` and may serve any
number of searches, including concurrent ones; every call builds its own
strategy state.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .atlas import DEFAULT_ATLAS_DEPTH, RecipeAtlas, build_recipe_atlas
from .catalog import DEFAULT_BASE_ELEMENTS, load_catalog, load_recipe_table_csv
from .config import FinderConfig, load_config
from .errors import InvalidParameter, NoPathFound, SearchExhausted, TargetNotFound
from .graph import RecipeGraph, TableRow, build_graph
from .merge import merge_trees
from .multipath import MultiPathEnumerator, validate_max_paths
from .search import ALGORITHMS, SearchBudget, get_strategy
from .search_logging import SearchLogger, silent_logger
from .trace import StepTrace, StepTraceRecorder
from .tree import DEFAULT_MAX_TREE_DEPTH, DerivationNode


@dataclass
class SearchResult:
    """
    Outcome of one ``RecipeFinder.search`` call.

    Attributes
    ----------
    target : str
    algorithm : str
    trees : list[DerivationNode]
        One tree, or up to ``max_paths`` in multi mode. May be empty or
        short when ``exhausted`` is set.
    duration_ms : float
    nodes_visited : int
        Frontier pops plus multi-path enumeration visits.
    steps : StepTrace | None
        Present when tracing was requested. Covers the strategy run that
        found the first tree; multi-path enumeration walks recipes rather
        than a frontier and adds no steps, though its visits count in
        ``nodes_visited``.
    exhausted : SearchExhausted | None
        Budget condition; the trees are partial when set.
    multi : bool
    """
    target: str
    algorithm: str
    trees: List[DerivationNode]
    duration_ms: float
    nodes_visited: int
    steps: Optional[StepTrace] = None
    exhausted: Optional[SearchExhausted] = None
    multi: bool = False

    @property
    def tree(self) -> Optional[DerivationNode]:
        return self.trees[0] if self.trees else None

    @property
    def status(self) -> str:
        if self.exhausted is None:
            return "found"
        return "partial" if self.trees else "exhausted"

    def raise_for_status(self) -> "SearchResult":
        """Raise the attached ``SearchExhausted`` condition, if any."""
        if self.exhausted is not None:
            raise self.exhausted
        return self

    def merged(self) -> DerivationNode:
        return merge_trees(self.trees)

    def to_dict(self) -> Dict[str, Any]:
        """JSON response shape; ``tree`` is a list in multi mode."""
        if self.multi:
            tree: Any = [t.to_dict() for t in self.trees]
        else:
            tree = self.tree.to_dict() if self.tree is not None else None
        data: Dict[str, Any] = {
            "tree": tree,
            "duration_ms": round(self.duration_ms, 3),
            "algorithm": self.algorithm,
            "nodes_visited": self.nodes_visited,
        }
        if self.steps is not None:
            data["search_steps"] = self.steps.to_list()
        data["exhausted"] = None if self.exhausted is None else {
            "reason": self.exhausted.reason,
            "nodes_visited": self.exhausted.nodes_visited,
        }
        return data


class RecipeFinder:
    """
    Derivation search over one recipe table.

    Parameters
    ----------
    table : iterable of rows, optional
        Recipe table; see ``build_graph``. Ignored when ``graph`` is given.
    base_elements : sequence of str
    graph : RecipeGraph, optional
        Prebuilt graph to share between finders.
    logger : SearchLogger, optional
        Defaults to a silent logger.
    max_tree_depth : int
        Depth guard for tree reconstruction and enumeration.
    """

    def __init__(
        self,
        table: Optional[Iterable[TableRow]] = None,
        base_elements: Sequence[str] = DEFAULT_BASE_ELEMENTS,
        graph: Optional[RecipeGraph] = None,
        logger: Optional[SearchLogger] = None,
        max_tree_depth: int = DEFAULT_MAX_TREE_DEPTH,
    ):
        self.logger = logger or silent_logger()
        if graph is None:
            graph = build_graph(table if table is not None else ())
        self.graph = graph
        self.base_elements = tuple(dict.fromkeys(base_elements))
        if not self.base_elements:
            raise InvalidParameter("At least one base element is required")
        self.max_tree_depth = max_tree_depth
        self.logger.log_graph_built(self.graph.stats())

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_catalog(
        cls,
        path: Union[str, Path],
        base_elements: Sequence[str] = DEFAULT_BASE_ELEMENTS,
        enforce_tiers: bool = True,
        logger: Optional[SearchLogger] = None,
        **kwargs: Any,
    ) -> "RecipeFinder":
        catalog = load_catalog(path, base_elements)
        table = catalog.to_table(enforce_tiers=enforce_tiers, logger=logger)
        return cls(table, base_elements=base_elements, logger=logger, **kwargs)

    @classmethod
    def from_csv(
        cls,
        path: Union[str, Path],
        base_elements: Sequence[str] = DEFAULT_BASE_ELEMENTS,
        logger: Optional[SearchLogger] = None,
        **kwargs: Any,
    ) -> "RecipeFinder":
        return cls(load_recipe_table_csv(path), base_elements=base_elements, logger=logger, **kwargs)

    @classmethod
    def from_config(
        cls,
        config: Optional[FinderConfig] = None,
        logger: Optional[SearchLogger] = None,
    ) -> "RecipeFinder":
        """Build a finder from a config's catalog (``.csv`` paths load as flat tables)."""
        config = config or load_config()
        path = config.resolved_catalog_path()
        if path.suffix.lower() == ".csv":
            return cls.from_csv(
                path, config.base_elements, logger=logger,
                max_tree_depth=config.budget.max_tree_depth,
            )
        return cls.from_catalog(
            path, config.base_elements, enforce_tiers=config.enforce_tiers,
            logger=logger, max_tree_depth=config.budget.max_tree_depth,
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        target: str,
        algorithm: str = "bfs",
        multi: bool = False,
        max_paths: int = 1,
        trace: bool = False,
        budget: Optional[SearchBudget] = None,
    ) -> SearchResult:
        """
        Find derivation trees for ``target``.

        Parameters
        ----------
        target : str
            Element to derive.
        algorithm : str
            ``bfs``, ``dfs`` or ``bidirectional``.
        multi : bool
            Collect up to ``max_paths`` distinct trees.
        max_paths : int
            1 to 100.
        trace : bool
            Record a ``StepTrace`` of the strategy run (not of enumeration).
        budget : SearchBudget, optional
            Visit and time limits shared by the strategy and enumeration.

        Returns
        -------
        SearchResult

        Raises
        ------
        InvalidParameter
            Bad target, algorithm or max_paths.
        TargetNotFound
        NoPathFound
        """
        if not isinstance(target, str) or not target.strip():
            raise InvalidParameter(f"target must be a non-empty string, got {target!r}")
        if algorithm not in ALGORITHMS:
            raise InvalidParameter(
                f"Unknown algorithm {algorithm!r}; expected one of {', '.join(ALGORITHMS)}"
            )
        max_paths = validate_max_paths(max_paths)
        budget = budget or SearchBudget()
        if budget.max_visits is not None and budget.max_visits < 0:
            raise InvalidParameter(f"max_visits must be non-negative, got {budget.max_visits}")

        self.logger.log_search_start(target, algorithm, multi, max_paths)
        recorder = StepTraceRecorder() if trace else None
        started = time.perf_counter()

        strategy = get_strategy(algorithm)(
            self.graph,
            self.base_elements,
            budget=budget,
            observer=recorder,
            logger=self.logger,
            max_tree_depth=self.max_tree_depth,
        )
        try:
            outcome = strategy.run(target)
        except (TargetNotFound, NoPathFound) as exc:
            self.logger.log_error(exc)
            raise

        trees = [outcome.tree] if outcome.tree is not None else []
        nodes_visited = outcome.nodes_visited
        exhausted = outcome.exhausted

        if multi and max_paths > 1 and outcome.tree is not None and not outcome.tree.is_leaf:
            enumerator = MultiPathEnumerator(
                self.graph,
                self.base_elements,
                max_paths=max_paths,
                budget=self._remaining(budget, nodes_visited, started),
                logger=self.logger,
                max_tree_depth=self.max_tree_depth,
            )
            enumeration = enumerator.enumerate(target, first=outcome.tree, preferred=outcome.parents)
            trees = enumeration.trees
            nodes_visited += enumeration.nodes_visited
            exhausted = enumeration.exhausted

        result = SearchResult(
            target=target,
            algorithm=algorithm,
            trees=trees,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            nodes_visited=nodes_visited,
            steps=recorder.trace() if recorder is not None else None,
            exhausted=exhausted,
            multi=multi,
        )
        self.logger.log_result(result)
        return result

    @staticmethod
    def _remaining(budget: SearchBudget, spent: int, started: float) -> SearchBudget:
        max_visits = None if budget.max_visits is None else max(0, budget.max_visits - spent)
        timeout_ms = budget.timeout_ms
        if timeout_ms is not None:
            timeout_ms = max(0.0, timeout_ms - (time.perf_counter() - started) * 1000.0)
        return SearchBudget(max_visits=max_visits, timeout_ms=timeout_ms)

    # ------------------------------------------------------------------
    # Other views
    # ------------------------------------------------------------------

    def atlas(self, element: str, max_depth: int = DEFAULT_ATLAS_DEPTH) -> RecipeAtlas:
        """Every recipe of ``element``, expanded recursively."""
        if element not in self.base_elements and not self.graph.has_element(element):
            raise TargetNotFound(element)
        return build_recipe_atlas(element, self.graph, self.base_elements, max_depth=max_depth)

    def merge(self, trees: Sequence[DerivationNode]) -> DerivationNode:
        return merge_trees(trees, logger=self.logger)

    def __repr__(self) -> str:
        return f"RecipeFinder({self.graph!r}, base_elements={list(self.base_elements)})"


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------

_finder: Optional[RecipeFinder] = None


def get_finder() -> RecipeFinder:
    """Get or create the finder for the default config and catalog."""
    global _finder
    if _finder is None:
        _finder = RecipeFinder.from_config(load_config())
    return _finder


def find_recipes(target: str, **kwargs: Any) -> SearchResult:
    """
    Convenience wrapper around ``get_finder().search``.

    See RecipeFinder.search for the keyword arguments.
    """
    return get_finder().search(target, **kwargs)
