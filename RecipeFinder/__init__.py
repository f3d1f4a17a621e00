"""Recipe derivation search for binary crafting-combination puzzles."""
from .config import load_config, save_config, FinderConfig
from .errors import (
    RecipeFinderError,
    GraphError,
    InvalidParameter,
    TargetNotFound,
    NoPathFound,
    MergeError,
    SearchExhausted,
)
from .graph import Combination, RecipeGraph, build_graph
from .catalog import (
    Catalog,
    DEFAULT_BASE_ELEMENTS,
    load_catalog,
    load_recipe_table_csv,
    table_from_mapping,
)
from .tree import DerivationNode, Leaf, Pair, reconstruct_tree, tree_from_dict
from .trace import StepRecord, StepTrace, StepTraceRecorder
from .search import (
    SearchBudget,
    BreadthFirstSearch,
    DepthFirstSearch,
    BidirectionalSearch,
)
from .multipath import MultiPathEnumerator
from .merge import UnifiedNode, merge_trees
from .atlas import RecipeAtlas, build_recipe_atlas
from .finder import RecipeFinder, SearchResult, get_finder, find_recipes
from .search_logging import LogLevel, SearchLogger, create_logger, create_string_logger

__all__ = [
    "load_config",
    "save_config",
    "FinderConfig",
    # Errors
    "RecipeFinderError",
    "GraphError",
    "InvalidParameter",
    "TargetNotFound",
    "NoPathFound",
    "MergeError",
    "SearchExhausted",
    # Graph and tables
    "Combination",
    "RecipeGraph",
    "build_graph",
    "Catalog",
    "DEFAULT_BASE_ELEMENTS",
    "load_catalog",
    "load_recipe_table_csv",
    "table_from_mapping",
    # Trees and traces
    "DerivationNode",
    "Leaf",
    "Pair",
    "reconstruct_tree",
    "tree_from_dict",
    "StepRecord",
    "StepTrace",
    "StepTraceRecorder",
    # Search
    "SearchBudget",
    "BreadthFirstSearch",
    "DepthFirstSearch",
    "BidirectionalSearch",
    "MultiPathEnumerator",
    "UnifiedNode",
    "merge_trees",
    "RecipeAtlas",
    "build_recipe_atlas",
    "RecipeFinder",
    "SearchResult",
    "get_finder",
    "find_recipes",
    # Logging
    "LogLevel",
    "SearchLogger",
    "create_logger",
    "create_string_logger",
]
