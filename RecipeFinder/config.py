"""Load, normalise, and save search configuration from DefaultSearchConfig.yaml."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml

from .catalog import DEFAULT_BASE_ELEMENTS
from .resources import get_resource_path
from .search import SearchBudget
from .search_logging import LogLevel
from .tree import DEFAULT_MAX_TREE_DEPTH

DEFAULT_CONFIG_PATH = get_resource_path("RecipeFinder/DefaultSearchConfig.yaml")
DEFAULT_CATALOG_PATH = "Catalog/recipe.json"


@dataclass
class SearchOptions:
    algorithm: str = "bfs"
    multi: bool = False
    max_paths: int = 1  # 1-100; validated when a search runs
    trace: bool = False


@dataclass
class BudgetOptions:
    max_visits: int = 0  # 0 = unlimited
    timeout_ms: float = 0.0  # 0 = no deadline
    max_tree_depth: int = DEFAULT_MAX_TREE_DEPTH

    def to_budget(self) -> SearchBudget:
        return SearchBudget(
            max_visits=self.max_visits or None,
            timeout_ms=self.timeout_ms or None,
        )


@dataclass
class FinderConfig:
    base_elements: List[str] = field(default_factory=lambda: list(DEFAULT_BASE_ELEMENTS))
    catalog_path: str = DEFAULT_CATALOG_PATH
    enforce_tiers: bool = True
    search: SearchOptions = field(default_factory=SearchOptions)
    budget: BudgetOptions = field(default_factory=BudgetOptions)
    log_level: LogLevel = LogLevel.SUMMARY

    def resolved_catalog_path(self) -> Path:
        """Catalog path, resolved against the project root when relative."""
        path = Path(self.catalog_path)
        return path if path.is_absolute() else get_resource_path(self.catalog_path)


def _as_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


def _as_count(raw: Any, default: int) -> int:
    """Non-negative int; unparseable values fall back to the default."""
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return default


def _as_level(raw: Any) -> LogLevel:
    if isinstance(raw, str) and raw.strip().upper() in LogLevel.__members__:
        return LogLevel[raw.strip().upper()]
    if isinstance(raw, int) and raw in {lvl.value for lvl in LogLevel}:
        return LogLevel(raw)
    return LogLevel.SUMMARY


def load_config(path: Optional[Path] = None) -> FinderConfig:
    """Load and normalise configuration YAML into a FinderConfig dataclass."""
    cfg_path = path or DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        return FinderConfig()

    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    # Base elements
    bases_raw = raw.get("baseElements") or list(DEFAULT_BASE_ELEMENTS)
    base_elements = [str(b).strip() for b in bases_raw if str(b).strip()]

    # Search defaults (algorithm names and maxPaths are checked per search)
    search_raw = raw.get("search") or {}
    search = SearchOptions(
        algorithm=str(search_raw.get("algorithm", "bfs")).strip().lower(),
        multi=_as_bool(search_raw.get("multi"), False),
        max_paths=_as_count(search_raw.get("maxPaths", 1), 1),
        trace=_as_bool(search_raw.get("trace"), False),
    )

    # Budget
    budget_raw = raw.get("budget") or {}
    try:
        timeout_ms = max(0.0, float(budget_raw.get("timeoutMs", 0) or 0))
    except (TypeError, ValueError):
        timeout_ms = 0.0
    budget = BudgetOptions(
        max_visits=_as_count(budget_raw.get("maxVisits", 0), 0),
        timeout_ms=timeout_ms,
        max_tree_depth=_as_count(budget_raw.get("maxTreeDepth", DEFAULT_MAX_TREE_DEPTH),
                                 DEFAULT_MAX_TREE_DEPTH) or DEFAULT_MAX_TREE_DEPTH,
    )

    logging_raw = raw.get("logging") or {}

    return FinderConfig(
        base_elements=base_elements or list(DEFAULT_BASE_ELEMENTS),
        catalog_path=str(raw.get("catalogPath") or DEFAULT_CATALOG_PATH),
        enforce_tiers=_as_bool(raw.get("enforceTiers"), True),
        search=search,
        budget=budget,
        log_level=_as_level(logging_raw.get("level", "SUMMARY")),
    )


def save_config(config: FinderConfig, path: Optional[Path] = None) -> None:
    """
    Save FinderConfig back to a YAML file.

    Parameters
    ----------
    config : FinderConfig
        The configuration to save
    path : Path, optional
        Path to save to. Defaults to DefaultSearchConfig.yaml
    """
    cfg_path = path or DEFAULT_CONFIG_PATH

    data = {
        "baseElements": list(config.base_elements),
        "catalogPath": config.catalog_path,
        "enforceTiers": config.enforce_tiers,
        "search": {
            "algorithm": config.search.algorithm,
            "multi": config.search.multi,
            "maxPaths": config.search.max_paths,
            "trace": config.search.trace,
        },
        "budget": {
            "maxVisits": config.budget.max_visits,
            "timeoutMs": config.budget.timeout_ms,
            "maxTreeDepth": config.budget.max_tree_depth,
        },
        "logging": {"level": config.log_level.name},
    }

    with cfg_path.open("w", encoding="utf-8") as fh:
        yaml.dump(data, fh, default_flow_style=False, allow_unicode=True, sort_keys=False)
