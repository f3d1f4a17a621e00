"""
Levelled logging for recipe searches.

Verbosity levels:
    - MINIMAL: Final result and errors
    - SUMMARY: Graph size, search request and result metrics
    - DETAILED: Derivation trees, catalog filtering, merge summaries
    - DEBUG: Multi-path enumeration progress
    - TRACE: Every frontier expansion

Usage:
    from RecipeFinder.search_logging import SearchLogger, LogLevel

    logger = SearchLogger(level=LogLevel.DETAILED)
    finder = RecipeFinder(table, logger=logger)
    finder.search("Dust")

Each line is stamped with the time elapsed since the logger was created,
which lines up expansion entries with the search that produced them.
Logging never influences what a search returns.
"""
from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from enum import IntEnum
from io import StringIO
from pathlib import Path
from typing import (
    TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Sequence, TextIO, Tuple, Union,
)

if TYPE_CHECKING:
    from .finder import SearchResult
    from .tree import DerivationNode


class LogLevel(IntEnum):
    """Verbosity levels for search logging."""
    SILENT = 0
    MINIMAL = 10    # Final result and errors
    SUMMARY = 20    # Request overview and key metrics
    DETAILED = 30   # Trees, catalog filtering, merges
    DEBUG = 40      # Multi-path enumeration
    TRACE = 50      # Every expansion


@dataclass(frozen=True)
class LogEntry:
    """One logged line plus optional structured payload."""
    elapsed_ms: float
    level: LogLevel
    category: str
    message: str
    data: Optional[Dict[str, Any]] = None

    def format(self, show_time: bool = True, show_level: bool = True) -> str:
        prefix = ""
        if show_time:
            prefix += f"+{self.elapsed_ms / 1000.0:8.3f}s "
        if show_level:
            prefix += f"{self.level.name:<8} "
        return f"{prefix}{self.category:<7} | {self.message}"


@dataclass
class SearchLogger:
    """
    Structured logger for recipe searches.

    Attributes
    ----------
    level : LogLevel
        Most verbose level that is recorded.
    stream : TextIO | None
        Where formatted lines go; None keeps entries in memory only.
    log_path : Path | None
        Optional file that receives a copy of every line.
    entries : list[LogEntry]
        Everything recorded so far, for programmatic inspection.
    """
    level: LogLevel = LogLevel.SUMMARY
    stream: Optional[TextIO] = None
    log_path: Optional[Path] = None
    show_time: bool = True
    show_level: bool = True
    entries: List[LogEntry] = field(default_factory=list)
    _started: float = field(default_factory=time.perf_counter, repr=False)
    _file: Optional[TextIO] = field(default=None, repr=False)

    def __post_init__(self):
        if self.log_path is not None:
            self._file = Path(self.log_path).open("w", encoding="utf-8")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self) -> "SearchLogger":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def enabled(self, level: LogLevel) -> bool:
        return self.level != LogLevel.SILENT and level <= self.level

    def _sinks(self) -> Iterator[TextIO]:
        if self.stream is not None:
            yield self.stream
        if self._file is not None:
            yield self._file

    def _emit(self, level: LogLevel, category: str, message: str,
              data: Optional[Dict[str, Any]] = None) -> None:
        if not self.enabled(level):
            return
        entry = LogEntry(
            elapsed_ms=(time.perf_counter() - self._started) * 1000.0,
            level=level,
            category=category,
            message=message,
            data=data,
        )
        self.entries.append(entry)
        line = entry.format(self.show_time, self.show_level) + "\n"
        for sink in self._sinks():
            sink.write(line)
            sink.flush()

    def _table(self, level: LogLevel, category: str, title: str,
               columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        """Emit ``rows`` as an aligned text table, one entry per line."""
        if not self.enabled(level):
            return
        cells = [[str(c) for c in columns]] + [[str(v) for v in row] for row in rows]
        widths = [max(len(col) for col in column) for column in zip(*cells)]

        def fmt(row: List[str]) -> str:
            return "  ".join(value.rjust(width) for value, width in zip(row, widths))

        header = fmt(cells[0])
        self._emit(level, category, title)
        self._emit(level, category, header)
        self._emit(level, category, "-" * len(header))
        for row in cells[1:]:
            self._emit(level, category, fmt(row))

    # -------------------------------------------------------------------------
    # Graph and Catalog
    # -------------------------------------------------------------------------

    def log_graph_built(self, stats: Dict[str, int]) -> None:
        """Log recipe graph size."""
        self._emit(LogLevel.SUMMARY, "GRAPH",
                   f"Indexed {stats.get('combinations', 0)} combinations over "
                   f"{stats.get('elements', 0)} elements "
                   f"({stats.get('multi_recipe_products', 0)} with alternative recipes)",
                   data=dict(stats))

    def log_catalog_filtered(self, kept: int, dropped: Sequence[Tuple[str, str, str]]) -> None:
        """Log recipes removed by the tier filter."""
        self._emit(LogLevel.DETAILED, "CATALOG",
                   f"Tier filter kept {kept} recipes, dropped {len(dropped)}")
        if dropped:
            self._table(LogLevel.DEBUG, "CATALOG", "Recipes above product tier:",
                        ["Product", "Ingredient A", "Ingredient B"],
                        [list(recipe) for recipe in dropped[:30]])

    # -------------------------------------------------------------------------
    # Search Progress
    # -------------------------------------------------------------------------

    def log_search_start(self, target: str, algorithm: str,
                         multi: bool = False, max_paths: int = 1) -> None:
        mode = f"multi (max {max_paths})" if multi else "single"
        self._emit(LogLevel.SUMMARY, "SEARCH",
                   f"Searching for {target!r} with {algorithm}, {mode} path")

    def log_expansion(self, algorithm: str, step: int, element: str,
                      frontier_size: int, admitted: Sequence[str]) -> None:
        """Log one frontier pop (TRACE level)."""
        if not self.enabled(LogLevel.TRACE):
            return
        detail = f" -> admitted {', '.join(admitted)}" if admitted else ""
        self._emit(LogLevel.TRACE, "EXPAND",
                   f"[{algorithm}] step {step}: {element} "
                   f"(frontier {frontier_size}){detail}")

    def log_budget_exhausted(self, algorithm: str, target: str,
                             visits: int, reason: str) -> None:
        self._emit(LogLevel.MINIMAL, "BUDGET",
                   f"[{algorithm}] search for {target!r} stopped after {visits} visits: {reason}")

    def log_no_path(self, target: str, visits: int) -> None:
        self._emit(LogLevel.MINIMAL, "SEARCH",
                   f"Frontier exhausted after {visits} visits without reaching {target!r}")

    def log_alternative(self, index: int, tree: "DerivationNode", duplicate: bool) -> None:
        """Log a candidate tree produced by multi-path enumeration."""
        if not self.enabled(LogLevel.DEBUG):
            return
        status = "duplicate, skipped" if duplicate else f"kept as path {index}"
        self._emit(LogLevel.DEBUG, "MULTI",
                   f"Candidate depth={tree.depth} steps={tree.step_count}: {status}")

    def log_enumeration_complete(self, found: int, max_paths: int, visits: int) -> None:
        if found < max_paths:
            message = f"Alternatives exhausted: {found} of {max_paths} requested paths"
        else:
            message = f"Collected {found} paths"
        self._emit(LogLevel.DETAILED, "MULTI", f"{message} ({visits} visits)")

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def log_result(self, result: "SearchResult") -> None:
        """Log the outcome of a search."""
        self._emit(LogLevel.MINIMAL, "RESULT",
                   f"{result.target}: {len(result.trees)} tree(s) via {result.algorithm} "
                   f"in {result.duration_ms:.2f}ms, {result.nodes_visited} visits"
                   + (" [partial]" if result.exhausted is not None else ""))
        if not result.trees or not self.enabled(LogLevel.SUMMARY):
            return
        self._table(LogLevel.SUMMARY, "RESULT", f"Derivations of {result.target}:",
                    ["#", "Depth", "Steps", "Leaves"],
                    [[i, t.depth, t.step_count, len(t.leaves())] for i, t in enumerate(result.trees)])

        if self.enabled(LogLevel.DETAILED):
            for i, tree in enumerate(result.trees):
                self._emit(LogLevel.DETAILED, "TREE", f"Path {i}:")
                for line in tree.render_text().splitlines():
                    self._emit(LogLevel.DETAILED, "TREE", f"  {line}")

    def log_merge(self, tree_count: int, node_count: int) -> None:
        self._emit(LogLevel.DETAILED, "MERGE",
                   f"Merged {tree_count} trees into one structure of {node_count} nodes")

    def log_error(self, error: Exception) -> None:
        self._emit(LogLevel.MINIMAL, "ERROR", f"{type(error).__name__}: {error}")

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def select(self, category: Optional[str] = None,
               max_level: Optional[LogLevel] = None) -> List[LogEntry]:
        """Recorded entries, optionally narrowed by category and verbosity."""
        return [
            e for e in self.entries
            if (category is None or e.category == category)
            and (max_level is None or e.level <= max_level)
        ]

    def render(self, max_level: Optional[LogLevel] = None) -> str:
        return "\n".join(e.format(self.show_time, self.show_level)
                         for e in self.select(max_level=max_level))

    def reset(self) -> None:
        self.entries.clear()
        self._started = time.perf_counter()


def parse_level(level: Union[LogLevel, str, int]) -> LogLevel:
    """Accept a LogLevel, its name, or its integer value."""
    if isinstance(level, LogLevel):
        return level
    if isinstance(level, str):
        return LogLevel[level.upper()]
    return LogLevel(level)


def create_logger(
    level: Union[LogLevel, str, int] = LogLevel.SUMMARY,
    stream: Optional[TextIO] = sys.stdout,
    log_path: Optional[Path] = None,
) -> SearchLogger:
    """
    Build a SearchLogger.

    Parameters
    ----------
    level : LogLevel | str | int
        Level, level name (any case) or numeric value.
    stream : TextIO | None
        Line output; pass None to keep entries in memory.
    log_path : Path | None
        File that also receives every line.
    """
    return SearchLogger(level=parse_level(level), stream=stream, log_path=log_path)


def create_string_logger(level: LogLevel = LogLevel.DETAILED) -> Tuple[SearchLogger, StringIO]:
    """Logger writing into a fresh StringIO; returns both."""
    buffer = StringIO()
    return SearchLogger(level=level, stream=buffer), buffer


def silent_logger() -> SearchLogger:
    return SearchLogger(level=LogLevel.SILENT)
