"""Tests for levelled search logging."""
from __future__ import annotations

from pathlib import Path

import pytest

from RecipeFinder.errors import TargetNotFound
from RecipeFinder.finder import RecipeFinder, SearchResult
from RecipeFinder.search import SearchBudget
from RecipeFinder.search_logging import (
    LogLevel,
    SearchLogger,
    create_logger,
    create_string_logger,
    parse_level,
    silent_logger,
)
from RecipeFinder.tree import DerivationNode, Leaf, Pair

CATALOG_PATH = Path(__file__).resolve().parents[2] / "Catalog" / "recipe.json"


def run_logged(level: LogLevel, target: str = "Wind", **kwargs):
    logger, buffer = create_string_logger(level)
    finder = RecipeFinder.from_catalog(CATALOG_PATH, logger=logger)
    result = finder.search(target, **kwargs)
    return result, logger, buffer


# ---------------------------------------------------------------------------
# Tests: Levels
# ---------------------------------------------------------------------------

class TestLevels:
    """What each level emits."""

    def test_trace_logs_every_expansion(self):
        result, logger, _ = run_logged(LogLevel.TRACE)
        expansions = logger.select("EXPAND")
        assert len(expansions) == result.nodes_visited
        assert "[bfs] step 1: Air" in expansions[0].message

    def test_summary_has_no_expansions(self):
        _, logger, buffer = run_logged(LogLevel.SUMMARY)
        assert not logger.select("EXPAND")
        assert logger.select("GRAPH")
        assert logger.select("SEARCH")
        assert "Derivations of Wind" in buffer.getvalue()

    def test_minimal_only_result(self):
        _, logger, _ = run_logged(LogLevel.MINIMAL)
        assert {e.category for e in logger.entries} == {"RESULT"}

    def test_silent_logs_nothing(self):
        _, logger, buffer = run_logged(LogLevel.SILENT)
        assert logger.entries == []
        assert buffer.getvalue() == ""

    def test_detailed_logs_trees_and_filter(self):
        _, logger, buffer = run_logged(LogLevel.DETAILED)
        assert logger.select("TREE")
        assert "Tier filter kept 54 recipes, dropped 3" in buffer.getvalue()

    def test_debug_logs_alternatives(self):
        _, logger, _ = run_logged(LogLevel.DEBUG, multi=True, max_paths=5)
        assert logger.select("MULTI")

    def test_budget_logged(self):
        _, logger, _ = run_logged(LogLevel.MINIMAL, "Light", budget=SearchBudget(max_visits=2))
        assert logger.select("BUDGET")

    def test_error_logged(self):
        logger, _ = create_string_logger(LogLevel.MINIMAL)
        finder = RecipeFinder.from_catalog(CATALOG_PATH, logger=logger)
        with pytest.raises(TargetNotFound):
            finder.search("Unobtainium")
        assert "TargetNotFound" in logger.select("ERROR")[0].message

    @pytest.mark.parametrize("level", list(LogLevel))
    def test_logging_does_not_change_result(self, level):
        """The same tree comes back at every verbosity."""
        quiet, _, _ = run_logged(LogLevel.SILENT, "Light")
        loud, _, _ = run_logged(level, "Light")
        assert loud.tree == quiet.tree
        assert loud.nodes_visited == quiet.nodes_visited


# ---------------------------------------------------------------------------
# Tests: Logger utilities
# ---------------------------------------------------------------------------

class TestLoggerUtilities:
    """Construction helpers and entry queries."""

    @pytest.mark.parametrize("raw, expected", [
        ("trace", LogLevel.TRACE),
        ("SUMMARY", LogLevel.SUMMARY),
        (30, LogLevel.DETAILED),
        (LogLevel.DEBUG, LogLevel.DEBUG),
    ])
    def test_parse_level(self, raw, expected):
        assert parse_level(raw) == expected

    def test_parse_level_rejects_unknown(self):
        with pytest.raises(KeyError):
            parse_level("LOUD")

    def test_file_logging(self, tmp_path):
        log_path = tmp_path / "search.log"
        with create_logger(LogLevel.SUMMARY, stream=None, log_path=log_path) as logger:
            logger.log_search_start("Dust", "bfs")
        assert "Searching for 'Dust' with bfs" in log_path.read_text(encoding="utf-8")

    def test_select_by_level(self):
        _, logger, _ = run_logged(LogLevel.TRACE)
        summary = logger.select(max_level=LogLevel.SUMMARY)
        assert summary
        assert all(e.level <= LogLevel.SUMMARY for e in summary)
        assert len(summary) < len(logger.entries)

    def test_render_and_reset(self):
        logger = SearchLogger(level=LogLevel.MINIMAL, show_time=False)
        logger.log_no_path("Dust", 4)
        assert logger.render() == (
            "MINIMAL  SEARCH  | Frontier exhausted after 4 visits without reaching 'Dust'"
        )
        logger.reset()
        assert logger.render() == ""

    def test_elapsed_time_prefix(self):
        logger, buffer = create_string_logger(LogLevel.MINIMAL)
        logger.log_no_path("Dust", 4)
        assert buffer.getvalue().startswith("+")
        assert logger.entries[0].elapsed_ms >= 0

    def test_table_columns_aligned(self):
        logger = SearchLogger(level=LogLevel.DEBUG, show_time=False, show_level=False)
        logger.log_catalog_filtered(1, [("Rain", "Cloud", "Water"), ("Energy", "Fire", "Lightning")])
        lines = [e.message for e in logger.select("CATALOG")]
        assert lines[0] == "Tier filter kept 1 recipes, dropped 2"
        assert lines[1] == "Recipes above product tier:"
        assert len({len(line) for line in lines[2:]}) == 1

    @pytest.mark.parametrize("level", [LogLevel.SILENT, LogLevel.MINIMAL])
    def test_quiet_result_skips_tree_metrics(self, level, monkeypatch):
        """Below SUMMARY no per-tree table is built."""
        def fail(self):
            raise AssertionError("leaves() walked for a table that is not shown")

        monkeypatch.setattr(DerivationNode, "leaves", fail)
        logger = SearchLogger(level=level, show_time=False)
        result = SearchResult(
            target="Dust", algorithm="bfs",
            trees=[Pair("Dust", Leaf("Air"), Leaf("Earth"))],
            duration_ms=1.0, nodes_visited=5,
        )
        logger.log_result(result)
        assert not logger.select("TREE")
        assert len(logger.entries) == (1 if level == LogLevel.MINIMAL else 0)

    def test_silent_logger(self):
        logger = silent_logger()
        assert not logger.enabled(LogLevel.MINIMAL)
        logger.log_error(RuntimeError("boom"))
        assert logger.entries == []
