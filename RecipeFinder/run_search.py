#!/usr/bin/env python
"""CLI entry point for the recipe derivation search."""
from __future__ import annotations

import argparse
import cProfile
import json
import pstats
import sys
from io import StringIO
from pathlib import Path

from .config import FinderConfig, load_config
from .errors import RecipeFinderError
from .finder import RecipeFinder, SearchResult
from .search import ALGORITHMS, SearchBudget
from .search_logging import LogLevel, SearchLogger, create_logger


def format_result(result: SearchResult, merge: bool = False) -> str:
    """Render a search result as indented text."""
    lines = []
    if merge and len(result.trees) > 1:
        lines.append(f"Merged derivation of {result.target} ({len(result.trees)} trees):")
        lines.append(result.merged().render_text())
    else:
        for i, tree in enumerate(result.trees):
            if len(result.trees) > 1:
                lines.append(f"--- Path {i + 1} (depth {tree.depth}, {tree.step_count} steps) ---")
            lines.append(tree.render_text())
    lines.append("")
    lines.append(
        f"{result.algorithm}: {len(result.trees)} tree(s), "
        f"{result.nodes_visited} elements visited, {result.duration_ms:.2f}ms"
    )
    if result.steps is not None:
        found_at = result.steps.found_index()
        lines.append(
            f"Trace: {len(result.steps)} steps"
            + (f", target found at step {found_at}" if found_at is not None else "")
        )
    if result.exhausted is not None:
        lines.append(f"WARNING: partial result, {result.exhausted.reason}")
    return "\n".join(lines)


def _build_finder(args: argparse.Namespace, config: FinderConfig, logger: SearchLogger) -> RecipeFinder:
    depth = config.budget.max_tree_depth
    if args.csv:
        return RecipeFinder.from_csv(args.csv, config.base_elements, logger=logger, max_tree_depth=depth)
    if args.catalog:
        return RecipeFinder.from_catalog(
            args.catalog, config.base_elements, enforce_tiers=config.enforce_tiers,
            logger=logger, max_tree_depth=depth,
        )
    return RecipeFinder.from_config(config, logger=logger)


def _run(args: argparse.Namespace, config: FinderConfig, logger: SearchLogger) -> str:
    finder = _build_finder(args, config, logger)

    if args.atlas:
        atlas = finder.atlas(args.target)
        if args.json:
            return json.dumps(atlas.to_dict(), indent=2)
        text = atlas.root.render_text()
        return text + ("\n(truncated)" if atlas.truncated else "")

    budget = config.budget.to_budget()
    if args.max_visits is not None:
        budget = SearchBudget(max_visits=args.max_visits or None, timeout_ms=budget.timeout_ms)

    result = finder.search(
        args.target,
        algorithm=args.algorithm or config.search.algorithm,
        multi=args.multi or config.search.multi,
        max_paths=args.num_paths if args.num_paths is not None else config.search.max_paths,
        trace=args.trace or config.search.trace,
        budget=budget,
    )
    if args.json:
        data = result.to_dict()
        if args.merge and len(result.trees) > 1:
            data["merged"] = result.merged().to_dict()
        return json.dumps(data, indent=2)
    return format_result(result, merge=args.merge)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Find how an element is derived from the base elements."
    )
    parser.add_argument("target", help="Element to derive")
    parser.add_argument(
        "-a",
        "--algorithm",
        choices=list(ALGORITHMS),
        default=None,
        help="Search strategy (default: from config, normally bfs)",
    )
    parser.add_argument(
        "--multi",
        action="store_true",
        help="Collect several distinct derivations",
    )
    parser.add_argument(
        "-n",
        "--num-paths",
        type=int,
        default=None,
        help="Maximum derivations in multi mode, 1-100",
    )
    parser.add_argument("--trace", action="store_true", help="Record search steps")
    parser.add_argument(
        "--merge",
        action="store_true",
        help="Merge multiple derivations into one tree",
    )
    parser.add_argument(
        "--atlas",
        action="store_true",
        help="Show every known recipe of the target instead of searching",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--catalog", type=Path, default=None, help="Tiered catalog JSON")
    parser.add_argument("--csv", type=Path, default=None, help="Flat recipe table CSV")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to config YAML (default: RecipeFinder/DefaultSearchConfig.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.name for level in LogLevel],
        default=None,
        help="Log verbosity on stderr (default: from config)",
    )
    parser.add_argument(
        "--max-visits",
        type=int,
        default=None,
        help="Visit budget per search, 0 = unlimited",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Run with cProfile and display performance statistics",
    )
    parser.add_argument(
        "--profile-lines",
        type=int,
        default=30,
        help="Number of profile lines to display (default: 30)",
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    logger = create_logger(args.log_level or config.log_level, stream=sys.stderr)

    profiler = cProfile.Profile() if args.profile else None
    try:
        if profiler is not None:
            profiler.enable()
        try:
            output = _run(args, config, logger)
        finally:
            if profiler is not None:
                profiler.disable()
    except (RecipeFinderError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        logger.close()

    print(output)

    if profiler is not None:
        stream = StringIO()
        stats = pstats.Stats(profiler, stream=stream)
        stats.strip_dirs()
        stats.sort_stats("cumulative")
        stats.print_stats(args.profile_lines)
        print("\n" + "=" * 60)
        print("PROFILING RESULTS")
        print("=" * 60)
        print(stream.getvalue())
        print(f"Total function calls: {stats.total_calls}")
        print(f"Total time: {stats.total_tt:.3f} seconds")

    return 0


if __name__ == "__main__":
    sys.exit(main())
