"""Tests for catalog loading, tier filtering and flat CSV tables."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from RecipeFinder.catalog import (
    DEFAULT_BASE_ELEMENTS,
    UNKNOWN_TIER,
    load_catalog,
    load_recipe_table_csv,
    parse_catalog,
    table_from_mapping,
)
from RecipeFinder.errors import GraphError
from RecipeFinder.graph import Combination, build_graph
from RecipeFinder.search_logging import LogLevel, create_string_logger

CATALOG_PATH = Path(__file__).resolve().parents[2] / "Catalog" / "recipe.json"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def catalog():
    return load_catalog(CATALOG_PATH)


def write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Tests: Tiers
# ---------------------------------------------------------------------------

class TestTiers:
    """Tier ordering and lookup."""

    def test_starting_tier_sorted_first(self, catalog):
        """The file lists tier 1 before Starting; loading reorders them."""
        assert catalog.tier_names == ["Starting", "1", "2", "3", "4", "5", "6"]

    @pytest.mark.parametrize("element, tier", [
        ("Air", 0),
        ("Water", 0),
        ("Pressure", 2),
        ("Wind", 3),
        ("Light", 6),
        ("Philosophy", 7),
        ("Idea", UNKNOWN_TIER),
    ])
    def test_tier_of(self, catalog, element, tier):
        assert catalog.tier_of(element) == tier

    def test_numeric_tiers_sort_numerically(self):
        """Tier 10 comes after tier 9, and named tiers go last."""
        catalog = parse_catalog({"tiers": [
            {"name": "10", "elements": []},
            {"name": "Bonus", "elements": []},
            {"name": "9", "elements": []},
            {"name": "Starting", "elements": []},
        ]})
        assert catalog.tier_names == ["Starting", "9", "10", "Bonus"]

    def test_element_names(self, catalog):
        assert catalog.element_names[:4] == ["Air", "Earth", "Fire", "Water"]
        assert "Tool" in catalog.element_names


# ---------------------------------------------------------------------------
# Tests: Recipe tables
# ---------------------------------------------------------------------------

class TestToTable:
    """Flattening with and without tier enforcement."""

    def test_enforced_table_drops_upward_recipes(self, catalog):
        """Three recipes use an ingredient above the product's tier."""
        table = catalog.to_table()
        assert len(table) == 54
        keys = {c.key() for c in table}
        assert ("Energy", "Fire", "Lightning") not in keys
        assert ("Rain", "Cloud", "Water") not in keys
        assert ("Philosophy", "Human", "Idea") not in keys

    def test_unenforced_table_keeps_everything(self, catalog):
        assert len(catalog.to_table(enforce_tiers=False)) == 57

    def test_table_order(self, catalog):
        """Rows follow tier order, then element order, then recipe order."""
        table = catalog.to_table()
        assert table[0] == Combination("Pressure", "Air", "Air")
        assert table[-1] == Combination("Tool", "Human", "Stone")

    def test_filtering_is_logged(self, catalog):
        logger, _ = create_string_logger(LogLevel.DEBUG)
        catalog.to_table(logger=logger)
        messages = [e.message for e in logger.select("CATALOG")]
        assert any("54" in m for m in messages)
        assert any("Philosophy" in m for m in messages)

    def test_table_builds_graph(self, catalog):
        graph = build_graph(catalog.to_table())
        assert graph.is_craftable("Light")
        assert not graph.is_craftable("Philosophy")


# ---------------------------------------------------------------------------
# Tests: Errors
# ---------------------------------------------------------------------------

class TestCatalogErrors:
    """Malformed catalogs are rejected with GraphError."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(GraphError, match="Invalid JSON"):
            load_catalog(path)

    def test_top_level_array(self, tmp_path):
        with pytest.raises(GraphError, match="JSON object"):
            load_catalog(write_json(tmp_path / "list.json", []))

    def test_three_ingredient_recipe(self, tmp_path):
        data = {"tiers": [{"name": "1", "elements": [
            {"name": "Mud", "recipes": [["Earth", "Water", "Fire"]]},
        ]}]}
        with pytest.raises(GraphError, match="exactly 2"):
            load_catalog(write_json(tmp_path / "three.json", data))

    def test_missing_tiers_key(self):
        with pytest.raises(GraphError):
            parse_catalog({"elements": []})

    def test_extra_fields_ignored(self):
        """Image paths and unknown keys do not affect loading."""
        catalog = parse_catalog({"tiers": [{"name": "1", "elements": [
            {"name": " Mud ", "recipes": [["Earth", "Water"]], "local_svg_path": "mud.svg", "color": "brown"},
        ]}]})
        assert catalog.to_table() == [Combination("Mud", "Earth", "Water")]


# ---------------------------------------------------------------------------
# Tests: Flat tables
# ---------------------------------------------------------------------------

class TestFlatTables:
    """CSV and mapping inputs."""

    def test_csv_round_trip_order(self, tmp_path):
        path = tmp_path / "recipes.csv"
        path.write_text(
            "product,ingredient_a,ingredient_b\n"
            "Dust,Air,Earth\n"
            " Mud , Earth ,Water\n",
            encoding="utf-8",
        )
        assert load_recipe_table_csv(path) == [
            Combination("Dust", "Air", "Earth"),
            Combination("Mud", "Earth", "Water"),
        ]

    def test_csv_header_case_insensitive(self, tmp_path):
        path = tmp_path / "recipes.csv"
        path.write_text("Product,Ingredient_A,Ingredient_B\nDust,Air,Earth\n", encoding="utf-8")
        assert len(load_recipe_table_csv(path)) == 1

    def test_csv_missing_columns(self, tmp_path):
        path = tmp_path / "recipes.csv"
        path.write_text("product,ingredient_a\nDust,Air\n", encoding="utf-8")
        with pytest.raises(GraphError, match="ingredient_b"):
            load_recipe_table_csv(path)

    def test_csv_blank_cell_reported_by_graph(self, tmp_path):
        path = tmp_path / "recipes.csv"
        path.write_text("product,ingredient_a,ingredient_b\nDust,Air,\n", encoding="utf-8")
        table = load_recipe_table_csv(path)
        with pytest.raises(GraphError):
            build_graph(table)

    def test_csv_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_recipe_table_csv(tmp_path / "none.csv")

    def test_table_from_mapping(self):
        rows = table_from_mapping({"Wind": [["Air", "Energy"], ["Air", "Pressure"]]})
        assert rows == [("Wind", ("Air", "Energy")), ("Wind", ("Air", "Pressure"))]

    def test_default_bases(self):
        assert DEFAULT_BASE_ELEMENTS == ("Air", "Earth", "Fire", "Water")
