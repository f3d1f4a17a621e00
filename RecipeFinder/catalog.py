"""Load recipe tables from a tiered catalog JSON file or a flat CSV file.

Catalog layout::

    {"tiers": [
        {"name": "Starting", "elements": [{"name": "Air", "recipes": []}, ...]},
        {"name": "1", "elements": [{"name": "Dust", "recipes": [["Air", "Earth"]]}, ...]},
        ...
    ]}

Tiers are ordered "Starting" first, then by tier number. Base elements
have tier 0 and the i-th catalog tier has tier i + 1. With tier
enforcement on, a recipe that uses an ingredient from a higher tier than
its product is dropped; such recipes only close cycles and never shorten
a derivation.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import GraphError
from .graph import Combination, TableRow
from .search_logging import SearchLogger

DEFAULT_BASE_ELEMENTS: Tuple[str, ...] = ("Air", "Earth", "Fire", "Water")

UNKNOWN_TIER = 999
CSV_COLUMNS: Tuple[str, ...] = ("product", "ingredient_a", "ingredient_b")


# ---------------------------------------------------------------------------
# Catalog schema
# ---------------------------------------------------------------------------

class ElementModel(BaseModel):
    name: str = Field(min_length=1)
    recipes: List[List[str]] = Field(default_factory=list)
    local_svg_path: Optional[str] = None
    original_svg_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @field_validator("recipes")
    @classmethod
    def _binary_recipes(cls, recipes: List[List[str]]) -> List[List[str]]:
        for recipe in recipes:
            if len(recipe) != 2:
                raise ValueError(f"recipe {recipe!r} must name exactly 2 ingredients")
            if not all(name.strip() for name in recipe):
                raise ValueError(f"recipe {recipe!r} has an empty ingredient name")
        return recipes


def _tier_sort_key(name: str) -> Tuple[int, float, str]:
    cleaned = name.strip()
    if cleaned.lower().startswith("starting"):
        return (0, 0.0, cleaned)
    if cleaned.lower().startswith("tier "):
        cleaned = cleaned[5:].strip()
    try:
        return (1, float(cleaned), cleaned)
    except ValueError:
        return (2, 0.0, cleaned)


class TierModel(BaseModel):
    name: str
    elements: List[ElementModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class CatalogModel(BaseModel):
    tiers: List[TierModel]

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="after")
    def _order_tiers(self) -> CatalogModel:
        ordered = sorted(self.tiers, key=lambda tier: _tier_sort_key(tier.name))
        if [t.name for t in ordered] != [t.name for t in self.tiers]:
            return self.model_copy(update={"tiers": ordered})
        return self


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass
class Catalog:
    """A validated catalog plus the tier lookup derived from it."""
    model: CatalogModel
    base_elements: Tuple[str, ...] = DEFAULT_BASE_ELEMENTS
    tiers: Dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self.base_elements = tuple(self.base_elements)
        tiers: Dict[str, int] = {}
        for index, tier in enumerate(self.model.tiers):
            for element in tier.elements:
                tiers[element.name] = index + 1
        for base in self.base_elements:
            tiers[base] = 0
        self.tiers = tiers

    @property
    def tier_names(self) -> List[str]:
        return [tier.name for tier in self.model.tiers]

    @property
    def element_names(self) -> List[str]:
        return [element.name for tier in self.model.tiers for element in tier.elements]

    def tier_of(self, element: str) -> int:
        return self.tiers.get(element, UNKNOWN_TIER)

    def to_table(
        self,
        enforce_tiers: bool = True,
        logger: Optional[SearchLogger] = None,
    ) -> List[Combination]:
        """
        Flatten the catalog to an ordered recipe table.

        Parameters
        ----------
        enforce_tiers : bool
            Drop recipes whose ingredients sit in a higher tier than the product.
        logger : SearchLogger, optional

        Returns
        -------
        list[Combination]
            In catalog order: tier, then element, then recipe.
        """
        table: List[Combination] = []
        dropped: List[Tuple[str, str, str]] = []
        for tier in self.model.tiers:
            for element in tier.elements:
                product_tier = self.tier_of(element.name)
                for a, b in element.recipes:
                    if enforce_tiers and max(self.tier_of(a), self.tier_of(b)) > product_tier:
                        dropped.append((element.name, a, b))
                        continue
                    table.append(Combination(element.name, a, b))
        if logger is not None and enforce_tiers:
            logger.log_catalog_filtered(len(table), dropped)
        return table


def parse_catalog(
    data: Mapping[str, Any],
    base_elements: Sequence[str] = DEFAULT_BASE_ELEMENTS,
) -> Catalog:
    """Validate an already-decoded catalog document."""
    try:
        model = CatalogModel.model_validate(data)
    except ValidationError as exc:
        raise GraphError(f"Invalid recipe catalog: {exc}") from exc
    return Catalog(model=model, base_elements=tuple(base_elements))


def load_catalog(
    path: Union[str, Path],
    base_elements: Sequence[str] = DEFAULT_BASE_ELEMENTS,
) -> Catalog:
    """
    Read and validate a catalog JSON file.

    Raises
    ------
    FileNotFoundError
        The file does not exist.
    GraphError
        The file is not JSON or does not match the catalog schema.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Recipe catalog not found: {catalog_path}")
    try:
        data = json.loads(catalog_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise GraphError(f"Invalid JSON in {catalog_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise GraphError(f"Expected a JSON object in {catalog_path}, got {type(data).__name__}")
    return parse_catalog(data, base_elements)


# ---------------------------------------------------------------------------
# Flat tables
# ---------------------------------------------------------------------------

def load_recipe_table_csv(path: Union[str, Path]) -> List[Combination]:
    """
    Read a flat recipe table with columns ``product, ingredient_a, ingredient_b``.

    Row order is preserved. Blank cells are kept as empty names so that
    ``build_graph`` reports them.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Recipe table not found: {csv_path}")
    try:
        frame = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise GraphError(f"Recipe table {csv_path} is empty") from exc

    frame.columns = [str(col).strip().lower() for col in frame.columns]
    missing = [col for col in CSV_COLUMNS if col not in frame.columns]
    if missing:
        raise GraphError(f"Recipe table {csv_path} is missing columns: {', '.join(missing)}")

    working = frame.loc[:, list(CSV_COLUMNS)].apply(lambda col: col.str.strip())
    return [
        Combination(product, a, b)
        for product, a, b in working.itertuples(index=False, name=None)
    ]


def table_from_mapping(recipes: Mapping[str, Iterable[Sequence[str]]]) -> List[TableRow]:
    """Rows from ``{product: [[a, b], ...]}``, in mapping order."""
    rows: List[TableRow] = []
    for product, pairs in recipes.items():
        for pair in pairs:
            rows.append((product, tuple(pair)))
    return rows
