"""Recipe graph index over a flat combination table.

Builds two read-only indices over the same ordered set of combinations:

- forward: ingredient -> [(product, partner), ...]
- reverse: product -> [Combination, ...] (alternative recipes)

Index order follows table order, which keeps "first discovered wins"
reproducible across runs. A built graph is never mutated, so one instance
may be shared by concurrent searches.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Sequence,
    Set,
    Tuple,
    Union,
)

from .errors import GraphError


@dataclass(frozen=True)
class Combination:
    """Two ingredients producing one product. Ingredient order is not meaningful."""
    product: str
    ingredient_a: str
    ingredient_b: str

    @property
    def ingredients(self) -> Tuple[str, str]:
        return (self.ingredient_a, self.ingredient_b)

    def key(self) -> Tuple[str, str, str]:
        """Order-independent identity used for deduplication."""
        a, b = sorted(self.ingredients)
        return (self.product, a, b)

    def partner_of(self, ingredient: str) -> str:
        """The other ingredient; for a self-combination, the ingredient itself."""
        return self.ingredient_b if ingredient == self.ingredient_a else self.ingredient_a

    def to_dict(self) -> Dict[str, str]:
        return {
            "product": self.product,
            "ingredient_a": self.ingredient_a,
            "ingredient_b": self.ingredient_b,
        }


# A table row is either a Combination, (product, a, b) or (product, [a, b]).
TableRow = Union[Combination, Sequence[Any]]
Neighbor = Tuple[str, str]  # (product, partner)


def _coerce_row(index: int, row: TableRow) -> Combination:
    if isinstance(row, Combination):
        combo = row
    else:
        if isinstance(row, (str, bytes)) or not isinstance(row, Sequence) or not row:
            raise GraphError(f"Row {index}: expected (product, ingredientA, ingredientB), got {row!r}")
        product = row[0]
        if len(row) == 2 and isinstance(row[1], (list, tuple)):
            ingredients = tuple(row[1])
        else:
            ingredients = tuple(row[1:])
        if len(ingredients) != 2:
            raise GraphError(
                f"Row {index}: combination for {product!r} has "
                f"{len(ingredients)} ingredients, expected exactly 2"
            )
        combo = Combination(product, ingredients[0], ingredients[1])

    for name in (combo.product, combo.ingredient_a, combo.ingredient_b):
        if not isinstance(name, str) or not name.strip():
            raise GraphError(f"Row {index}: element names must be non-empty strings, got {name!r}")
    return combo


class RecipeGraph:
    """
    Immutable bidirectional recipe index.

    Use ``build_graph`` to construct one from a recipe table.
    """

    def __init__(self, combinations: Iterable[Combination]):
        forward: Dict[str, List[Neighbor]] = {}
        uses: Dict[str, List[Combination]] = {}
        reverse: Dict[str, List[Combination]] = {}
        seen_keys: Set[Tuple[str, str, str]] = set()
        ordered: List[Combination] = []

        for combo in combinations:
            key = combo.key()
            if key in seen_keys:
                continue
            seen_keys.add(key)
            ordered.append(combo)

            a, b = combo.ingredients
            forward.setdefault(a, []).append((combo.product, b))
            uses.setdefault(a, []).append(combo)
            if a != b:
                forward.setdefault(b, []).append((combo.product, a))
                uses.setdefault(b, []).append(combo)
            reverse.setdefault(combo.product, []).append(combo)

        elements: Set[str] = set(reverse)
        for combo in ordered:
            elements.update(combo.ingredients)

        self._combinations: Tuple[Combination, ...] = tuple(ordered)
        self._forward: Mapping[str, Tuple[Neighbor, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in forward.items()}
        )
        self._uses: Mapping[str, Tuple[Combination, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in uses.items()}
        )
        self._reverse: Mapping[str, Tuple[Combination, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in reverse.items()}
        )
        self._elements: FrozenSet[str] = frozenset(elements)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def neighbors(self, element: str) -> Tuple[Neighbor, ...]:
        """(product, partner) pairs for every combination using ``element``."""
        return self._forward.get(element, ())

    def uses(self, element: str) -> Tuple[Combination, ...]:
        """Combinations with ``element`` as an ingredient, aligned with ``neighbors``."""
        return self._uses.get(element, ())

    def recipes_for(self, product: str) -> Tuple[Combination, ...]:
        """Alternative combinations producing ``product``, in table order."""
        return self._reverse.get(product, ())

    def has_element(self, name: str) -> bool:
        return name in self._elements

    def is_craftable(self, name: str) -> bool:
        return name in self._reverse

    @property
    def combinations(self) -> Tuple[Combination, ...]:
        return self._combinations

    @property
    def elements(self) -> FrozenSet[str]:
        return self._elements

    @property
    def forward_index(self) -> Mapping[str, Tuple[Neighbor, ...]]:
        return self._forward

    @property
    def reverse_index(self) -> Mapping[str, Tuple[Combination, ...]]:
        return self._reverse

    def __len__(self) -> int:
        return len(self._combinations)

    def __contains__(self, name: object) -> bool:
        return name in self._elements

    def __iter__(self) -> Iterator[Combination]:
        return iter(self._combinations)

    def reachable_from(self, base_elements: Sequence[str]) -> FrozenSet[str]:
        """Every element derivable from ``base_elements`` (bases included)."""
        seen: Set[str] = set(base_elements)
        expanded: Set[str] = set()
        queue = deque(base_elements)

        while queue:
            current = queue.popleft()
            expanded.add(current)
            for product, partner in self._forward.get(current, ()):
                if partner in expanded and product not in seen:
                    seen.add(product)
                    queue.append(product)

        return frozenset(seen)

    def stats(self) -> Dict[str, int]:
        return {
            "combinations": len(self._combinations),
            "elements": len(self._elements),
            "products": len(self._reverse),
            "multi_recipe_products": sum(1 for r in self._reverse.values() if len(r) > 1),
        }

    def __repr__(self) -> str:
        return (
            f"RecipeGraph(combinations={len(self._combinations)}, "
            f"elements={len(self._elements)})"
        )


def build_graph(table: Iterable[TableRow]) -> RecipeGraph:
    """
    Build a ``RecipeGraph`` from an ordered recipe table.

    Parameters
    ----------
    table : iterable
        Rows of ``Combination``, ``(product, a, b)`` or ``(product, [a, b])``.
        A product may repeat with different ingredient pairs.

    Returns
    -------
    RecipeGraph

    Raises
    ------
    GraphError
        If the table is empty or a row does not name exactly two ingredients.
    """
    combos = [_coerce_row(i, row) for i, row in enumerate(table)]
    if not combos:
        raise GraphError("Recipe table is empty")
    return RecipeGraph(combos)
