"""Recipe atlas: every known way to make an element, expanded recursively.

Each recipe of an element becomes a combiner node named
``"<element> Recipe"`` whose two children are the expanded ingredients.
The atlas is a browsing structure and not a derivation tree: an element
node may hold any number of combiners.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Collection, Dict, Set

from .graph import RecipeGraph
from .merge import UnifiedNode, node_count
from .tree import DerivationNode, Leaf, Pair

RECIPE_SUFFIX = " Recipe"
DEFAULT_ATLAS_DEPTH = 30
DEFAULT_ATLAS_NODES = 20_000


@dataclass(frozen=True)
class RecipeAtlas:
    root: DerivationNode
    truncated: bool = False

    @property
    def size(self) -> int:
        return node_count(self.root)

    def to_dict(self) -> Dict[str, Any]:
        return {"tree": self.root.to_dict(), "truncated": self.truncated}


def build_recipe_atlas(
    element: str,
    graph: RecipeGraph,
    base_elements: Collection[str],
    max_depth: int = DEFAULT_ATLAS_DEPTH,
    max_nodes: int = DEFAULT_ATLAS_NODES,
) -> RecipeAtlas:
    """
    Expand every recipe of ``element`` down to base elements.

    Base elements, elements without recipes, elements already on the
    current branch and nodes beyond ``max_depth`` are leaves. Once
    ``max_nodes`` nodes have been created the remaining elements are left
    unexpanded and the atlas is marked truncated.

    Parameters
    ----------
    element : str
    graph : RecipeGraph
    base_elements : collection of str
    max_depth : int
        Expansion depth counted in element levels.
    max_nodes : int
        Node cap for catalogs where full expansion explodes.

    Returns
    -------
    RecipeAtlas
    """
    bases = set(base_elements)
    on_branch: Set[str] = set()
    created = 0
    truncated = False

    def expand(name: str, depth: int) -> DerivationNode:
        nonlocal created, truncated
        created += 1
        if name in bases or depth > max_depth or name in on_branch:
            return Leaf(name)
        recipes = graph.recipes_for(name)
        if not recipes:
            return Leaf(name)
        if created >= max_nodes:
            truncated = True
            return Leaf(name)

        on_branch.add(name)
        combiners = []
        for combo in recipes:
            created += 1
            combiners.append(Pair(
                name + RECIPE_SUFFIX,
                expand(combo.ingredient_a, depth + 1),
                expand(combo.ingredient_b, depth + 1),
            ))
        on_branch.discard(name)
        return UnifiedNode(name, tuple(combiners))

    root = expand(element, 0)
    return RecipeAtlas(root=root, truncated=truncated)
