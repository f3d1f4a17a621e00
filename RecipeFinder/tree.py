"""Binary derivation trees and reconstruction from a parent map.

A derivation tree is either a ``Leaf`` (an element taken as given) or a
``Pair`` (an element produced from exactly two sub-derivations). The two
classes are the only node kinds, so a node can never carry a single child
or three children.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Collection, Dict, List, Mapping, Optional, Set, Tuple

from .graph import Combination

# Depth guard for reconstruction over untrusted parent maps
DEFAULT_MAX_TREE_DEPTH = 150

CanonicalKey = Tuple[Any, ...]


@dataclass(frozen=True)
class DerivationNode:
    """Common behaviour of ``Leaf`` and ``Pair``."""
    element: str

    @property
    def children(self) -> Tuple["DerivationNode", ...]:
        return ()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    # Cached per node; nodes are immutable and shared between trees

    @cached_property
    def depth(self) -> int:
        """Height in combination steps (a leaf has depth 0)."""
        children = self.children
        if not children:
            return 0
        return 1 + max(child.depth for child in children)

    @cached_property
    def step_count(self) -> int:
        """Number of combinations in the tree (Pair nodes)."""
        children = self.children
        if not children:
            return 0
        return 1 + sum(child.step_count for child in children)

    def leaves(self) -> List[str]:
        """Leaf element names, left to right."""
        out: List[str] = []
        stack: List[DerivationNode] = [self]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                out.append(node.element)
            else:
                stack.extend(reversed(node.children))
        return out

    def elements(self) -> Set[str]:
        found: Set[str] = set()
        stack: List[DerivationNode] = [self]
        while stack:
            node = stack.pop()
            found.add(node.element)
            stack.extend(node.children)
        return found

    def combinations(self) -> List[Combination]:
        """Combinations used by the tree, bottom-up, without repeats."""
        out: List[Combination] = []
        seen: Set[Tuple[str, str, str]] = set()

        def walk(node: DerivationNode) -> None:
            if not isinstance(node, Pair):
                return
            walk(node.left)
            walk(node.right)
            combo = Combination(node.element, node.left.element, node.right.element)
            if combo.key() not in seen:
                seen.add(combo.key())
                out.append(combo)

        walk(self)
        return out

    def canonical_key(self) -> CanonicalKey:
        """
        Structural identity with each Pair's children treated as unordered.

        Two trees that differ only by swapping ingredients share a key.
        """
        return self._canonical

    @cached_property
    def _canonical(self) -> CanonicalKey:
        children = self.children
        if not children:
            return (self.element,)
        return (self.element, tuple(sorted(child._canonical for child in children)))

    def equivalent(self, other: "DerivationNode") -> bool:
        return self.canonical_key() == other.canonical_key()

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape consumed by renderers: ``{"name", "children"?}``."""
        data: Dict[str, Any] = {"name": self.element}
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    def render_text(self, indent: str = "  ") -> str:
        lines: List[str] = []

        def walk(node: DerivationNode, level: int) -> None:
            if level == 0:
                lines.append(node.element)
            else:
                lines.append(f"{indent * (level - 1)}└ {node.element}")
            for child in node.children:
                walk(child, level + 1)

        walk(self, 0)
        return "\n".join(lines)


@dataclass(frozen=True)
class Leaf(DerivationNode):
    """An element used as-is: a base element or one with no recorded recipe."""


@dataclass(frozen=True)
class Pair(DerivationNode):
    """An element produced by combining two derived elements."""
    left: DerivationNode
    right: DerivationNode

    @property
    def children(self) -> Tuple[DerivationNode, ...]:
        return (self.left, self.right)


def tree_from_dict(data: Mapping[str, Any]) -> DerivationNode:
    """Inverse of ``DerivationNode.to_dict``."""
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError(f"Tree node without a name: {data!r}")
    children = data.get("children") or []
    if not children:
        return Leaf(name)
    if len(children) != 2:
        raise ValueError(
            f"Derivation node {name!r} has {len(children)} children, expected 0 or 2"
        )
    return Pair(name, tree_from_dict(children[0]), tree_from_dict(children[1]))


def reconstruct_tree(
    element: str,
    parents: Mapping[str, Combination],
    base_elements: Collection[str],
    max_depth: int = DEFAULT_MAX_TREE_DEPTH,
    memo: Optional[Dict[str, DerivationNode]] = None,
) -> DerivationNode:
    """
    Rebuild the derivation of ``element`` from a parent map.

    Base elements and elements with no recorded combination become leaves.
    That fallback is deliberate: a reconstruction gap yields a shorter tree,
    never an exception. Parent maps produced by forward search are acyclic;
    for other maps a repeated ancestor or ``max_depth`` also ends the branch
    in a leaf.

    Parameters
    ----------
    element : str
        Root of the tree.
    parents : mapping
        product -> Combination that first produced it.
    base_elements : collection
        Elements that never expand.
    max_depth : int
        Depth at which reconstruction stops expanding.
    memo : dict, optional
        Fully expanded subtrees by element. Reuse one across calls while
        ``parents`` only gains entries; it is filled in place.

    Returns
    -------
    DerivationNode
    """
    bases = base_elements if isinstance(base_elements, (set, frozenset)) else set(base_elements)
    if memo is None:
        memo = {}

    def build(name: str, ancestors: Set[str], depth: int) -> Tuple[DerivationNode, bool]:
        if name in memo:
            return memo[name], True
        combo: Optional[Combination] = parents.get(name)
        if name in bases or combo is None:
            node: DerivationNode = Leaf(name)
            memo[name] = node
            return node, True
        if name in ancestors or depth >= max_depth:
            return Leaf(name), False

        ancestors.add(name)
        left, left_clean = build(combo.ingredient_a, ancestors, depth + 1)
        right, right_clean = build(combo.ingredient_b, ancestors, depth + 1)
        ancestors.discard(name)

        node = Pair(name, left, right)
        clean = left_clean and right_clean
        if clean:
            memo[name] = node
        return node, clean

    tree, _ = build(element, set(), 0)
    return tree
