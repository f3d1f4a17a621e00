"""Unify several derivation trees of one element into a single structure.

Nodes merge when their element names match. Children are matched by name
and by position among same-named siblings, so ``Pressure = Air + Air``
keeps both ``Air`` children. A merged node with two children is a
``Pair``; any other child count (alternative recipes folded together)
becomes a ``UnifiedNode``.

Folding alternative recipes under one node can mix decompositions that
have nothing to do with each other. The result is meant for display,
not as a derivation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import MergeError
from .search_logging import SearchLogger
from .tree import DerivationNode, Leaf, Pair


@dataclass(frozen=True)
class UnifiedNode(DerivationNode):
    """Merged node with any number of children."""
    branches: Tuple[DerivationNode, ...] = ()

    @property
    def children(self) -> Tuple[DerivationNode, ...]:
        return self.branches


def _build(element: str, children: List[DerivationNode]) -> DerivationNode:
    if not children:
        return Leaf(element)
    if len(children) == 2:
        return Pair(element, children[0], children[1])
    return UnifiedNode(element, tuple(children))


def _merge_group(nodes: Sequence[DerivationNode]) -> DerivationNode:
    element = nodes[0].element
    groups: Dict[Tuple[str, int], List[DerivationNode]] = {}
    for node in nodes:
        occurrences: Dict[str, int] = {}
        for child in node.children:
            index = occurrences.get(child.element, 0)
            occurrences[child.element] = index + 1
            groups.setdefault((child.element, index), []).append(child)
    return _build(element, [_merge_group(group) for group in groups.values()])


def node_count(tree: DerivationNode) -> int:
    return 1 + sum(node_count(child) for child in tree.children)


def merge_trees(
    trees: Sequence[DerivationNode],
    logger: Optional[SearchLogger] = None,
) -> DerivationNode:
    """
    Merge trees that share a root element.

    Parameters
    ----------
    trees : sequence of DerivationNode
        At least one tree; all roots must name the same element.

    Returns
    -------
    DerivationNode
        A single input comes back unchanged.

    Raises
    ------
    MergeError
        No trees were given or the roots differ.
    """
    if not trees:
        raise MergeError("No trees to merge")
    roots = {tree.element for tree in trees}
    if len(roots) > 1:
        raise MergeError(f"Cannot merge trees with different roots: {', '.join(sorted(roots))}")

    merged = _merge_group(list(trees))
    if logger is not None:
        logger.log_merge(len(trees), node_count(merged))
    return merged
