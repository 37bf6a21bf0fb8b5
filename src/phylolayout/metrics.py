"""
Derived tree metrics consumed by the layout pass.

All lengths are measured from the root, excluding the root's own stem, so
the root always sits at distance 0. A node with no branch length counts as 0.
The single-node helpers walk the tree on every call; the batch helpers
(`paths_to_root`, `nodes_to_tips`) compute every node in one pass and are
what the layout uses.
"""

from __future__ import annotations

from typing import Dict

import ete3


def branch_length(node: ete3.TreeNode) -> float:
    length = getattr(node, "branch_length", node.dist)
    return float(length) if length is not None else 0.0


def number_of_terminals(root: ete3.TreeNode) -> int:
    return sum(1 for _ in root.iter_leaves())


def path_to_root(node: ete3.TreeNode) -> float:
    path = 0.0
    while node.up is not None:
        path += branch_length(node)
        node = node.up
    return path


def max_path_to_tips(node: ete3.TreeNode) -> float:
    paths = paths_to_root(node)
    return max(paths[_key(leaf)] for leaf in node.iter_leaves())


def max_nodes_to_tips(node: ete3.TreeNode) -> int:
    """Largest number of edges between `node` and any tip below it."""
    if node.is_leaf():
        return 0
    return 1 + max(max_nodes_to_tips(c) for c in node.children)


def _key(node):
    return getattr(node, "id", node)


def paths_to_root(root: ete3.TreeNode) -> Dict:
    """Cumulative branch length from `root` to every node below it."""
    paths = {}
    for n in root.traverse("preorder"):
        if n is root:
            paths[_key(n)] = 0.0
        else:
            paths[_key(n)] = paths[_key(n.up)] + branch_length(n)
    return paths


def nodes_to_tips(root: ete3.TreeNode) -> Dict:
    """Maximum node count to the tips, for every node below `root`."""
    counts = {}
    for n in root.traverse("postorder"):
        if n.is_leaf():
            counts[_key(n)] = 0
        else:
            counts[_key(n)] = 1 + max(counts[_key(c)] for c in n.children)
    return counts
