from __future__ import annotations

import logging

from ..metrics import nodes_to_tips, number_of_terminals, paths_to_root
from ..style import Mode

logger = logging.getLogger(__name__)


def recompute_layout(tree) -> int:
    """
    Assign x/y to every node of a DrawableTree in one post-order pass.

    Tips are spaced evenly down the canvas in left-to-right order, internal
    nodes sit at the mean y of their children. In a phylogram x is proportional
    to the path length from the root; in a cladogram tips are flush right and
    internal nodes are pulled left by their node depth.

    Geometry is best effort: an unset width or height leaves that axis as None.
    Returns the number of nodes positioned.
    """
    root = tree.root
    width, height = tree.width, tree.height

    total_tips = number_of_terminals(root)
    paths = paths_to_root(root)
    counts = nodes_to_tips(root)
    tallest = max(paths[leaf.id] for leaf in root.iter_leaves())
    max_nodes = counts[root.id]
    is_clado = tree.mode is Mode.CLADOGRAM

    if not is_clado and tallest == 0:
        logger.warning(
            "Tree %s has no usable branch lengths for a phylogram; "
            "laying it out as a cladogram", tree.id
        )
        is_clado = True

    if width is None or height is None:
        logger.debug("Canvas of tree %s is %sx%s; coordinates stay partly undefined",
                     tree.id, width, height)

    tips_seen = 0
    positioned = 0
    for node in root.traverse("postorder"):
        if node.is_leaf():
            tips_seen += 1
            y = None if height is None else (height / total_tips) * tips_seen
            if width is None:
                x = None
            elif is_clado:
                x = width
            else:
                x = (width / tallest) * paths[node.id]
        else:
            ys = [c.y for c in node.children]
            y = None if None in ys else sum(ys) / len(ys)
            if width is None:
                x = None
            elif is_clado:
                x = width - ((width / max_nodes) * counts[node.id])
            else:
                x = (width / tallest) * paths[node.id]
        node.y = y
        node.x = x
        positioned += 1

    logger.debug("Laid out %d nodes (%d tips) of tree %s", positioned, total_tips, tree.id)
    return positioned
