from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

import ete3
from ete3.coretype.tree import DEFAULT_DIST

from ..style import StyleField, StyleStore, next_id

_BASE_FEATURES = {"name", "dist", "support"}


class DrawableNode(ete3.TreeNode):
    """
    ete3 node carrying drawing attributes and a computed layout position.

    Drawing attributes live in a StyleStore shared by every node of the same
    tree, keyed by the node's `id`. A detached node owns a private store until
    it is added under another DrawableNode.
    """

    x = StyleField()
    y = StyleField()
    radius = StyleField()
    node_colour = StyleField()
    node_shape = StyleField()
    node_image = StyleField()
    branch_color = StyleField()
    branch_shape = StyleField()
    branch_width = StyleField()
    branch_style = StyleField()
    font_face = StyleField()
    font_size = StyleField()
    font_style = StyleField()
    url = StyleField()
    text_horiz_offset = StyleField()
    text_vert_offset = StyleField()

    # attribute -> key in the serialized node
    JSON_FIELDS = {
        "x": "x",
        "y": "y",
        "radius": "radius",
        "node_colour": "node_colour",
        "node_shape": "node_shape",
        "node_image": "image",
        "branch_color": "branch_color",
        "branch_shape": "branch_shape",
        "branch_width": "width",
        "branch_style": "style",
        "font_face": "font_face",
        "font_size": "font_size",
        "font_style": "font_style",
        "url": "url",
        "text_horiz_offset": "horiz_offset",
        "text_vert_offset": "vert_offset",
    }

    def __init__(self, newick=None, format=0, dist=None, support=None, name=None, **kwargs):
        # set before ete3 runs: its Newick reader adds children while we initialise
        self.id = next_id()
        self._store = StyleStore()
        self._has_length = False
        super().__init__(newick=newick, format=format, dist=dist, support=support, name=name, **kwargs)

    def _read_dist(self):
        return ete3.TreeNode.dist.fget(self)

    def _write_dist(self, value):
        ete3.TreeNode.dist.fset(self, value)
        self._has_length = True

    dist = property(fget=_read_dist, fset=_write_dist)

    @property
    def branch_length(self) -> Optional[float]:
        """Incoming branch length, or None if it was never given."""
        return self.dist if self._has_length else None

    @branch_length.setter
    def branch_length(self, value) -> None:
        if value is None:
            self._has_length = False
        else:
            self.dist = value

    @property
    def coordinates(self) -> Tuple[Optional[float], Optional[float]]:
        return self.x, self.y

    @classmethod
    def from_node(cls, source: ete3.TreeNode, lengths: Optional[bool] = None) -> "DrawableNode":
        """Build a DrawableNode copy of the subtree rooted at `source`.

        Plain ete3 nodes always hold a float `dist`. When every branch below a
        plain `source` still carries ete3's default, the copy gets no branch
        lengths at all (a cladogram). Pass `lengths` to decide explicitly.
        """
        if lengths is None:
            lengths = isinstance(source, DrawableNode) or any(
                n.dist != DEFAULT_DIST for n in source.iter_descendants()
            )

        copies = {}
        for src in source.traverse("preorder"):
            node = cls(name=src.name, support=src.support)
            length = src.branch_length if isinstance(src, DrawableNode) else src.dist
            if lengths and length is not None:
                node.dist = length
            for feature in src.features - _BASE_FEATURES:
                node.add_feature(feature, getattr(src, feature))
            if isinstance(src, DrawableNode):
                for field, value in src._store.fields(src.id).items():
                    node._store.set(node.id, field, value)
            if src is not source:
                copies[src.up].add_child(node)
            copies[src] = node
        return copies[source]

    def add_child(self, child=None, name=None, dist=None, support=None):
        """Add a child, upgrading plain ete3 nodes first.

        A plain node is copied into a DrawableNode; the copy is returned.
        A node still attached in another tree is detached from it first and
        keeps its style.
        """
        if child is not None and not isinstance(child, DrawableNode):
            child = DrawableNode.from_node(child)
        # same store means same tree: ete3's delete() re-parents that way
        # while iterating the old parent's children, so leave it alone
        if child is not None and child.up is not None and child._store is not self._store:
            child.detach()
        child = super().add_child(child=child, name=name, dist=dist, support=support)
        for node in child.traverse():
            self._store.adopt(node)
        return child

    def _isolate(self) -> None:
        """Move this subtree's style out of the shared store into a private one."""
        private = StyleStore()
        stack = [self]
        while stack:
            node = stack.pop()
            private.adopt(node)
            # delete() leaves re-parented children listed under the removed node
            stack.extend(c for c in node.children if c.up is node)

    def detach(self):
        if self.up is not None:
            super().detach()
            self._isolate()
        return self

    def remove_child(self, child):
        # also reached by ete3's delete() and prune()
        child = super().remove_child(child)
        child._isolate()
        return child

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "branch_length": self.branch_length,
            "support": self.support,
        }
        for feature in sorted(self.features - _BASE_FEATURES):
            data[feature] = getattr(self, feature)
        for attr, key in self.JSON_FIELDS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    def to_json(self, **kwargs) -> str:
        kwargs.setdefault("default", str)
        return json.dumps(self.to_dict(), **kwargs)
