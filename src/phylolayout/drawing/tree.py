from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

import newick
import pandas as pd

from ..style import Mode, StyleField, StyleStore, TreeStyle, next_id
from .layout import recompute_layout
from .node import DrawableNode

logger = logging.getLogger(__name__)


class LayoutField(StyleField):
    """Tree attribute whose change invalidates the layout."""

    def __set__(self, obj, value):
        super().__set__(obj, value)
        obj.redraw()


class CascadeField(StyleField):
    """Tree default that is also copied onto every node in the tree."""

    def __init__(self, node_field=None, default=None):
        super().__init__(default)
        self.node_field = node_field

    def __set_name__(self, owner, name):
        super().__set_name__(owner, name)
        if self.node_field is None:
            self.node_field = name

    def __set__(self, obj, value):
        super().__set__(obj, value)
        obj._apply_to_nodes(self.node_field, value)


class BoxField(StyleField):
    """Margin or padding: sets top, bottom, left and right, then lays out once."""

    SIDES = ("top", "bottom", "left", "right")

    def __set__(self, obj, value):
        with obj.batch():
            super().__set__(obj, value)
            for side in self.SIDES:
                setattr(obj, f"{self.name}_{side}", value)
            obj.redraw()


class DrawableTree:
    """
    A phylogenetic tree prepared for drawing.

    Wraps a tree of DrawableNode, holds canvas and default style settings and
    keeps every node's (x, y) up to date: setting a geometric attribute
    (width, height, mode, margins, padding) recomputes the layout right away,
    setting a node default (colours, shapes, fonts, offsets) copies it onto
    every node currently in the tree.

    Parameters
    ----------
    tree
        An ete3 tree (or another DrawableTree) to copy. Without one the result
        is a single-node tree and no options may be given.
    style
        Optional TreeStyle; its set fields are applied as options.
    lengths
        Whether the copied branches carry lengths. By default a plain ete3
        tree whose branches all hold ete3's default `dist` has none.
    **options
        Any attribute listed in `DrawableTree.OPTIONS`. Options are applied in
        alphabetical order inside one batch, so the layout runs once.
    """

    width = LayoutField()
    height = LayoutField()

    node_radius = CascadeField("radius")
    node_colour = CascadeField()
    node_shape = CascadeField()
    node_image = CascadeField()
    branch_color = CascadeField()
    branch_shape = CascadeField()
    branch_width = CascadeField()
    branch_style = CascadeField()
    font_face = CascadeField()
    font_size = CascadeField()
    font_style = CascadeField()
    text_horiz_offset = CascadeField()
    text_vert_offset = CascadeField()

    margin = BoxField()
    margin_top = LayoutField()
    margin_bottom = LayoutField()
    margin_left = LayoutField()
    margin_right = LayoutField()
    padding = BoxField()
    padding_top = LayoutField()
    padding_bottom = LayoutField()
    padding_left = LayoutField()
    padding_right = LayoutField()

    # path style hint for renderers, not used by the layout
    shape = StyleField()

    def __init__(self, tree=None, style: Optional[TreeStyle] = None,
                 lengths: Optional[bool] = None, **options):
        self.id = next_id()
        self._store = StyleStore()
        self._batch_depth = 0
        self._pending_redraw = False

        if tree is None:
            if style is not None or lengths is not None or options:
                raise TypeError("Drawing options need a tree to apply to")
            self._attach(DrawableNode())
            return

        if isinstance(tree, DrawableTree):
            tree = tree.root
        self._attach(DrawableNode.from_node(tree, lengths=lengths))
        self.configure(style=style, **options)

    @classmethod
    def from_newick(cls, newick: str, format: int = 1,
                    style: Optional[TreeStyle] = None, **options) -> "DrawableTree":
        """Parse Newick straight into drawable nodes.

        Unlike copying an ete3 tree, this keeps track of which branches had no
        length, so a Newick string without lengths is drawn as a cladogram.
        """
        drawable = cls()
        drawable._attach(DrawableNode(newick, format=format))
        drawable.configure(style=style, **options)
        return drawable

    def _attach(self, root: DrawableNode) -> None:
        previous = getattr(self, "root", None)
        if previous is not None:
            for node in previous.traverse():
                self._store.release(node.id)
        for node in root.traverse():
            self._store.adopt(node)
        self.root = root

    @property
    def mode(self) -> Mode:
        """Effective drawing mode.

        A tree without branch lengths is always a cladogram; otherwise the
        last mode set wins, defaulting to a phylogram.
        """
        if self.is_cladogram():
            return Mode.CLADOGRAM
        stored = self._store.get(self.id, "mode")
        if stored is None:
            return Mode.PHYLOGRAM
        return Mode.coerce(stored)

    @mode.setter
    def mode(self, value) -> None:
        self._store.set(self.id, "mode", value)
        self.redraw()

    # option name -> setter(tree, value)
    OPTIONS: Dict[str, Callable[[Any, Any], None]] = {
        "branch_color": branch_color.__set__,
        "branch_shape": branch_shape.__set__,
        "branch_style": branch_style.__set__,
        "branch_width": branch_width.__set__,
        "font_face": font_face.__set__,
        "font_size": font_size.__set__,
        "font_style": font_style.__set__,
        "height": height.__set__,
        "margin": margin.__set__,
        "margin_bottom": margin_bottom.__set__,
        "margin_left": margin_left.__set__,
        "margin_right": margin_right.__set__,
        "margin_top": margin_top.__set__,
        "mode": mode.fset,
        "node_colour": node_colour.__set__,
        "node_image": node_image.__set__,
        "node_radius": node_radius.__set__,
        "node_shape": node_shape.__set__,
        "padding": padding.__set__,
        "padding_bottom": padding_bottom.__set__,
        "padding_left": padding_left.__set__,
        "padding_right": padding_right.__set__,
        "padding_top": padding_top.__set__,
        "shape": shape.__set__,
        "text_horiz_offset": text_horiz_offset.__set__,
        "text_vert_offset": text_vert_offset.__set__,
        "width": width.__set__,
    }

    def configure(self, style: Optional[TreeStyle] = None, **options) -> "DrawableTree":
        """Apply drawing options in alphabetical order, laying out once."""
        merged = style.as_options() if style is not None else {}
        merged.update(options)

        unknown = sorted(set(merged) - set(self.OPTIONS))
        if unknown:
            raise TypeError(f"Unknown drawing option(s): {', '.join(unknown)}")

        with self.batch():
            for name in sorted(merged):
                self.OPTIONS[name](self, merged[name])
        return self

    @contextmanager
    def batch(self):
        """Defer layout until the outermost batch exits, then run it once."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
        if self._batch_depth == 0 and self._pending_redraw:
            self._pending_redraw = False
            self.redraw()

    def redraw(self) -> int:
        """Recompute every node's coordinates (deferred inside a batch)."""
        if self._batch_depth:
            self._pending_redraw = True
            return 0
        return recompute_layout(self)

    def visit(self, fn: Callable[[DrawableNode], Any]) -> None:
        for node in self.root.traverse():
            fn(node)

    def _apply_to_nodes(self, field: str, value) -> None:
        logger.debug("Setting %s=%r on all nodes of tree %s", field, value, self.id)
        self.visit(lambda node: setattr(node, field, value))

    def is_cladogram(self) -> bool:
        """True if no branch below the root has a length."""
        return not any(n.branch_length is not None for n in self.root.iter_descendants())

    def nodes(self) -> List[DrawableNode]:
        return list(self.root.traverse("preorder"))

    def terminals(self) -> List[DrawableNode]:
        return self.root.get_leaves()

    def internals(self) -> List[DrawableNode]:
        return [n for n in self.root.traverse("preorder") if not n.is_leaf()]

    def get_node(self, name: str) -> DrawableNode:
        node = next(self.root.iter_search_nodes(name=name), None)
        if node is None:
            raise KeyError(name)
        return node

    def remove_node(self, node: DrawableNode) -> DrawableNode:
        """Detach `node` and its subtree, dropping all their style entries."""
        if node is self.root:
            raise ValueError("Can't remove the root of a drawable tree")
        if node.get_tree_root() is not self.root:
            raise ValueError(f"Node {node.name!r} is not part of this tree")

        node.detach()
        for n in node.traverse():
            n._store.release(n.id)
        return node

    def __iter__(self) -> Iterator[DrawableNode]:
        return self.root.traverse("preorder")

    def __len__(self) -> int:
        return sum(1 for _ in self.root.traverse())

    def to_newick(self, format: Optional[int] = None) -> str:
        """Newick text of the tree.

        By default only branches that have a length get one written, so the
        text reads back into the same layout. Pass an ete3 `format` code to use
        ete3's writer instead (it writes a length on every branch).
        """
        if format is not None:
            return self.root.write(format=format)

        copies = {}
        for n in self.root.traverse("postorder"):
            length = None if n is self.root else n.branch_length
            copies[n] = newick.Node.create(
                name=n.name or None,
                length=None if length is None else "%s" % length,
                descendants=[copies[c] for c in n.children],
            )
        return newick.dumps(copies[self.root])

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "mode": self.mode.value}
        for name in sorted(self.OPTIONS):
            if name == "mode":
                continue
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        data["nodes"] = [n.to_dict() for n in self.root.traverse("preorder")]
        return data

    def to_json(self, **kwargs) -> str:
        kwargs.setdefault("default", str)
        return json.dumps(self.to_dict(), **kwargs)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per node (pre-order) with its serialized fields and parent id."""
        rows = []
        for n in self.root.traverse("preorder"):
            row = n.to_dict()
            row["parent"] = n.up.id if n.up is not None else None
            rows.append(row)
        return pd.DataFrame(rows)
