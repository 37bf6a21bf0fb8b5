from .node import DrawableNode
from .tree import DrawableTree
from .layout import recompute_layout
