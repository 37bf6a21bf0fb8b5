from .drawing import DrawableNode, DrawableTree, recompute_layout
from .style import (
    Mode,
    Shape,
    StyleStore,
    TreeStyle,
)
from .metrics import (
    number_of_terminals,
    path_to_root,
    max_path_to_tips,
    max_nodes_to_tips,
)
