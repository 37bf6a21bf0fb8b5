import ete3
import pytest

import phylolayout.drawing.tree as tree_module
from phylolayout import DrawableTree, Mode, Shape, TreeStyle


@pytest.fixture
def example_tree():
    return ete3.Tree("(A:1,(C:1,D:2)B:1);", format=1)


@pytest.fixture
def layout_calls(monkeypatch):
    """Record every layout pass run by DrawableTree."""
    calls = []
    real = tree_module.recompute_layout

    def counting(tree):
        calls.append(tree)
        return real(tree)

    monkeypatch.setattr(tree_module, "recompute_layout", counting)
    return calls


@pytest.mark.parametrize(
    "tree_field, node_field, value",
    [
        ("node_radius", "radius", 4),
        ("node_colour", "node_colour", "red"),
        ("node_shape", "node_shape", "circle"),
        ("node_image", "node_image", "img.png"),
        ("branch_color", "branch_color", "blue"),
        ("branch_shape", "branch_shape", "line"),
        ("branch_width", "branch_width", 2),
        ("branch_style", "branch_style", "dashed"),
        ("font_face", "font_face", "Arial"),
        ("font_size", "font_size", 12),
        ("font_style", "font_style", "Italic"),
        ("text_horiz_offset", "text_horiz_offset", 5),
        ("text_vert_offset", "text_vert_offset", 3),
    ],
)
def test_broadcast_reaches_every_node(example_tree, tree_field, node_field, value):
    drawable = DrawableTree(example_tree)
    setattr(drawable, tree_field, value)

    assert getattr(drawable, tree_field) == value
    for node in drawable:
        assert getattr(node, node_field) == value


def test_broadcast_is_a_snapshot(example_tree):
    drawable = DrawableTree(example_tree)
    drawable.node_colour = "red"

    late = drawable.get_node("A").add_child(name="E")
    assert late.node_colour is None

    drawable.node_colour = "green"
    assert late.node_colour == "green"


def test_node_setters_stay_local(example_tree):
    drawable = DrawableTree(example_tree, node_colour="red")
    drawable.get_node("C").node_colour = "black"

    assert drawable.node_colour == "red"
    assert drawable.get_node("D").node_colour == "red"
    assert drawable.get_node("C").node_colour == "black"


def test_broadcast_does_not_relayout(example_tree, layout_calls):
    drawable = DrawableTree(example_tree)
    drawable.branch_color = "blue"
    assert layout_calls == []


@pytest.mark.parametrize("box", ["margin", "padding"])
def test_box_setter_fans_out_with_one_layout(example_tree, layout_calls, box):
    drawable = DrawableTree(example_tree, width=100, height=90)
    layout_calls.clear()

    setattr(drawable, box, 5)

    assert getattr(drawable, box) == 5
    for side in ("top", "bottom", "left", "right"):
        assert getattr(drawable, f"{box}_{side}") == 5
    assert layout_calls == [drawable]


def test_each_geometric_setter_relayouts(example_tree, layout_calls):
    drawable = DrawableTree(example_tree)
    drawable.width = 100
    drawable.height = 90
    drawable.margin_left = 2
    drawable.mode = Mode.CLADOGRAM
    assert len(layout_calls) == 4


def test_shape_is_tree_only(example_tree, layout_calls):
    drawable = DrawableTree(example_tree)
    drawable.shape = Shape.CURVY

    assert drawable.shape is Shape.CURVY
    assert layout_calls == []
    assert "shape" not in drawable.root.to_dict()


def test_constructor_options_run_one_layout(example_tree, layout_calls):
    drawable = DrawableTree(
        example_tree, width=100, height=90, margin=5, padding=2, node_colour="red"
    )
    assert layout_calls == [drawable]
    assert drawable.get_node("D").x == pytest.approx(100)


def test_options_apply_alphabetically(example_tree):
    # "margin" sorts before "margin_top", so the specific side wins
    drawable = DrawableTree(example_tree, margin_top=10, margin=5)
    assert drawable.margin_top == 10
    assert drawable.margin_bottom == 5


def test_style_dataclass_and_keywords(example_tree):
    style = TreeStyle(width=200, height=100, node_colour="red")
    drawable = DrawableTree(example_tree, style=style, node_colour="blue")

    assert drawable.width == 200
    assert drawable.node_colour == "blue"
    assert drawable.get_node("A").node_colour == "blue"


def test_unknown_option(example_tree):
    with pytest.raises(TypeError, match="colour_scheme"):
        DrawableTree(example_tree, colour_scheme="viridis")


def test_options_need_a_tree():
    with pytest.raises(TypeError):
        DrawableTree(width=100)

    bare = DrawableTree()
    assert len(bare) == 1
    assert bare.root.x is None


def test_mode_inferred_for_cladogram():
    drawable = DrawableTree.from_newick("(A,(C,D)B);")
    assert drawable.is_cladogram()
    assert drawable.mode is Mode.CLADOGRAM

    drawable.mode = "PHYLO"
    assert drawable.mode is Mode.CLADOGRAM

    # reading the mode did not overwrite the stored choice
    for node in drawable.root.iter_descendants():
        node.branch_length = 1.0
    assert drawable.mode is Mode.PHYLOGRAM


def test_mode_default_and_prefix_match(example_tree):
    drawable = DrawableTree(example_tree)
    assert drawable.mode is Mode.PHYLOGRAM

    drawable.mode = "cladogram"
    assert drawable.mode is Mode.CLADOGRAM
