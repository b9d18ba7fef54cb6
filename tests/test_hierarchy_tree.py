from __future__ import annotations

from types import SimpleNamespace

from app.services.relationship_service import (
    build_hierarchy_tree,
    find_dangling_relationships,
    find_orphaned_content,
    flatten_hierarchy,
)


def build_content(content_id: str, viewable: bool = False, name: str | None = None):
    return SimpleNamespace(id=content_id, name=name or content_id.title(), is_viewable=viewable)


def build_edge(parent_id: str, child_id: str):
    return SimpleNamespace(parent_id=parent_id, child_id=child_id)


def collect_ids(nodes):
    return [node.id for node in nodes]


def test_empty_input_returns_empty_forest():
    assert build_hierarchy_tree([], []) == []


def test_nested_tree_and_depths():
    content = [
        build_content("saga"),
        build_content("trilogy"),
        build_content("ep4", viewable=True),
        build_content("ep5", viewable=True),
    ]
    edges = [
        build_edge("saga", "trilogy"),
        build_edge("trilogy", "ep4"),
        build_edge("trilogy", "ep5"),
    ]

    roots = build_hierarchy_tree(content, edges)

    assert collect_ids(roots) == ["saga"]
    trilogy = roots[0].children[0]
    assert trilogy.id == "trilogy"
    assert trilogy.depth == 1
    assert collect_ids(trilogy.children) == ["ep4", "ep5"]
    assert all(child.depth == 2 for child in trilogy.children)


def test_multiple_roots_are_siblings_in_input_order():
    content = [build_content("b"), build_content("a"), build_content("c", viewable=True)]
    edges = [build_edge("a", "c")]

    roots = build_hierarchy_tree(content, edges)

    assert collect_ids(roots) == ["b", "a"]
    assert collect_ids(roots[1].children) == ["c"]


def test_dangling_child_reference_is_skipped():
    content = [build_content("saga"), build_content("ep4", viewable=True)]
    edges = [build_edge("saga", "ep4"), build_edge("saga", "deleted-item")]

    roots = build_hierarchy_tree(content, edges)

    assert collect_ids(roots) == ["saga"]
    assert collect_ids(roots[0].children) == ["ep4"]


def test_shared_child_appears_under_each_parent():
    content = [build_content("a"), build_content("b"), build_content("shared", viewable=True)]
    edges = [build_edge("a", "shared"), build_edge("b", "shared")]

    roots = build_hierarchy_tree(content, edges)

    assert collect_ids(roots) == ["a", "b"]
    assert collect_ids(roots[0].children) == ["shared"]
    assert collect_ids(roots[1].children) == ["shared"]


def test_cycle_below_a_root_terminates():
    content = [build_content("root"), build_content("x"), build_content("y")]
    edges = [build_edge("root", "x"), build_edge("x", "y"), build_edge("y", "x")]

    roots = build_hierarchy_tree(content, edges)

    x = roots[0].children[0]
    y = x.children[0]
    assert y.id == "y"
    assert y.children == []


def test_no_node_is_its_own_descendant():
    content = [build_content(name) for name in ("r", "a", "b", "c", "d")]
    edges = [
        build_edge("r", "a"),
        build_edge("a", "b"),
        build_edge("b", "c"),
        build_edge("c", "a"),
        build_edge("r", "d"),
    ]

    def assert_acyclic(node, ancestors):
        assert node.id not in ancestors
        for child in node.children:
            assert_acyclic(child, ancestors | {node.id})

    for root in build_hierarchy_tree(content, edges):
        assert_acyclic(root, frozenset())


def test_max_depth_truncates_branch():
    content = [build_content(str(index)) for index in range(5)]
    edges = [build_edge(str(index), str(index + 1)) for index in range(4)]

    roots = build_hierarchy_tree(content, edges, max_depth=2)

    level_two = roots[0].children[0].children[0]
    assert level_two.id == "2"
    assert level_two.children == []


def test_find_dangling_relationships():
    content = [build_content("a"), build_content("b")]
    valid = build_edge("a", "b")
    missing_child = build_edge("a", "ghost")
    missing_parent = build_edge("ghost", "b")

    dangling = find_dangling_relationships(content, [valid, missing_child, missing_parent])

    assert dangling == [missing_child, missing_parent]


def test_find_orphaned_content_only_reports_unreachable_items():
    content = [build_content("a"), build_content("b"), build_content("lost"), build_content("shared")]
    edges = [
        build_edge("a", "b"),
        build_edge("deleted", "lost"),
        build_edge("deleted", "shared"),
        build_edge("a", "shared"),
    ]

    orphans = find_orphaned_content(content, edges)

    assert [item.id for item in orphans] == ["lost"]


def test_flatten_hierarchy_indents_and_disables_viewable():
    content = [
        build_content("saga", name="Saga"),
        build_content("trilogy", name="Trilogy"),
        build_content("ep4", viewable=True, name="Episode IV"),
    ]
    edges = [build_edge("saga", "trilogy"), build_edge("trilogy", "ep4")]

    options = flatten_hierarchy(build_hierarchy_tree(content, edges))

    assert [option.id for option in options] == ["saga", "trilogy", "ep4"]
    assert options[1].display_name == "\u00a0" * 4 + "Trilogy"
    assert options[2].depth == 2
    assert options[2].disabled is True
    assert options[0].disabled is False


def test_flatten_hierarchy_excludes_subtree():
    content = [build_content("saga"), build_content("trilogy"), build_content("ep4", viewable=True)]
    edges = [build_edge("saga", "trilogy"), build_edge("trilogy", "ep4")]

    options = flatten_hierarchy(build_hierarchy_tree(content, edges), exclude_id="trilogy")

    assert [option.id for option in options] == ["saga"]


def build_layered_diamonds(layers: int):
    """Root plus ``layers`` pairs, every node linked from both nodes of the previous pair."""
    content = [build_content("root")]
    edges = []
    previous = ["root"]
    for layer in range(layers):
        current = [f"a{layer}", f"b{layer}"]
        content.extend(build_content(node_id) for node_id in current)
        edges.extend(build_edge(parent, child) for parent in previous for child in current)
        previous = current
    return content, edges


def count_nodes(nodes):
    return sum(1 + count_nodes(node.children) for node in nodes)


def test_shared_subtrees_are_expanded_once():
    content, edges = build_layered_diamonds(30)

    roots = build_hierarchy_tree(content, edges, max_depth=64)

    assert collect_ids(roots) == ["root"]
    assert count_nodes(roots) <= len(content) + len(edges)


def test_shared_child_keeps_children_under_first_parent_only():
    content = [build_content("a"), build_content("b"), build_content("shared"), build_content("leaf", viewable=True)]
    edges = [build_edge("a", "shared"), build_edge("b", "shared"), build_edge("shared", "leaf")]

    roots = build_hierarchy_tree(content, edges)

    assert collect_ids(roots[0].children[0].children) == ["leaf"]
    assert roots[1].children[0].id == "shared"
    assert roots[1].children[0].children == []
