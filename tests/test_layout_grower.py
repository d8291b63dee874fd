from collections import deque
from itertools import combinations

import pytest

from dungeon_constants import ENTRANCE_ID, MIN_NODE_SEPARATION, RADIUS_LIMIT_PER_DEPTH
from growers import run_layout_tree_grower


@pytest.mark.parametrize("seed", [1, 7, 42, 99])
def test_layout_tree_is_a_spanning_tree(make_context, seed):
    context = make_context(seed=seed, max_rooms=25, max_depth=6)

    created = run_layout_tree_grower(context)
    graph = context.graph

    assert created == len(graph) - 1
    assert len(graph) <= 25
    assert graph.edge_count == len(graph) - 1

    seen = {ENTRANCE_ID}
    queue = deque([ENTRANCE_ID])
    visits = 0
    while queue:
        current = queue.popleft()
        visits += 1
        for neighbour in graph.connections(current):
            if neighbour not in seen:
                seen.add(neighbour)
                queue.append(neighbour)
    assert visits == len(graph)
    assert graph.validate_connectivity()


def test_child_depth_is_one_below_parent(make_context):
    context = make_context(seed=3, max_rooms=30, max_depth=4)
    run_layout_tree_grower(context)

    for node in context.graph.nodes.values():
        if node.id == ENTRANCE_ID:
            assert node.depth == 0
            assert node.parent_id is None
            continue
        parent = context.graph.get_node(node.parent_id)
        assert node.depth == parent.depth + 1
        assert node.depth <= 4
        assert parent.id in node.connections


def test_nodes_respect_separation_and_radius(make_context):
    context = make_context(seed=21, max_rooms=40, max_depth=5)
    run_layout_tree_grower(context)
    nodes = list(context.graph.nodes.values())
    entrance = context.graph.get_node(ENTRANCE_ID)

    for a, b in combinations(nodes, 2):
        assert a.position.distance(b.position) > MIN_NODE_SEPARATION
    for node in nodes:
        assert node.position.distance(entrance.position) <= 5 * RADIUS_LIMIT_PER_DEPTH


def test_same_seed_grows_same_layout(make_context):
    first = make_context(seed=5)
    second = make_context(seed=5)
    run_layout_tree_grower(first)
    run_layout_tree_grower(second)

    assert [(n.id, n.position, n.parent_id) for n in first.graph.nodes.values()] == [
        (n.id, n.position, n.parent_id) for n in second.graph.nodes.values()
    ]


def test_single_room_budget_keeps_only_the_entrance(make_context):
    context = make_context(max_rooms=1)

    assert run_layout_tree_grower(context) == 0
    assert list(context.graph.nodes) == [ENTRANCE_ID]
    assert context.graph.edge_count == 0


def test_expanded_nodes_are_recorded(make_context):
    context = make_context(seed=8, max_rooms=12, max_depth=3)
    run_layout_tree_grower(context)

    state = context.get_grower_seen_state("layout_tree")
    assert ENTRANCE_ID in state.seen_nodes
    assert state.run_count == 1


def test_rerun_does_not_expand_nodes_again(make_context):
    context = make_context(seed=8, max_rooms=100, max_depth=2)
    first = run_layout_tree_grower(context)
    nodes_after_first = list(context.graph.nodes)
    edges_after_first = context.graph.edge_count

    second = run_layout_tree_grower(context)

    assert first >= 1
    assert second == 0
    assert list(context.graph.nodes) == nodes_after_first
    assert context.graph.edge_count == edges_after_first
    assert context.get_grower_seen_state("layout_tree").run_count == 2
