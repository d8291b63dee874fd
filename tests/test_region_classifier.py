import math
import random

import pytest

from dungeon_geometry import Vec3
from dungeon_layout import GraphNode, SpatialGraph
from dungeon_models import Archetype, Region, RegionStyle
from growers import run_layout_tree_grower
from region_classifier import RegionClassifier, classify_regions, depth_bucket, natural_probability
from room_templates import archetypes_for_bucket


def test_depth_bucket_spans_catalog():
    assert depth_bucket(0, 10) == 0
    assert depth_bucket(10, 10) == 4
    assert depth_bucket(50, 10) == 4
    assert [depth_bucket(d, 4) for d in range(5)] == [0, 1, 2, 3, 4]


def test_natural_probability_terms():
    assert natural_probability(0, 4, 10, 0.6) == pytest.approx(0.6)
    assert natural_probability(5, 0, 10, 0.6) == pytest.approx(0.6 + 0.3 + 0.2)
    assert natural_probability(5, 2, 10, 0.0) == pytest.approx(0.3 * math.sin(math.pi / 2) + 0.1)


def test_archetype_matches_style_and_depth(make_context):
    context = make_context(seed=13, max_rooms=30, max_depth=8)
    run_layout_tree_grower(context)

    regions = classify_regions(context.graph, 8, 0.6, random.Random(13))

    assert len(regions) == len(context.graph)
    for region in regions:
        bucket = depth_bucket(region.node.depth, 8)
        assert region.archetype in archetypes_for_bucket(region.style, bucket)


@pytest.mark.parametrize(
    "ratio, expected",
    [(2.0, RegionStyle.NATURAL), (-2.0, RegionStyle.CONSTRUCTED)],
)
def test_extreme_ratios_force_one_style(make_context, ratio, expected):
    context = make_context(seed=4, max_rooms=15, max_depth=5)
    run_layout_tree_grower(context)

    regions = classify_regions(context.graph, 5, ratio, random.Random(4))

    assert {region.style for region in regions} == {expected}


def _star() -> SpatialGraph:
    graph = SpatialGraph()
    graph.add_node(GraphNode(id="entrance_0", position=Vec3(), depth=0))
    for index in range(1, 4):
        graph.add_node(GraphNode(id=f"node_{index}", position=Vec3(20.0 * index, 0, 0), depth=1))
        graph.add_connection("entrance_0", f"node_{index}")
    return graph


def test_smoothing_flips_outnumbered_region():
    graph = _star()
    classifier = RegionClassifier(max_depth=5, natural_cave_ratio=0.6, rng=random.Random(1))
    regions = [
        Region(graph.get_node("entrance_0"), RegionStyle.CONSTRUCTED, Archetype.ENTRANCE_HALL),
        *(
            Region(graph.get_node(f"node_{i}"), RegionStyle.NATURAL, Archetype.NATURAL_CHAMBER)
            for i in range(1, 4)
        ),
    ]
    by_id = {region.node_id: region for region in regions}

    flips = classifier.smooth(regions, by_id)

    assert flips == 1
    assert regions[0].style is RegionStyle.NATURAL
    assert regions[0].archetype in archetypes_for_bucket(RegionStyle.NATURAL, 0)


def test_smoothing_leaves_balanced_neighbourhood_alone():
    graph = SpatialGraph()
    ids = ["entrance_0", "node_1", "node_2", "node_3"]
    for index, node_id in enumerate(ids):
        graph.add_node(GraphNode(id=node_id, position=Vec3(20.0 * index, 0, 0), depth=index))
    for a, b in zip(ids, ids[1:]):
        graph.add_connection(a, b)
    classifier = RegionClassifier(max_depth=5, natural_cave_ratio=0.6, rng=random.Random(1))
    styles = [RegionStyle.NATURAL, RegionStyle.NATURAL, RegionStyle.CONSTRUCTED, RegionStyle.CONSTRUCTED]
    regions = [
        Region(graph.get_node(node_id), style, archetypes_for_bucket(style, 0)[0])
        for node_id, style in zip(ids, styles)
    ]
    by_id = {region.node_id: region for region in regions}

    assert classifier.smooth(regions, by_id) == 0
    assert [region.style for region in regions] == styles
