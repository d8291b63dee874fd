"""Assigns an architectural style and archetype to every graph node."""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, List

from dungeon_constants import ARCHETYPE_BUCKETS, SMOOTHING_DOMINANCE, SMOOTHING_PASSES
from dungeon_layout import GraphNode, SpatialGraph
from dungeon_models import Archetype, Region, RegionStyle
from room_templates import archetypes_for_bucket

logger = logging.getLogger(__name__)


def depth_bucket(depth: int, max_depth: int) -> int:
    return min(ARCHETYPE_BUCKETS - 1, (depth * ARCHETYPE_BUCKETS) // (max_depth + 1))


def natural_probability(
    depth: int,
    degree: int,
    max_depth: int,
    natural_cave_ratio: float,
) -> float:
    """Base ratio plus a mid-depth sinusoidal bonus and a bonus for sparse nodes."""
    depth_bonus = 0.3 * math.sin(depth / max_depth * math.pi)
    connectivity_bonus = 0.2 * (1.0 - degree / 4.0)
    return natural_cave_ratio + depth_bonus + connectivity_bonus


class RegionClassifier:
    """Labels nodes with a style by one Bernoulli draw each, then smooths isolated islands."""

    def __init__(self, max_depth: int, natural_cave_ratio: float, rng: random.Random) -> None:
        self.max_depth = max_depth
        self.natural_cave_ratio = natural_cave_ratio
        self.rng = rng

    def select_archetype(self, style: RegionStyle, depth: int) -> Archetype:
        options = archetypes_for_bucket(style, depth_bucket(depth, self.max_depth))
        return self.rng.choice(list(options))

    def classify_node(self, node: GraphNode) -> Region:
        probability = natural_probability(
            node.depth, len(node.connections), self.max_depth, self.natural_cave_ratio
        )
        style = RegionStyle.NATURAL if self.rng.random() < probability else RegionStyle.CONSTRUCTED
        return Region(node=node, style=style, archetype=self.select_archetype(style, node.depth))

    def classify(self, graph: SpatialGraph) -> List[Region]:
        regions = [self.classify_node(node) for node in graph.nodes.values()]
        by_id = {region.node_id: region for region in regions}
        flips = 0
        for _ in range(SMOOTHING_PASSES):
            flips += self.smooth(regions, by_id)
        logger.debug("Classified %d regions with %d smoothing flips", len(regions), flips)
        return regions

    def smooth(self, regions: List[Region], by_id: Dict[str, Region]) -> int:
        """One in-place pass; later regions see earlier flips from the same pass."""
        flips = 0
        for region in regions:
            natural = 0
            constructed = 0
            for neighbour_id in region.node.connections:
                neighbour = by_id.get(neighbour_id)
                if neighbour is None:
                    continue
                if neighbour.style is RegionStyle.NATURAL:
                    natural += 1
                else:
                    constructed += 1

            target = None
            if natural > constructed * SMOOTHING_DOMINANCE and region.style is not RegionStyle.NATURAL:
                target = RegionStyle.NATURAL
            elif constructed > natural * SMOOTHING_DOMINANCE and region.style is not RegionStyle.CONSTRUCTED:
                target = RegionStyle.CONSTRUCTED
            if target is None:
                continue
            region.style = target
            region.archetype = self.select_archetype(target, region.node.depth)
            flips += 1
        return flips


def classify_regions(
    graph: SpatialGraph,
    max_depth: int,
    natural_cave_ratio: float,
    rng: random.Random,
) -> List[Region]:
    return RegionClassifier(max_depth, natural_cave_ratio, rng).classify(graph)
