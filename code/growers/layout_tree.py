"""Layout tree grower: breadth-first branching growth from the entrance."""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, Optional

from dungeon_constants import (
    BASE_STEP_DISTANCE,
    BRANCH_DECAY_PER_DEPTH,
    DOWNWARD_BIAS,
    DOWNWARD_BIAS_PER_DEPTH,
    ENTRANCE_ID,
    MIN_NODE_SEPARATION,
    RADIUS_LIMIT_PER_DEPTH,
    REPULSION_RADIUS,
    REPULSION_WEIGHT,
    STEP_DISTANCE_JITTER,
    STEP_DISTANCE_PER_DEPTH,
)
from dungeon_geometry import ORIGIN, Vec3
from dungeon_layout import GraphNode
from grower_context import GrowerContext
from growers.base import (
    CandidateFinder,
    DungeonGrower,
    GeometryPlanner,
    GrowerApplier,
    GrowerStepResult,
)

logger = logging.getLogger(__name__)

GROWER_NAME = "layout_tree"


@dataclass(frozen=True)
class LayoutBranchCandidate:
    """One branch attempt out of an expanded node."""

    parent_id: str
    branch_index: int


@dataclass(frozen=True)
class NodePlacementPlan:
    """Accepted position for a new child node."""

    position: Vec3
    direction: Vec3
    distance: float


class LayoutTreeHelper:
    """Shared state for the layout tree grower: the BFS queue and counters."""

    def __init__(self, context: GrowerContext) -> None:
        self.context = context
        self.config = context.config
        self.graph = context.graph
        self.rng = context.rng
        self._queue: Deque[str] = deque()
        self._nodes_created = 0
        self._rejected = 0

    def initialize(self) -> None:
        """Place the entrance at the origin when the graph is empty, then seed the queue."""
        if ENTRANCE_ID not in self.graph:
            self.graph.add_node(GraphNode(id=ENTRANCE_ID, position=ORIGIN, depth=0))
        self._queue.append(ENTRANCE_ID)

    def branch_count(self, depth: int) -> int:
        count = math.floor(
            self.config.branching_factor
            * math.exp(-BRANCH_DECAY_PER_DEPTH * depth)
            * (0.5 + 0.5 * self.rng.random())
        )
        if depth < self.config.max_depth - 1:
            count = max(1, count)
        return count

    def iter_candidates(self) -> Iterator[LayoutBranchCandidate]:
        while self._queue:
            parent = self.graph.get_node(self._queue.popleft())
            if parent.depth >= self.config.max_depth:
                continue
            if not self.context.should_consider_growth(GROWER_NAME, nodes=(parent.id,)):
                continue
            self.context.record_growth_seen(GROWER_NAME, nodes=(parent.id,))
            for branch_index in range(self.branch_count(parent.depth)):
                if self.context.room_budget_exhausted:
                    return
                yield LayoutBranchCandidate(parent.id, branch_index)

    def growth_direction(self, parent: GraphNode) -> Vec3:
        rng = self.rng
        depth = parent.depth
        direction = Vec3(
            (rng.random() - 0.5) * 2.0,
            DOWNWARD_BIAS + DOWNWARD_BIAS_PER_DEPTH * depth + (rng.random() - 0.5) * 0.5,
            (rng.random() - 0.5) * 2.0,
        )
        for other in self.context.nearby_nodes(parent.position, REPULSION_RADIUS, exclude=parent.id):
            away = (parent.position - other.position).normalize()
            direction = direction + away.scale(REPULSION_WEIGHT)
        return direction.normalize()

    def step_distance(self, depth: int) -> float:
        return (
            BASE_STEP_DISTANCE
            + STEP_DISTANCE_PER_DEPTH * depth
            + (self.rng.random() - 0.5) * STEP_DISTANCE_JITTER
        )

    def plan_branch(self, candidate: LayoutBranchCandidate) -> Optional[NodePlacementPlan]:
        parent = self.graph.get_node(candidate.parent_id)
        direction = self.growth_direction(parent)
        distance = self.step_distance(parent.depth)
        position = parent.position + direction.scale(distance)
        if not self.is_valid_position(position):
            self._rejected += 1
            return None
        return NodePlacementPlan(position=position, direction=direction, distance=distance)

    def is_valid_position(self, position: Vec3) -> bool:
        if self.graph.nodes_within_radius(position, MIN_NODE_SEPARATION):
            return False
        entrance = self.graph.get_node(ENTRANCE_ID)
        return position.distance(entrance.position) <= self.config.max_depth * RADIUS_LIMIT_PER_DEPTH

    def apply_plan(self, candidate: LayoutBranchCandidate, plan: NodePlacementPlan) -> GrowerStepResult:
        parent = self.graph.get_node(candidate.parent_id)
        child = self.context.add_child_node(parent, plan.position)
        self._nodes_created += 1
        if child.depth < self.config.max_depth:
            self._queue.append(child.id)
        return GrowerStepResult(applied=True, stop=self.context.room_budget_exhausted)

    def finalize(self) -> int:
        logger.debug(
            "Layout tree grew %d nodes (%d placements rejected)",
            self._nodes_created,
            self._rejected,
        )
        return self._nodes_created


class LayoutTreeCandidateFinder(CandidateFinder[LayoutBranchCandidate, NodePlacementPlan]):
    def __init__(self, helper: LayoutTreeHelper) -> None:
        self.helper = helper

    def find_candidates(self, context: GrowerContext):
        return self.helper.iter_candidates()


class LayoutTreeGeometryPlanner(GeometryPlanner[LayoutBranchCandidate, NodePlacementPlan]):
    def __init__(self, helper: LayoutTreeHelper) -> None:
        self.helper = helper

    def plan(
        self, context: GrowerContext, candidate: LayoutBranchCandidate
    ) -> Optional[NodePlacementPlan]:
        return self.helper.plan_branch(candidate)


class LayoutTreeApplier(GrowerApplier[LayoutBranchCandidate, NodePlacementPlan]):
    def __init__(self, helper: LayoutTreeHelper) -> None:
        self.helper = helper

    def apply(
        self,
        context: GrowerContext,
        candidate: LayoutBranchCandidate,
        plan: NodePlacementPlan,
    ) -> GrowerStepResult:
        return self.helper.apply_plan(candidate, plan)

    def finalize(self, context: GrowerContext) -> int:
        return self.helper.finalize()


def run_layout_tree_grower(context: GrowerContext) -> int:
    """Entry point that places the entrance and grows the layout tree."""

    helper = LayoutTreeHelper(context)
    helper.initialize()

    grower = DungeonGrower(
        name=GROWER_NAME,
        candidate_finder=LayoutTreeCandidateFinder(helper),
        geometry_planner=LayoutTreeGeometryPlanner(helper),
        applier=LayoutTreeApplier(helper),
    )
    return grower.run(context)
