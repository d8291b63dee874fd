from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grower_context import GrowerContext


C = TypeVar("C")
P = TypeVar("P")


@dataclass
class GrowerStepResult:
    """Outcome of committing one placement plan."""

    applied: bool
    stop: bool = False


class CandidateFinder(Generic[C, P]):
    """Yields growth candidates; may keep yielding as the graph grows."""

    def find_candidates(self, context: GrowerContext) -> Iterable[C]:
        raise NotImplementedError


class GeometryPlanner(Generic[C, P]):
    """Turns a candidate into a concrete placement, or None when it cannot be placed."""

    def plan(self, context: GrowerContext, candidate: C) -> Optional[P]:
        raise NotImplementedError


class GrowerApplier(Generic[C, P]):
    """Writes an accepted plan into the graph."""

    def apply(self, context: GrowerContext, candidate: C, plan: P) -> GrowerStepResult:
        raise NotImplementedError

    def finalize(self, context: GrowerContext) -> int:
        """Called once after the candidate stream ends; the return value is the grower's result."""
        return 0


class DungeonGrower(Generic[C, P]):
    """Drives a finder, planner and applier until candidates run out or the applier asks to stop."""

    def __init__(
        self,
        name: str,
        candidate_finder: CandidateFinder[C, P],
        geometry_planner: GeometryPlanner[C, P],
        applier: GrowerApplier[C, P],
    ) -> None:
        self.name = name
        self.candidate_finder = candidate_finder
        self.geometry_planner = geometry_planner
        self.applier = applier

    def run(self, context: GrowerContext) -> int:
        for candidate in self.candidate_finder.find_candidates(context):
            plan = self.geometry_planner.plan(context, candidate)
            if plan is None:
                continue
            if self.applier.apply(context, candidate, plan).stop:
                break
        created = self.applier.finalize(context)
        context.get_grower_seen_state(self.name).register_run()
        return created
