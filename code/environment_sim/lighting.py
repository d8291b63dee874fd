"""Light source placement and per-room light accumulation."""

from __future__ import annotations

import math
import random
from typing import Dict, List, Optional, Sequence

from dungeon_constants import LIGHT_CONTRIBUTION_THRESHOLD
from dungeon_geometry import Vec3
from dungeon_models import Archetype, RegionStyle, Room
from environment_sim.models import (
    Attenuation,
    LightContribution,
    LightKind,
    LightSource,
    RoomLighting,
)
from room_features import TORCH_MOUNT_HEIGHT, TORCH_SPACING, perimeter_position

SUNLIGHT_COLOR = (1.0, 0.95, 0.8)
FUNGI_COLOR = (0.2, 0.8, 0.4)
CRYSTAL_COLOR = (0.4, 0.6, 0.9)
TORCH_COLOR = (1.0, 0.6, 0.2)
SACRED_COLOR = (0.8, 0.8, 1.0)

SUNLIGHT_ATTENUATION = Attenuation(1.0, 0.05, 0.01)
SHAFT_ATTENUATION = Attenuation(1.0, 0.1, 0.02)
FUNGI_ATTENUATION = Attenuation(1.0, 0.5, 0.1)
CRYSTAL_ATTENUATION = Attenuation(1.0, 0.2, 0.05)
TORCH_ATTENUATION = Attenuation(1.0, 0.3, 0.1)

BIOLUMINESCENCE_MIN_DEPTH = 3


def entrance_room(rooms: Sequence[Room]) -> Optional[Room]:
    for room in rooms:
        if room.depth == 0:
            return room
    return None


def bioluminescence_chance(depth: int) -> float:
    return 0.2 + (depth - BIOLUMINESCENCE_MIN_DEPTH) * 0.1


def torch_lit_chance(depth: int) -> float:
    return max(0.1, 0.7 - 0.05 * depth)


def torch_count(room: Room) -> int:
    return max(2, math.floor(room.size.footprint_width / TORCH_SPACING))


def ambient_level(depth: int) -> float:
    if depth == 0:
        return 0.3
    return max(0.02, 0.05 / depth)


class LightPlacer:
    def __init__(self, rng: random.Random) -> None:
        self.rng = rng

    def daylight(self, rooms: Sequence[Room]) -> List[LightSource]:
        entrance = entrance_room(rooms)
        if entrance is None:
            return []
        sources = [
            LightSource(
                id="natural_light_entrance",
                kind=LightKind.NATURAL_SUNLIGHT,
                room_id=entrance.id,
                position=entrance.position,
                intensity=1.0,
                color=SUNLIGHT_COLOR,
                attenuation=SUNLIGHT_ATTENUATION,
                range=40.0,
            )
        ]
        for room in rooms:
            if room.depth == 1 and room.style is RegionStyle.NATURAL and self.rng.random() < 0.3:
                sources.append(
                    LightSource(
                        id=f"light_shaft_{room.id}",
                        kind=LightKind.LIGHT_SHAFT,
                        room_id=room.id,
                        position=room.position + Vec3(0.0, room.size.height, 0.0),
                        intensity=0.5,
                        color=SUNLIGHT_COLOR,
                        attenuation=SHAFT_ATTENUATION,
                        range=20.0,
                    )
                )
        return sources

    def bioluminescence(self, room: Room) -> List[LightSource]:
        rng = self.rng
        if rng.random() >= bioluminescence_chance(room.depth):
            return []
        sources: List[LightSource] = []
        if room.archetype is Archetype.MUSHROOM_GROVE or rng.random() < 0.3:
            spread = room.size.effective_radius
            for index in range(3 + math.floor(rng.random() * 5)):
                offset = Vec3((rng.random() - 0.5) * spread, 0.0, (rng.random() - 0.5) * spread)
                sources.append(
                    LightSource(
                        id=f"bio_fungi_{room.id}_{index}",
                        kind=LightKind.BIOLUMINESCENT_FUNGI,
                        room_id=room.id,
                        position=room.position + offset,
                        intensity=0.1 + rng.random() * 0.1,
                        color=FUNGI_COLOR,
                        attenuation=FUNGI_ATTENUATION,
                        range=8.0,
                    )
                )
        if room.archetype is Archetype.CRYSTAL_CAVE or rng.random() < 0.2:
            sources.append(
                LightSource(
                    id=f"crystal_glow_{room.id}",
                    kind=LightKind.CRYSTAL_GLOW,
                    room_id=room.id,
                    position=room.position,
                    intensity=0.3,
                    color=CRYSTAL_COLOR,
                    attenuation=CRYSTAL_ATTENUATION,
                    range=15.0,
                )
            )
        return sources

    def constructed_lighting(self, room: Room) -> List[LightSource]:
        rng = self.rng
        sources: List[LightSource] = []
        count = torch_count(room)
        lit_chance = torch_lit_chance(room.depth)
        for index in range(count):
            # Extinguished torches still consume their slot on the perimeter.
            if rng.random() >= lit_chance:
                continue
            local = perimeter_position(room.size, index / count)
            sources.append(
                LightSource(
                    id=f"torch_{room.id}_{index}",
                    kind=LightKind.TORCH,
                    room_id=room.id,
                    position=room.position + local + Vec3(0.0, TORCH_MOUNT_HEIGHT, 0.0),
                    intensity=0.4,
                    color=TORCH_COLOR,
                    attenuation=TORCH_ATTENUATION,
                    range=10.0,
                )
            )
        if room.archetype is Archetype.TEMPLE and rng.random() < 0.7:
            sources.append(
                LightSource(
                    id=f"sacred_light_{room.id}",
                    kind=LightKind.MAGICAL_LIGHT,
                    room_id=room.id,
                    position=room.position + Vec3(0.0, room.size.height * 0.8, 0.0),
                    intensity=0.6,
                    color=SACRED_COLOR,
                    attenuation=SHAFT_ATTENUATION,
                    range=20.0,
                )
            )
        return sources

    def place(self, rooms: Sequence[Room]) -> List[LightSource]:
        sources = self.daylight(rooms)
        for room in rooms:
            if room.style is RegionStyle.NATURAL:
                if room.depth > BIOLUMINESCENCE_MIN_DEPTH:
                    sources.extend(self.bioluminescence(room))
            else:
                sources.extend(self.constructed_lighting(room))
        return sources


def light_room(room: Room, sources: Sequence[LightSource]) -> RoomLighting:
    """Sum attenuated contributions reaching the room centre, capped at 1."""
    total = 0.0
    contributions: List[LightContribution] = []
    for source in sources:
        contribution = source.contribution_at(room.position)
        if contribution <= LIGHT_CONTRIBUTION_THRESHOLD:
            continue
        total += contribution
        contributions.append(LightContribution(source.id, contribution, source.color))
    return RoomLighting(
        room_id=room.id,
        total_intensity=min(1.0, total),
        ambient_level=ambient_level(room.depth),
        sources=tuple(contributions),
    )


def compute_light_map(
    rooms: Sequence[Room], sources: Sequence[LightSource]
) -> Dict[str, RoomLighting]:
    return {room.id: light_room(room, sources) for room in rooms}
