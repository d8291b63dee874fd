"""Water placement and flow exchange between connected water bodies."""

from __future__ import annotations

import random
from typing import List, Mapping, Sequence

from dungeon_constants import (
    FLOW_HEIGHT_THRESHOLD,
    FLOW_MINERAL_MIX,
    FLOW_RATE_FACTOR,
    FLOW_TEMPERATURE_MIX,
)
from dungeon_models import Archetype, Connection, FeatureKind, RegionStyle, Room
from environment_sim.models import FlowEdge, FlowState, WaterBody, WaterType

WATER_PROBABILITY = {
    Archetype.UNDERGROUND_LAKE: 0.98,
    Archetype.WATER_CAVE: 0.95,
    Archetype.MUSHROOM_GROVE: 0.6,
    Archetype.CRYSTAL_CAVE: 0.4,
    Archetype.NATURAL_CHAMBER: 0.3,
    Archetype.TEMPLE: 0.2,
    Archetype.CRYPT: 0.1,
}
DEFAULT_WATER_PROBABILITY = 0.15
WATER_TABLE_DEPTH = 8.0
WATER_TABLE_WEIGHT = 0.3

BASE_COVERAGE = {
    Archetype.UNDERGROUND_LAKE: 0.8,
    Archetype.WATER_CAVE: 0.5,
    Archetype.NATURAL_CHAMBER: 0.2,
}
CONSTRUCTED_BASE_COVERAGE = 0.15
DEFAULT_BASE_COVERAGE = 0.1
MIN_COVERAGE = 0.05
MAX_COVERAGE = 0.9

HUMIDITY_PER_COVERAGE = 30.0

_FREE_WATER_TYPES = (WaterType.POOL, WaterType.PUDDLES, WaterType.STREAM)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def water_probability(room: Room) -> float:
    probability = WATER_PROBABILITY.get(room.archetype, DEFAULT_WATER_PROBABILITY)
    depth_factor = min(1.0, room.depth / WATER_TABLE_DEPTH)
    probability += (1.0 - probability) * depth_factor * WATER_TABLE_WEIGHT
    if room.style is RegionStyle.CONSTRUCTED and room.archetype is not Archetype.TEMPLE:
        probability *= 0.5
    return probability


def select_water_type(room: Room, rng: random.Random) -> WaterType:
    if room.archetype is Archetype.UNDERGROUND_LAKE:
        return WaterType.LAKE
    if room.archetype is Archetype.WATER_CAVE:
        return WaterType.STREAM
    if room.style is RegionStyle.CONSTRUCTED:
        return WaterType.ARTIFICIAL_POOL
    weights = [0.5, 0.3, 0.2]
    # Well-connected rooms drain into streams.
    if len(room.links) > 2:
        weights[0] -= 0.2
        weights[2] += 0.3
    return rng.choices(_FREE_WATER_TYPES, weights=weights, k=1)[0]


def water_coverage(room: Room, rng: random.Random) -> float:
    if room.archetype in BASE_COVERAGE:
        base = BASE_COVERAGE[room.archetype]
    elif room.style is RegionStyle.CONSTRUCTED:
        base = CONSTRUCTED_BASE_COVERAGE
    else:
        base = DEFAULT_BASE_COVERAGE
    return _clamp(base + rng.random() * 0.3, MIN_COVERAGE, MAX_COVERAGE)


def water_depth(room: Room, rng: random.Random) -> float:
    if room.archetype is Archetype.UNDERGROUND_LAKE:
        return 2.0 + rng.random() * 8.0
    return 0.3 + rng.random() * 1.5 + room.depth * 0.1


def water_clarity(room: Room, rng: random.Random) -> float:
    link_count = len(room.links)
    if link_count == 1:
        return 0.1 + rng.random() * 0.3
    if link_count > 2:
        return 0.6 + rng.random() * 0.3
    return 0.3 + rng.random() * 0.4


def place_water(rooms: Sequence[Room], rng: random.Random) -> List[WaterBody]:
    """Decide which rooms hold water and raise their humidity accordingly.

    Rooms that already carry a pool feature always receive a water body.
    """
    bodies: List[WaterBody] = []
    for room in rooms:
        roll = rng.random()
        if not room.has_feature(FeatureKind.WATER_POOL) and roll >= water_probability(room):
            continue
        water_type = select_water_type(room, rng)
        coverage = water_coverage(room, rng)
        depth = water_depth(room, rng)
        body = WaterBody(
            id=f"water_{room.id}",
            room_id=room.id,
            water_type=water_type,
            coverage=coverage,
            depth=depth,
            position=room.position,
            volume=room.size.floor_area * coverage * depth,
            temperature=max(5.0, room.environment.temperature - 3.0),
            clarity=water_clarity(room, rng),
            mineral_content=room.depth * 0.05,
            ph=6.5 + rng.random() * 2.0,
        )
        bodies.append(body)
        room.environment.humidity = min(
            100.0, room.environment.humidity + coverage * HUMIDITY_PER_COVERAGE
        )
    return bodies


def simulate_flow(
    bodies: Sequence[WaterBody], connections: Sequence[Connection]
) -> List[FlowEdge]:
    """Let water run downhill along connections joining two water bodies."""
    by_room = bodies_by_room(bodies)
    flows: List[FlowEdge] = []
    for connection in connections:
        water_a = by_room.get(connection.room_ids[0])
        water_b = by_room.get(connection.room_ids[1])
        if water_a is None or water_b is None:
            continue
        elevation = water_a.position.y - water_b.position.y
        if abs(elevation) <= FLOW_HEIGHT_THRESHOLD:
            continue
        upstream, downstream = (water_a, water_b) if elevation > 0 else (water_b, water_a)
        flows.append(
            FlowEdge(
                from_id=upstream.id,
                to_id=downstream.id,
                rate=abs(elevation) * FLOW_RATE_FACTOR,
                connection_id=connection.id,
            )
        )
        upstream.flow = FlowState.FLOWING_OUT
        downstream.flow = FlowState.FLOWING_IN
        downstream.temperature = _lerp(
            downstream.temperature, upstream.temperature, FLOW_TEMPERATURE_MIX
        )
        downstream.mineral_content = _lerp(
            downstream.mineral_content, upstream.mineral_content, FLOW_MINERAL_MIX
        )
    return flows


def bodies_by_room(bodies: Sequence[WaterBody]) -> Mapping[str, WaterBody]:
    return {body.room_id: body for body in bodies}
