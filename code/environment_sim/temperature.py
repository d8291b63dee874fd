"""Temperature zones: water cooling, heat sources and diffusion between linked rooms."""

from __future__ import annotations

import random
from typing import Dict, List, Mapping, Sequence

from dungeon_constants import (
    TEMPERATURE_DIFFUSION_PASSES,
    TEMPERATURE_DIFFUSION_RATE,
    WATER_COOLING_FACTOR,
)
from dungeon_geometry import ORIGIN, Vec3
from dungeon_models import RegionStyle, Room
from environment_sim.models import HeatSource, HeatSourceKind, TemperatureZone, WaterBody

GRADIENT_SCALE = 0.1
CONSTRUCTED_INSULATION = 0.8
NATURAL_INSULATION = 0.3


def temperature_gradient(room: Room, rooms_by_id: Mapping[str, Room]) -> Vec3:
    """Sum of unit directions to each neighbour, weighted by the temperature drop toward it."""
    gradient = ORIGIN
    for neighbour_id in room.neighbour_ids:
        neighbour = rooms_by_id.get(neighbour_id)
        if neighbour is None:
            continue
        drop = room.environment.temperature - neighbour.environment.temperature
        direction = (neighbour.position - room.position).normalize()
        gradient = gradient + direction * (drop * GRADIENT_SCALE)
    return gradient


def find_heat_sources(room: Room, rng: random.Random) -> List[HeatSource]:
    sources: List[HeatSource] = []
    if room.depth > 7 and room.style is RegionStyle.NATURAL and rng.random() < 0.1:
        sources.append(HeatSource(HeatSourceKind.LAVA_POOL, temperature=800.0, radius=5.0))
    if room.depth > 5 and rng.random() < 0.15:
        sources.append(HeatSource(HeatSourceKind.THERMAL_VENT, temperature=60.0, radius=3.0))
    return sources


def calculate_zones(
    rooms: Sequence[Room],
    water: Mapping[str, WaterBody],
    rng: random.Random,
) -> List[TemperatureZone]:
    rooms_by_id = {room.id: room for room in rooms}
    zones: List[TemperatureZone] = []
    for room in rooms:
        base = room.environment.temperature
        body = water.get(room.id)
        cooling = body.coverage * WATER_COOLING_FACTOR if body is not None else 0.0
        zones.append(
            TemperatureZone(
                room_id=room.id,
                base_temperature=base,
                actual_temperature=base - cooling,
                gradient=temperature_gradient(room, rooms_by_id),
                heat_sources=tuple(find_heat_sources(room, rng)),
                insulation=(
                    CONSTRUCTED_INSULATION
                    if room.style is RegionStyle.CONSTRUCTED
                    else NATURAL_INSULATION
                ),
            )
        )
    return zones


def diffuse_temperatures(
    zones: Sequence[TemperatureZone],
    neighbours: Mapping[str, Sequence[str]],
    passes: int = TEMPERATURE_DIFFUSION_PASSES,
    rate: float = TEMPERATURE_DIFFUSION_RATE,
) -> None:
    """Move each zone toward the mean of itself and its neighbours.

    Every pass reads the temperatures left by the previous pass, so the
    result does not depend on zone order.
    """
    for _ in range(passes):
        previous: Dict[str, float] = {zone.room_id: zone.actual_temperature for zone in zones}
        for zone in zones:
            current = previous[zone.room_id]
            values = [current]
            values.extend(
                previous[other] for other in neighbours.get(zone.room_id, ()) if other in previous
            )
            mean = sum(values) / len(values)
            zone.actual_temperature = current + (mean - current) * rate
