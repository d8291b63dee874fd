"""Organic matter deposits driven by moisture, light and temperature."""

from __future__ import annotations

import random
from typing import Collection, List, Mapping, Optional, Sequence

from dungeon_geometry import Vec3
from dungeon_models import Archetype, Room
from environment_sim.models import OrganicDeposit, OrganicType, RoomLighting

OPTIMAL_TEMPERATURE = 15.0
TEMPERATURE_TOLERANCE = 20.0


def organic_probability(room: Room, light_level: float, has_water: bool) -> float:
    probability = 0.1
    if has_water:
        probability += 0.3
    if light_level < 0.1 and room.environment.humidity > 60:
        probability += 0.4
    if room.environment.humidity < 30 or room.environment.temperature < 5:
        probability *= 0.3
    return probability


def select_organic_type(room: Room, light_level: float, has_water: bool) -> OrganicType:
    if room.archetype is Archetype.MUSHROOM_GROVE:
        return OrganicType.FUNGAL_MATTER
    if light_level > 0.3 and has_water:
        return OrganicType.MOSS
    if light_level < 0.1:
        return OrganicType.DETRITUS
    if has_water:
        return OrganicType.ALGAE
    return OrganicType.DECOMPOSED_MATTER


def deposit_quality(room: Room) -> float:
    temperature_fit = 1.0 - abs(room.environment.temperature - OPTIMAL_TEMPERATURE) / TEMPERATURE_TOLERANCE
    humidity_fit = room.environment.humidity / 100.0
    return max(0.1, min(1.0, 0.5 * temperature_fit * humidity_fit))


def place_organic_matter(
    rooms: Sequence[Room],
    wet_room_ids: Collection[str],
    light_map: Mapping[str, RoomLighting],
    rng: random.Random,
) -> List[OrganicDeposit]:
    deposits: List[OrganicDeposit] = []
    for room in rooms:
        lighting: Optional[RoomLighting] = light_map.get(room.id)
        light_level = lighting.total_intensity if lighting is not None else 0.0
        has_water = room.id in wet_room_ids
        if rng.random() >= organic_probability(room, light_level, has_water):
            continue
        spread = room.size.effective_radius * 0.8
        offset = Vec3((rng.random() - 0.5) * spread, 0.0, (rng.random() - 0.5) * spread)
        deposits.append(
            OrganicDeposit(
                id=f"organic_{room.id}",
                room_id=room.id,
                organic_type=select_organic_type(room, light_level, has_water),
                amount=10.0 + rng.random() * 40.0,
                quality=deposit_quality(room),
                position=room.position + offset,
                regeneration_rate=0.1 + rng.random() * 0.2,
            )
        )
    return deposits
