"""Air circulation and visual atmosphere."""

from __future__ import annotations

from typing import List, Mapping, Sequence

from dungeon_models import Archetype, Connection, RegionStyle, Room
from environment_sim.models import AirFlow, AtmosphericEffect, EffectKind, WaterBody

AIRFLOW_PER_DEPTH = 0.3
MIST_HUMIDITY = 80.0
DUST_HUMIDITY = 30.0


def compute_air_flow(
    rooms_by_id: Mapping[str, Room], connections: Sequence[Connection]
) -> List[AirFlow]:
    """Air is drawn along every connection that changes depth, shallow to deep."""
    flows: List[AirFlow] = []
    for connection in connections:
        room_a = rooms_by_id.get(connection.room_ids[0])
        room_b = rooms_by_id.get(connection.room_ids[1])
        if room_a is None or room_b is None:
            continue
        depth_change = room_b.depth - room_a.depth
        if depth_change == 0:
            continue
        source, sink = (room_a, room_b) if depth_change > 0 else (room_b, room_a)
        flows.append(
            AirFlow(
                connection_id=connection.id,
                from_room_id=source.id,
                to_room_id=sink.id,
                direction=(sink.position - source.position).normalize(),
                strength=abs(depth_change) * AIRFLOW_PER_DEPTH,
                cross_section=connection.width * connection.height,
            )
        )
    return flows


def atmospheric_effects(
    rooms: Sequence[Room], water_bodies: Sequence[WaterBody]
) -> List[AtmosphericEffect]:
    effects: List[AtmosphericEffect] = []
    for room in rooms:
        humidity = room.environment.humidity
        if humidity > MIST_HUMIDITY:
            effects.append(
                AtmosphericEffect(
                    id=f"mist_{room.id}",
                    kind=EffectKind.MIST,
                    room_id=room.id,
                    density=(humidity - MIST_HUMIDITY) / (100.0 - MIST_HUMIDITY),
                    height=room.size.height * 0.3,
                    color=(0.7, 0.7, 0.8),
                )
            )
    for body in water_bodies:
        if body.is_flowing:
            effects.append(
                AtmosphericEffect(
                    id=f"spray_{body.id}",
                    kind=EffectKind.WATER_SPRAY,
                    room_id=body.room_id,
                    density=0.3,
                    particle_count=50,
                )
            )
    for room in rooms:
        if room.style is RegionStyle.CONSTRUCTED and room.environment.humidity < DUST_HUMIDITY:
            effects.append(
                AtmosphericEffect(
                    id=f"dust_{room.id}",
                    kind=EffectKind.DUST_PARTICLES,
                    room_id=room.id,
                    density=0.2,
                )
            )
    for room in rooms:
        if room.archetype is Archetype.MUSHROOM_GROVE:
            effects.append(
                AtmosphericEffect(
                    id=f"spores_{room.id}",
                    kind=EffectKind.SPORE_CLOUD,
                    room_id=room.id,
                    density=0.4,
                    color=(0.8, 0.9, 0.7),
                    bioluminescent=True,
                )
            )
    return effects
