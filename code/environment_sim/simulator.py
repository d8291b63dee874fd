"""Sequential environment passes over a connected set of rooms."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from dungeon_models import Connection, Room
from environment_sim.atmosphere import atmospheric_effects, compute_air_flow
from environment_sim.lighting import LightPlacer, compute_light_map
from environment_sim.models import EnvironmentReport
from environment_sim.organics import place_organic_matter
from environment_sim.temperature import calculate_zones, diffuse_temperatures
from environment_sim.water import bodies_by_room, place_water, simulate_flow

logger = logging.getLogger(__name__)


class EnvironmentSimulator:
    """Runs water, flow, temperature, light, organics and atmosphere in that order.

    Each pass reads what the previous passes left behind. Room humidity,
    temperature and light level are written back onto ``room.environment``.
    """

    def __init__(self, rng: random.Random) -> None:
        self.rng = rng

    def run(self, rooms: Sequence[Room], connections: Sequence[Connection]) -> EnvironmentReport:
        rooms_by_id = {room.id: room for room in rooms}

        water_bodies = place_water(rooms, self.rng)
        flows = simulate_flow(water_bodies, connections)
        water = bodies_by_room(water_bodies)

        zones = calculate_zones(rooms, water, self.rng)
        diffuse_temperatures(zones, {room.id: room.neighbour_ids for room in rooms})
        for zone in zones:
            rooms_by_id[zone.room_id].environment.temperature = zone.actual_temperature

        light_sources = LightPlacer(self.rng).place(rooms)
        light_map = compute_light_map(rooms, light_sources)
        for room_id, lighting in light_map.items():
            rooms_by_id[room_id].environment.light_level = lighting.total_intensity

        deposits = place_organic_matter(rooms, water.keys(), light_map, self.rng)
        air_flows = compute_air_flow(rooms_by_id, connections)
        effects = atmospheric_effects(rooms, water_bodies)

        logger.info("Placed %d water bodies", len(water_bodies))
        logger.info("Placed %d light sources", len(light_sources))
        logger.info("Placed %d organic deposits", len(deposits))
        logger.debug("%d flow edges, %d air flows, %d effects", len(flows), len(air_flows), len(effects))

        return EnvironmentReport(
            water_bodies=tuple(water_bodies),
            flows=tuple(flows),
            temperature_zones=tuple(zones),
            light_sources=tuple(light_sources),
            light_map=light_map,
            organic_deposits=tuple(deposits),
            air_flows=tuple(air_flows),
            effects=tuple(effects),
        )


def simulate_environment(
    rooms: Sequence[Room], connections: Sequence[Connection], rng: random.Random
) -> EnvironmentReport:
    return EnvironmentSimulator(rng).run(rooms, connections)
