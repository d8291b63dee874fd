import random

import pytest

from connection_builder import ConnectionSynthesizer
from dungeon_geometry import ORIGIN, Vec3
from dungeon_models import Archetype
from environment_sim import EnvironmentSimulator
from environment_sim.atmosphere import atmospheric_effects, compute_air_flow
from environment_sim.lighting import (
    LightPlacer,
    ambient_level,
    light_room,
    torch_count,
    torch_lit_chance,
)
from environment_sim.models import (
    Attenuation,
    EffectKind,
    FlowState,
    LightKind,
    LightSource,
    OrganicType,
    TemperatureZone,
    WaterBody,
    WaterType,
)
from environment_sim.organics import deposit_quality, organic_probability, select_organic_type
from environment_sim.temperature import calculate_zones, diffuse_temperatures
from environment_sim.water import place_water, simulate_flow, water_probability


def _water_body(room_id: str, position: Vec3, temperature: float, minerals: float) -> WaterBody:
    return WaterBody(
        id=f"water_{room_id}",
        room_id=room_id,
        water_type=WaterType.POOL,
        coverage=0.4,
        depth=1.0,
        position=position,
        volume=10.0,
        temperature=temperature,
        clarity=0.5,
        mineral_content=minerals,
        ph=7.0,
    )


@pytest.fixture
def stepped_pair(make_room):
    upper = make_room(Archetype.UNDERGROUND_LAKE, room_id="entrance_0", position=Vec3(0, 0, 0), depth=0)
    lower = make_room(Archetype.WATER_CAVE, room_id="node_1", position=Vec3(20, -2, 0), depth=2)
    connections = ConnectionSynthesizer(random.Random(1)).connect([upper, lower])
    return upper, lower, connections


def test_lake_room_always_holds_a_large_lake(make_room):
    room = make_room(Archetype.UNDERGROUND_LAKE, depth=3)
    room.environment.temperature = 12.0
    humidity_before = room.environment.humidity

    bodies = place_water([room], random.Random(0))

    assert len(bodies) == 1
    body = bodies[0]
    assert body.water_type is WaterType.LAKE
    assert 0.8 <= body.coverage <= 0.9
    assert body.volume == pytest.approx(room.size.floor_area * body.coverage * body.depth)
    assert body.temperature == pytest.approx(9.0)
    assert room.environment.humidity == pytest.approx(min(100.0, humidity_before + body.coverage * 30.0))


def test_constructed_rooms_are_drier_except_temples(make_room):
    crypt = make_room(Archetype.CRYPT, depth=0)
    temple = make_room(Archetype.TEMPLE, depth=0)

    assert water_probability(crypt) == pytest.approx(0.05)
    assert water_probability(temple) == pytest.approx(0.2)
    deep_temple = make_room(Archetype.TEMPLE, depth=8)
    assert water_probability(deep_temple) == pytest.approx(0.2 + 0.8 * 0.3)


def test_water_runs_downhill_between_connected_bodies(stepped_pair):
    upper, lower, connections = stepped_pair
    high = _water_body(upper.id, upper.position, temperature=15.0, minerals=0.0)
    low = _water_body(lower.id, lower.position, temperature=5.0, minerals=0.1)

    flows = simulate_flow([high, low], connections)

    assert len(flows) == 1
    assert flows[0].from_id == high.id
    assert flows[0].to_id == low.id
    assert flows[0].rate == pytest.approx(1.0)
    assert flows[0].connection_id == connections[0].id
    assert high.flow is FlowState.FLOWING_OUT
    assert low.flow is FlowState.FLOWING_IN
    assert low.temperature == pytest.approx(8.0)
    assert low.mineral_content == pytest.approx(0.08)
    assert high.temperature == 15.0


def test_level_water_does_not_flow(stepped_pair):
    upper, lower, connections = stepped_pair
    a = _water_body(upper.id, Vec3(0, 0, 0), temperature=10.0, minerals=0.0)
    b = _water_body(lower.id, Vec3(20, 0.05, 0), temperature=10.0, minerals=0.0)

    assert simulate_flow([a, b], connections) == []
    assert not a.is_flowing and not b.is_flowing


def test_water_cools_its_zone(stepped_pair):
    upper, lower, _ = stepped_pair
    upper.environment.temperature = 20.0
    body = _water_body(upper.id, upper.position, temperature=15.0, minerals=0.0)

    zones = calculate_zones([upper, lower], {upper.id: body}, random.Random(0))

    by_room = {zone.room_id: zone for zone in zones}
    assert by_room[upper.id].actual_temperature == pytest.approx(20.0 - 0.4 * 3.0)
    assert by_room[lower.id].actual_temperature == by_room[lower.id].base_temperature
    assert by_room[upper.id].insulation == pytest.approx(0.3)
    assert by_room[upper.id].heat_sources == ()


def _zone(room_id: str, temperature: float) -> TemperatureZone:
    return TemperatureZone(
        room_id=room_id,
        base_temperature=temperature,
        actual_temperature=temperature,
        gradient=ORIGIN,
        heat_sources=(),
        insulation=0.3,
    )


def test_diffusion_does_not_depend_on_zone_order():
    temperatures = {"a": 30.0, "b": 10.0, "c": 0.0, "d": 18.0}
    neighbours = {"a": ["b"], "b": ["a", "c", "d"], "c": ["b"], "d": ["b"]}
    forward = [_zone(room_id, t) for room_id, t in temperatures.items()]
    backward = [_zone(room_id, t) for room_id, t in reversed(list(temperatures.items()))]

    diffuse_temperatures(forward, neighbours)
    diffuse_temperatures(backward, neighbours)

    result_forward = {zone.room_id: zone.actual_temperature for zone in forward}
    result_backward = {zone.room_id: zone.actual_temperature for zone in backward}
    assert result_forward == pytest.approx(result_backward)
    assert result_forward["a"] < 30.0
    assert result_forward["c"] > 0.0


def test_single_diffusion_pass_uses_neighbourhood_mean():
    zones = [_zone("a", 10.0), _zone("b", 20.0)]

    diffuse_temperatures(zones, {"a": ["b"], "b": ["a"]}, passes=1, rate=0.3)

    assert zones[0].actual_temperature == pytest.approx(11.5)
    assert zones[1].actual_temperature == pytest.approx(18.5)


def test_light_contribution_falls_off_and_stops_at_range():
    source = LightSource(
        id="torch",
        kind=LightKind.TORCH,
        room_id="node_1",
        position=ORIGIN,
        intensity=0.4,
        color=(1.0, 0.6, 0.2),
        attenuation=Attenuation(1.0, 0.3, 0.1),
        range=10.0,
    )
    samples = [source.contribution_at(Vec3(d, 0, 0)) for d in range(0, 12)]

    assert samples[0] == pytest.approx(0.4)
    assert all(a > b for a, b in zip(samples[:10], samples[1:10]))
    assert samples[10] == 0.0
    assert samples[11] == 0.0
    with pytest.raises(ValueError):
        Attenuation(0.0, 1.0, 1.0)


def test_room_light_is_capped_at_one(make_room):
    room = make_room(Archetype.NATURAL_CHAMBER, depth=2)
    sources = [
        LightSource(
            id=f"glow_{index}",
            kind=LightKind.MAGICAL_LIGHT,
            room_id=room.id,
            position=room.position,
            intensity=0.6,
            color=(0.8, 0.8, 1.0),
            attenuation=Attenuation(1.0, 0.1, 0.02),
            range=20.0,
        )
        for index in range(3)
    ]

    lighting = light_room(room, sources)

    assert lighting.total_intensity == 1.0
    assert len(lighting.sources) == 3
    assert lighting.ambient_level == pytest.approx(0.025)


def test_adding_sources_never_darkens_a_room(make_room):
    room = make_room(Archetype.TEMPLE, depth=3)
    sources = [
        LightSource(
            id=f"torch_{index}",
            kind=LightKind.TORCH,
            room_id=room.id,
            position=room.position + Vec3(distance, 2.0, 0.0),
            intensity=0.3,
            color=(1.0, 0.6, 0.2),
            attenuation=Attenuation(1.0, 0.1, 0.01),
            range=15.0,
        )
        for index, distance in enumerate([1.0, 30.0, 4.0, 8.0, 0.0, 12.0, 2.0, 6.0])
    ]

    totals = [light_room(room, sources[:count]).total_intensity for count in range(len(sources) + 1)]

    assert totals[0] == 0.0
    assert all(later >= earlier for earlier, later in zip(totals, totals[1:]))
    assert all(total <= 1.0 for total in totals)
    assert totals[2] == totals[1]
    assert totals[-1] == 1.0


def test_lighting_helpers():
    assert torch_lit_chance(0) == pytest.approx(0.7)
    assert torch_lit_chance(4) == pytest.approx(0.5)
    assert torch_lit_chance(30) == pytest.approx(0.1)
    assert ambient_level(0) == pytest.approx(0.3)
    assert ambient_level(1) == pytest.approx(0.05)
    assert ambient_level(10) == pytest.approx(0.02)


def test_torches_hang_on_the_room_walls(make_room):
    room = make_room(Archetype.ARMORY, position=Vec3(40, -10, 5), depth=0)

    sources = LightPlacer(random.Random(2)).constructed_lighting(room)

    assert torch_count(room) >= 2
    assert len(sources) <= torch_count(room)
    half_w = room.size.footprint_width / 2 + 1e-6
    half_l = room.size.footprint_length / 2 + 1e-6
    for source in sources:
        assert source.kind is LightKind.TORCH
        local = source.position - room.position
        assert abs(local.x) <= half_w and abs(local.z) <= half_l
        assert local.y == pytest.approx(2.5)


def test_entrance_receives_daylight(make_room):
    entrance = make_room(Archetype.ENTRANCE_CAVE, room_id="entrance_0", depth=0)
    deep = make_room(Archetype.DEEP_CAVE, room_id="node_1", position=Vec3(0, -30, 0), depth=2)

    sources = LightPlacer(random.Random(0)).place([entrance, deep])

    assert sources[0].kind is LightKind.NATURAL_SUNLIGHT
    assert sources[0].room_id == "entrance_0"
    assert all(source.room_id == "entrance_0" for source in sources)


def test_organic_rules(make_room):
    grove = make_room(Archetype.MUSHROOM_GROVE, depth=2)
    chamber = make_room(Archetype.NATURAL_CHAMBER, depth=2)
    chamber.environment.humidity = 70.0
    chamber.environment.temperature = 15.0

    assert select_organic_type(grove, 0.5, True) is OrganicType.FUNGAL_MATTER
    assert select_organic_type(chamber, 0.5, True) is OrganicType.MOSS
    assert select_organic_type(chamber, 0.05, False) is OrganicType.DETRITUS
    assert select_organic_type(chamber, 0.2, True) is OrganicType.ALGAE
    assert select_organic_type(chamber, 0.2, False) is OrganicType.DECOMPOSED_MATTER

    assert organic_probability(chamber, 0.05, True) == pytest.approx(0.8)
    chamber.environment.humidity = 20.0
    assert organic_probability(chamber, 0.05, False) == pytest.approx(0.03)
    assert deposit_quality(chamber) == pytest.approx(0.1)


def test_air_moves_from_shallow_to_deep(stepped_pair):
    upper, lower, connections = stepped_pair
    rooms_by_id = {upper.id: upper, lower.id: lower}

    flows = compute_air_flow(rooms_by_id, connections)

    assert len(flows) == 1
    flow = flows[0]
    assert flow.from_room_id == upper.id
    assert flow.to_room_id == lower.id
    assert flow.strength == pytest.approx(0.6)
    assert flow.cross_section == pytest.approx(connections[0].width * connections[0].height)
    assert flow.direction.length() == pytest.approx(1.0)


def test_atmospheric_effects(make_room):
    grove = make_room(Archetype.MUSHROOM_GROVE, room_id="node_1")
    vault = make_room(Archetype.TREASURE_VAULT, room_id="node_2")
    grove.environment.humidity = 90.0
    vault.environment.humidity = 20.0
    flowing = _water_body("node_1", ORIGIN, temperature=10.0, minerals=0.0)
    flowing.flow = FlowState.FLOWING_IN

    effects = atmospheric_effects([grove, vault], [flowing])

    kinds = {(effect.kind, effect.room_id) for effect in effects}
    assert (EffectKind.MIST, "node_1") in kinds
    assert (EffectKind.WATER_SPRAY, "node_1") in kinds
    assert (EffectKind.DUST_PARTICLES, "node_2") in kinds
    assert (EffectKind.SPORE_CLOUD, "node_1") in kinds
    mist = next(effect for effect in effects if effect.kind is EffectKind.MIST)
    assert mist.density == pytest.approx(0.5)


def test_simulator_writes_results_back_to_rooms(stepped_pair):
    upper, lower, connections = stepped_pair

    report = EnvironmentSimulator(random.Random(3)).run([upper, lower], connections)

    assert report.water_for_room(upper.id).water_type is WaterType.LAKE
    assert report.water_for_room(lower.id).water_type is WaterType.STREAM
    assert len(report.flows) == 1
    for room in (upper, lower):
        assert room.environment.temperature == pytest.approx(
            report.zone_for_room(room.id).actual_temperature
        )
        assert room.environment.light_level == report.light_map[room.id].total_intensity
    assert report.summary()["water_bodies"] == 2
