import math
import random

import pytest

from dungeon_geometry import Vec3
from dungeon_models import (
    Archetype,
    ConstructedProperties,
    FeatureKind,
    NaturalProperties,
    RegionStyle,
    RoomSize,
)
from room_builder import baseline_environment, blend_room_environments
from room_features import TORCH_MOUNT_HEIGHT, TORCH_SPACING, perimeter_position
from room_templates import ROOM_TEMPLATES, template_for


@pytest.mark.parametrize("archetype", list(Archetype))
def test_every_archetype_builds_within_template_ranges(make_room, archetype):
    room = make_room(archetype, depth=3)
    template = template_for(archetype)

    assert room.style is template.style
    assert template.height[0] <= room.size.height <= template.height[1]
    if template.radius is not None:
        assert template.radius[0] <= room.size.radius <= template.radius[1]
    else:
        assert template.width[0] <= room.size.width <= template.width[1]
        assert template.length[0] <= room.size.length <= template.length[1]
    for feature in room.features:
        assert feature.kind in template.features


def test_natural_room_carries_natural_traits(make_room):
    room = make_room(Archetype.DEEP_CAVE, depth=4)

    assert room.is_natural
    assert isinstance(room.properties, NaturalProperties)
    assert room.properties.erosion_level == pytest.approx(0.3)
    assert room.modifiers.erosion_iterations == 8
    assert sum(room.properties.mineral_composition.values()) > 0


def test_constructed_room_decay_grows_with_depth(make_room):
    shallow = make_room(Archetype.TEMPLE, depth=0)
    deep = make_room(Archetype.TEMPLE, depth=6)

    assert isinstance(shallow.properties, ConstructedProperties)
    assert shallow.properties.decay_amount == pytest.approx(0.15)
    assert deep.properties.decay_amount == pytest.approx(0.45)
    assert shallow.properties.cultural_origin in ("ancient_empire", "forgotten_cult", "divine_order")
    assert shallow.has_feature(FeatureKind.ALTAR)


def test_baseline_environment_follows_depth():
    template = ROOM_TEMPLATES[Archetype.NATURAL_CHAMBER]
    environment = baseline_environment(4, template)

    assert environment.temperature == pytest.approx(14.0)
    assert environment.humidity == pytest.approx(70.0)
    assert environment.light_level == pytest.approx(0.4)
    assert environment.airflow == pytest.approx(0.6)
    assert environment.pressure == pytest.approx(1.2)

    deep = baseline_environment(20, ROOM_TEMPLATES[Archetype.UNDERGROUND_LAKE])
    assert deep.temperature == pytest.approx(5.0)
    assert deep.humidity == pytest.approx(100.0)
    assert deep.light_level == 0.0
    assert deep.airflow == pytest.approx(0.1)


def test_torches_line_the_perimeter(make_room):
    room = make_room(Archetype.GUARD_ROOM)
    torches = room.feature(FeatureKind.TORCH_SCONCES).payload.torches
    perimeter = 2 * (room.size.footprint_width + room.size.footprint_length)

    assert len(torches) == math.floor(perimeter / TORCH_SPACING)
    half_w = room.size.footprint_width / 2
    half_l = room.size.footprint_length / 2
    for torch in torches:
        assert torch.height == TORCH_MOUNT_HEIGHT
        on_x_edge = math.isclose(abs(torch.position.x), half_w)
        on_z_edge = math.isclose(abs(torch.position.z), half_l)
        assert on_x_edge or on_z_edge


def test_perimeter_position_walks_the_rectangle():
    size = RoomSize(height=4.0, width=10.0, length=20.0)

    assert perimeter_position(size, 0.0) == Vec3(-5.0, 0.0, -10.0)
    assert perimeter_position(size, 0.25) == Vec3(5.0, 0.0, -10.0)
    assert perimeter_position(size, 0.5) == Vec3(5.0, 0.0, 10.0)
    assert perimeter_position(size, 0.75) == Vec3(-5.0, 0.0, 10.0)
    assert perimeter_position(size, 1.0) == perimeter_position(size, 0.0)


def test_room_size_requires_footprint():
    with pytest.raises(ValueError):
        RoomSize(height=3.0, width=4.0)
    with pytest.raises(ValueError):
        RoomSize(height=0.0, radius=4.0)
    assert RoomSize(height=3.0, radius=2.0).floor_area == pytest.approx(math.pi * 4.0)


def test_blend_moves_linked_rooms_toward_their_mean(make_room):
    a = make_room(Archetype.NATURAL_CHAMBER, room_id="node_1")
    b = make_room(Archetype.NATURAL_CHAMBER, room_id="node_2")
    lonely = make_room(Archetype.NATURAL_CHAMBER, room_id="node_3")
    a.environment.temperature, a.environment.humidity = 10.0, 40.0
    b.environment.temperature, b.environment.humidity = 20.0, 60.0
    lonely.environment.temperature = 30.0

    blend_room_environments([a, b, lonely], {"node_1": ["node_2"], "node_2": ["node_1"]})

    assert a.environment.temperature == pytest.approx(11.5)
    assert b.environment.temperature == pytest.approx(18.5)
    assert a.environment.humidity == pytest.approx(43.0)
    assert b.environment.humidity == pytest.approx(57.0)
    assert lonely.environment.temperature == 30.0


def test_same_seed_builds_identical_rooms(make_room):
    first = make_room(Archetype.CRYPT, seed=17)
    second = make_room(Archetype.CRYPT, seed=17)

    assert first.size == second.size
    assert first.features == second.features
    assert first.style is RegionStyle.CONSTRUCTED
