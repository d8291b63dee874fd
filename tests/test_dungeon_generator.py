import random

import pytest

import dungeon_generator
from dungeon_config import DungeonConfig, EntranceType
from dungeon_constants import ENTRANCE_ID
from dungeon_errors import GenerationIncompleteError
from dungeon_generator import PHASES, DungeonGenerator, generate_dungeon, select_entrance
from dungeon_models import ConnectionPriority, ConnectionStyle


def _fingerprint(result):
    return (
        [(room.id, room.position, room.archetype, room.size) for room in result.rooms],
        [(connection.id, connection.path) for connection in result.connections],
        [(body.id, body.coverage) for body in result.environment.water_bodies],
        [source.id for source in result.environment.light_sources],
        result.stats.vertex_count,
        result.stats.index_count,
        repr(result.rooms),
        repr(result.connections),
        repr(result.environment),
    )


def test_small_dungeon_is_connected(small_result):
    rooms = small_result.rooms

    assert 1 <= len(rooms) <= 10
    assert rooms[0].id == ENTRANCE_ID
    assert len(small_result.connections) >= len(rooms) - 1
    assert small_result.connectivity_valid is True
    assert small_result.graph.edge_count == len(small_result.connections)
    assert all(room.depth <= 3 for room in rooms)
    assert small_result.stats.room_count == len(rooms)
    primary = [c for c in small_result.connections if c.priority is ConnectionPriority.PRIMARY]
    assert len(primary) == len(rooms) - 1


def test_connection_styles_are_counted(small_result):
    by_style = small_result.stats.connections_by_style

    assert sum(by_style.values()) == small_result.stats.connection_count
    assert set(by_style) <= {style.value for style in ConnectionStyle}
    for style in ConnectionStyle:
        expected = sum(1 for c in small_result.connections if c.style is style)
        assert by_style.get(style.value, 0) == expected


def test_room_environments_stay_in_range(small_result):
    for room in small_result.rooms:
        assert 0.0 <= room.environment.light_level <= 1.0
        assert room.environment.humidity <= 100.0
        assert room.environment.light_level == small_result.environment.light_map[room.id].total_intensity


def test_same_seed_produces_identical_dungeon(small_config):
    first = DungeonGenerator(small_config).generate()
    second = DungeonGenerator(DungeonConfig(seed=42, max_rooms=10, max_depth=3, branching_factor=2.0)).generate()

    assert _fingerprint(first) == _fingerprint(second)


def test_regenerating_repeats_the_run(small_config):
    generator = DungeonGenerator(small_config)

    assert _fingerprint(generator.generate()) == _fingerprint(generator.generate())


def test_different_seeds_diverge():
    first = generate_dungeon(DungeonConfig(seed=1, max_rooms=12, max_depth=4))
    second = generate_dungeon(DungeonConfig(seed=2, max_rooms=12, max_depth=4))

    assert _fingerprint(first) != _fingerprint(second)


def test_progress_reports_each_phase(small_config):
    calls = []

    DungeonGenerator(small_config).generate(progress=lambda name, fraction: calls.append((name, fraction)))

    assert [name for name, _ in calls] == list(PHASES)
    assert calls[-1][1] == pytest.approx(1.0)
    fractions = [fraction for _, fraction in calls]
    assert fractions == sorted(fractions)


def test_metrics_are_collected_when_enabled():
    config = DungeonConfig(seed=42, max_rooms=10, max_depth=3, branching_factor=2.0, collect_metrics=True)

    result = DungeonGenerator(config).generate()

    metrics = result.stats.phase_metrics
    assert metrics is not None
    assert set(metrics) == set(PHASES)
    assert all(phase["invocations"] == 1 for phase in metrics.values())
    assert metrics["layout"]["total_rooms_added"] == result.layout_stats["node_count"]
    assert metrics["connections"]["total_connections_added"] == len(result.connections)


def test_metrics_are_absent_by_default(small_result):
    assert small_result.stats.phase_metrics is None


def test_merged_geometry_matches_stats(small_result):
    geometry = small_result.geometry

    assert geometry.merged is not None
    assert small_result.stats.vertex_count == sum(mesh.vertex_count for mesh in geometry.merged.values())
    assert small_result.stats.draw_call_count == len(geometry.merged)


def test_explicit_entrance_type_is_respected():
    entrance = select_entrance(DungeonConfig(seed=5, entrance_type="sinkhole"), random.Random(5))

    assert entrance.entrance_type is EntranceType.SINKHOLE
    assert set(entrance.size) == {"radius", "depth"}
    assert 5.0 <= entrance.size["radius"] <= 10.0


def test_auto_entrance_is_resolved(small_result):
    assert isinstance(small_result.entrance.entrance_type, EntranceType)


def test_unknown_room_lookup_raises(small_result):
    assert small_result.room(ENTRANCE_ID).depth == 0
    with pytest.raises(KeyError):
        small_result.room("node_999")


def _multi_room_config(**kwargs) -> DungeonConfig:
    return DungeonConfig(seed=42, max_rooms=15, max_depth=4, branching_factor=3.0, **kwargs)


def test_missing_connections_abort_when_connectivity_required(monkeypatch):
    monkeypatch.setattr(dungeon_generator, "synthesize_connections", lambda rooms, rng: [])

    with pytest.raises(GenerationIncompleteError) as excinfo:
        DungeonGenerator(_multi_room_config()).generate()

    assert ENTRANCE_ID not in excinfo.value.unreachable
    assert excinfo.value.unreachable


def test_missing_connections_are_flagged_when_allowed(monkeypatch):
    monkeypatch.setattr(dungeon_generator, "synthesize_connections", lambda rooms, rng: [])

    result = DungeonGenerator(_multi_room_config(require_connectivity=False)).generate()

    assert len(result.rooms) > 1
    assert result.connectivity_valid is False
    assert result.connections == ()
