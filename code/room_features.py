"""Count-and-placement routines for room decorations, dispatched by FeatureKind."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import List, Optional

from dungeon_geometry import Vec3
from dungeon_models import (
    Altar,
    BrokenStairs,
    CarvedWalls,
    Column,
    ColumnLayout,
    ConstructedModifiers,
    ConstructedProperties,
    CrystalCluster,
    CrystalFormations,
    Dripstone,
    DripstoneField,
    FeatureKind,
    Flowstone,
    Mushroom,
    MushroomGrove,
    RegionStyle,
    RoomFeature,
    RoomModifiers,
    RoomProperties,
    RoomSize,
    Tomb,
    Tombs,
    TorchSconce,
    TorchSconces,
    WaterPool,
)
from room_templates import (
    CRYSTAL_COLORS,
    CRYSTAL_TYPES,
    FLOWSTONE_PATTERNS,
    MINERAL_TYPES,
    MUSHROOM_SPECIES,
    RoomTemplate,
    carving_motifs_for,
)

TORCH_SPACING = 5.0
TORCH_MOUNT_HEIGHT = 2.5
GRID_COLUMN_SPACING = 4.0
PERIMETER_COLUMN_SPACING = 3.0
TOMB_GRID_SPACING = 3.0
DEFAULT_POOL_COVERAGE = 0.3


@dataclass(frozen=True)
class FeatureSite:
    """Everything a feature routine may read about the room being built."""

    template: RoomTemplate
    size: RoomSize
    style: RegionStyle
    depth: int
    properties: RoomProperties
    modifiers: RoomModifiers

    @property
    def decay_amount(self) -> float:
        if isinstance(self.modifiers, ConstructedModifiers):
            return self.modifiers.decay_amount
        return 0.0

    @property
    def cultural_origin(self) -> str:
        if isinstance(self.properties, ConstructedProperties):
            return self.properties.cultural_origin
        return "nature"

    @property
    def architectural_style(self) -> str:
        if isinstance(self.properties, ConstructedProperties):
            return self.properties.architectural_style
        return self.template.architectural_style


def perimeter_position(size: RoomSize, t: float) -> Vec3:
    """Point on the footprint rectangle, walking clockwise from the north-west corner."""
    half_w = size.footprint_width / 2.0
    half_l = size.footprint_length / 2.0
    t = t % 1.0
    if t < 0.25:
        return Vec3(-half_w + (2 * half_w) * (t * 4), 0.0, -half_l)
    if t < 0.5:
        return Vec3(half_w, 0.0, -half_l + (2 * half_l) * ((t - 0.25) * 4))
    if t < 0.75:
        return Vec3(half_w - (2 * half_w) * ((t - 0.5) * 4), 0.0, half_l)
    return Vec3(-half_w, 0.0, half_l - (2 * half_l) * ((t - 0.75) * 4))


def _dripstone_field(site: FeatureSite, rng: random.Random, hanging: bool) -> DripstoneField:
    radius = site.size.effective_radius
    height = site.size.height
    if hanging:
        count = math.floor(radius * 0.5 + rng.random() * 10)
    else:
        count = math.floor(radius * 0.3 + rng.random() * 8)
    instances: List[Dripstone] = []
    for index in range(count):
        if hanging:
            angle = (index / count) * math.tau + (rng.random() - 0.5) * 0.5
            distance = rng.random() * radius * 0.8
            y = height * 0.8 + rng.random() * height * 0.2
            length = 0.5 + rng.random() * 2.0
            thickness = 0.1 + rng.random() * 0.3
        else:
            angle = rng.random() * math.tau
            distance = rng.random() * radius * 0.7
            y = 0.0
            length = 0.5 + rng.random() * 3.0
            thickness = 0.2 + rng.random() * 0.5
        instances.append(
            Dripstone(
                position=Vec3(math.cos(angle) * distance, y, math.sin(angle) * distance),
                length=length,
                thickness=thickness,
                mineral=rng.choice(MINERAL_TYPES),
            )
        )
    return DripstoneField(instances=tuple(instances), coverage=count / (radius * radius))


def _flowstone(site: FeatureSite, rng: random.Random) -> Flowstone:
    return Flowstone(
        coverage=0.2 + rng.random() * 0.3,
        thickness=0.1 + rng.random() * 0.3,
        pattern=rng.choice(FLOWSTONE_PATTERNS),
    )


def _crystals(site: FeatureSite, rng: random.Random) -> CrystalFormations:
    radius = site.size.effective_radius
    cluster_count = math.floor(3 + rng.random() * 5)
    clusters = []
    for index in range(cluster_count):
        angle = (index / cluster_count) * math.tau
        distance = radius * (0.3 + rng.random() * 0.5)
        clusters.append(
            CrystalCluster(
                position=Vec3(
                    math.cos(angle) * distance,
                    rng.random() * site.size.height * 0.5,
                    math.sin(angle) * distance,
                ),
                size=0.5 + rng.random() * 1.5,
                crystal_type=rng.choice(CRYSTAL_TYPES),
                glow_intensity=0.1 + rng.random() * 0.3,
                color=rng.choice(CRYSTAL_COLORS),
            )
        )
    return CrystalFormations(clusters=tuple(clusters), light_emission=0.2)


def _mushrooms(site: FeatureSite, rng: random.Random) -> MushroomGrove:
    spread = site.size.effective_radius * 1.5
    count = math.floor(10 + rng.random() * 20)
    mushrooms = tuple(
        Mushroom(
            position=Vec3((rng.random() - 0.5) * spread, 0.0, (rng.random() - 0.5) * spread),
            size=0.1 + rng.random() * 0.5,
            species=rng.choice(MUSHROOM_SPECIES),
            glowing=rng.random() > 0.6,
        )
        for _ in range(count)
    )
    return MushroomGrove(mushrooms=mushrooms, spore_level=0.3 + rng.random() * 0.4)


def _water_pool(site: FeatureSite, rng: random.Random) -> WaterPool:
    coverage = site.template.water_level
    return WaterPool(
        coverage=coverage if coverage is not None else DEFAULT_POOL_COVERAGE,
        depth=0.5 + rng.random() * 2.0,
        shape="organic" if site.style is RegionStyle.NATURAL else "geometric",
    )


def column_positions(size: RoomSize, layout: str) -> List[Vec3]:
    width = size.footprint_width
    length = size.footprint_length
    positions: List[Vec3] = []
    if layout == "grid":
        spacing = GRID_COLUMN_SPACING
        cols = math.floor(width / spacing)
        rows = math.floor(length / spacing)
        for x in range(cols):
            for z in range(rows):
                positions.append(
                    Vec3((x - cols / 2 + 0.5) * spacing, 0.0, (z - rows / 2 + 0.5) * spacing)
                )
        return positions

    spacing = PERIMETER_COLUMN_SPACING
    cols = math.floor(width / spacing)
    rows = math.floor(length / spacing)
    for x in range(cols):
        px = (x - cols / 2 + 0.5) * spacing
        positions.append(Vec3(px, 0.0, -length / 2 + 1))
        positions.append(Vec3(px, 0.0, length / 2 - 1))
    for z in range(1, rows - 1):
        pz = (z - rows / 2 + 0.5) * spacing
        positions.append(Vec3(-width / 2 + 1, 0.0, pz))
        positions.append(Vec3(width / 2 - 1, 0.0, pz))
    return positions


def _columns(site: FeatureSite, rng: random.Random) -> ColumnLayout:
    layout = "grid" if site.architectural_style == "classical" else "perimeter"
    condition = max(0.0, 1.0 - site.decay_amount)
    columns = tuple(
        Column(
            position=position,
            height=site.size.height * 0.9,
            radius=0.3 + rng.random() * 0.2,
            condition=condition,
        )
        for position in column_positions(site.size, layout)
    )
    return ColumnLayout(layout=layout, columns=columns)


def _altar(site: FeatureSite, rng: random.Random) -> Altar:
    return Altar(
        position=Vec3(0.0, 0.5, -site.size.footprint_length * 0.3),
        width=3.0,
        height=1.5,
        depth=2.0,
        origin=site.cultural_origin,
        condition=max(0.0, 1.0 - site.decay_amount),
    )


def _torch_sconces(site: FeatureSite, rng: random.Random) -> TorchSconces:
    perimeter = (site.size.footprint_width + site.size.footprint_length) * 2.0
    count = math.floor(perimeter / TORCH_SPACING)
    # Deeper rooms have more extinguished torches.
    lit_chance = max(0.1, 0.7 - 0.05 * site.depth)
    torches = tuple(
        TorchSconce(
            position=perimeter_position(site.size, index / count),
            height=TORCH_MOUNT_HEIGHT,
            lit=rng.random() < lit_chance,
            fuel=rng.random(),
        )
        for index in range(count)
    )
    return TorchSconces(torches=torches)


def _carved_walls(site: FeatureSite, rng: random.Random) -> CarvedWalls:
    origin = site.cultural_origin
    return CarvedWalls(
        origin=origin,
        motifs=carving_motifs_for(origin),
        coverage=0.4 + rng.random() * 0.4,
        condition=max(0.0, 1.0 - site.decay_amount),
    )


def tomb_position(size: RoomSize, index: int, total: int, layout: str) -> Vec3:
    if layout == "grid":
        cols = math.ceil(math.sqrt(total))
        x = (index % cols) - cols / 2
        z = (index // cols) - cols / 2
        return Vec3(x * TOMB_GRID_SPACING, 0.0, z * TOMB_GRID_SPACING)
    return perimeter_position(size, index / total)


def _tombs(site: FeatureSite, rng: random.Random) -> Tombs:
    layout = "grid" if site.template.grid_layout else "perimeter"
    count = math.floor(5 + rng.random() * 15)
    tombs = tuple(
        Tomb(
            position=tomb_position(site.size, index, count, layout),
            sealed=rng.random() > 0.3,
            inscribed=rng.random() > 0.5,
        )
        for index in range(count)
    )
    return Tombs(layout=layout, tombs=tombs)


def _broken_stairs(site: FeatureSite, rng: random.Random) -> BrokenStairs:
    return BrokenStairs(
        position=Vec3(0.0, 0.0, site.size.footprint_length * 0.4),
        width=3.0,
        height=site.size.height * 0.6,
        intact_fraction=0.3 + rng.random() * 0.4,
        climbable=rng.random() > 0.5,
    )


def generate_feature(kind: FeatureKind, site: FeatureSite, rng: random.Random) -> Optional[RoomFeature]:
    """Build one feature instance; returns None when the room is too small for any instance."""
    if kind is FeatureKind.STALACTITES:
        payload = _dripstone_field(site, rng, hanging=True)
        if not payload.instances:
            return None
    elif kind is FeatureKind.STALAGMITES:
        payload = _dripstone_field(site, rng, hanging=False)
        if not payload.instances:
            return None
    elif kind is FeatureKind.FLOWSTONE:
        payload = _flowstone(site, rng)
    elif kind is FeatureKind.CRYSTAL_FORMATIONS:
        payload = _crystals(site, rng)
    elif kind is FeatureKind.MUSHROOM_GROVE:
        payload = _mushrooms(site, rng)
    elif kind is FeatureKind.WATER_POOL:
        payload = _water_pool(site, rng)
    elif kind is FeatureKind.COLUMNS:
        payload = _columns(site, rng)
        if not payload.columns:
            return None
    elif kind is FeatureKind.ALTAR:
        payload = _altar(site, rng)
    elif kind is FeatureKind.TORCH_SCONCES:
        payload = _torch_sconces(site, rng)
        if not payload.torches:
            return None
    elif kind is FeatureKind.CARVED_WALLS:
        payload = _carved_walls(site, rng)
    elif kind is FeatureKind.TOMBS:
        payload = _tombs(site, rng)
    elif kind is FeatureKind.BROKEN_STAIRS:
        payload = _broken_stairs(site, rng)
    else:
        raise ValueError(f"Unsupported feature kind {kind}")
    return RoomFeature(kind=kind, payload=payload)
