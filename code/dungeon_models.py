"""Core dataclasses used by the dungeon generator."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from dungeon_config import EntranceType
from dungeon_geometry import Vec3
from dungeon_layout import GraphNode


class RegionStyle(Enum):
    NATURAL = "natural"
    CONSTRUCTED = "constructed"

    def opposite(self) -> RegionStyle:
        if self is RegionStyle.NATURAL:
            return RegionStyle.CONSTRUCTED
        return RegionStyle.NATURAL


class Archetype(Enum):
    """Named room templates. Natural and constructed catalogs share one namespace."""

    # Natural
    ENTRANCE_CAVE = "entrance_cave"
    NATURAL_CHAMBER = "natural_chamber"
    WATER_CAVE = "water_cave"
    CRYSTAL_CAVE = "crystal_cave"
    MUSHROOM_GROVE = "mushroom_grove"
    DEEP_CAVE = "deep_cave"
    UNDERGROUND_LAKE = "underground_lake"
    LAVA_TUBES = "lava_tubes"
    ABYSS_CHAMBER = "abyss_chamber"
    CRYSTAL_CATHEDRAL = "crystal_cathedral"
    MONSTER_DEN = "monster_den"
    # Constructed
    ENTRANCE_HALL = "entrance_hall"
    GUARD_ROOM = "guard_room"
    STORAGE_ROOM = "storage_room"
    LIVING_QUARTERS = "living_quarters"
    WORKSHOP = "workshop"
    TEMPLE = "temple"
    LIBRARY = "library"
    ARMORY = "armory"
    CRYPT = "crypt"
    TREASURE_VAULT = "treasure_vault"
    RITUAL_CHAMBER = "ritual_chamber"
    ANCIENT_VAULT = "ancient_vault"
    FORGOTTEN_SANCTUM = "forgotten_sanctum"
    SEALED_TOMB = "sealed_tomb"


# Archetypes that attract extra secondary connections.
SPECIAL_ARCHETYPES = frozenset(
    (
        Archetype.TEMPLE,
        Archetype.TREASURE_VAULT,
        Archetype.CRYSTAL_CAVE,
        Archetype.UNDERGROUND_LAKE,
    )
)


@dataclass
class Region:
    """Classification of one graph node. Mutated only by the smoothing passes."""

    node: GraphNode
    style: RegionStyle
    archetype: Archetype

    @property
    def node_id(self) -> str:
        return self.node.id


# ----------------------------------------------------------------------
# Entrance
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class EntranceDescriptor:
    """Surface opening leading into the entrance node."""

    entrance_type: EntranceType
    name: str
    shape: str
    style: RegionStyle
    size: Dict[str, float]
    features: Tuple[str, ...]
    position: Vec3


# ----------------------------------------------------------------------
# Features
# ----------------------------------------------------------------------


class FeatureKind(Enum):
    STALACTITES = "stalactites"
    STALAGMITES = "stalagmites"
    FLOWSTONE = "flowstone"
    CRYSTAL_FORMATIONS = "crystal_formations"
    MUSHROOM_GROVE = "mushroom_grove"
    WATER_POOL = "water_pool"
    COLUMNS = "columns"
    ALTAR = "altar"
    TORCH_SCONCES = "torch_sconces"
    CARVED_WALLS = "carved_walls"
    TOMBS = "tombs"
    BROKEN_STAIRS = "broken_stairs"


@dataclass(frozen=True)
class Dripstone:
    """A single stalactite (hanging) or stalagmite (standing)."""

    position: Vec3
    length: float
    thickness: float
    mineral: str


@dataclass(frozen=True)
class DripstoneField:
    instances: Tuple[Dripstone, ...]
    coverage: float


@dataclass(frozen=True)
class Flowstone:
    pattern: str
    coverage: float
    thickness: float


@dataclass(frozen=True)
class CrystalCluster:
    position: Vec3
    size: float
    crystal_type: str
    color: Tuple[float, float, float]
    glow_intensity: float


@dataclass(frozen=True)
class CrystalFormations:
    clusters: Tuple[CrystalCluster, ...]
    light_emission: float


@dataclass(frozen=True)
class Mushroom:
    position: Vec3
    size: float
    species: str
    glowing: bool


@dataclass(frozen=True)
class MushroomGrove:
    mushrooms: Tuple[Mushroom, ...]
    spore_level: float


@dataclass(frozen=True)
class WaterPool:
    coverage: float
    depth: float
    shape: str


@dataclass(frozen=True)
class Column:
    position: Vec3
    height: float
    radius: float
    condition: float


@dataclass(frozen=True)
class ColumnLayout:
    layout: str
    columns: Tuple[Column, ...]


@dataclass(frozen=True)
class Altar:
    position: Vec3
    width: float
    height: float
    depth: float
    origin: str
    condition: float


@dataclass(frozen=True)
class TorchSconce:
    position: Vec3
    height: float
    lit: bool
    fuel: float


@dataclass(frozen=True)
class TorchSconces:
    torches: Tuple[TorchSconce, ...]


@dataclass(frozen=True)
class CarvedWalls:
    origin: str
    motifs: Tuple[str, ...]
    coverage: float
    condition: float


@dataclass(frozen=True)
class Tomb:
    position: Vec3
    sealed: bool
    inscribed: bool


@dataclass(frozen=True)
class Tombs:
    layout: str
    tombs: Tuple[Tomb, ...]


@dataclass(frozen=True)
class BrokenStairs:
    position: Vec3
    width: float
    height: float
    intact_fraction: float
    climbable: bool


FeaturePayload = Union[
    DripstoneField,
    Flowstone,
    CrystalFormations,
    MushroomGrove,
    WaterPool,
    ColumnLayout,
    Altar,
    TorchSconces,
    CarvedWalls,
    Tombs,
    BrokenStairs,
]


@dataclass(frozen=True)
class RoomFeature:
    """Feature instance record; positions are room-local (floor centre at origin)."""

    kind: FeatureKind
    payload: FeaturePayload


# ----------------------------------------------------------------------
# Rooms
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class RoomSize:
    """Radius-based for round rooms, width/length-based for rectangular ones."""

    height: float
    radius: Optional[float] = None
    width: Optional[float] = None
    length: Optional[float] = None

    def __post_init__(self) -> None:
        if self.height <= 0:
            raise ValueError("RoomSize height must be positive")
        if self.radius is None and (self.width is None or self.length is None):
            raise ValueError("RoomSize needs either a radius or both width and length")

    @property
    def footprint_width(self) -> float:
        if self.width is not None:
            return self.width
        assert self.radius is not None
        return self.radius * 2.0

    @property
    def footprint_length(self) -> float:
        if self.length is not None:
            return self.length
        assert self.radius is not None
        return self.radius * 2.0

    @property
    def effective_radius(self) -> float:
        if self.radius is not None:
            return self.radius
        return max(self.footprint_width, self.footprint_length) / 2.0

    @property
    def floor_area(self) -> float:
        if self.radius is not None and self.width is None:
            return math.pi * self.radius * self.radius
        return self.footprint_width * self.footprint_length


@dataclass
class RoomEnvironment:
    """Mutable environmental snapshot; refined by coherence and the environment passes."""

    temperature: float
    humidity: float
    light_level: float
    airflow: float
    pressure: float


@dataclass(frozen=True)
class NaturalProperties:
    irregularity: float
    erosion_level: float
    geological_age: float
    mineral_composition: Dict[str, float]
    formation_type: str


@dataclass(frozen=True)
class ConstructedProperties:
    architectural_style: str
    construction_quality: float
    decay_amount: float
    construction_age: float
    cultural_origin: str
    structural_integrity: float


@dataclass(frozen=True)
class NaturalModifiers:
    noise_frequency: float
    noise_amplitude: float
    noise_octaves: int
    erosion_iterations: int
    erosion_strength: float


@dataclass(frozen=True)
class ConstructedModifiers:
    decay_amount: float
    decay_patterns: Tuple[str, ...]
    architectural_style: str
    architectural_period: str


RoomProperties = Union[NaturalProperties, ConstructedProperties]
RoomModifiers = Union[NaturalModifiers, ConstructedModifiers]


class WallFace(Enum):
    NORTH = "north"  # -z
    SOUTH = "south"  # +z
    EAST = "east"  # +x
    WEST = "west"  # -x


class SurfaceFinish(Enum):
    ROUGH = "rough"
    CARVED = "carved"


@dataclass(frozen=True)
class Doorway:
    """Where a connection meets a room, in the room's local frame."""

    room_id: str
    wall: WallFace
    local_offset: Vec3
    facing: Vec3
    width: float
    height: float
    finish: SurfaceFinish


@dataclass(frozen=True)
class RoomLink:
    target_room_id: str
    connection_id: str
    doorway: Doorway


@dataclass
class Room:
    """A synthesized chamber. Only ``environment`` and ``links`` change after construction."""

    id: str
    style: RegionStyle
    archetype: Archetype
    position: Vec3
    depth: int
    size: RoomSize
    properties: RoomProperties
    modifiers: RoomModifiers
    features: Tuple[RoomFeature, ...]
    environment: RoomEnvironment
    links: List[RoomLink] = field(default_factory=list)

    @property
    def is_natural(self) -> bool:
        return self.style is RegionStyle.NATURAL

    def has_feature(self, kind: FeatureKind) -> bool:
        return any(feature.kind is kind for feature in self.features)

    def feature(self, kind: FeatureKind) -> Optional[RoomFeature]:
        for feature in self.features:
            if feature.kind is kind:
                return feature
        return None

    @property
    def neighbour_ids(self) -> List[str]:
        return [link.target_room_id for link in self.links]


# ----------------------------------------------------------------------
# Connections
# ----------------------------------------------------------------------


class ConnectionPriority(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class ConnectionStyle(Enum):
    NATURAL_TUNNEL = "natural_tunnel"
    CARVED_CORRIDOR = "carved_corridor"
    TRANSITIONAL = "transitional"


@dataclass(frozen=True)
class PassageFeature:
    """Decoration placed along a connection at path parameter ``t``."""

    kind: str
    t: float
    position: Vec3
    variant: int


@dataclass(frozen=True)
class Connection:
    id: str
    room_ids: Tuple[str, str]
    priority: ConnectionPriority
    style: ConnectionStyle
    path: Tuple[Vec3, ...]
    width: float
    height: float
    length: float
    features: Tuple[PassageFeature, ...]
    doorways: Tuple[Doorway, Doorway]

    def __post_init__(self) -> None:
        if len(self.path) < 2:
            raise ValueError(f"Connection {self.id} path needs at least two points")
        if self.room_ids[0] == self.room_ids[1]:
            raise ValueError(f"Connection {self.id} cannot link a room to itself")

    def other_room(self, room_id: str) -> str:
        a, b = self.room_ids
        if room_id == a:
            return b
        if room_id == b:
            return a
        raise ValueError(f"Room {room_id} is not part of connection {self.id}")
