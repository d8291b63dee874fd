"""Records produced by the environment passes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from dungeon_geometry import Vec3

Color = Tuple[float, float, float]


class WaterType(Enum):
    LAKE = "lake"
    STREAM = "stream"
    POOL = "pool"
    PUDDLES = "puddles"
    ARTIFICIAL_POOL = "artificial_pool"


class FlowState(Enum):
    STILL = "still"
    FLOWING_OUT = "flowing_out"
    FLOWING_IN = "flowing_in"


@dataclass
class WaterBody:
    """Standing or moving water in one room. Flow exchange mutates temperature, minerals and flow."""

    id: str
    room_id: str
    water_type: WaterType
    coverage: float
    depth: float
    position: Vec3
    volume: float
    temperature: float
    clarity: float
    mineral_content: float
    ph: float
    flow: FlowState = FlowState.STILL

    @property
    def is_flowing(self) -> bool:
        return self.flow is not FlowState.STILL


@dataclass(frozen=True)
class FlowEdge:
    """Water moving from ``from_id`` (upstream body) to ``to_id`` through a connection."""

    from_id: str
    to_id: str
    rate: float
    connection_id: str


class HeatSourceKind(Enum):
    LAVA_POOL = "lava_pool"
    THERMAL_VENT = "thermal_vent"


@dataclass(frozen=True)
class HeatSource:
    kind: HeatSourceKind
    temperature: float
    radius: float


@dataclass
class TemperatureZone:
    room_id: str
    base_temperature: float
    actual_temperature: float
    gradient: Vec3
    heat_sources: Tuple[HeatSource, ...]
    insulation: float


class LightKind(Enum):
    NATURAL_SUNLIGHT = "natural_sunlight"
    LIGHT_SHAFT = "light_shaft"
    BIOLUMINESCENT_FUNGI = "bioluminescent_fungi"
    CRYSTAL_GLOW = "crystal_glow"
    TORCH = "torch"
    MAGICAL_LIGHT = "magical_light"


@dataclass(frozen=True)
class Attenuation:
    constant: float
    linear: float
    quadratic: float

    def __post_init__(self) -> None:
        if self.constant <= 0:
            raise ValueError("Attenuation constant term must be positive")

    def factor(self, distance: float) -> float:
        return 1.0 / (self.constant + self.linear * distance + self.quadratic * distance * distance)


@dataclass(frozen=True)
class LightSource:
    id: str
    kind: LightKind
    room_id: str
    position: Vec3
    intensity: float
    color: Color
    attenuation: Attenuation
    range: float

    def contribution_at(self, point: Vec3) -> float:
        """Attenuated intensity at ``point``; zero outside the range."""
        distance = self.position.distance(point)
        if distance >= self.range:
            return 0.0
        return self.intensity * self.attenuation.factor(distance)


@dataclass(frozen=True)
class LightContribution:
    source_id: str
    contribution: float
    color: Color


@dataclass(frozen=True)
class RoomLighting:
    room_id: str
    total_intensity: float
    ambient_level: float
    sources: Tuple[LightContribution, ...] = ()


class OrganicType(Enum):
    FUNGAL_MATTER = "fungal_matter"
    MOSS = "moss"
    DETRITUS = "detritus"
    ALGAE = "algae"
    DECOMPOSED_MATTER = "decomposed_matter"


@dataclass(frozen=True)
class OrganicDeposit:
    id: str
    room_id: str
    organic_type: OrganicType
    amount: float
    quality: float
    position: Vec3
    regeneration_rate: float


@dataclass(frozen=True)
class AirFlow:
    """Air drawn from the shallower room toward the deeper one."""

    connection_id: str
    from_room_id: str
    to_room_id: str
    direction: Vec3
    strength: float
    cross_section: float


class EffectKind(Enum):
    MIST = "mist"
    WATER_SPRAY = "water_spray"
    DUST_PARTICLES = "dust_particles"
    SPORE_CLOUD = "spore_cloud"


@dataclass(frozen=True)
class AtmosphericEffect:
    id: str
    kind: EffectKind
    room_id: str
    density: float
    height: Optional[float] = None
    particle_count: Optional[int] = None
    color: Optional[Color] = None
    bioluminescent: bool = False


@dataclass(frozen=True)
class EnvironmentReport:
    water_bodies: Tuple[WaterBody, ...] = ()
    flows: Tuple[FlowEdge, ...] = ()
    temperature_zones: Tuple[TemperatureZone, ...] = ()
    light_sources: Tuple[LightSource, ...] = ()
    light_map: Mapping[str, RoomLighting] = field(default_factory=dict)
    organic_deposits: Tuple[OrganicDeposit, ...] = ()
    air_flows: Tuple[AirFlow, ...] = ()
    effects: Tuple[AtmosphericEffect, ...] = ()

    def water_for_room(self, room_id: str) -> Optional[WaterBody]:
        for body in self.water_bodies:
            if body.room_id == room_id:
                return body
        return None

    def zone_for_room(self, room_id: str) -> Optional[TemperatureZone]:
        for zone in self.temperature_zones:
            if zone.room_id == room_id:
                return zone
        return None

    def summary(self) -> Dict[str, int]:
        return {
            "water_bodies": len(self.water_bodies),
            "flows": len(self.flows),
            "light_sources": len(self.light_sources),
            "organic_deposits": len(self.organic_deposits),
            "air_flows": len(self.air_flows),
            "effects": len(self.effects),
        }
