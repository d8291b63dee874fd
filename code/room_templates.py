"""Archetype catalog: per-archetype size ranges, features and style data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Mapping, Optional, Sequence, Tuple

from dungeon_config import EntranceType
from dungeon_models import Archetype, FeatureKind, RegionStyle

Range = Tuple[float, float]


@dataclass(frozen=True)
class RoomTemplate:
    """Blueprint for an archetype. Sizes are sampled independently per dimension."""

    archetype: Archetype
    style: RegionStyle
    height: Range
    radius: Optional[Range] = None
    width: Optional[Range] = None
    length: Optional[Range] = None
    irregularity: float = 0.1
    features: Tuple[FeatureKind, ...] = ()
    humidity_bonus: float = 0.0  # Fraction of 50 humidity points added to the baseline.
    water_level: Optional[float] = None
    decay: float = 0.0
    architectural_style: str = "rough"
    grid_layout: bool = False  # Tombs and similar repeated fixtures align to a grid.

    def __post_init__(self) -> None:
        ranges = {"height": self.height, "radius": self.radius, "width": self.width, "length": self.length}
        for name, value in ranges.items():
            if value is None:
                continue
            low, high = value
            if low <= 0 or high < low:
                raise ValueError(f"Template {self.archetype.name} has invalid {name} range {value}")
        if self.radius is None and (self.width is None or self.length is None):
            raise ValueError(
                f"Template {self.archetype.name} needs a radius range or width and length ranges"
            )
        if not 0.0 <= self.irregularity <= 1.0:
            raise ValueError(f"Template {self.archetype.name} irregularity must lie within [0, 1]")
        if not 0.0 <= self.decay <= 1.0:
            raise ValueError(f"Template {self.archetype.name} decay must lie within [0, 1]")
        object.__setattr__(self, "features", tuple(self.features))


def _natural(archetype: Archetype, **kwargs) -> RoomTemplate:
    return RoomTemplate(archetype=archetype, style=RegionStyle.NATURAL, **kwargs)


def _constructed(archetype: Archetype, **kwargs) -> RoomTemplate:
    return RoomTemplate(archetype=archetype, style=RegionStyle.CONSTRUCTED, **kwargs)


_F = FeatureKind

ROOM_TEMPLATES: Mapping[Archetype, RoomTemplate] = {
    template.archetype: template
    for template in (
        # Natural caves
        _natural(Archetype.ENTRANCE_CAVE, radius=(10, 16), height=(6, 10), irregularity=0.3,
                 features=(_F.STALACTITES, _F.FLOWSTONE)),
        _natural(Archetype.NATURAL_CHAMBER, radius=(8, 20), height=(4, 12), irregularity=0.4,
                 features=(_F.STALACTITES, _F.STALAGMITES, _F.FLOWSTONE)),
        _natural(Archetype.WATER_CAVE, width=(8, 15), length=(15, 30), height=(3, 8), irregularity=0.3,
                 features=(_F.WATER_POOL, _F.FLOWSTONE), water_level=0.3),
        _natural(Archetype.CRYSTAL_CAVE, radius=(10, 15), height=(6, 10), irregularity=0.2,
                 features=(_F.CRYSTAL_FORMATIONS,)),
        _natural(Archetype.MUSHROOM_GROVE, radius=(12, 18), height=(4, 6), irregularity=0.35,
                 features=(_F.MUSHROOM_GROVE,), humidity_bonus=0.9),
        _natural(Archetype.DEEP_CAVE, radius=(10, 22), height=(6, 14), irregularity=0.45,
                 features=(_F.STALACTITES, _F.STALAGMITES)),
        _natural(Archetype.UNDERGROUND_LAKE, radius=(20, 35), height=(8, 15), irregularity=0.25,
                 features=(_F.WATER_POOL,), water_level=0.8, humidity_bonus=0.95),
        _natural(Archetype.LAVA_TUBES, width=(6, 10), length=(20, 35), height=(4, 8), irregularity=0.3,
                 features=(_F.FLOWSTONE,)),
        _natural(Archetype.ABYSS_CHAMBER, radius=(20, 30), height=(15, 25), irregularity=0.5,
                 features=(_F.STALACTITES, _F.STALAGMITES)),
        _natural(Archetype.CRYSTAL_CATHEDRAL, radius=(18, 28), height=(14, 22), irregularity=0.25,
                 features=(_F.CRYSTAL_FORMATIONS, _F.STALACTITES)),
        _natural(Archetype.MONSTER_DEN, radius=(12, 20), height=(5, 9), irregularity=0.4,
                 features=(_F.STALAGMITES,), humidity_bonus=0.2),
        # Constructed halls
        _constructed(Archetype.ENTRANCE_HALL, width=(10, 15), length=(15, 20), height=(8, 12),
                     features=(_F.COLUMNS, _F.CARVED_WALLS, _F.TORCH_SCONCES),
                     decay=0.2, architectural_style="classical"),
        _constructed(Archetype.GUARD_ROOM, width=(8, 12), length=(8, 12), height=(4, 6), irregularity=0.05,
                     features=(_F.TORCH_SCONCES,), decay=0.3, architectural_style="defensive"),
        _constructed(Archetype.STORAGE_ROOM, width=(8, 14), length=(10, 16), height=(3, 5), irregularity=0.05,
                     features=(_F.TORCH_SCONCES,), decay=0.35, architectural_style="utilitarian"),
        _constructed(Archetype.LIVING_QUARTERS, width=(10, 16), length=(10, 18), height=(3, 5),
                     irregularity=0.05, features=(_F.TORCH_SCONCES, _F.CARVED_WALLS),
                     decay=0.3, architectural_style="domestic"),
        _constructed(Archetype.WORKSHOP, width=(10, 16), length=(12, 18), height=(4, 6), irregularity=0.05,
                     features=(_F.TORCH_SCONCES,), decay=0.3, architectural_style="utilitarian"),
        _constructed(Archetype.TEMPLE, width=(20, 30), length=(25, 35), height=(12, 18), irregularity=0.05,
                     features=(_F.ALTAR, _F.COLUMNS), decay=0.15, architectural_style="religious"),
        _constructed(Archetype.LIBRARY, width=(15, 20), length=(20, 25), height=(8, 10), irregularity=0.05,
                     features=(_F.CARVED_WALLS,), decay=0.4, architectural_style="scholarly"),
        _constructed(Archetype.ARMORY, width=(10, 15), length=(12, 18), height=(4, 6), irregularity=0.05,
                     features=(_F.COLUMNS, _F.TORCH_SCONCES), decay=0.3, architectural_style="defensive"),
        _constructed(Archetype.CRYPT, width=(15, 25), length=(15, 25), height=(4, 6),
                     features=(_F.TOMBS,), decay=0.25, architectural_style="funerary", grid_layout=True),
        _constructed(Archetype.TREASURE_VAULT, radius=(8, 12), height=(6, 8), irregularity=0.05,
                     features=(_F.COLUMNS,), decay=0.1, architectural_style="secure"),
        _constructed(Archetype.RITUAL_CHAMBER, width=(14, 20), length=(14, 20), height=(6, 10),
                     features=(_F.ALTAR, _F.CARVED_WALLS, _F.TORCH_SCONCES),
                     decay=0.3, architectural_style="religious"),
        _constructed(Archetype.ANCIENT_VAULT, radius=(10, 16), height=(8, 12),
                     features=(_F.COLUMNS, _F.CARVED_WALLS, _F.BROKEN_STAIRS),
                     decay=0.5, architectural_style="classical"),
        _constructed(Archetype.FORGOTTEN_SANCTUM, width=(18, 26), length=(20, 30), height=(10, 16),
                     features=(_F.ALTAR, _F.COLUMNS, _F.BROKEN_STAIRS),
                     decay=0.55, architectural_style="religious"),
        _constructed(Archetype.SEALED_TOMB, width=(10, 16), length=(12, 20), height=(4, 7),
                     features=(_F.TOMBS, _F.CARVED_WALLS), decay=0.45,
                     architectural_style="funerary", grid_layout=True),
    )
}

# Depth buckets, shallow to deep.
ARCHETYPE_CATALOG: Mapping[RegionStyle, Tuple[Tuple[Archetype, ...], ...]] = {
    RegionStyle.NATURAL: (
        (Archetype.ENTRANCE_CAVE, Archetype.NATURAL_CHAMBER),
        (Archetype.NATURAL_CHAMBER, Archetype.WATER_CAVE),
        (Archetype.CRYSTAL_CAVE, Archetype.MUSHROOM_GROVE, Archetype.DEEP_CAVE),
        (Archetype.UNDERGROUND_LAKE, Archetype.LAVA_TUBES, Archetype.DEEP_CAVE),
        (Archetype.ABYSS_CHAMBER, Archetype.CRYSTAL_CATHEDRAL, Archetype.MONSTER_DEN),
    ),
    RegionStyle.CONSTRUCTED: (
        (Archetype.ENTRANCE_HALL, Archetype.GUARD_ROOM),
        (Archetype.STORAGE_ROOM, Archetype.LIVING_QUARTERS, Archetype.WORKSHOP),
        (Archetype.TEMPLE, Archetype.LIBRARY, Archetype.ARMORY),
        (Archetype.CRYPT, Archetype.TREASURE_VAULT, Archetype.RITUAL_CHAMBER),
        (Archetype.ANCIENT_VAULT, Archetype.FORGOTTEN_SANCTUM, Archetype.SEALED_TOMB),
    ),
}

DEEPEST_CONSTRUCTED: FrozenSet[Archetype] = frozenset(ARCHETYPE_CATALOG[RegionStyle.CONSTRUCTED][-1])

CULTURAL_ORIGINS: Mapping[Archetype, Tuple[str, ...]] = {
    Archetype.TEMPLE: ("ancient_empire", "forgotten_cult", "divine_order"),
    Archetype.CRYPT: ("noble_house", "warrior_clan", "ancient_dynasty"),
    Archetype.LIBRARY: ("scholarly_order", "wizard_academy", "lost_civilization"),
    Archetype.TREASURE_VAULT: ("dragon_hoard", "royal_treasury", "merchant_guild"),
    Archetype.RITUAL_CHAMBER: ("forgotten_cult", "divine_order"),
    Archetype.FORGOTTEN_SANCTUM: ("forgotten_cult", "ancient_empire"),
    Archetype.SEALED_TOMB: ("ancient_dynasty", "noble_house"),
}
DEFAULT_CULTURAL_ORIGINS: Tuple[str, ...] = ("unknown_builders",)

CARVING_MOTIFS: Mapping[str, Tuple[str, ...]] = {
    "ancient_empire": ("eagles", "laurels", "conquests"),
    "forgotten_cult": ("strange_symbols", "tentacles", "eyes"),
    "divine_order": ("holy_symbols", "angels", "prayers"),
    "scholarly_order": ("constellation_maps", "equations", "diagrams"),
}
DEFAULT_CARVING_MOTIFS: Tuple[str, ...] = ("geometric_patterns",)

DECAY_PATTERNS: Tuple[str, ...] = ("cracks", "missing_blocks", "collapsed_sections")

MINERAL_TYPES: Tuple[str, ...] = ("calcite", "aragonite", "gypsum", "flowstone")
CRYSTAL_TYPES: Tuple[str, ...] = ("quartz", "amethyst", "calcite", "fluorite", "selenite")
CRYSTAL_COLORS: Tuple[Tuple[float, float, float], ...] = (
    (0.9, 0.9, 1.0),  # clear
    (0.6, 0.4, 0.8),  # purple
    (0.4, 0.8, 0.9),  # blue
    (0.4, 0.9, 0.4),  # green
    (1.0, 0.8, 0.4),  # amber
)
MUSHROOM_SPECIES: Tuple[str, ...] = ("glowcap", "sporepuff", "death_bell")
FLOWSTONE_PATTERNS: Tuple[str, ...] = ("curtain", "cascade", "sheet")

FORMATION_TYPES: Tuple[str, ...] = ("dissolution", "lava_tube", "tectonic", "erosion")
FORMATION_WEIGHTS: Tuple[float, ...] = (0.4, 0.1, 0.2, 0.3)
DEEP_LAVA_TUBE_BONUS = 0.3  # Added to the lava tube weight below depth 5.


@dataclass(frozen=True)
class EntranceTemplate:
    name: str
    shape: str
    style: RegionStyle
    size: Mapping[str, Range]
    features: Tuple[str, ...]


ENTRANCE_TEMPLATES: Mapping[EntranceType, EntranceTemplate] = {
    EntranceType.CAVE_MOUTH: EntranceTemplate(
        name="Cave Mouth",
        shape="organic_opening",
        style=RegionStyle.NATURAL,
        size={"width": (8, 15), "height": (6, 10), "depth": (4, 8)},
        features=("vegetation", "rock_formations", "natural_lighting"),
    ),
    EntranceType.RUINS_ENTRANCE: EntranceTemplate(
        name="Ancient Ruins",
        shape="architectural",
        style=RegionStyle.CONSTRUCTED,
        size={"width": (6, 10), "height": (8, 12), "depth": (4, 6)},
        features=("columns", "carved_stones", "collapsed_sections"),
    ),
    EntranceType.SINKHOLE: EntranceTemplate(
        name="Sinkhole",
        shape="vertical_shaft",
        style=RegionStyle.NATURAL,
        size={"radius": (5, 10), "depth": (10, 20)},
        features=("vertical_drop", "hanging_vines", "water_seepage"),
    ),
}


def template_for(archetype: Archetype) -> RoomTemplate:
    try:
        return ROOM_TEMPLATES[archetype]
    except KeyError as exc:
        raise ValueError(f"No room template registered for {archetype.name}") from exc


def archetypes_for_bucket(style: RegionStyle, bucket: int) -> Sequence[Archetype]:
    buckets = ARCHETYPE_CATALOG[style]
    return buckets[max(0, min(len(buckets) - 1, bucket))]


def cultural_origins_for(archetype: Archetype) -> Tuple[str, ...]:
    return CULTURAL_ORIGINS.get(archetype, DEFAULT_CULTURAL_ORIGINS)


def carving_motifs_for(origin: str) -> Tuple[str, ...]:
    return CARVING_MOTIFS.get(origin, DEFAULT_CARVING_MOTIFS)


def validate_catalog(templates: Mapping[Archetype, RoomTemplate] = ROOM_TEMPLATES) -> None:
    """Every catalogued archetype must have a template of the matching style."""
    for style, buckets in ARCHETYPE_CATALOG.items():
        for bucket in buckets:
            for archetype in bucket:
                template = templates.get(archetype)
                if template is None:
                    raise ValueError(f"Archetype {archetype.name} has no room template")
                if template.style is not style:
                    raise ValueError(
                        f"Archetype {archetype.name} is catalogued as {style.name} "
                        f"but its template is {template.style.name}"
                    )


validate_catalog()

