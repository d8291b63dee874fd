"""Configuration container for the dungeon generator."""

from __future__ import annotations

import math
import numbers
import time
from dataclasses import dataclass
from enum import Enum
from typing import Union

from dungeon_errors import DungeonConfigError


class EntranceType(Enum):
    """Surface openings the dungeon can start from."""

    CAVE_MOUTH = "cave_mouth"
    RUINS_ENTRANCE = "ruins_entrance"
    SINKHOLE = "sinkhole"


class DungeonTheme(Enum):
    MIXED = "mixed"
    NATURAL = "natural"
    RUINS = "ruins"


AUTO_ENTRANCE = "auto"


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        lowered = value.lower()
        for member in enum_cls:
            if member.value == lowered or member.name.lower() == lowered:
                return member
    raise DungeonConfigError(f"DungeonConfig {field_name} has unsupported value {value!r}")


def _require_int(value, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DungeonConfigError(f"DungeonConfig {field_name} must be an integer, got {value!r}")


def _require_real(value, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or not math.isfinite(value):
        raise DungeonConfigError(f"DungeonConfig {field_name} must be a finite real number, got {value!r}")


@dataclass
class DungeonConfig:
    """Aggregates all tunable parameters for dungeon generation."""

    # None picks a time-based seed; the resolved value is written back so the run can be reproduced.
    seed: int | None = None
    max_rooms: int = 30
    max_depth: int = 10
    # Mean number of children per node at depth 0, decaying with depth.
    branching_factor: float = 2.5
    # Baseline probability that a region is natural rather than constructed.
    natural_cave_ratio: float = 0.6
    # Accepted for compatibility; water placement is driven by room archetypes.
    water_probability: float = 0.3
    entrance_type: Union[EntranceType, str] = AUTO_ENTRANCE
    # Informational only; recorded in the result.
    theme: Union[DungeonTheme, str] = DungeonTheme.MIXED
    optimize_geometry: bool = True
    # Abort when a room is unreachable after connection synthesis instead of flagging the result.
    require_connectivity: bool = True
    icosphere_subdivisions: int = 2
    collect_metrics: bool = False

    def __post_init__(self) -> None:
        if self.seed is None:
            self.seed = int(time.time() * 1000)
        elif isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise DungeonConfigError("DungeonConfig seed must be an integer or None")
        for name in ("max_rooms", "max_depth", "icosphere_subdivisions"):
            _require_int(getattr(self, name), name)
        for name in ("branching_factor", "natural_cave_ratio", "water_probability"):
            _require_real(getattr(self, name), name)
        if self.max_rooms < 1:
            raise DungeonConfigError("DungeonConfig max_rooms must be at least 1")
        if self.max_depth < 1:
            raise DungeonConfigError("DungeonConfig max_depth must be at least 1")
        if self.branching_factor <= 0:
            raise DungeonConfigError("DungeonConfig branching_factor must be positive")
        if not 0.0 <= self.natural_cave_ratio <= 1.0:
            raise DungeonConfigError("DungeonConfig natural_cave_ratio must lie within [0, 1]")
        if not 0.0 <= self.water_probability <= 1.0:
            raise DungeonConfigError("DungeonConfig water_probability must lie within [0, 1]")
        if not 0 <= self.icosphere_subdivisions <= 5:
            raise DungeonConfigError("DungeonConfig icosphere_subdivisions must lie within [0, 5]")

        if not (isinstance(self.entrance_type, str) and self.entrance_type.lower() == AUTO_ENTRANCE):
            self.entrance_type = _coerce_enum(EntranceType, self.entrance_type, "entrance_type")
        else:
            self.entrance_type = AUTO_ENTRANCE
        self.theme = _coerce_enum(DungeonTheme, self.theme, "theme")

    @property
    def resolved_seed(self) -> int:
        assert self.seed is not None
        return self.seed
