"""Builds Room records from classified regions."""

from __future__ import annotations

import logging
import random
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from dungeon_constants import COHERENCE_BLEND
from dungeon_models import (
    ConstructedModifiers,
    ConstructedProperties,
    NaturalModifiers,
    NaturalProperties,
    Region,
    RegionStyle,
    Room,
    RoomEnvironment,
    RoomFeature,
    RoomSize,
)
from room_features import FeatureSite, generate_feature
from room_templates import (
    DECAY_PATTERNS,
    DEEP_LAVA_TUBE_BONUS,
    FORMATION_TYPES,
    FORMATION_WEIGHTS,
    RoomTemplate,
    cultural_origins_for,
    template_for,
)

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def baseline_environment(depth: int, template: RoomTemplate) -> RoomEnvironment:
    return RoomEnvironment(
        temperature=_clamp(20.0 - 1.5 * depth, 5.0, 35.0),
        humidity=_clamp(50.0 + 5.0 * depth + template.humidity_bonus * 50.0, 20.0, 100.0),
        light_level=max(0.0, 1.0 - 0.15 * depth),
        airflow=max(0.1, 1.0 - 0.1 * depth),
        pressure=1.0 + 0.05 * depth,
    )


class RoomSynthesizer:
    """Staged construction of a Room: size, environment, properties, modifiers, features."""

    def __init__(self, rng: random.Random) -> None:
        self.rng = rng

    def sample_size(self, template: RoomTemplate) -> RoomSize:
        uniform = self.rng.uniform
        return RoomSize(
            height=uniform(*template.height),
            radius=uniform(*template.radius) if template.radius is not None else None,
            width=uniform(*template.width) if template.width is not None else None,
            length=uniform(*template.length) if template.length is not None else None,
        )

    def mineral_composition(self) -> Dict[str, float]:
        rng = self.rng
        return {
            "limestone": 0.3 + rng.random() * 0.4,
            "granite": 0.1 + rng.random() * 0.2,
            "quartz": 0.05 + rng.random() * 0.15,
            "other": 0.1 + rng.random() * 0.2,
        }

    def formation_type(self, depth: int) -> str:
        weights = list(FORMATION_WEIGHTS)
        if depth > 5:
            weights[FORMATION_TYPES.index("lava_tube")] += DEEP_LAVA_TUBE_BONUS
        return self.rng.choices(FORMATION_TYPES, weights=weights, k=1)[0]

    def natural_traits(
        self, template: RoomTemplate, depth: int
    ) -> Tuple[NaturalProperties, NaturalModifiers]:
        rng = self.rng
        properties = NaturalProperties(
            irregularity=template.irregularity,
            erosion_level=0.1 + 0.05 * depth,
            geological_age=rng.uniform(1000.0, 10000.0),
            mineral_composition=self.mineral_composition(),
            formation_type=self.formation_type(depth),
        )
        modifiers = NaturalModifiers(
            noise_frequency=0.1 + rng.random() * 0.05,
            noise_amplitude=template.irregularity,
            noise_octaves=3,
            erosion_iterations=depth * 2,
            erosion_strength=0.1 + rng.random() * 0.1,
        )
        return properties, modifiers

    def constructed_traits(
        self, template: RoomTemplate, region: Region
    ) -> Tuple[ConstructedProperties, ConstructedModifiers]:
        rng = self.rng
        depth = region.node.depth
        origin = rng.choice(cultural_origins_for(region.archetype))
        decay_amount = _clamp(template.decay + 0.05 * depth, 0.0, 1.0)
        properties = ConstructedProperties(
            architectural_style=template.architectural_style,
            construction_quality=1.0 - template.decay,
            decay_amount=decay_amount,
            construction_age=500.0 + 200.0 * depth + rng.uniform(-100.0, 100.0),
            cultural_origin=origin,
            structural_integrity=max(0.0, 1.0 - 0.08 * depth),
        )
        modifiers = ConstructedModifiers(
            decay_amount=decay_amount,
            decay_patterns=DECAY_PATTERNS,
            architectural_style=template.architectural_style,
            architectural_period=origin,
        )
        return properties, modifiers

    def build_room(self, region: Region) -> Room:
        template = template_for(region.archetype)
        node = region.node
        size = self.sample_size(template)
        environment = baseline_environment(node.depth, template)
        if region.style is RegionStyle.NATURAL:
            properties, modifiers = self.natural_traits(template, node.depth)
        else:
            properties, modifiers = self.constructed_traits(template, region)

        site = FeatureSite(
            template=template,
            size=size,
            style=region.style,
            depth=node.depth,
            properties=properties,
            modifiers=modifiers,
        )
        features: List[RoomFeature] = []
        for kind in template.features:
            feature = generate_feature(kind, site, self.rng)
            if feature is not None:
                features.append(feature)

        return Room(
            id=node.id,
            style=region.style,
            archetype=region.archetype,
            position=node.position,
            depth=node.depth,
            size=size,
            properties=properties,
            modifiers=modifiers,
            features=tuple(features),
            environment=environment,
        )

    def build_rooms(self, regions: Iterable[Region]) -> List[Room]:
        rooms = [self.build_room(region) for region in regions]
        logger.info("Created %d rooms", len(rooms))
        return rooms


def blend_room_environments(
    rooms: Sequence[Room],
    neighbours: Mapping[str, Sequence[str]],
    weight: float = COHERENCE_BLEND,
) -> None:
    """Move each room's temperature and humidity toward its neighbourhood mean.

    Single pass; every room reads the values as they were before the pass.
    """
    before = {
        room.id: (room.environment.temperature, room.environment.humidity) for room in rooms
    }
    for room in rooms:
        linked = [before[other] for other in neighbours.get(room.id, ()) if other in before]
        if not linked:
            continue
        temperature, humidity = before[room.id]
        mean_temperature = (temperature + sum(t for t, _ in linked)) / (len(linked) + 1)
        mean_humidity = (humidity + sum(h for _, h in linked)) / (len(linked) + 1)
        room.environment.temperature = temperature + (mean_temperature - temperature) * weight
        room.environment.humidity = humidity + (mean_humidity - humidity) * weight


def synthesize_rooms(regions: Iterable[Region], rng: random.Random) -> List[Room]:
    return RoomSynthesizer(rng).build_rooms(regions)
