"""Shared tuning constants for the dungeon generator."""

from __future__ import annotations

ENTRANCE_ID = "entrance_0"
NODE_ID_PREFIX = "node_"

# Layout growth
BRANCH_DECAY_PER_DEPTH = 0.15
REPULSION_RADIUS = 20.0
REPULSION_WEIGHT = 0.3
BASE_STEP_DISTANCE = 15.0
STEP_DISTANCE_PER_DEPTH = 2.0
STEP_DISTANCE_JITTER = 10.0  # Full width of the uniform jitter, centered on zero.
DOWNWARD_BIAS = -0.3
DOWNWARD_BIAS_PER_DEPTH = -0.08
MIN_NODE_SEPARATION = 12.0
RADIUS_LIMIT_PER_DEPTH = 30.0  # Nodes farther than max_depth * this from the entrance are rejected.

# Region classification
ARCHETYPE_BUCKETS = 5
SMOOTHING_PASSES = 2
SMOOTHING_DOMINANCE = 2.0

# Connections
SECONDARY_MAX_DISTANCE = 30.0
SECONDARY_MAX_DEPTH_DIFFERENCE = 2
SECONDARY_BASE_PROBABILITY = 0.2
SECONDARY_SPECIAL_BONUS = 0.3
SECONDARY_DEPTH_PENALTY = 0.1
SECONDARY_DISTANCE_PENALTY = 0.2
SECONDARY_FRACTION_OF_ROOMS = 0.3
STRAIGHT_CORRIDOR_MAX_LENGTH = 15.0
SINGLE_TURN_CORRIDOR_MAX_LENGTH = 25.0
CORRIDOR_TURN_OFFSET = 5.0
CATMULL_ROM_SUBDIVISIONS = 5
PASSAGE_FEATURE_SPACING = 10.0
PASSAGE_FEATURE_CHANCE = 0.3

# Room coherence
COHERENCE_BLEND = 0.3

# Mesh synthesis
CAVE_DISPLACEMENT_FREQUENCY = 0.1
CAVE_DISPLACEMENT_AMPLITUDE = 0.4
FLOOR_SEGMENTS = 4
WALL_THICKNESS = 0.5
TUNNEL_RING_SEGMENTS = 8

# Environment simulation
FLOW_HEIGHT_THRESHOLD = 0.1
FLOW_RATE_FACTOR = 0.5
FLOW_TEMPERATURE_MIX = 0.3
FLOW_MINERAL_MIX = 0.2
TEMPERATURE_DIFFUSION_PASSES = 3
TEMPERATURE_DIFFUSION_RATE = 0.3
WATER_COOLING_FACTOR = 3.0
LIGHT_CONTRIBUTION_THRESHOLD = 0.01
