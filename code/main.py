#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging

from dungeon_config import DungeonConfig
from dungeon_generator import DungeonGenerator


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate one dungeon and print a summary.")
    parser.add_argument("--seed", type=int, default=None, help="Seed; omit for a time-based seed")
    parser.add_argument("--rooms", type=int, default=30, help="Maximum number of rooms (default: 30)")
    parser.add_argument("--depth", type=int, default=10, help="Maximum layout depth (default: 10)")
    parser.add_argument(
        "--branching", type=float, default=2.5, help="Base branching factor (default: 2.5)"
    )
    parser.add_argument(
        "--natural-ratio",
        type=float,
        default=0.6,
        help="Share of natural caves near the surface (default: 0.6)",
    )
    parser.add_argument("--entrance", default="auto", help="cave_mouth, ruins_entrance, sinkhole or auto")
    parser.add_argument(
        "--allow-disconnected",
        action="store_true",
        help="Keep a result even if some rooms cannot be reached from the entrance",
    )
    parser.add_argument("--metrics", action="store_true", help="Print per-phase timing")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = DungeonConfig(
        seed=args.seed,
        max_rooms=args.rooms,
        max_depth=args.depth,
        branching_factor=args.branching,
        natural_cave_ratio=args.natural_ratio,
        entrance_type=args.entrance,
        require_connectivity=not args.allow_disconnected,
        collect_metrics=args.metrics,
    )
    # Print the seed so a run can be reproduced by passing --seed next time.
    print(f"Using seed {config.resolved_seed}")

    result = DungeonGenerator(config).generate()
    stats = result.stats

    print(f"Entrance: {result.entrance.name} ({result.entrance.entrance_type.value})")
    print(f"Rooms: {stats.room_count} {dict(stats.rooms_by_style)}")
    print(f"Connections: {stats.connection_count} {dict(stats.connections_by_priority)}")
    print(f"Passage styles: {dict(stats.connections_by_style)}")
    print(f"Depth distribution: {result.graph.depth_distribution}")
    print(f"Connected: {result.connectivity_valid}")
    print(
        f"Geometry: {stats.vertex_count} vertices, {stats.index_count} indices,"
        f" {stats.draw_call_count} draw calls"
    )
    print(f"Water bodies: {stats.water_body_count}, light sources: {stats.light_source_count}")
    if result.bounds is not None:
        size = result.bounds.size
        print(f"Bounds: {size.x:.1f} x {size.y:.1f} x {size.z:.1f}")
    print(f"Generated in {stats.generation_time_ms:.1f} ms")

    if stats.phase_metrics:
        print()
        print("Phase timing:")
        for name, metrics in stats.phase_metrics.items():
            print(f"  {name}: {float(metrics['total_time']) * 1000:.2f} ms")

    print()
    for room in result.rooms:
        env = room.environment
        print(
            f"  {room.id:<10} depth {room.depth:<2} {room.archetype.value:<18}"
            f" {env.temperature:5.1f}C {env.humidity:5.1f}% light {env.light_level:.2f}"
        )


if __name__ == "__main__":
    main()
