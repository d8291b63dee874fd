#!/usr/bin/env python3

# Generates many dungeons from derived seeds and reports timing, layout shape
# and connectivity statistics. Results are also written as JSON under ../benchmarks.

from __future__ import annotations

import argparse
import datetime
import json
import logging
import math
import os
import random
import statistics
import subprocess
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import networkx as nx

from dungeon_config import DungeonConfig
from dungeon_generator import DungeonGenerator, DungeonResult
from dungeon_models import ConnectionPriority, RegionStyle

DEFAULT_CONFIG_KWARGS = dict(
    max_depth=10,
    branching_factor=2.5,
    natural_cave_ratio=0.6,
    require_connectivity=False,
    collect_metrics=True,
)
DEFAULT_ROOM_FILL_RATIO = 0.8

Formatter = Callable[[float], str]


def build_config(seed: int, max_rooms: int) -> DungeonConfig:
    return DungeonConfig(seed=seed, max_rooms=max_rooms, **DEFAULT_CONFIG_KWARGS)  # type: ignore[arg-type]


@dataclass
class GenerationRunResult:
    seed: int
    duration: float
    room_count: int
    room_target: int
    connection_count: int
    secondary_share: float
    natural_share: float
    connected: bool
    loop_count: int
    loop_lengths: List[int]
    largest_component: float
    diameter: int
    deepest_room: int
    water_bodies: int
    light_sources: int
    vertex_count: int
    archetypes: Counter = field(default_factory=Counter)
    phase_metrics: Dict[str, Dict[str, float | int]] = field(default_factory=dict)


def to_networkx(result: DungeonResult) -> nx.Graph:
    """Room graph with one edge per connection."""
    graph = nx.Graph()
    for room in result.rooms:
        graph.add_node(room.id, depth=room.depth, style=room.style.value)
    for connection in result.connections:
        graph.add_edge(*connection.room_ids, priority=connection.priority.value, length=connection.length)
    return graph


def measure(seed: int, max_rooms: int) -> GenerationRunResult:
    result = DungeonGenerator(build_config(seed, max_rooms)).generate()
    graph = to_networkx(result)

    loops = nx.cycle_basis(graph)
    largest_component = 0.0
    diameter = 0
    if graph.number_of_nodes():
        largest = max(nx.connected_components(graph), key=len)
        largest_component = len(largest) / graph.number_of_nodes()
        if len(largest) > 1:
            diameter = nx.diameter(graph.subgraph(largest))

    room_count = len(result.rooms)
    connection_count = len(result.connections)
    secondary = sum(1 for c in result.connections if c.priority is ConnectionPriority.SECONDARY)
    natural = sum(1 for room in result.rooms if room.style is RegionStyle.NATURAL)
    return GenerationRunResult(
        seed=seed,
        duration=result.stats.generation_time_ms / 1000.0,
        room_count=room_count,
        room_target=max_rooms,
        connection_count=connection_count,
        secondary_share=secondary / connection_count if connection_count else 0.0,
        natural_share=natural / room_count if room_count else 0.0,
        connected=result.connectivity_valid,
        loop_count=len(loops),
        loop_lengths=[len(loop) for loop in loops],
        largest_component=largest_component,
        diameter=diameter,
        deepest_room=max((room.depth for room in result.rooms), default=0),
        water_bodies=result.stats.water_body_count,
        light_sources=result.stats.light_source_count,
        vertex_count=result.stats.vertex_count,
        archetypes=Counter(room.archetype.value for room in result.rooms),
        phase_metrics=result.stats.phase_metrics or {},
    )


def run_benchmark(runs: int, seed: Optional[int], max_rooms: int) -> List[GenerationRunResult]:
    rng = random.Random(seed)
    return [measure(rng.randint(0, 1_000_000), max_rooms) for _ in range(runs)]


# ----------------------------------------------------------------------
# Reporting
# ----------------------------------------------------------------------


def finite_or_none(value: float) -> Optional[float]:
    return None if math.isnan(value) or math.isinf(value) else value


def describe(values: List[float]) -> Dict[str, float]:
    """Mean, spread and deciles; deciles need at least two samples."""
    summary = {
        "mean": statistics.fmean(values),
        "min": min(values),
        "max": max(values),
        "stdev": statistics.stdev(values) if len(values) > 1 else float("nan"),
    }
    if len(values) > 1:
        for index, cut in enumerate(statistics.quantiles(values, n=10), start=1):
            summary[f"p{index * 10}"] = cut
    return summary


def seconds(value: float) -> str:
    return f"{value:.3f}s" if value >= 1.0 else f"{value * 1000:.1f}ms"


def integer(value: float) -> str:
    return f"{value:.0f}"


def percent(value: float) -> str:
    return f"{value:.1%}"


def print_metric(name: str, summary: Dict[str, float], formatter: Formatter) -> None:
    shown = ", ".join(
        f"{key} {'nan' if math.isnan(value) else formatter(value)}" for key, value in summary.items()
    )
    print(f"{name}: {shown}")


def aggregate_phase_metrics(results: List[GenerationRunResult]) -> Dict[str, Dict[str, float]]:
    totals: Dict[str, Dict[str, float]] = {}
    for result in results:
        for name, metrics in result.phase_metrics.items():
            phase = totals.setdefault(name, {"invocations": 0.0, "total_time": 0.0})
            phase["invocations"] += float(metrics["invocations"])
            phase["total_time"] += float(metrics["total_time"])
    for phase in totals.values():
        phase["average_time"] = phase["total_time"] / phase["invocations"] if phase["invocations"] else 0.0
    return totals


def git_output(args: List[str]) -> Optional[str]:
    try:
        completed = subprocess.run(args, check=True, capture_output=True, text=True)
    except (subprocess.CalledProcessError, OSError):
        return None
    return completed.stdout.strip()


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark dungeon generation over many seeds.")
    parser.add_argument("-n", "--runs", type=int, default=20, help="Number of generations (default: 20)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for deriving the per-run seeds")
    parser.add_argument("--rooms", type=int, default=30, help="Room budget per run (default: 30)")
    parser.add_argument(
        "--room-fill-ratio",
        type=float,
        default=DEFAULT_ROOM_FILL_RATIO,
        help="Share of the room budget a run must reach to count as filled",
    )
    parser.add_argument("--description", type=str, default=None, help="Free-form note stored with the results")
    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if args.runs <= 0:
        raise SystemExit("Number of runs must be a positive integer")
    if args.rooms <= 0:
        raise SystemExit("Room budget must be a positive integer")
    if not 0.0 < args.room_fill_ratio <= 1.0:
        raise SystemExit("Room fill ratio must be within (0, 1]")

    results = run_benchmark(args.runs, args.seed, args.rooms)
    for index, result in enumerate(results, start=1):
        print(
            f"Run {index:02d}: {seconds(result.duration)} (seed {result.seed}) |"
            f" rooms {result.room_count}/{result.room_target} |"
            f" connections {result.connection_count} | loops {result.loop_count}"
            f" | connected {result.connected}"
        )

    metrics: Dict[str, tuple] = {
        "generation_time": ("Generation time", [r.duration for r in results], seconds),
        "rooms": ("Rooms", [float(r.room_count) for r in results], integer),
        "connections": ("Connections", [float(r.connection_count) for r in results], integer),
        "secondary_share": ("Secondary share", [r.secondary_share for r in results], percent),
        "natural_share": ("Natural share", [r.natural_share for r in results], percent),
        "loops": ("Independent loops", [float(r.loop_count) for r in results], integer),
        "loop_length": ("Loop length", [float(n) for r in results for n in r.loop_lengths], integer),
        "largest_component": ("Largest component", [r.largest_component for r in results], percent),
        "diameter": ("Diameter (hops)", [float(r.diameter) for r in results], integer),
        "deepest_room": ("Deepest room", [float(r.deepest_room) for r in results], integer),
        "water_bodies": ("Water bodies", [float(r.water_bodies) for r in results], integer),
        "light_sources": ("Light sources", [float(r.light_sources) for r in results], integer),
        "vertex_count": ("Vertices", [float(r.vertex_count) for r in results], integer),
    }
    aggregated: Dict[str, Any] = {}
    print()
    for key, (name, values, formatter) in metrics.items():
        if not values:
            continue
        summary = describe(values)
        print_metric(name, summary, formatter)
        aggregated[key] = {stat: finite_or_none(value) for stat, value in summary.items()}

    fill_target = math.floor(args.rooms * args.room_fill_ratio)
    filled = sum(1 for r in results if r.room_count >= fill_target)
    connected = sum(1 for r in results if r.connected)
    print()
    print(f"Runs reaching {fill_target} rooms: {percent(filled / len(results))}")
    print(f"Runs fully connected: {percent(connected / len(results))}")

    archetypes: Counter = Counter()
    for result in results:
        archetypes.update(result.archetypes)
    total_rooms = sum(archetypes.values())
    if total_rooms:
        print()
        print("Archetypes:")
        for name, count in archetypes.most_common():
            print(f"  {name}: {count} ({count / total_rooms:.1%})")

    phases = aggregate_phase_metrics(results)
    if phases:
        print()
        print("Phases by total time:")
        for name, phase in sorted(phases.items(), key=lambda item: item[1]["total_time"], reverse=True):
            print(f"  {name}: total {seconds(phase['total_time'])}, average {seconds(phase['average_time'])}")

    timestamp = datetime.datetime.now(datetime.timezone.utc)
    benchmarks_dir = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "benchmarks"))
    os.makedirs(benchmarks_dir, exist_ok=True)
    output_path = os.path.join(benchmarks_dir, f"benchmark-{timestamp.strftime('%Y%m%dT%H%M%SZ')}.json")
    report = {
        "run_info": {
            "timestamp": timestamp.replace(microsecond=0).isoformat(),
            "git_commit_hash": git_output(["git", "rev-parse", "HEAD"]),
            "description": args.description,
            "parameters": {"runs": args.runs, "seed": args.seed, "rooms": args.rooms},
        },
        "aggregated": aggregated,
        "fill_rate": filled / len(results),
        "connected_rate": connected / len(results),
        "phases": phases,
        "runs": [
            {
                "seed": r.seed,
                "seconds": r.duration,
                "rooms": r.room_count,
                "connections": r.connection_count,
                "loops": r.loop_count,
                "loop_lengths": r.loop_lengths,
                "largest_component": r.largest_component,
                "connected": r.connected,
                "phase_times": {name: m["total_time"] for name, m in sorted(r.phase_metrics.items())},
            }
            for r in results
        ],
    }
    with open(output_path, "w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2, sort_keys=True)
        handle.write("\n")
    print(f"\nSaved benchmark results to {os.path.relpath(output_path)}")


if __name__ == "__main__":
    main()
