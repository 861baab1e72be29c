#!/usr/bin/env python3
"""Generation profiler.

Usage:
    python scripts/profile_generation.py --runs 20 --systems 50 --seed 42
    python scripts/profile_generation.py --runs 5 --systems 200 --workers 4 --preset deep_hierarchy
    python scripts/profile_generation.py --runs 10 --cprofile gen.prof
    python scripts/profile_generation.py --runs 10 --memory

Reports:
    - Per-run timing (min, median, p95, max)
    - Per-phase mean and share (systems, compose, validate, analyze)
    - Bodies and groups per run
    - Throughput (bodies/sec)
    - Optional: cProfile dump
    - Optional: tracemalloc peak memory
"""

from __future__ import annotations

import argparse
import cProfile
import os
import statistics
import sys
import time
import tracemalloc

# Ensure project root is on path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from universegen.analysis.stats import analyze_system
from universegen.analysis.validator import validate_system
from universegen.config import GalaxyConfig, GenerationConfig
from universegen.core.enums import Domain
from universegen.core.models import GeneratedUniverse
from universegen.systems import rng
from universegen.systems.bodies import generate_multiple_systems
from universegen.systems.galaxy import GalaxyComposer
from universegen.systems.presets import get_preset


def _run_generation(cfg: GenerationConfig, galaxy: GalaxyConfig, runs: int, seed: int) -> dict:
    """Generate ``runs`` galaxies and collect per-phase timing data."""
    run_times: list[float] = []
    phase_times: list[tuple[float, float, float, float]] = []
    body_counts: list[int] = []
    group_counts: list[int] = []
    max_group_depth = galaxy.max_group_depth or get_preset(cfg.topology_preset).grammar.max_group_depth

    for i in range(runs):
        master = rng.derive_seed(seed, i)
        t_start = time.perf_counter()

        # --- Phase 1: Systems ---
        systems = generate_multiple_systems(galaxy.system_count, cfg, seed=master, workers=galaxy.workers)
        bodies = {}
        root_ids: list[str] = []
        for system in systems:
            bodies.update(system.bodies)
            root_ids.extend(system.root_ids)
        t1 = time.perf_counter()

        # --- Phase 2: Compose ---
        composer = GalaxyComposer(galaxy, max_group_depth)
        root_group_ids = composer.compose(bodies, root_ids, rng.create(master, Domain.GALAXY))
        universe = GeneratedUniverse.build(
            bodies=bodies, root_ids=root_ids, groups=composer.frozen_groups(),
            root_group_ids=root_group_ids, seed=master, preset=cfg.topology_preset.value,
        )
        t2 = time.perf_counter()

        # --- Phase 3: Validate ---
        report = validate_system(universe)
        if not report.valid:
            print(f"  WARNING: run {i} failed validation: {report.errors[:3]}")
        t3 = time.perf_counter()

        # --- Phase 4: Analyze ---
        analyze_system(universe)
        t4 = time.perf_counter()

        run_times.append(t4 - t_start)
        phase_times.append((t1 - t_start, t2 - t1, t3 - t2, t4 - t3))
        body_counts.append(universe.body_count)
        group_counts.append(universe.group_count)

    return {
        "run_times": run_times,
        "phase_times": phase_times,
        "body_counts": body_counts,
        "group_counts": group_counts,
    }


PHASES = ("systems", "compose", "validate", "analyze")


def _summarize(data: dict, wall_time: float) -> str:
    run_ms = [t * 1000 for t in data["run_times"]]
    if not run_ms:
        return "No runs executed."
    bodies = sum(data["body_counts"])
    lines = [
        f"runs={len(run_ms)} wall={wall_time:.3f}s bodies/sec={bodies / wall_time:.0f}",
        f"bodies/run mean={statistics.mean(data['body_counts']):.1f} "
        f"groups/run mean={statistics.mean(data['group_counts']):.1f}",
    ]
    if len(run_ms) > 1:
        cuts = statistics.quantiles(run_ms, n=20)
        lines.append(f"run ms: min={min(run_ms):.2f} median={statistics.median(run_ms):.2f} "
                     f"p95={cuts[-1]:.2f} max={max(run_ms):.2f}")
    total = sum(data["run_times"]) or 1.0
    for idx, phase in enumerate(PHASES):
        times = [p[idx] for p in data["phase_times"]]
        lines.append(f"  {phase:<9} mean={statistics.mean(times) * 1000:8.3f}ms  share={sum(times) / total:6.1%}")
    return "\n".join(lines)


def main() -> None:
    parser = argparse.ArgumentParser(description="Profile universe generation")
    parser.add_argument("--runs", type=int, default=20, help="Number of galaxies to generate")
    parser.add_argument("--systems", type=int, default=50, help="Systems per galaxy")
    parser.add_argument("--seed", type=int, default=42, help="Master seed")
    parser.add_argument("--preset", type=str, default="classic", help="Topology preset id")
    parser.add_argument("--workers", type=int, default=1, help="Worker threads (1 for consistent timing)")
    parser.add_argument("--cprofile", type=str, default=None, help="Save cProfile output to file")
    parser.add_argument("--memory", action="store_true", help="Enable tracemalloc memory profiling")
    args = parser.parse_args()

    cfg = GenerationConfig.for_preset(args.preset)
    galaxy = GalaxyConfig(system_count=args.systems, workers=args.workers).validated()

    print(f"Profiling: {args.runs} runs, {args.systems} systems, seed={args.seed}, "
          f"preset={cfg.topology_preset.value}, workers={args.workers}")

    if args.memory:
        tracemalloc.start()

    profiler = None
    if args.cprofile:
        profiler = cProfile.Profile()
        profiler.enable()

    wall_start = time.perf_counter()
    data = _run_generation(cfg, galaxy, args.runs, args.seed)
    wall_time = time.perf_counter() - wall_start

    if profiler:
        profiler.disable()
        profiler.dump_stats(args.cprofile)

    print(_summarize(data, wall_time))
    if profiler:
        print(f"cProfile data saved to {args.cprofile} (python -m pstats {args.cprofile})")
    if args.memory:
        _, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()
        print(f"peak traced memory: {peak / 1024:.1f} KB")


if __name__ == "__main__":
    main()
