"""Entry point: ``python -m universegen``.

Subcommands:
  - ``system``    → one seeded solar system
  - ``galaxy``    → many systems composed into positioned groups
  - ``batch``     → independent systems from one master seed
  - ``validate``  → load a JSON snapshot and report structural problems
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--seed", type=int, default=None, help="Master seed (fresh seed when omitted)")
    p.add_argument("--preset", type=str, default=None, help="Topology preset id")
    p.add_argument("--config", type=str, default=None, help="JSON file with generation config fields")
    p.add_argument("--max-bodies", type=int, default=None)
    p.add_argument("--json", action="store_true", help="Print the snapshot as JSON instead of stats")
    p.add_argument("--out", type=str, default=None, help="Write the JSON snapshot to this file")
    p.add_argument("--log-level", type=str, default="WARNING", choices=_LOG_LEVELS)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seeded procedural universe generator")
    sub = parser.add_subparsers(dest="command", required=True)

    system = sub.add_parser("system", help="Generate one solar system")
    _add_common(system)

    galaxy = sub.add_parser("galaxy", help="Generate systems and compose them into groups")
    _add_common(galaxy)
    galaxy.add_argument("--systems", type=int, default=5)
    galaxy.add_argument("--workers", type=int, default=1)
    galaxy.add_argument("--layout", type=str, default="spiral", choices=["spiral", "scattered"])
    galaxy.add_argument("--fanout", type=int, default=4, help="Max children per cluster group")
    galaxy.add_argument("--max-groups", type=int, default=None)

    batch = sub.add_parser("batch", help="Generate independent systems from one master seed")
    _add_common(batch)
    batch.add_argument("--count", type=int, default=10)
    batch.add_argument("--workers", type=int, default=1)

    check = sub.add_parser("validate", help="Validate a JSON snapshot")
    check.add_argument("path", type=str, help="Snapshot file, '-' for stdin")
    check.add_argument("--log-level", type=str, default="WARNING", choices=_LOG_LEVELS)

    return parser


def _load_config(args: argparse.Namespace):
    from universegen.config import GenerationConfig

    data: dict[str, Any] = {}
    if args.config:
        with open(args.config, encoding="utf-8") as fh:
            data = json.load(fh)
    base = GenerationConfig.for_preset(args.preset) if args.preset else None
    config = GenerationConfig.from_mapping(data, base=base)
    if args.max_bodies is not None:
        config = GenerationConfig.from_mapping({"max_bodies": args.max_bodies}, base=config)
    return config


def _emit(universe, args: argparse.Namespace) -> None:
    from universegen.analysis.stats import analyze_system, format_stats
    from universegen.analysis.validator import bounds_for_preset, validate_system
    from universegen.core.snapshot import to_json

    if args.out:
        with open(args.out, "w", encoding="utf-8") as fh:
            fh.write(to_json(universe))
        logger.info("Snapshot written to %s", args.out)
    if args.json:
        print(to_json(universe))
        return

    print(f"Seed: {universe.seed}  Preset: {universe.preset}")
    print(format_stats(analyze_system(universe)))
    report = validate_system(universe, bounds_for_preset(universe.preset))
    print(f"Valid: {report.valid}")
    for line in report.errors:
        print(f"  {line}")


def _run_system(args: argparse.Namespace) -> int:
    from universegen.systems.bodies import generate_solar_system

    universe = generate_solar_system(_load_config(args), seed=args.seed)
    _emit(universe, args)
    return 0


def _run_galaxy(args: argparse.Namespace) -> int:
    from universegen.config import GalaxyConfig
    from universegen.core.enums import GalaxyLayout
    from universegen.systems.galaxy import generate_galaxy

    galaxy = GalaxyConfig(
        layout=GalaxyLayout(args.layout),
        cluster_fanout=args.fanout,
        max_groups=args.max_groups,
        workers=args.workers,
    )
    universe = generate_galaxy(args.systems, _load_config(args), galaxy=galaxy, seed=args.seed)
    _emit(universe, args)
    return 0


def _run_batch(args: argparse.Namespace) -> int:
    from universegen.analysis.stats import analyze_system
    from universegen.analysis.validator import bounds_for_preset, validate_many
    from universegen.core.snapshot import to_dict
    from universegen.systems.bodies import generate_multiple_systems

    config = _load_config(args)
    systems = generate_multiple_systems(args.count, config, seed=args.seed, workers=args.workers)
    if args.out or args.json:
        payload = json.dumps([to_dict(s) for s in systems], indent=2)
        if args.out:
            with open(args.out, "w", encoding="utf-8") as fh:
                fh.write(payload)
        if args.json:
            print(payload)
            return 0

    reports = validate_many(systems, bounds_for_preset(config.topology_preset.value))
    print(f"{'#':>4} {'seed':>11} {'bodies':>7} {'stars':>6} {'planets':>8} {'moons':>6}  valid")
    for i, (system, report) in enumerate(zip(systems, reports)):
        counts = analyze_system(system).counts_by_type
        print(f"{i:>4} {system.seed:>11} {system.body_count:>7} {counts['star']:>6} "
              f"{counts['planet']:>8} {counts['moon']:>6}  {report.valid}")
    return 0 if all(r.valid for r in reports) else 1


def _run_validate(args: argparse.Namespace) -> int:
    from universegen.analysis.stats import analyze_system, format_stats
    from universegen.analysis.validator import CHECK_MALFORMED, bounds_for_preset, validate_system
    from universegen.core.errors import MalformedSnapshot
    from universegen.core.snapshot import from_json

    if args.path == "-":
        text = sys.stdin.read()
    else:
        with open(args.path, encoding="utf-8") as fh:
            text = fh.read()
    try:
        universe = from_json(text)
    except MalformedSnapshot as exc:
        print("Valid: False")
        for problem in exc.problems:
            print(f"  [{CHECK_MALFORMED}] {problem}")
        return 1
    report = validate_system(universe, bounds_for_preset(universe.preset))
    print(format_stats(analyze_system(universe)))
    print(f"Valid: {report.valid}")
    for line in report.errors:
        print(f"  {line}")
    return 0 if report.valid else 1


_COMMANDS = {
    "system": _run_system,
    "galaxy": _run_galaxy,
    "batch": _run_batch,
    "validate": _run_validate,
}


def main(argv: list[str] | None = None) -> int:
    from universegen.core.errors import UniverseGenError
    from universegen.utils.logging import setup_logging

    args = _build_parser().parse_args(argv)
    setup_logging(args.log_level)
    try:
        return _COMMANDS[args.command](args)
    except UniverseGenError as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
