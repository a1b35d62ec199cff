from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from wayfinder.config import PlannerConfig
from wayfinder.factory import build_orchestrator
from wayfinder.graph import GraphSnapshot, RouteRequest
from wayfinder.orchestrator import PathPlanningOrchestrator
from wayfinder.results import PathResult
from wayfinder.sample import SAMPLE_DESTINATIONS, sample_snapshot


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wayfinder",
        description="Plan the shortest walkable route between two beacons.",
    )
    parser.add_argument("--network", type=Path, help="beacon network JSON (list or {'beacons': [...]})")
    parser.add_argument("--start", required=True, help="start beacon id")
    parser.add_argument(
        "--destination",
        required=True,
        help="destination anchor beacon id (or a sample destination name without --network)",
    )
    parser.add_argument("--destination-name", help="logical destination shown in instructions")
    parser.add_argument("--config", type=Path, help="YAML config with a remote_planner section")
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser.parse_args(list(argv))


def load_network(path: Path) -> GraphSnapshot:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    beacons = data.get("beacons") if isinstance(data, dict) else data
    if not isinstance(beacons, list):
        raise SystemExit(f"{path}: expected a list of beacons")
    return GraphSnapshot.from_beacons(beacons)


def main(
    argv: Sequence[str] | None = None,
    *,
    orchestrator: PathPlanningOrchestrator | None = None,
) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    destination = args.destination
    destination_name = args.destination_name
    if args.network is not None:
        snapshot = load_network(args.network)
    else:
        snapshot = sample_snapshot()
        if destination in SAMPLE_DESTINATIONS:
            destination_name = destination_name or destination
            destination = SAMPLE_DESTINATIONS[destination]

    if orchestrator is None:
        orchestrator = build_orchestrator(PlannerConfig.load(args.config))
    request = RouteRequest(args.start, destination, destination_name)
    outcome = asyncio.run(orchestrator.plan(snapshot, request))

    print(json.dumps(outcome.to_payload(), indent=2, ensure_ascii=False))
    return 0 if isinstance(outcome, PathResult) else 1


if __name__ == "__main__":
    raise SystemExit(main())
