"""Exact single-pair shortest path over a GraphSnapshot (Dijkstra, linear scan).

Tie-break: among unsettled nodes with equal minimum distance, the one that
comes first in snapshot iteration order is settled first. Relaxation only
replaces a predecessor on strict improvement, so equal-cost alternatives
keep the first predecessor found. Both rules make results reproducible on
symmetric graphs.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Set, Tuple

from wayfinder.errors import InvalidInputError, NoPathAvailableError, SameLocationError
from wayfinder.graph import GraphSnapshot, RouteRequest
from wayfinder.results import PathResult, PathStep, eta_seconds, round_half_up

logger = logging.getLogger(__name__)


class LocalPathSolver:
    def solve(self, snapshot: GraphSnapshot, request: RouteRequest) -> PathResult:
        """Raises InvalidInputError / SameLocationError / NoPathAvailableError."""
        ids, distance = self.shortest_path(
            snapshot, request.start_id, request.destination_anchor_id
        )
        logger.debug(
            "local path solved start=%s destination=%s hops=%s distance_m=%.3f",
            request.start_id,
            request.destination_anchor_id,
            len(ids) - 1,
            distance,
        )
        return build_path_result(
            snapshot, ids, destination_name=request.destination_name, source="local"
        )

    def shortest_path(
        self, snapshot: GraphSnapshot, start_id: str, goal_id: str
    ) -> Tuple[List[str], float]:
        validate_endpoints(snapshot, start_id, goal_id)

        order = list(snapshot)
        dist: Dict[str, float] = {waypoint_id: math.inf for waypoint_id in order}
        prev: Dict[str, Optional[str]] = {}
        settled: Set[str] = set()
        dist[start_id] = 0.0

        while len(settled) < len(order):
            current: Optional[str] = None
            best = math.inf
            for waypoint_id in order:
                if waypoint_id in settled:
                    continue
                if dist[waypoint_id] < best:
                    best = dist[waypoint_id]
                    current = waypoint_id
            if current is None or current == goal_id:
                break
            settled.add(current)

            for neighbor_id in snapshot.neighbors(current):
                if neighbor_id in settled:
                    continue
                candidate = dist[current] + snapshot.edge_weight(current, neighbor_id)
                if candidate < dist[neighbor_id]:
                    dist[neighbor_id] = candidate
                    prev[neighbor_id] = current

        if math.isinf(dist[goal_id]):
            start = snapshot.lookup(start_id)
            goal = snapshot.lookup(goal_id)
            raise NoPathAvailableError(f"No path found from {start.name} to {goal.name}")

        path: List[str] = [goal_id]
        while path[-1] != start_id:
            path.append(prev[path[-1]])
        path.reverse()
        return path, dist[goal_id]


def validate_endpoints(snapshot: GraphSnapshot, start_id: str, goal_id: str) -> None:
    # same-location wins even when the id is unknown to the snapshot
    if start_id == goal_id:
        raise SameLocationError("Source and destination are the same")
    if start_id not in snapshot:
        raise InvalidInputError(f"Start waypoint {start_id!r} not found in network")
    if goal_id not in snapshot:
        raise InvalidInputError(f"Destination waypoint {goal_id!r} not found in network")


def build_path_result(
    snapshot: GraphSnapshot,
    ids: Sequence[str],
    *,
    destination_name: Optional[str] = None,
    source: str = "local",
) -> PathResult:
    """Per-leg distance/ETA, totals and floor changes for a waypoint sequence."""
    waypoints = [snapshot.lookup(waypoint_id) for waypoint_id in ids]
    steps: List[PathStep] = []
    total = 0.0
    floor_changes = 0
    for index, waypoint in enumerate(waypoints):
        if index < len(waypoints) - 1:
            nxt = waypoints[index + 1]
            leg = snapshot.edge_weight(waypoint.id, nxt.id)
            total += leg
            if waypoint.floor != nxt.floor:
                floor_changes += 1
            instruction = (
                f"Proceed from {waypoint.name} to {nxt.name} "
                f"for {round_half_up(leg, 1):.1f} meters."
            )
            eta = eta_seconds(leg)
        else:
            leg = 0.0
            eta = 0
            instruction = f"You have arrived at {destination_name or waypoint.name}."
        steps.append(
            PathStep(
                waypoint_id=waypoint.id,
                waypoint_name=waypoint.name,
                instruction=instruction,
                distance_to_next=leg,
                estimated_time_seconds=eta,
            )
        )

    return PathResult(
        path=steps,
        total_distance=total,
        total_time_seconds=eta_seconds(total),
        floor_changes=floor_changes,
        path_summary=_summary(waypoints, destination_name),
        alternative_paths_available=False,
        source=source,
    )


def _summary(waypoints, destination_name: Optional[str]) -> str:
    origin = waypoints[0].name
    target = destination_name or waypoints[-1].name
    via = [waypoint.name for waypoint in waypoints[1:-1]]
    if not via:
        return f"Route from {origin} to {target}"
    return f"Route from {origin} to {target} via {', '.join(via)}"
