"""Immutable per-request waypoint graph.

Adjacency is directed as declared by the source data: ``a`` listing ``b`` as a
neighbor gives the edge a→b only. Use :meth:`GraphSnapshot.symmetrized` when
the data is meant to be undirected. Neighbor ids that are not members of the
snapshot are ignored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Tuple


class Position(NamedTuple):
    """Planar position in meters."""

    x: float
    y: float


class UnknownWaypointError(KeyError):
    """Waypoint id not present in the snapshot."""

    code: str = "NotFound"


@dataclass(frozen=True)
class Waypoint:
    id: str
    name: str
    position: Position
    floor: str = ""
    neighbors: Tuple[str, ...] = ()
    description: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class RouteRequest:
    """Start waypoint and the anchor waypoint standing in for the destination."""

    start_id: str
    destination_anchor_id: str
    destination_name: Optional[str] = None


class GraphSnapshot:
    def __init__(self, waypoints: Iterable[Waypoint]) -> None:
        by_id: Dict[str, Waypoint] = {}
        for waypoint in waypoints:
            if waypoint.id in by_id:
                raise ValueError(f"duplicate waypoint id: {waypoint.id}")
            by_id[waypoint.id] = waypoint
        self._waypoints = MappingProxyType(by_id)

    @classmethod
    def from_beacons(cls, beacons: Iterable[Mapping[str, Any]]) -> GraphSnapshot:
        """Build from beacon dicts: mac, name, location_description,
        physical_position {x, y}, connected_beacons, floor, metadata."""
        waypoints: List[Waypoint] = []
        for raw in beacons:
            mac = str(raw.get("mac") or "").strip()
            if not mac:
                raise ValueError("beacon entry without mac")
            position = raw.get("physical_position") or {}
            try:
                x = float(position.get("x", 0.0))
                y = float(position.get("y", 0.0))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"beacon {mac} has an invalid physical_position") from exc
            waypoints.append(
                Waypoint(
                    id=mac,
                    name=str(raw.get("name") or mac),
                    position=Position(x, y),
                    floor=str(raw.get("floor") or ""),
                    neighbors=tuple(str(n) for n in raw.get("connected_beacons") or ()),
                    description=str(raw.get("location_description") or ""),
                    metadata=dict(raw.get("metadata") or {}),
                )
            )
        return cls(waypoints)

    def __len__(self) -> int:
        return len(self._waypoints)

    def __iter__(self) -> Iterator[str]:
        return iter(self._waypoints)

    def __contains__(self, waypoint_id: object) -> bool:
        return waypoint_id in self._waypoints

    def waypoints(self) -> Tuple[Waypoint, ...]:
        return tuple(self._waypoints.values())

    def get(self, waypoint_id: str) -> Optional[Waypoint]:
        return self._waypoints.get(waypoint_id)

    def lookup(self, waypoint_id: str) -> Waypoint:
        try:
            return self._waypoints[waypoint_id]
        except KeyError:
            raise UnknownWaypointError(waypoint_id) from None

    def neighbors(self, waypoint_id: str) -> Tuple[str, ...]:
        """Member ids reachable directly from ``waypoint_id``, declared order, no duplicates."""
        waypoint = self.lookup(waypoint_id)
        seen: Dict[str, None] = {}
        for neighbor_id in waypoint.neighbors:
            if neighbor_id in self._waypoints and neighbor_id not in seen:
                seen[neighbor_id] = None
        return tuple(seen)

    def edge_weight(self, a: str, b: str) -> float:
        pa = self.lookup(a).position
        pb = self.lookup(b).position
        return math.hypot(pb.x - pa.x, pb.y - pa.y)

    def symmetrized(self) -> GraphSnapshot:
        """Copy where every resolvable edge a→b is also present as b→a."""
        reverse: Dict[str, List[str]] = {waypoint_id: [] for waypoint_id in self._waypoints}
        for waypoint_id in self._waypoints:
            for neighbor_id in self.neighbors(waypoint_id):
                reverse[neighbor_id].append(waypoint_id)
        rebuilt: List[Waypoint] = []
        for waypoint in self._waypoints.values():
            merged = list(waypoint.neighbors)
            for source_id in reverse[waypoint.id]:
                if source_id not in merged:
                    merged.append(source_id)
            rebuilt.append(
                Waypoint(
                    id=waypoint.id,
                    name=waypoint.name,
                    position=waypoint.position,
                    floor=waypoint.floor,
                    neighbors=tuple(merged),
                    description=waypoint.description,
                    metadata=waypoint.metadata,
                )
            )
        return GraphSnapshot(rebuilt)

    def encode_compact(self) -> str:
        lines = []
        for waypoint in self._waypoints.values():
            neighbors = ", ".join(waypoint.neighbors)
            lines.append(
                f"{waypoint.id}: {waypoint.name} at "
                f"({_fmt(waypoint.position.x)}, {_fmt(waypoint.position.y)}) → [{neighbors}]"
            )
        return "\n".join(lines)


def _fmt(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)
