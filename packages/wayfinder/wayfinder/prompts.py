from __future__ import annotations

from typing import Dict, List

from wayfinder.graph import GraphSnapshot, RouteRequest

SYSTEM_PROMPT = """You are an indoor navigation pathfinding engine. Compute the shortest walkable path between two beacons.

INPUT:
- Start beacon and destination beacon (id, name, position in meters)
- Beacon network, one line per beacon: id: name at (x, y) → [ids reachable directly from it]

ALGORITHM:
1. Edge length is the Euclidean distance sqrt((x2-x1)^2 + (y2-y1)^2)
2. Only follow the listed connections, in the listed direction
3. Pick the path with the smallest total distance (Dijkstra)
4. Time estimates use a walking speed of 1.3 m/s, rounded to whole seconds

OUTPUT (JSON ONLY):
{
  "success": true,
  "path": [
    {
      "beacon_mac": "BEACON_ID",
      "beacon_name": "Location Name",
      "instruction": "Walk 20m down the corridor to East Wing",
      "distance_to_next": 20.0,
      "estimated_time_seconds": 15
    }
  ],
  "total_distance": 40.0,
  "total_time_seconds": 31,
  "floor_changes": 0,
  "path_summary": "Route from A to B via C",
  "alternative_paths_available": false,
  "warnings": []
}

ERROR FORMAT:
{
  "success": false,
  "error": "Error description",
  "reason": "no_path_available|same_location|invalid_input",
  "suggestion": "What to do next"
}

RULES:
- The first step is the start beacon, the last step is the destination beacon
- The last step has distance_to_next 0 and says "You have arrived at [destination]"
- Distances in meters with one decimal
- Start equals destination: error with reason "same_location"
- No connected route: error with reason "no_path_available"

Return ONLY valid JSON, no explanation."""


def build_user_prompt(snapshot: GraphSnapshot, request: RouteRequest) -> str:
    start = snapshot.lookup(request.start_id)
    goal = snapshot.lookup(request.destination_anchor_id)
    target = f"{request.destination_name} via {goal.name}" if request.destination_name else goal.name
    return (
        f"NAVIGATE FROM: {start.name} ({start.id}) at ({start.position.x}, {start.position.y})\n"
        f"TO: {target} ({goal.id}) at ({goal.position.x}, {goal.position.y})\n"
        "\n"
        "BEACONS:\n"
        f"{snapshot.encode_compact()}\n"
        "\n"
        "Calculate shortest path. Return JSON only."
    )


def build_messages(snapshot: GraphSnapshot, request: RouteRequest) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(snapshot, request)},
    ]
