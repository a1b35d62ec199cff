"""Demo beacon network: Main Entrance → Main Corridor → East Wing, 20 m apart."""

from __future__ import annotations

from typing import Any, Dict, List

from wayfinder.graph import GraphSnapshot

MAIN_ENTRANCE = "D3:5F:B3:48:14:CA"
MAIN_CORRIDOR = "F3:55:BD:A3:65:2E"
EAST_WING = "C7:A4:5A:D0:74:D8"

SAMPLE_BEACONS: List[Dict[str, Any]] = [
    {
        "mac": MAIN_ENTRANCE,
        "name": "Main Entrance",
        "location_description": "Building A main entrance lobby, near information desk",
        "physical_position": {"x": 0, "y": 0},
        "connected_beacons": [MAIN_CORRIDOR],
        "floor": "Ground Floor",
        "metadata": {"building": "A", "accessibility": "wheelchair_accessible"},
    },
    {
        "mac": MAIN_CORRIDOR,
        "name": "Main Corridor",
        "location_description": "Central corridor connecting east and west wings",
        "physical_position": {"x": 20, "y": 0},
        "connected_beacons": [MAIN_ENTRANCE, EAST_WING],
        "floor": "Ground Floor",
        "metadata": {"building": "A", "width": "wide_corridor"},
    },
    {
        "mac": EAST_WING,
        "name": "East Wing",
        "location_description": "East wing hallway near rooms 101-105",
        "physical_position": {"x": 40, "y": 0},
        "connected_beacons": [MAIN_CORRIDOR],
        "floor": "Ground Floor",
        "metadata": {"building": "A", "rooms": "101-105"},
    },
]

# destination name -> anchor beacon
SAMPLE_DESTINATIONS: Dict[str, str] = {
    "Computer Lab": EAST_WING,
    "Information Desk": MAIN_ENTRANCE,
}


def sample_snapshot() -> GraphSnapshot:
    return GraphSnapshot.from_beacons(SAMPLE_BEACONS)
