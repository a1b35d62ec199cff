import pytest

from wayfinder.graph import GraphSnapshot, Position, Waypoint

ENV_VARS = (
    "PLANNER_API_KEY",
    "OPENAI_API_KEY",
    "PLANNER_BASE_URL",
    "PLANNER_MODEL",
    "PLANNER_TIMEOUT_S",
    "PLANNER_MAX_RETRIES",
    "PLANNER_BACKOFF_BASE_S",
    "PLANNER_JITTER_MAX_S",
    "PLANNER_MAX_TOKENS",
    "PLANNER_AUTH_ERROR_POLICY",
    "PLANNER_SYMMETRIZE",
)


@pytest.fixture(autouse=True)
def clean_planner_env(monkeypatch):
    """Tests never pick up a real key from the developer's shell."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def corridor_snapshot() -> GraphSnapshot:
    """Entrance(0,0) ↔ Corridor(20,0) ↔ EastWing(40,0), plus an isolated Storage room."""
    return GraphSnapshot(
        [
            Waypoint("entrance", "Entrance", Position(0, 0), "Ground Floor", ("corridor",)),
            Waypoint("corridor", "Corridor", Position(20, 0), "Ground Floor", ("entrance", "east_wing")),
            Waypoint("east_wing", "East Wing", Position(40, 0), "Ground Floor", ("corridor",)),
            Waypoint("storage", "Storage", Position(60, 0), "Ground Floor", ()),
        ]
    )


