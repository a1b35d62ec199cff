"""
wayfinder - resilient shortest-route planning over a waypoint graph.

    caller
      ↓
    PathPlanningOrchestrator
      ↓                      ↘ (unconfigured / retries exhausted / malformed)
    RemotePlannerClient       LocalPathSolver
      ↓                      ↙
    ResultNormalizer
      ↓
    PathResult | ErrorResult
"""

from .errors import (
    AuthError,
    InvalidInputError,
    MalformedResponseError,
    NoPathAvailableError,
    PlannerError,
    RemoteApiError,
    RequestCancelledError,
    RouteError,
    SameLocationError,
    TransientServiceError,
    UnconfiguredError,
)
from .graph import GraphSnapshot, Position, RouteRequest, UnknownWaypointError, Waypoint
from .results import ErrorReason, ErrorResult, PathResult, PathStep, RouteOutcome
from .solver import LocalPathSolver, build_path_result
from .remote import RemotePlannerClient, RetryPolicy
from .normalizer import ResultNormalizer
from .orchestrator import PathPlanningOrchestrator
from .config import PlannerConfig
from .factory import build_orchestrator, build_remote_client

__all__ = [
    # Graph
    "GraphSnapshot",
    "Position",
    "RouteRequest",
    "UnknownWaypointError",
    "Waypoint",

    # Results
    "ErrorReason",
    "ErrorResult",
    "PathResult",
    "PathStep",
    "RouteOutcome",

    # Solving
    "LocalPathSolver",
    "build_path_result",
    "RemotePlannerClient",
    "RetryPolicy",
    "ResultNormalizer",
    "PathPlanningOrchestrator",

    # Config
    "PlannerConfig",
    "build_orchestrator",
    "build_remote_client",

    # Errors
    "AuthError",
    "InvalidInputError",
    "MalformedResponseError",
    "NoPathAvailableError",
    "PlannerError",
    "RemoteApiError",
    "RequestCancelledError",
    "RouteError",
    "SameLocationError",
    "TransientServiceError",
    "UnconfiguredError",
]

__version__ = "1.0.0"
