"""Route planning error types; ``code`` values are stable and used in logs and warnings."""

from __future__ import annotations

from typing import Optional


class PlannerError(Exception):
    """Base class, carries ``code`` + ``message``."""

    code: str = "PlannerError"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.code
        super().__init__(self.message)


class RouteError(PlannerError):
    """Terminal, user-visible failure; maps onto an ErrorResult."""

    reason: str = "invalid_input"
    suggestion: str = ""

    def __init__(self, message: str = "", suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        if suggestion is not None:
            self.suggestion = suggestion


class InvalidInputError(RouteError):
    """Start or destination id is not part of the graph."""

    code = "InvalidInput"
    reason = "invalid_input"
    suggestion = "Verify that both waypoint ids are present in the beacon network"


class SameLocationError(RouteError):
    """Start equals the destination anchor."""

    code = "SameLocation"
    reason = "same_location"
    suggestion = "You are already at the destination"


class NoPathAvailableError(RouteError):
    """Destination unreachable over the declared connectivity."""

    code = "NoPathAvailable"
    reason = "no_path_available"
    suggestion = "Check beacon connectivity and ensure there is a connected route"


class AuthError(RouteError):
    """401/403 from the remote service; never retried."""

    code = "AuthError"
    reason = "auth_error"
    suggestion = "Validate the remote planner API key and rotate it if it was leaked"


class RemoteFailure(PlannerError):
    """Remote path failed in a way that is recovered by local fallback."""

    code = "RemoteFailure"
    label = "remote planner failed"


class UnconfiguredError(RemoteFailure):
    """No API key set; raised before any network call."""

    code = "Unconfigured"
    label = "remote planner unconfigured"


class TransientServiceError(RemoteFailure):
    """429/5xx/timeout/network error still failing after the last retry."""

    code = "TransientServiceError"
    label = "remote planner unavailable or rate limited"

    def __init__(self, message: str = "", status_code: Optional[int] = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.attempts = attempts


class RemoteApiError(RemoteFailure):
    """Non-retryable, unexpected HTTP status."""

    code = "ApiError"
    label = "remote planner returned an error"

    def __init__(self, message: str = "", status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(RemoteFailure):
    """Body or content failed to parse, or failed schema validation."""

    code = "MalformedResponse"
    label = "remote planner returned malformed data"


class RequestCancelledError(PlannerError):
    """Cancel signal fired; terminal for the call, no fallback."""

    code = "Cancelled"
