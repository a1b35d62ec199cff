"""Validate remote planner output before it leaves the core.

Any violation raises MalformedResponseError so the orchestrator falls back to
the local solver; nothing unvalidated is passed through.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from pydantic import ValidationError

from wayfinder.errors import MalformedResponseError
from wayfinder.graph import GraphSnapshot, RouteRequest
from wayfinder.results import ErrorReason, ErrorResult, PathResult, RouteOutcome

logger = logging.getLogger(__name__)

REMOTE_ERROR_REASONS = frozenset(
    {
        ErrorReason.INVALID_INPUT,
        ErrorReason.SAME_LOCATION,
        ErrorReason.NO_PATH_AVAILABLE,
    }
)
DISTANCE_TOLERANCE_PER_STEP_M = 0.1


class ResultNormalizer:
    def normalize_remote(
        self,
        payload: Dict[str, Any],
        snapshot: GraphSnapshot,
        request: RouteRequest,
    ) -> RouteOutcome:
        success = payload.get("success")
        if success is True:
            return self._normalize_path(payload, snapshot, request)
        if success is False:
            return self._normalize_error(payload)
        raise MalformedResponseError(f"'success' must be a boolean, got {success!r}")

    def finalize_local(self, result: PathResult, warnings: Iterable[str] = ()) -> PathResult:
        merged = list(result.warnings) + [w for w in warnings if w]
        return result.model_copy(update={"warnings": merged, "source": "local"})

    def _normalize_path(
        self, payload: Dict[str, Any], snapshot: GraphSnapshot, request: RouteRequest
    ) -> PathResult:
        try:
            result = PathResult.model_validate(payload)
        except ValidationError as e:
            logger.warning("remote path failed schema validation errors=%s", e.error_count())
            raise MalformedResponseError(f"Path schema validation failed: {e}") from e

        ids = result.waypoint_ids
        unknown = [waypoint_id for waypoint_id in ids if waypoint_id not in snapshot]
        if unknown:
            raise MalformedResponseError(f"Path references unknown waypoints: {unknown}")
        if ids[0] != request.start_id or ids[-1] != request.destination_anchor_id:
            raise MalformedResponseError(
                f"Path runs {ids[0]} -> {ids[-1]}, expected "
                f"{request.start_id} -> {request.destination_anchor_id}"
            )

        step_sum = sum(step.distance_to_next for step in result.path)
        tolerance = DISTANCE_TOLERANCE_PER_STEP_M * len(result.path)
        if abs(result.total_distance - step_sum) > tolerance + 1e-9:
            raise MalformedResponseError(
                f"total_distance {result.total_distance} does not match step sum {step_sum:.1f}"
            )
        return result.model_copy(update={"source": "remote"})

    def _normalize_error(self, payload: Dict[str, Any]) -> ErrorResult:
        try:
            result = ErrorResult.model_validate(payload)
        except ValidationError as e:
            logger.warning("remote error result failed schema validation errors=%s", e.error_count())
            raise MalformedResponseError(f"Error schema validation failed: {e}") from e
        if result.reason not in REMOTE_ERROR_REASONS:
            raise MalformedResponseError(f"Unexpected remote error reason: {result.reason.value}")
        return result
