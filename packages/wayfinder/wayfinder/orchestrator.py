"""
Path Planning Orchestrator - remote first, local fallback.

Stages:
    validate request → remote planner → normalize → (on failure) local solver

Every exit is a PathResult or an ErrorResult. Recoverable remote failures
(Unconfigured, TransientServiceError, ApiError, MalformedResponse) become a
warning on the locally computed result. Cancellation is terminal and is
re-raised without fallback.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from wayfinder.errors import (
    AuthError,
    RemoteFailure,
    RequestCancelledError,
    RouteError,
    UnconfiguredError,
)
from wayfinder.graph import GraphSnapshot, RouteRequest
from wayfinder.normalizer import ResultNormalizer
from wayfinder.remote import RemotePlannerClient, raise_if_cancelled
from wayfinder.results import ErrorReason, ErrorResult, RouteOutcome
from wayfinder.solver import LocalPathSolver, validate_endpoints

logger = logging.getLogger(__name__)

AUTH_ERROR_POLICIES = ("surface", "fallback")


class _Fallback(Exception):
    """Internal: remote stage failed, carry the warning text to the local stage."""

    def __init__(self, warning: str) -> None:
        super().__init__(warning)
        self.warning = warning


class PathPlanningOrchestrator:
    def __init__(
        self,
        remote: Optional[RemotePlannerClient] = None,
        *,
        solver: Optional[LocalPathSolver] = None,
        normalizer: Optional[ResultNormalizer] = None,
        auth_error_policy: str = "surface",
        symmetrize_adjacency: bool = False,
    ) -> None:
        if auth_error_policy not in AUTH_ERROR_POLICIES:
            raise ValueError(
                f"auth_error_policy must be one of {AUTH_ERROR_POLICIES}, got {auth_error_policy!r}"
            )
        self._remote = remote
        self._solver = solver or LocalPathSolver()
        self._normalizer = normalizer or ResultNormalizer()
        self._auth_error_policy = auth_error_policy
        self._symmetrize = symmetrize_adjacency

    async def plan(
        self,
        snapshot: GraphSnapshot,
        request: RouteRequest,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> RouteOutcome:
        """
        Plan one route.

        Args:
            snapshot: Waypoint graph for this request, never mutated
            request: Start id and destination anchor id
            cancel: Optional signal; once set, pending waits and attempts are
                abandoned and RequestCancelledError is raised

        Returns:
            PathResult or ErrorResult
        """
        if self._symmetrize:
            snapshot = snapshot.symmetrized()

        try:
            validate_endpoints(snapshot, request.start_id, request.destination_anchor_id)
        except RouteError as e:
            logger.info("route request rejected code=%s detail=%s", e.code, e.message)
            return to_error_result(e)

        try:
            return await self._plan_remote(snapshot, request, cancel)
        except AuthError as e:
            return to_error_result(e)
        except _Fallback as fallback:
            raise_if_cancelled(cancel)
            return self._plan_local(snapshot, request, fallback.warning)

    async def _plan_remote(
        self,
        snapshot: GraphSnapshot,
        request: RouteRequest,
        cancel: Optional[asyncio.Event],
    ) -> RouteOutcome:
        try:
            raise_if_cancelled(cancel)
            if self._remote is None:
                raise UnconfiguredError("No remote planner client")
            payload = await self._remote.plan(snapshot, request, cancel=cancel)
            outcome = self._normalizer.normalize_remote(payload, snapshot, request)
        except AuthError as e:
            if self._auth_error_policy == "surface":
                logger.warning("remote planner auth error surfaced detail=%s", e.message)
                raise
            logger.warning("remote planner auth error, falling back detail=%s", e.message)
            raise _Fallback(_warning("remote planner rejected the API key")) from e
        except RemoteFailure as e:
            logger.info("remote planner failed, falling back code=%s detail=%s", e.code, e.message)
            raise _Fallback(_warning(e.label)) from e
        except RequestCancelledError:
            logger.info(
                "route request cancelled start=%s destination=%s",
                request.start_id,
                request.destination_anchor_id,
            )
            raise
        except Exception as e:
            logger.exception("remote planner stage raised unexpectedly, falling back")
            raise _Fallback(_warning("remote planner failed unexpectedly")) from e

        logger.info(
            "remote planner outcome success=%s start=%s destination=%s",
            outcome.success,
            request.start_id,
            request.destination_anchor_id,
        )
        return outcome

    def _plan_local(
        self, snapshot: GraphSnapshot, request: RouteRequest, warning: str
    ) -> RouteOutcome:
        try:
            result = self._solver.solve(snapshot, request)
        except RouteError as e:
            logger.info("local solver returned error code=%s detail=%s", e.code, e.message)
            return to_error_result(e)
        logger.info(
            "local fallback path start=%s destination=%s total_distance=%s",
            request.start_id,
            request.destination_anchor_id,
            result.total_distance,
        )
        return self._normalizer.finalize_local(result, [warning])


def to_error_result(error: RouteError) -> ErrorResult:
    return ErrorResult(
        error=error.message,
        reason=ErrorReason(error.reason),
        suggestion=error.suggestion,
    )


def _warning(cause: str) -> str:
    return f"Computed locally: {cause}"
