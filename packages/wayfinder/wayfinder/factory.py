from __future__ import annotations

from pathlib import Path

import httpx

from wayfinder.config import PlannerConfig
from wayfinder.orchestrator import PathPlanningOrchestrator
from wayfinder.remote import RemotePlannerClient


def build_remote_client(
    config: PlannerConfig, *, transport: httpx.AsyncBaseTransport | None = None
) -> RemotePlannerClient:
    """Always returns a client; an absent api_key makes it report Unconfigured on use."""
    return RemotePlannerClient(
        api_key=config.api_key,
        base_url=config.base_url,
        model=config.model,
        retry=config.retry_policy,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        transport=transport,
    )


def build_orchestrator(
    config: PlannerConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> PathPlanningOrchestrator:
    config = config or PlannerConfig.load()
    return PathPlanningOrchestrator(
        build_remote_client(config, transport=transport),
        auth_error_policy=config.auth_error_policy,
        symmetrize_adjacency=config.symmetrize_adjacency,
    )


def build_orchestrator_from_file(config_path: str | Path | None = None) -> PathPlanningOrchestrator:
    return build_orchestrator(PlannerConfig.load(config_path))
