from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict

import yaml

from wayfinder.remote import DEFAULT_BASE_URL, DEFAULT_MODEL, RetryPolicy

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class PlannerConfig:
    """Remote planner + fallback settings: defaults, then YAML file, then environment."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout_s: float = 15.0
    max_retries: int = 3
    backoff_base_s: float = 2.0
    jitter_max_s: float = 0.5
    max_retry_after_s: float = 60.0
    max_tokens: int = 800
    temperature: float = 0.0
    auth_error_policy: str = "surface"
    symmetrize_adjacency: bool = False

    def __post_init__(self) -> None:
        if self.auth_error_policy not in ("surface", "fallback"):
            raise ValueError(
                f"auth_error_policy must be 'surface' or 'fallback', got {self.auth_error_policy!r}"
            )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            timeout_s=self.timeout_s,
            backoff_base_s=self.backoff_base_s,
            jitter_max_s=self.jitter_max_s,
            max_retry_after_s=self.max_retry_after_s,
        )

    @classmethod
    def from_config_file(cls, config_path: str | Path | None = None) -> PlannerConfig | None:
        """Read the ``remote_planner`` section; None when the file is missing or empty."""
        if config_path is None:
            config_path = Path.cwd() / "configs" / "config.yaml"
        config_path = Path(config_path)
        if not config_path.exists():
            return None

        with open(config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            return None
        section = config_data.get("remote_planner")
        if not isinstance(section, dict):
            return None

        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {k: v for k, v in section.items() if k in known}
        if values.get("api_key") == "":
            values["api_key"] = None
        return cls(**values)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> PlannerConfig:
        """File values (if any) as base, environment variables override."""
        base = cls.from_config_file(config_path) or cls()
        return base.with_env_overrides()

    def with_env_overrides(self) -> PlannerConfig:
        api_key = os.getenv("PLANNER_API_KEY") or os.getenv("OPENAI_API_KEY") or self.api_key
        symmetrize = os.getenv("PLANNER_SYMMETRIZE")
        return replace(
            self,
            api_key=api_key or None,
            base_url=os.getenv("PLANNER_BASE_URL") or self.base_url,
            model=os.getenv("PLANNER_MODEL") or self.model,
            timeout_s=_env_float("PLANNER_TIMEOUT_S", self.timeout_s),
            max_retries=_env_int("PLANNER_MAX_RETRIES", self.max_retries),
            backoff_base_s=_env_float("PLANNER_BACKOFF_BASE_S", self.backoff_base_s),
            jitter_max_s=_env_float("PLANNER_JITTER_MAX_S", self.jitter_max_s),
            max_tokens=_env_int("PLANNER_MAX_TOKENS", self.max_tokens),
            auth_error_policy=(os.getenv("PLANNER_AUTH_ERROR_POLICY") or self.auth_error_policy).lower(),
            symmetrize_adjacency=(
                symmetrize.strip().lower() in _TRUE_VALUES if symmetrize else self.symmetrize_adjacency
            ),
        )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default
