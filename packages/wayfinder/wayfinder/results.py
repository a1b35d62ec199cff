"""Route outcome models: ``PathResult`` (success) or ``ErrorResult`` (failure).

Field names follow Python naming; aliases give the wire names used by the
remote planner and by :meth:`to_payload`.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

WALKING_SPEED_MPS = 1.3


def round_half_up(value: float, digits: int = 0) -> float:
    """Decimal half-up rounding on the shortest repr of ``value`` (2.45 -> 2.5)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def eta_seconds(distance_m: float) -> int:
    return int(round_half_up(distance_m / WALKING_SPEED_MPS))


class ErrorReason(str, Enum):
    INVALID_INPUT = "invalid_input"
    SAME_LOCATION = "same_location"
    NO_PATH_AVAILABLE = "no_path_available"
    AUTH_ERROR = "auth_error"


class PathStep(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    waypoint_id: str = Field(alias="beacon_mac", min_length=1)
    waypoint_name: str = Field(alias="beacon_name")
    instruction: str
    distance_to_next: float = Field(ge=0, allow_inf_nan=False)
    estimated_time_seconds: int = Field(ge=0)

    @field_validator("distance_to_next")
    @classmethod
    def _one_decimal(cls, value: float) -> float:
        return round_half_up(value, 1)


class PathResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    success: Literal[True] = True
    path: List[PathStep] = Field(min_length=2)
    total_distance: float = Field(ge=0, allow_inf_nan=False)
    total_time_seconds: int = Field(ge=0)
    floor_changes: int = Field(ge=0)
    path_summary: str = ""
    alternative_paths_available: bool = False
    warnings: List[str] = Field(default_factory=list)
    source: Literal["remote", "local"] = Field(default="remote", exclude=True)

    @field_validator("total_distance")
    @classmethod
    def _one_decimal(cls, value: float) -> float:
        return round_half_up(value, 1)

    @property
    def waypoint_ids(self) -> List[str]:
        return [step.waypoint_id for step in self.path]

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ErrorResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    error: str
    reason: ErrorReason
    suggestion: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


RouteOutcome = Union[PathResult, ErrorResult]
