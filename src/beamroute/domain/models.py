"""
Domain models (Pydantic).

These types are the hand-off contract between BeamRoute and its collaborators:
- loader output (`RoadRecord`, `AgentRecord`, `DestinationRecord`)
- report output consumed by renderers (`RouteReportPayload`)

The search core works on graph vertices, not on these models; they exist so
that input rows are validated once at the edge and output has a stable JSON shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from beamroute.core.geo import Coordinate


class _PointRecord(BaseModel):
    """A raw coordinate row; `x` is longitude and `y` latitude, in decimal degrees."""

    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lon=self.x, lat=self.y)


class RoadRecord(_PointRecord):
    """One point of a road polyline; consecutive rows with equal `run_id` are linked."""

    run_id: int


class AgentRecord(_PointRecord):
    """A mobile agent (e.g. a taxi) and its current position."""

    id: int


class DestinationRecord(_PointRecord):
    """The single destination shared by every agent."""


class RouteResult(BaseModel):
    """One agent's route, from the agent's snapped vertex to the destination."""

    agent_id: int
    total_cost_km: float = Field(..., ge=0)
    path: list[tuple[float, float]]
    steps: int = Field(0, ge=0)
    max_frontier_size: int = Field(0, ge=0)
    # Raw position before snapping; None when the agent was placed on a vertex directly.
    agent_position: tuple[float, float] | None = None
    snap_km: float = Field(0.0, ge=0)

    @field_validator("path")
    @classmethod
    def _non_empty(cls, path: list[tuple[float, float]]) -> list[tuple[float, float]]:
        if not path:
            raise ValueError("route path must contain at least the destination")
        return path


class UnreachableAgent(BaseModel):
    agent_id: int
    reason: Literal["exhausted", "step_budget"]


class RouteReportPayload(BaseModel):
    """Ordered route results plus the agents that could not reach the destination."""

    generated_at: datetime
    beam_width: int = Field(..., ge=1)
    destination: tuple[float, float]
    results: list[RouteResult]
    unreachable: list[int] = Field(default_factory=list)
    unreachable_details: list[UnreachableAgent] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)
