"""
Per-agent outcomes, ordered for hand-off to a renderer.

Routes are ordered by total cost, then by agent id, so the report is identical
no matter in which order the agent searches finished. Agents without a route
are kept in a separate list; they are never dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from beamroute.domain.models import RouteReportPayload, RouteResult, UnreachableAgent
from beamroute.graph.road_graph import Vertex
from beamroute.search.astar import SearchOutcome, SearchStatus

logger = logging.getLogger(__name__)

_UNREACHABLE_REASONS = {
    SearchStatus.EXHAUSTED: "exhausted",
    SearchStatus.BUDGET_EXCEEDED: "step_budget",
}


@dataclass
class RouteReport:
    destination: Vertex
    beam_width: int
    routes: list[SearchOutcome] = field(default_factory=list)
    unreachable: list[SearchOutcome] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def assemble(
        cls,
        outcomes: Iterable[SearchOutcome],
        *,
        destination: Vertex,
        beam_width: int,
        meta: dict[str, Any] | None = None,
    ) -> RouteReport:
        routes: list[SearchOutcome] = []
        unreachable: list[SearchOutcome] = []
        for outcome in outcomes:
            if outcome.reached:
                routes.append(outcome)
            else:
                unreachable.append(outcome)
                logger.info(
                    "Agent %s unreachable within beam width %d (%s)",
                    outcome.agent.id,
                    beam_width,
                    outcome.status.value,
                )
        routes.sort(key=lambda o: (o.route.total_cost_km, o.agent.id))
        unreachable.sort(key=lambda o: o.agent.id)
        return cls(
            destination=destination,
            beam_width=beam_width,
            routes=routes,
            unreachable=unreachable,
            meta=dict(meta or {}),
        )

    def best(self) -> SearchOutcome | None:
        return self.routes[0] if self.routes else None

    @property
    def unreachable_ids(self) -> list[int]:
        return [o.agent.id for o in self.unreachable]

    def __len__(self) -> int:
        return len(self.routes) + len(self.unreachable)

    def to_payload(self, *, generated_at: datetime | None = None) -> RouteReportPayload:
        results = [
            RouteResult(
                agent_id=o.agent.id,
                total_cost_km=o.route.total_cost_km,
                path=o.route.coordinates(),
                steps=o.steps,
                max_frontier_size=o.max_frontier_size,
                agent_position=o.agent.position.as_tuple() if o.agent.position is not None else None,
                snap_km=o.agent.snap_km,
            )
            for o in self.routes
        ]
        details = [
            UnreachableAgent(agent_id=o.agent.id, reason=_UNREACHABLE_REASONS[o.status])
            for o in self.unreachable
        ]
        return RouteReportPayload(
            generated_at=generated_at or datetime.now(timezone.utc),
            beam_width=self.beam_width,
            destination=self.destination.coordinate.as_tuple(),
            results=results,
            unreachable=self.unreachable_ids,
            unreachable_details=details,
            meta=dict(self.meta),
        )
