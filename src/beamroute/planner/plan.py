from __future__ import annotations

# This module is the "orchestrator" for a planning run.
# It wires together:
# - loader records (roads, agents, destination)
# - graph construction + snapping (RoadGraph, NearestVertexLocator)
# - one bounded A* search per agent (BeamAStar)
# - final ordering (RouteReport)
#
# Configuration problems (empty graph, missing destination, bad beam width) abort the
# run before any search starts; an agent that cannot reach the destination does not.

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping, Sequence

from beamroute.config.overrides import apply_settings_overrides
from beamroute.config.settings import Settings, get_settings
from beamroute.core.errors import ConfigurationError
from beamroute.domain.models import AgentRecord, DestinationRecord, RoadRecord
from beamroute.graph.locator import NearestVertexLocator
from beamroute.graph.road_graph import RoadGraph, Vertex, build_road_graph
from beamroute.report.route_report import RouteReport
from beamroute.search.astar import Agent, BeamAStar, SearchOutcome

logger = logging.getLogger(__name__)


def snap_agents(locator: NearestVertexLocator, records: Iterable[AgentRecord]) -> list[Agent]:
    """Bind each agent record to its nearest graph vertex."""
    agents: list[Agent] = []
    for rec in records:
        vertex, snap_km = locator.snap(rec.coordinate)
        agents.append(Agent(id=rec.id, vertex=vertex, position=rec.coordinate, snap_km=snap_km))
    return agents


def _run_searches(solver: BeamAStar, agents: Sequence[Agent], *, workers: int) -> list[SearchOutcome]:
    if workers <= 1 or len(agents) <= 1:
        return [solver.search(agent) for agent in agents]
    # The graph is read-only and every search owns its context, so no locking is needed.
    with ThreadPoolExecutor(max_workers=min(workers, len(agents)), thread_name_prefix="beamroute") as pool:
        return list(pool.map(solver.search, agents))


def plan_routes(
    graph: RoadGraph,
    agents: Sequence[Agent],
    destination: Vertex | None,
    *,
    beam_width: int,
    max_steps: int | None = None,
    workers: int = 1,
    meta: dict[str, Any] | None = None,
) -> RouteReport:
    """Search a route for every agent and assemble the ordered report."""
    if len(graph) == 0:
        raise ConfigurationError("Road graph is empty")
    if destination is None:
        raise ConfigurationError("No destination was given")
    if int(workers) < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers}")

    solver = BeamAStar(graph, destination, beam_width=beam_width, max_steps=max_steps)

    t0 = time.perf_counter()
    outcomes = _run_searches(solver, agents, workers=int(workers))
    search_seconds = time.perf_counter() - t0

    report = RouteReport.assemble(
        outcomes,
        destination=destination,
        beam_width=solver.beam_width,
        meta={**(meta or {}), "agents": len(agents), "search_seconds": round(search_seconds, 6)},
    )
    logger.info(
        "Planned %d agents with beam width %d: %d routes, %d unreachable (%.3fs)",
        len(agents),
        solver.beam_width,
        len(report.routes),
        len(report.unreachable),
        search_seconds,
    )
    return report


def plan_from_records(
    roads: Iterable[RoadRecord],
    agents: Iterable[AgentRecord],
    destination: DestinationRecord | None,
    *,
    settings: Settings | None = None,
    settings_overrides: Mapping[str, Any] | None = None,
) -> RouteReport:
    """Build the graph from raw records, snap agents/destination and plan every route."""
    settings = apply_settings_overrides(settings or get_settings(), settings_overrides)
    search = settings.search

    t0 = time.perf_counter()
    graph = build_road_graph(roads)
    if len(graph) == 0:
        raise ConfigurationError("Road graph is empty; no road records were given")
    if destination is None:
        raise ConfigurationError("No destination was given")

    locator = NearestVertexLocator(graph)
    goal, goal_snap_km = locator.snap(destination.coordinate)
    snapped = snap_agents(locator, agents)
    preprocessing_seconds = time.perf_counter() - t0

    return plan_routes(
        graph,
        snapped,
        goal,
        beam_width=search.beam_width,
        max_steps=search.max_steps,
        workers=search.workers,
        meta={
            "graph": graph.stats.as_dict(),
            "destination_snap_km": goal_snap_km,
            "preprocessing_seconds": round(preprocessing_seconds, 6),
        },
    )
