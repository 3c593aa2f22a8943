"""
Beam A* from one agent to the shared destination.

Each call to `BeamAStar.search` builds a fresh `SearchContext` (score maps,
closed set, arena of expanded nodes, bounded frontier) and throws it away when
the search ends, so searches for different agents never share mutable state.
The only shared object is the road graph, which is read-only after it is built.

The frontier is capped at `beam_width` states. A capped frontier may evict a
state the optimal route needed, so an agent can end up with a longer route or
no route at all. That is a normal outcome (`EXHAUSTED`), not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from beamroute.core.errors import ConfigurationError
from beamroute.core.geo import Coordinate
from beamroute.graph.road_graph import RoadGraph, Vertex
from beamroute.search.frontier import BoundedFrontier, SearchState

logger = logging.getLogger(__name__)


class SearchStatus(str, Enum):
    READY = "ready"
    EXPANDING = "expanding"
    GOAL_FOUND = "goal_found"
    EXHAUSTED = "exhausted"
    BUDGET_EXCEEDED = "budget_exceeded"


@dataclass(frozen=True)
class Agent:
    """An external identifier bound to the vertex its raw position snapped to."""

    id: int
    vertex: Vertex
    position: Coordinate | None = None
    snap_km: float = 0.0


@dataclass(frozen=True)
class Route:
    vertices: tuple[Vertex, ...]
    total_cost_km: float

    def coordinates(self) -> list[tuple[float, float]]:
        return [v.coordinate.as_tuple() for v in self.vertices]

    def edge_cost_sum_km(self) -> float:
        """Sum of the traversed edge costs (recomputed from the graph)."""
        total = 0.0
        for a, b in zip(self.vertices, self.vertices[1:]):
            total += next(e.cost_km for e in a.edges if e.target is b)
        return total

    def __len__(self) -> int:
        return len(self.vertices)


@dataclass(frozen=True)
class SearchOutcome:
    agent: Agent
    status: SearchStatus
    route: Route | None
    steps: int
    max_frontier_size: int
    evictions: int
    rejected_inserts: int

    @property
    def reached(self) -> bool:
        return self.status is SearchStatus.GOAL_FOUND


class SearchContext:
    """Per-agent search state; discarded as a unit when the search ends.

    `g_score` and `f_score` hold the best costs recorded per vertex, including
    vertices that were later evicted from the frontier. They stay readable after
    the search for inspection.
    """

    def __init__(self, start: Vertex, destination: Vertex, *, beam_width: int):
        self.start = start
        self.destination = destination
        self.g_score: dict[Vertex, float] = {}
        self.f_score: dict[Vertex, float] = {}
        self.closed: set[Vertex] = set()
        # Expanded states; SearchState.parent points into this list.
        self.arena: list[SearchState] = []
        self.frontier = BoundedFrontier(beam_width)
        self.status = SearchStatus.READY
        self.steps = 0
        self.max_frontier_size = 0
        self.rejected_inserts = 0

    def heuristic(self, vertex: Vertex) -> float:
        return vertex.distance_km(self.destination)

    def seed(self) -> None:
        f = self.heuristic(self.start)
        self.frontier.insert(SearchState(self.start, 0.0, f, parent=None))
        self.g_score[self.start] = 0.0
        self.f_score[self.start] = f
        self.max_frontier_size = len(self.frontier)
        self.status = SearchStatus.EXPANDING

    def reconstruct(self, index: int) -> Route:
        goal = self.arena[index]
        path: list[Vertex] = []
        cursor: int | None = index
        while cursor is not None:
            node = self.arena[cursor]
            path.append(node.vertex)
            cursor = node.parent
        path.reverse()
        return Route(vertices=tuple(path), total_cost_km=goal.g_cost)

    def _offer(self, state: SearchState) -> bool:
        vertex = state.vertex
        if vertex in self.frontier:
            accepted = self.frontier.decrease_key(state)
        else:
            accepted = self.frontier.insert(state)
        if accepted:
            self.g_score[vertex] = state.g_cost
            self.f_score[vertex] = state.f_cost
        else:
            # Recorded scores are left as they were before the attempt.
            self.rejected_inserts += 1
        return accepted

    def expand(self) -> Route | None:
        """Pop and expand one state; returns the route once the goal is popped."""
        current = self.frontier.pop_best()
        self.steps += 1
        index = len(self.arena)
        self.arena.append(current)
        self.closed.add(current.vertex)

        if current.vertex is self.destination:
            self.status = SearchStatus.GOAL_FOUND
            return self.reconstruct(index)

        for edge in current.vertex.edges:
            neighbor = edge.target
            if neighbor in self.closed:
                continue
            tentative = current.g_cost + edge.cost_km
            known = self.g_score.get(neighbor)
            if known is not None and tentative >= known:
                continue
            self._offer(SearchState(neighbor, tentative, tentative + self.heuristic(neighbor), parent=index))

        if len(self.frontier) > self.max_frontier_size:
            self.max_frontier_size = len(self.frontier)
        return None


class BeamAStar:
    """Bounded A* over a shared, read-only `RoadGraph` towards one destination."""

    def __init__(
        self,
        graph: RoadGraph,
        destination: Vertex,
        *,
        beam_width: int,
        max_steps: int | None = None,
    ):
        if len(graph) == 0:
            raise ConfigurationError("Road graph is empty")
        if destination not in graph:
            raise ConfigurationError(f"Destination {destination!r} is not a vertex of the road graph")
        if int(beam_width) < 1:
            raise ConfigurationError(f"beam_width must be >= 1, got {beam_width}")
        if max_steps is not None and int(max_steps) < 1:
            raise ConfigurationError(f"max_steps must be >= 1 when set, got {max_steps}")
        self.graph = graph
        self.destination = destination
        self.beam_width = int(beam_width)
        self.max_steps = int(max_steps) if max_steps is not None else None

    def search(self, agent: Agent) -> SearchOutcome:
        ctx = SearchContext(agent.vertex, self.destination, beam_width=self.beam_width)
        ctx.seed()
        route: Route | None = None

        while not ctx.frontier.is_empty():
            if self.max_steps is not None and ctx.steps >= self.max_steps:
                ctx.status = SearchStatus.BUDGET_EXCEEDED
                break
            route = ctx.expand()
            if route is not None:
                break
        else:
            ctx.status = SearchStatus.EXHAUSTED

        outcome = SearchOutcome(
            agent=agent,
            status=ctx.status,
            route=route,
            steps=ctx.steps,
            max_frontier_size=ctx.max_frontier_size,
            evictions=ctx.frontier.evictions,
            rejected_inserts=ctx.rejected_inserts,
        )
        logger.debug(
            "Agent %s: status=%s steps=%d max_frontier=%d evictions=%d cost_km=%s",
            agent.id,
            outcome.status.value,
            outcome.steps,
            outcome.max_frontier_size,
            outcome.evictions,
            f"{route.total_cost_km:.6f}" if route else "-",
        )
        return outcome
