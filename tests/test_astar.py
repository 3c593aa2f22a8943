import heapq
import math
import random
from dataclasses import dataclass

import pytest

from beamroute.core.errors import ConfigurationError
from beamroute.core.geo import EARTH_RADIUS_KM, Coordinate
from beamroute.graph.road_graph import RoadGraph, Vertex, build_road_graph
from beamroute.search.astar import Agent, BeamAStar, SearchContext, SearchStatus
from beamroute.search.frontier import SearchState

# Degrees of longitude per kilometre along the equator.
KM = 180.0 / (math.pi * EARTH_RADIUS_KM)


@dataclass
class Row:
    x: float
    y: float
    run_id: int


def _diamond() -> RoadGraph:
    # A-B=1, B-C=1, A-D=3, D-C=1 (km), all on the equator.
    a, b, c, d = (0.0, 0.0), (KM, 0.0), (2 * KM, 0.0), (3 * KM, 0.0)
    rows = [Row(*a, 1), Row(*b, 1), Row(*c, 1), Row(*a, 2), Row(*d, 2), Row(*c, 2)]
    return build_road_graph(rows)


def _at(graph: RoadGraph, lon: float, lat: float = 0.0) -> Vertex:
    v = graph.vertex_at(Coordinate(lon, lat))
    assert v is not None
    return v


def _dijkstra(start: Vertex, goal: Vertex) -> float:
    dist = {start: 0.0}
    heap = [(0.0, start.index, start)]
    done = set()
    while heap:
        d, _, v = heapq.heappop(heap)
        if v in done:
            continue
        if v is goal:
            return d
        done.add(v)
        for e in v.edges:
            nd = d + e.cost_km
            if nd < dist.get(e.target, math.inf):
                dist[e.target] = nd
                heapq.heappush(heap, (nd, e.target.index, e.target))
    return math.inf


def test_diamond_prefers_cheaper_branch():
    graph = _diamond()
    a, b, c = _at(graph, 0.0), _at(graph, KM), _at(graph, 2 * KM)
    outcome = BeamAStar(graph, c, beam_width=10).search(Agent(id=1, vertex=a))

    assert outcome.status is SearchStatus.GOAL_FOUND
    assert outcome.route.vertices == (a, b, c)
    assert outcome.route.total_cost_km == pytest.approx(2.0, abs=1e-9)


def test_diamond_with_beam_of_one_is_reproducible():
    graph = _diamond()
    a, b, c = _at(graph, 0.0), _at(graph, KM), _at(graph, 2 * KM)
    solver = BeamAStar(graph, c, beam_width=1)
    first = solver.search(Agent(id=1, vertex=a))
    second = solver.search(Agent(id=1, vertex=a))

    # D (f=4) is evicted by B (f=2) as soon as it is inserted.
    assert first.status is SearchStatus.GOAL_FOUND
    assert first.route.vertices == (a, b, c)
    assert first.evictions == 1
    assert first.max_frontier_size == 1
    assert (second.status, second.route, second.steps, second.evictions) == (
        first.status,
        first.route,
        first.steps,
        first.evictions,
    )


def _dead_end_graph() -> RoadGraph:
    # S -> X is a dead end that looks closer to G than the real road S -> Y -> Z -> G.
    d = 0.01
    rows = [
        Row(0.0, 0.0, 1),
        Row(0.0, d, 1),
        Row(0.0, 0.0, 2),
        Row(d, 0.0, 2),
        Row(d, 2 * d, 2),
        Row(0.0, 2 * d, 2),
    ]
    return build_road_graph(rows)


def test_narrow_beam_can_exhaust_before_the_goal():
    graph = _dead_end_graph()
    start, goal = _at(graph, 0.0, 0.0), _at(graph, 0.0, 0.02)
    narrow = BeamAStar(graph, goal, beam_width=1).search(Agent(id=7, vertex=start))
    wide = BeamAStar(graph, goal, beam_width=10).search(Agent(id=7, vertex=start))

    assert narrow.status is SearchStatus.EXHAUSTED
    assert narrow.route is None
    assert not narrow.reached
    assert wide.status is SearchStatus.GOAL_FOUND
    assert [v.coordinate.as_tuple() for v in wide.route.vertices] == [
        (0.0, 0.0),
        (0.01, 0.0),
        (0.01, 0.02),
        (0.0, 0.02),
    ]


def _jittered_grid(n: int, seed: int) -> RoadGraph:
    rng = random.Random(seed)
    pts = {
        (i, j): (round(i * 0.01 + rng.uniform(-0.003, 0.003), 7), round(j * 0.01 + rng.uniform(-0.003, 0.003), 7))
        for i in range(n)
        for j in range(n)
    }
    rows: list[Row] = []
    run = 0
    for j in range(n):
        run += 1
        rows.extend(Row(*pts[(i, j)], run) for i in range(n))
    for i in range(n):
        run += 1
        rows.extend(Row(*pts[(i, j)], run) for j in range(n))
    for k in range(0, n - 1, 2):
        run += 1
        rows.extend(Row(*pts[(k + t, t)], run) for t in range(n - k))
    return build_road_graph(rows)


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_unbounded_beam_matches_dijkstra(seed):
    graph = _jittered_grid(6, seed)
    vertices = list(graph.vertices)
    rng = random.Random(seed)
    goal = rng.choice(vertices)
    solver = BeamAStar(graph, goal, beam_width=10_000)
    for start in rng.sample(vertices, 10):
        outcome = solver.search(Agent(id=start.index, vertex=start))
        assert outcome.reached
        assert outcome.route.total_cost_km == pytest.approx(_dijkstra(start, goal), abs=1e-9)


@pytest.mark.parametrize("beam_width", [2, 3, 10_000])
def test_route_cost_equals_sum_of_edge_costs(beam_width):
    graph = _jittered_grid(5, 11)
    goal = graph.vertices[-1]
    solver = BeamAStar(graph, goal, beam_width=beam_width)
    for start in graph.vertices[:8]:
        outcome = solver.search(Agent(id=0, vertex=start))
        if not outcome.reached:
            continue
        route = outcome.route
        assert route.vertices[0] is start
        assert route.vertices[-1] is goal
        assert route.edge_cost_sum_km() == pytest.approx(route.total_cost_km, abs=1e-9)


def test_agent_already_at_destination():
    graph = _diamond()
    c = _at(graph, 2 * KM)
    outcome = BeamAStar(graph, c, beam_width=3).search(Agent(id=1, vertex=c))
    assert outcome.reached
    assert outcome.route.vertices == (c,)
    assert outcome.route.total_cost_km == 0.0
    assert outcome.steps == 1


def test_step_budget_stops_the_search():
    graph = _jittered_grid(6, 4)
    start, goal = graph.vertices[0], graph.vertices[-1]
    outcome = BeamAStar(graph, goal, beam_width=100, max_steps=2).search(Agent(id=3, vertex=start))
    assert outcome.status is SearchStatus.BUDGET_EXCEEDED
    assert outcome.steps == 2
    assert outcome.route is None


def test_invalid_solver_configuration():
    graph = _diamond()
    other = _dead_end_graph()
    c = _at(graph, 2 * KM)
    with pytest.raises(ConfigurationError):
        BeamAStar(graph, c, beam_width=0)
    with pytest.raises(ConfigurationError):
        BeamAStar(graph, c, beam_width=5, max_steps=0)
    with pytest.raises(ConfigurationError):
        BeamAStar(graph, other.vertices[0], beam_width=5)


def test_rejected_offer_leaves_scores_untouched():
    graph = _diamond()
    a, b, c, d = _at(graph, 0.0), _at(graph, KM), _at(graph, 2 * KM), _at(graph, 3 * KM)
    ctx = SearchContext(a, c, beam_width=1)
    ctx.seed()

    # Frontier holds A (f=2); anything ranked worse is evicted immediately.
    assert not ctx._offer(SearchState(d, 3.0, 4.0, parent=None))
    assert d not in ctx.g_score

    ctx.g_score[b], ctx.f_score[b] = 10.0, 11.0
    assert not ctx._offer(SearchState(b, 5.0, 6.0, parent=None))
    assert (ctx.g_score[b], ctx.f_score[b]) == (10.0, 11.0)
    assert ctx.rejected_inserts == 2
    assert len(ctx.frontier) == 1


def _readmission_graph() -> tuple[RoadGraph, dict[str, Vertex]]:
    # Positions in km. A is expanded first and reaches X the long way; C then
    # pushes X out of a beam of 2 before B offers the cheaper path to X.
    km = {"S": (0.0, 0.0), "A": (3.0, 0.0), "B": (2.5, 1.0), "C": (3.5, -0.3), "X": (5.0, 2.0), "G": (10.0, 0.0)}
    runs = [(1, "SA"), (2, "AX"), (3, "AC"), (4, "SBXG")]
    rows = [Row(km[name][0] * KM, km[name][1] * KM, run) for run, names in runs for name in names]
    graph = build_road_graph(rows)
    return graph, {name: _at(graph, x * KM, y * KM) for name, (x, y) in km.items()}


def test_evicted_vertex_is_readmitted_by_a_cheaper_path():
    graph, v = _readmission_graph()
    x = v["X"]
    ctx = SearchContext(v["S"], v["G"], beam_width=2)
    ctx.seed()
    ctx.expand()  # S
    ctx.expand()  # A

    assert ctx.g_score[x] == pytest.approx(3.0 + math.sqrt(8.0), abs=1e-6)
    assert x not in ctx.frontier
    assert x not in ctx.closed
    assert ctx.frontier.evictions == 1
    first_g, first_f = ctx.g_score[x], ctx.f_score[x]

    route = None
    while route is None:
        route = ctx.expand()

    assert route.vertices == (v["S"], v["B"], x, v["G"])
    assert ctx.g_score[x] == pytest.approx(2 * math.sqrt(7.25), abs=1e-6)
    assert ctx.g_score[x] < first_g
    assert ctx.f_score[x] < first_f
    assert route.total_cost_km == pytest.approx(_dijkstra(v["S"], v["G"]), abs=1e-9)

    outcome = BeamAStar(graph, v["G"], beam_width=2).search(Agent(id=7, vertex=v["S"]))
    assert outcome.route == route
    assert outcome.rejected_inserts == 0


def test_searches_do_not_share_state():
    graph = _jittered_grid(4, 9)
    goal = graph.vertices[-1]
    solver = BeamAStar(graph, goal, beam_width=4)
    agents = [Agent(id=i, vertex=v) for i, v in enumerate(graph.vertices[:5])]
    first_pass = [solver.search(a) for a in agents]
    second_pass = [solver.search(a) for a in reversed(agents)][::-1]
    assert [(o.status, o.route, o.steps) for o in first_pass] == [(o.status, o.route, o.steps) for o in second_pass]
