"""
Road-network graph built from ordered coordinate runs.

Input rows are `(x, y, run_id)` where consecutive rows with the same `run_id`
form one polyline. Every distinct coordinate becomes exactly one `Vertex`; a
coordinate seen again (in the same run or a different one) reuses the existing
vertex, which is how intersections appear. Consecutive rows of a run are linked
by a pair of directed edges, one in each direction.

The graph is built once and then shared read-only by every agent's search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Protocol

from beamroute.core.errors import DegenerateEdgeError
from beamroute.core.geo import Coordinate, haversine_km, same_coordinate

logger = logging.getLogger(__name__)


class RoadRow(Protocol):
    x: float
    y: float
    run_id: int


class Vertex:
    """One distinct coordinate of the road network plus its outgoing edges."""

    __slots__ = ("index", "coordinate", "edges")

    def __init__(self, index: int, coordinate: Coordinate):
        self.index = index
        self.coordinate = coordinate
        # list while building, frozen into a tuple by RoadGraphBuilder.build()
        self.edges: list[Edge] | tuple[Edge, ...] = []

    def __repr__(self) -> str:
        return f"Vertex({self.index}, lon={self.coordinate.lon}, lat={self.coordinate.lat})"

    def distance_km(self, other: Vertex | Coordinate) -> float:
        target = other.coordinate if isinstance(other, Vertex) else other
        return haversine_km(self.coordinate, target)


@dataclass(frozen=True)
class Edge:
    """A directed road segment; cost is the haversine length in kilometres."""

    source: Vertex
    target: Vertex
    cost_km: float = field(init=False)

    def __post_init__(self) -> None:
        if same_coordinate(self.source.coordinate, self.target.coordinate):
            raise DegenerateEdgeError(
                f"'source' and 'target' share coordinate {self.source.coordinate.as_tuple()}"
            )
        object.__setattr__(self, "cost_km", haversine_km(self.source.coordinate, self.target.coordinate))


@dataclass(frozen=True)
class GraphStats:
    records: int
    vertices: int
    edges: int
    intersections: int
    degenerate_skipped: int

    def as_dict(self) -> dict[str, int]:
        return {
            "records": self.records,
            "vertices": self.vertices,
            "edges": self.edges,
            "intersections": self.intersections,
            "degenerate_skipped": self.degenerate_skipped,
        }


class RoadGraph:
    """Immutable view over the vertices produced by `RoadGraphBuilder`."""

    def __init__(self, vertices: list[Vertex], *, by_coordinate: dict[Coordinate, Vertex], stats: GraphStats):
        self._vertices = tuple(vertices)
        self._by_coordinate = dict(by_coordinate)
        self.stats = stats

    @property
    def vertices(self) -> tuple[Vertex, ...]:
        return self._vertices

    @property
    def edge_count(self) -> int:
        return self.stats.edges

    def vertex_at(self, coordinate: Coordinate) -> Vertex | None:
        return self._by_coordinate.get(coordinate)

    def __len__(self) -> int:
        return len(self._vertices)

    def __iter__(self) -> Iterator[Vertex]:
        return iter(self._vertices)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Vertex):
            return self._by_coordinate.get(item.coordinate) is item
        if isinstance(item, Coordinate):
            return item in self._by_coordinate
        return False


class RoadGraphBuilder:
    """Incremental graph construction; call `build()` once all rows are added."""

    def __init__(self) -> None:
        self._vertices: list[Vertex] = []
        self._by_coordinate: dict[Coordinate, Vertex] = {}
        self._previous: Vertex | None = None
        self._previous_run: int | None = None
        self._records = 0
        self._edges = 0
        self._intersections = 0
        self._degenerate = 0
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("RoadGraphBuilder.build() was already called; the graph is immutable")

    def vertex_for(self, coordinate: Coordinate) -> Vertex:
        """Return the vertex for `coordinate`, creating it on first sight."""
        self._check_open()
        existing = self._by_coordinate.get(coordinate)
        if existing is not None:
            return existing
        vertex = Vertex(len(self._vertices), coordinate)
        self._vertices.append(vertex)
        self._by_coordinate[coordinate] = vertex
        return vertex

    def connect(self, a: Vertex, b: Vertex) -> bool:
        """Link `a` and `b` in both directions; returns False for a degenerate pair."""
        self._check_open()
        try:
            forward = Edge(a, b)
            backward = Edge(b, a)
        except DegenerateEdgeError as e:
            self._degenerate += 1
            logger.debug("Skipping degenerate edge: %s", e)
            return False
        a.edges.append(forward)
        b.edges.append(backward)
        self._edges += 2
        return True

    def add_record(self, x: float, y: float, run_id: int) -> Vertex:
        self._check_open()
        self._records += 1
        coordinate = Coordinate(lon=float(x), lat=float(y))
        seen = coordinate in self._by_coordinate
        current = self.vertex_for(coordinate)

        if self._previous is not None and self._previous_run == run_id:
            if seen and current is not self._previous:
                self._intersections += 1
            self.connect(current, self._previous)
        elif seen:
            self._intersections += 1

        self._previous = current
        self._previous_run = run_id
        return current

    def add_records(self, rows: Iterable[RoadRow]) -> RoadGraphBuilder:
        for row in rows:
            self.add_record(row.x, row.y, row.run_id)
        return self

    def build(self) -> RoadGraph:
        self._check_open()
        self._built = True
        for v in self._vertices:
            v.edges = tuple(v.edges)
        stats = GraphStats(
            records=self._records,
            vertices=len(self._vertices),
            edges=self._edges,
            intersections=self._intersections,
            degenerate_skipped=self._degenerate,
        )
        logger.info(
            "Built road graph: records=%d vertices=%d edges=%d intersections=%d degenerate_skipped=%d",
            stats.records,
            stats.vertices,
            stats.edges,
            stats.intersections,
            stats.degenerate_skipped,
        )
        return RoadGraph(self._vertices, by_coordinate=self._by_coordinate, stats=stats)


def build_road_graph(rows: Iterable[RoadRow]) -> RoadGraph:
    """Build an immutable `RoadGraph` from ordered `(x, y, run_id)` rows."""
    return RoadGraphBuilder().add_records(rows).build()
