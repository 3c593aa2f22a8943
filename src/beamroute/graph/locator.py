"""
Snap arbitrary coordinates onto the road graph.

Agents and the destination are given as free coordinates; searches run between
graph vertices, so each one is moved to its nearest vertex first.
"""

from __future__ import annotations

from beamroute.core.errors import ConfigurationError
from beamroute.core.geo import Coordinate, haversine_km
from beamroute.graph.road_graph import RoadGraph, Vertex


class NearestVertexLocator:
    """Full scan over the graph's vertices in creation order.

    Ties keep the first vertex encountered. The returned vertex is the graph's
    own object, so its coordinate can be used for identity lookups later on.
    """

    def __init__(self, graph: RoadGraph):
        if len(graph) == 0:
            raise ConfigurationError("Cannot locate vertices on an empty road graph")
        self._graph = graph

    def snap(self, coordinate: Coordinate) -> tuple[Vertex, float]:
        """Return the nearest vertex and its distance in kilometres."""
        best: Vertex | None = None
        best_km = float("inf")
        for vertex in self._graph.vertices:
            d = haversine_km(vertex.coordinate, coordinate)
            if d < best_km:
                best, best_km = vertex, d
        if best is None:
            # Only reachable when every distance is NaN.
            raise ConfigurationError(f"No vertex is comparable with coordinate {coordinate.as_tuple()}")
        return best, best_km

    def nearest(self, coordinate: Coordinate) -> Vertex:
        return self.snap(coordinate)[0]

    def nearest_coordinate(self, coordinate: Coordinate) -> Coordinate:
        return self.snap(coordinate)[0].coordinate
