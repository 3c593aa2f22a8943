"""
Error kinds shared across BeamRoute.

Only two conditions are faults in the usual sense:
- `MalformedRecordError`: raised by the record loader, never inside the core.
- `ConfigurationError`: invalid setup detected before any search starts.

`DegenerateEdgeError` is raised by `Edge` and recovered by the graph builder.
A frontier rejecting a state because of beam width, or an agent that cannot
reach the destination, are normal outcomes and are returned as values.
"""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for BeamRoute errors."""


class ConfigurationError(RoutingError, ValueError):
    """Fatal, run-aborting configuration problem (empty graph, bad beam width, ...)."""


class DegenerateEdgeError(RoutingError):
    """An edge was requested between two vertices with equal coordinates."""


class MalformedRecordError(RoutingError, ValueError):
    """An input row could not be parsed into a record."""

    def __init__(self, message: str, *, path: str | None = None, line: int | None = None):
        self.path = path
        self.line = line
        where = ""
        if path is not None:
            where = f"{path}:{line}: " if line is not None else f"{path}: "
        super().__init__(f"{where}{message}")
