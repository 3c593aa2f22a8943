"""
Capacity-bounded open set for beam A*.

`BoundedFrontier` keeps at most `capacity` search states ranked by
`(f_cost, sequence)`, where `sequence` is a per-frontier insertion counter.
Among equal f-costs the earlier insertion ranks better, so the most recent one
is evicted first. Eviction outcomes are therefore reproducible run to run.

Three indexes are kept in sync:
- a min-heap for `pop_best`,
- a max-heap for evicting the worst entry,
- a dict `vertex -> entry` for membership and removal by identity.

Heaps use lazy deletion: removed entries are flagged dead and skipped when
they reach the top. They are rebuilt once dead entries outnumber live ones.
"""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field

from beamroute.core.errors import ConfigurationError
from beamroute.graph.road_graph import Vertex

_COMPACT_SLACK = 32


@dataclass(frozen=True)
class SearchState:
    """A frontier candidate. Equality and hashing use the vertex only."""

    vertex: Vertex
    g_cost: float = field(compare=False)
    f_cost: float = field(compare=False)
    parent: int | None = field(default=None, compare=False)  # index into the search arena


class _Entry:
    __slots__ = ("state", "seq", "alive")

    def __init__(self, state: SearchState, seq: int):
        self.state = state
        self.seq = seq
        self.alive = True


class BoundedFrontier:
    def __init__(self, capacity: int):
        if int(capacity) < 1:
            raise ConfigurationError(f"Frontier capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._seq = itertools.count()
        self._pushes = itertools.count()
        self._index: dict[Vertex, _Entry] = {}
        self._best: list[tuple[float, int, int, _Entry]] = []
        self._worst: list[tuple[float, int, int, _Entry]] = []
        self.evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._index)

    def size(self) -> int:
        return len(self._index)

    def is_empty(self) -> bool:
        return not self._index

    def contains(self, vertex: Vertex) -> bool:
        return vertex in self._index

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._index

    def get(self, vertex: Vertex) -> SearchState | None:
        entry = self._index.get(vertex)
        return entry.state if entry is not None else None

    def clear(self) -> None:
        self._index.clear()
        self._best.clear()
        self._worst.clear()

    def _push(self, entry: _Entry) -> None:
        self._index[entry.state.vertex] = entry
        f = entry.state.f_cost
        # push id separates a restored entry from its own dead copy
        push_id = next(self._pushes)
        heapq.heappush(self._best, (f, entry.seq, push_id, entry))
        heapq.heappush(self._worst, (-f, -entry.seq, push_id, entry))

    def _discard(self, entry: _Entry) -> None:
        entry.alive = False
        del self._index[entry.state.vertex]
        self._maybe_compact()

    def _maybe_compact(self) -> None:
        live = len(self._index)
        if len(self._best) > 2 * live + _COMPACT_SLACK:
            self._best = [item for item in self._best if item[3].alive]
            heapq.heapify(self._best)
        if len(self._worst) > 2 * live + _COMPACT_SLACK:
            self._worst = [item for item in self._worst if item[3].alive]
            heapq.heapify(self._worst)

    @staticmethod
    def _top(heap: list[tuple[float, int, int, _Entry]]) -> _Entry | None:
        while heap and not heap[0][3].alive:
            heapq.heappop(heap)
        return heap[0][3] if heap else None

    def insert(self, state: SearchState) -> bool:
        """Add `state`; False if its vertex is already present or it was evicted at once."""
        if state.vertex in self._index:
            return False
        entry = _Entry(state, next(self._seq))
        self._push(entry)
        if len(self._index) > self._capacity:
            worst = self._top(self._worst)
            if worst is None:
                raise RuntimeError("frontier index and heaps are out of sync")
            self._discard(worst)
            self.evictions += 1
            if worst is entry:
                return False
        return True

    def decrease_key(self, state: SearchState) -> bool:
        """Replace the entry for `state.vertex`; the old entry is kept if reinsertion fails."""
        old = self._index.get(state.vertex)
        if old is None:
            raise KeyError(state.vertex)
        self._discard(old)
        if self.insert(state):
            return True
        # Not reached while the old entry is discarded first: the insert cannot overflow.
        restored = _Entry(old.state, old.seq)
        self._push(restored)
        return False

    def peek_best(self) -> SearchState | None:
        entry = self._top(self._best)
        return entry.state if entry is not None else None

    def pop_best(self) -> SearchState:
        entry = self._top(self._best)
        if entry is None:
            raise IndexError("pop_best() from an empty frontier")
        heapq.heappop(self._best)
        self._discard(entry)
        return entry.state

    def states(self) -> list[SearchState]:
        """Live states in rank order (best first)."""
        entries = sorted(self._index.values(), key=lambda e: (e.state.f_cost, e.seq))
        return [e.state for e in entries]
