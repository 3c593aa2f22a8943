"""
Delimited record loader.

Road, agent and destination inputs are small CSV files:
- roads: `x, y, run_id` (one row per polyline point, in order)
- agents: `x, y, id`
- destination: `x, y` (if several rows are present, the last one wins)

Rows are validated into the Pydantic records from `beamroute.domain.models`.
Any row that does not parse raises `MalformedRecordError` with its file and line,
so bad input is rejected before the road graph is built.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterator, TypeVar

from pydantic import BaseModel, ValidationError

from beamroute.core.env import resolve_project_path
from beamroute.core.errors import ConfigurationError, MalformedRecordError
from beamroute.domain.models import AgentRecord, DestinationRecord, RoadRecord

R = TypeVar("R", bound=BaseModel)

_ROAD_FIELDS = ("x", "y", "run_id")
_AGENT_FIELDS = ("x", "y", "id")
_DESTINATION_FIELDS = ("x", "y")


def _iter_rows(path: Path, *, delimiter: str, has_header: bool) -> Iterator[tuple[int, list[str]]]:
    with path.open(newline="", encoding="utf-8-sig") as fh:
        reader = csv.reader(fh, delimiter=delimiter)
        for row in reader:
            if has_header and reader.line_num == 1:
                continue
            cells = [c.strip() for c in row]
            if not any(cells):
                continue
            yield reader.line_num, cells


def _load(
    path: str | Path,
    model: type[R],
    fields: tuple[str, ...],
    *,
    delimiter: str,
    has_header: bool,
) -> list[R]:
    resolved = resolve_project_path(path)
    out: list[R] = []
    for line, cells in _iter_rows(resolved, delimiter=delimiter, has_header=has_header):
        if len(cells) < len(fields):
            raise MalformedRecordError(
                f"expected {len(fields)} columns ({', '.join(fields)}), got {len(cells)}",
                path=str(resolved),
                line=line,
            )
        try:
            out.append(model.model_validate(dict(zip(fields, cells))))
        except ValidationError as e:
            raise MalformedRecordError(
                "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()),
                path=str(resolved),
                line=line,
            ) from e
    return out


def load_road_records(path: str | Path, *, delimiter: str = ",", has_header: bool = True) -> list[RoadRecord]:
    """Load ordered road polyline points."""
    return _load(path, RoadRecord, _ROAD_FIELDS, delimiter=delimiter, has_header=has_header)


def load_agent_records(path: str | Path, *, delimiter: str = ",", has_header: bool = True) -> list[AgentRecord]:
    return _load(path, AgentRecord, _AGENT_FIELDS, delimiter=delimiter, has_header=has_header)


def load_destination_record(
    path: str | Path, *, delimiter: str = ",", has_header: bool = True
) -> DestinationRecord:
    """Load the destination; the last data row is used when several are present."""
    records = _load(path, DestinationRecord, _DESTINATION_FIELDS, delimiter=delimiter, has_header=has_header)
    if not records:
        raise ConfigurationError(f"Destination file {path} contains no records")
    return records[-1]
