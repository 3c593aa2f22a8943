"""
Report output helpers.

Used by the CLI to print compact summaries and to hand the JSON payload to a renderer.
"""

from __future__ import annotations

import json
from pathlib import Path

from beamroute.report.route_report import RouteReport


def one_line_summary(report: RouteReport) -> str:
    """Render a compact single-line summary for a report."""
    parts = [f"beam={report.beam_width}", f"routes={len(report.routes)}", f"unreachable={len(report.unreachable)}"]
    best = report.best()
    if best is not None:
        parts.append(f"best=agent {best.agent.id} ({best.route.total_cost_km:.3f} km)")
    return " | ".join(parts)


def render_text(report: RouteReport) -> str:
    lines = [one_line_summary(report)]
    for i, outcome in enumerate(report.routes, start=1):
        lines.append(
            f"{i:>3}. agent {outcome.agent.id}: {outcome.route.total_cost_km:.3f} km"
            f"  vertices={len(outcome.route)} steps={outcome.steps} max_frontier={outcome.max_frontier_size}"
        )
    for outcome in report.unreachable:
        lines.append(f"  -  agent {outcome.agent.id}: unreachable ({outcome.status.value}) steps={outcome.steps}")
    return "\n".join(lines)


def write_report(report: RouteReport, path: str | Path, *, indent: int | None = 2) -> Path:
    """Write the JSON payload, creating parent directories as needed."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = report.to_payload().model_dump(mode="json")
    out.write_text(json.dumps(payload, ensure_ascii=False, indent=indent), encoding="utf-8")
    return out
