"""
BeamRoute CLI entrypoint.

Intended for local runs over CSV inputs. It delegates all routing logic to
`beamroute.planner.plan.plan_from_records`.
"""

from __future__ import annotations

import argparse
import json
import time
from typing import Any

from beamroute.config.settings import get_settings
from beamroute.core.env import resolve_project_path
from beamroute.core.logging import configure_logging
from beamroute.graph.road_graph import build_road_graph
from beamroute.ingestion.records import load_agent_records, load_destination_record, load_road_records
from beamroute.planner.plan import plan_from_records
from beamroute.report.export import render_text, write_report


def _search_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Collect `--beam-width/--max-steps/--workers` into a settings override payload."""
    search: dict[str, Any] = {}
    if args.beam_width is not None:
        search["beam_width"] = int(args.beam_width)
    if args.max_steps is not None:
        search["max_steps"] = int(args.max_steps)
    if args.workers is not None:
        search["workers"] = int(args.workers)
    return {"search": search} if search else {}


def _cmd_route(args: argparse.Namespace) -> int:
    """Handle the `route` subcommand."""
    settings = get_settings()
    data = settings.data
    delimiter = args.delimiter or data.delimiter

    t0 = time.perf_counter()
    roads = load_road_records(args.roads or data.roads_path, delimiter=delimiter, has_header=data.has_header)
    agents = load_agent_records(args.agents or data.agents_path, delimiter=delimiter, has_header=data.has_header)
    destination = load_destination_record(
        args.destination or data.destination_path, delimiter=delimiter, has_header=data.has_header
    )
    t_load = time.perf_counter()

    report = plan_from_records(roads, agents, destination, settings=settings, settings_overrides=_search_overrides(args))

    output = None if args.no_output else (args.output or settings.output.report_path)
    if output:
        write_report(report, resolve_project_path(output), indent=settings.output.indent)
    t_write = time.perf_counter()

    if args.json:
        print(json.dumps(report.to_payload().model_dump(mode="json"), ensure_ascii=False, indent=settings.output.indent))
        return 0

    print(render_text(report))
    if output:
        print(f"Report written to: {output}")
    print(f"Loading\t\t: {t_load - t0:.3f}")
    print(f"Preprocessing\t: {report.meta.get('preprocessing_seconds', 0.0):.3f}")
    print(f"A* search\t: {report.meta.get('search_seconds', 0.0):.3f}")
    print(f"Total time\t: {t_write - t0:.3f}")
    return 0


def _cmd_graph_info(args: argparse.Namespace) -> int:
    settings = get_settings()
    roads = load_road_records(
        args.roads or settings.data.roads_path,
        delimiter=args.delimiter or settings.data.delimiter,
        has_header=settings.data.has_header,
    )
    graph = build_road_graph(roads)
    print(json.dumps(graph.stats.as_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the BeamRoute CLI."""
    parser = argparse.ArgumentParser(prog="beamroute")
    parser.add_argument("--log-level", default=None, help="Override app.log_level (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="command", required=True)

    route = sub.add_parser("route", help="Route every agent to the destination with beam A*.")
    route.add_argument("--roads", default=None, help="CSV of x,y,run_id rows (defaults to data.roads_path)")
    route.add_argument("--agents", default=None, help="CSV of x,y,id rows (defaults to data.agents_path)")
    route.add_argument("--destination", default=None, help="CSV with one x,y row (defaults to data.destination_path)")
    route.add_argument("--delimiter", default=None)
    route.add_argument("--beam-width", type=int, default=None, help="Open-set capacity (>= 1)")
    route.add_argument("--max-steps", type=int, default=None, help="Per-agent expansion budget")
    route.add_argument("--workers", type=int, default=None, help="Parallel agent searches")
    route.add_argument("--output", default=None, help="Write the JSON report here (defaults to output.report_path)")
    route.add_argument("--no-output", action="store_true", help="Do not write the JSON report")
    route.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    route.set_defaults(func=_cmd_route)

    info = sub.add_parser("graph-info", help="Build the road graph and print its statistics.")
    info.add_argument("--roads", default=None)
    info.add_argument("--delimiter", default=None)
    info.set_defaults(func=_cmd_graph_info)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m beamroute.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
