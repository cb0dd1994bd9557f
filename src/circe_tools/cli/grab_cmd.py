"""
Move part of a schematic and reroute the wires it cuts.

The selection is moved as one grab: wires that crossed the selection
boundary are deleted, redundant wire points on the far side are pruned, and
new orthogonal wires reconnect each moved vertex to its original net.
Connections that cannot be rerouted are reported and left floating.

Usage:
    circe-tools grab <snapshot> [--vertices IDS] [--devices REFS] [--labels IDS]
                     [--dx N] [--dy N] [--rotate DEG] [--pivot X,Y]
                     [-o OUTPUT | --in-place]

Without -o or --in-place the grab is planned and reported but not saved.

Examples:
    circe grab amp.yaml --devices R1 --dx 4 -o moved.yaml
    circe grab amp.yaml --vertices 7,8 --dy -2 --in-place
    circe grab amp.yaml --devices M1 --rotate 90 --format json
"""

import argparse
import json
from typing import List, Optional

from rich.console import Console

from circe_tools.exceptions import CirceToolsError
from circe_tools.router import GrabResult

from .utils import load_session, parse_id_list, print_error


def _parse_pivot(value: Optional[str]):
    if not value:
        return None
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 2:
        raise ValueError(f"Pivot must be X,Y, got '{value}'")
    return (int(parts[0]), int(parts[1]))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the grab command."""
    parser = argparse.ArgumentParser(
        prog="circe-tools grab",
        description="Move vertices/devices and reroute the wires they cut",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("snapshot", help="Path to snapshot file")
    parser.add_argument("--vertices", help="Comma-separated vertex ids to move")
    parser.add_argument("--devices", help="Comma-separated device references to move")
    parser.add_argument("--labels", help="Comma-separated net label ids to move")
    parser.add_argument("--dx", type=int, default=0, help="Horizontal offset in grid units")
    parser.add_argument("--dy", type=int, default=0, help="Vertical offset in grid units")
    parser.add_argument(
        "--rotate", type=int, default=0, choices=[0, 90, 180, 270], help="Rotation in degrees"
    )
    parser.add_argument("--pivot", help="Rotation pivot as X,Y")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("-o", "--output", help="Write the result to this file")
    output.add_argument("--in-place", action="store_true", help="Overwrite the input snapshot")
    parser.add_argument("--format", choices=["table", "json"], default=None, help="Report format")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress the report")

    args = parser.parse_args(argv)

    try:
        vertex_ids = parse_id_list(args.vertices)
        devices = [d.strip() for d in (args.devices or "").split(",") if d.strip()]
        labels = parse_id_list(args.labels)
        pivot = _parse_pivot(args.pivot)

        session = load_session(args.snapshot)
        session.begin_grab(vertex_ids, devices, pivot=pivot, labels=labels)
        session.drag(args.dx, args.dy, rotation=args.rotate)
        result = session.commit_grab()

        destination = args.snapshot if args.in_place else args.output
        if destination:
            session.save(destination)
    except (CirceToolsError, FileNotFoundError, ValueError) as e:
        print_error(e)
        return 1

    fmt = args.format or session.config.defaults.format
    if fmt == "json":
        data = result.to_dict()
        data["saved_to"] = destination
        print(json.dumps(data, indent=2))
    elif not args.quiet:
        output_report(result, destination)
    return 0


def output_report(result: GrabResult, destination: Optional[str]) -> None:
    """Summarize a committed grab."""
    console = Console()
    if result.command.is_empty:
        console.print("Nothing moved")
        return

    console.print(
        f"[bold]Grab:[/bold] {len(result.command)} step(s), "
        f"{len(result.routed)} rerouted, {len(result.pruned)} pruned"
    )
    for path in result.routed:
        points = " -> ".join(f"({x}, {y})" for x, y in path.waypoints)
        console.print(f"  {path.start} -> {path.goal}: {points}")
    for failure in result.failures:
        console.print(
            f"  [red]unrouted[/red] vertex {failure.start} ({failure.reason.value}); "
            "net left floating"
        )
    if destination:
        console.print(f"Saved to {destination}")
    else:
        console.print("[dim]Not saved (use -o or --in-place)[/dim]")
