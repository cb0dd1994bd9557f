"""
List the nets of a schematic snapshot.

Usage:
    circe-tools nets <snapshot> [options]

Examples:
    circe nets amp.yaml
    circe nets amp.yaml --net n2
    circe nets amp.yaml --format json
"""

import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from circe_tools.exceptions import CirceToolsError
from circe_tools.operations.net_ops import NetInfo

from .utils import load_session, print_error


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the nets command."""
    parser = argparse.ArgumentParser(
        prog="circe-tools nets",
        description="List nets in a schematic snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("snapshot", help="Path to snapshot file")
    parser.add_argument("--format", choices=["table", "json"], default=None, help="Output format")
    parser.add_argument("--net", help="Show a single net by name")

    args = parser.parse_args(argv)

    try:
        session = load_session(args.snapshot)
    except (CirceToolsError, FileNotFoundError) as e:
        print_error(e)
        return 1

    fmt = args.format or session.config.defaults.format
    nets = session.nets()

    if args.net:
        matches = [n for n in nets if n.name == args.net]
        if not matches:
            print(f"Error: Net '{args.net}' not found", file=sys.stderr)
            print(f"Available nets: {', '.join(n.name for n in nets)}", file=sys.stderr)
            return 1
        nets = matches

    if fmt == "json":
        print(json.dumps([n.to_dict() for n in nets], indent=2))
    else:
        output_table(nets, args.snapshot)
    return 0


def output_table(nets: List[NetInfo], filename: str) -> None:
    """Print nets as a Rich table."""
    console = Console()
    if not nets:
        console.print(f"No nets in {filename}")
        return

    table = Table(title=f"Nets: {filename}", show_header=True, header_style="bold")
    table.add_column("Net", style="cyan")
    table.add_column("Ports")
    table.add_column("Wires", justify="right")
    table.add_column("Vertices", justify="right")
    table.add_column("Status")

    for net in nets:
        ports = ", ".join(f"{ref}.{port}" for ref, port in net.ports) or "-"
        status = "[red]floating[/red]" if net.floating else "[green]ok[/green]"
        table.add_row(net.name, ports, str(len(net.wires)), str(len(net.vertices)), status)

    console.print(table)
    floating = sum(1 for n in nets if n.floating)
    console.print(f"\n{len(nets)} net(s), {floating} floating")
