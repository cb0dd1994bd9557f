"""
Report floating nets in a schematic snapshot.

A net is floating when it holds a port with nothing connected to it.

Usage:
    circe-tools check <snapshot> [--format json]

Exit Codes:
    0 - No floating nets
    1 - Floating nets found or command failure
"""

import argparse
import json
from typing import List, Optional

from rich.console import Console

from circe_tools.exceptions import CirceToolsError

from .utils import load_session, print_error


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the check command."""
    parser = argparse.ArgumentParser(
        prog="circe-tools check",
        description="Report floating nets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("snapshot", help="Path to snapshot file")
    parser.add_argument("--format", choices=["table", "json"], default=None, help="Output format")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only set the exit code")

    args = parser.parse_args(argv)

    try:
        session = load_session(args.snapshot)
    except (CirceToolsError, FileNotFoundError) as e:
        print_error(e)
        return 1

    fmt = args.format or session.config.defaults.format
    floating = [n for n in session.nets() if n.floating]

    if fmt == "json":
        data = {
            "file": args.snapshot,
            "floating": [n.to_dict() for n in floating],
            "count": len(floating),
        }
        print(json.dumps(data, indent=2))
    elif not args.quiet:
        console = Console()
        if not floating:
            console.print(f"[green]No floating nets in {args.snapshot}[/green]")
        else:
            console.print(f"[red]{len(floating)} floating net(s) in {args.snapshot}[/red]")
            for net in floating:
                ports = ", ".join(f"{ref}.{port}" for ref, port in net.ports) or "wire only"
                console.print(f"  {net.name}: {ports}")

    return 1 if floating else 0
