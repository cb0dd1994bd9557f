"""
Export a SPICE netlist from a schematic snapshot.

Usage:
    circe-tools netlist <snapshot> [-o output.cir] [--title TEXT]
"""

import argparse
from typing import List, Optional

from circe_tools.exceptions import CirceToolsError
from circe_tools.operations.netlist import write_netlist

from .utils import load_session, print_error


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the netlist command."""
    parser = argparse.ArgumentParser(
        prog="circe-tools netlist",
        description="Export a SPICE netlist",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("snapshot", help="Path to snapshot file")
    parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    parser.add_argument("--title", help="Netlist title line")

    args = parser.parse_args(argv)

    try:
        session = load_session(args.snapshot)
    except (CirceToolsError, FileNotFoundError) as e:
        print_error(e)
        return 1

    if args.title:
        session.config.netlist.title = args.title

    if args.output:
        netlist = session.config.netlist
        path = write_netlist(session.graph, args.output, netlist.title, netlist.ground_net)
        print(f"Wrote netlist to {path}")
    else:
        print(session.netlist(), end="")
    return 0
