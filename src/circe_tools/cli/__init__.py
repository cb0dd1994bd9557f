"""
Command-line interface for circe-tools.

Provides CLI commands via the `circe-tools` or `circe` command:

    circe-tools nets <snapshot>       - List nets with their ports and wires
    circe-tools grab <snapshot>       - Move a selection and reroute its wires
    circe-tools netlist <snapshot>    - Export a SPICE netlist
    circe-tools check <snapshot>      - Report floating nets
    circe-tools config                - View/manage configuration

Examples:
    circe nets amp.yaml --format json
    circe grab amp.yaml --devices R1 --dx 4 -o moved.yaml
    circe netlist amp.yaml -o amp.cir
    circe check amp.yaml
"""

import sys
from typing import List, Optional

from circe_tools.exceptions import CirceToolsError

from .dispatch import dispatch_command
from .parser import create_parser
from .utils import print_error

__all__ = ["main"]


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for circe-tools CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.global_verbose:
        from circe_tools.schematic.logging import enable_verbose

        enable_verbose("DEBUG")

    try:
        return dispatch_command(args)
    except (CirceToolsError, FileNotFoundError, ValueError) as e:
        print_error(e, verbose=args.global_verbose)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
