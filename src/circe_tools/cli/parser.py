"""
Argument parser setup for circe-tools CLI.

The parser is organized into one subparser per command. Each command's
options are forwarded to that command's own ``main(argv)`` by
``dispatch.dispatch_command``.
"""

import argparse

from circe_tools import __version__

__all__ = ["create_parser"]

# Module docstring used as epilog in help
CLI_DOCSTRING = """
Commands operate on schematic snapshot files (.json, .yaml):

    circe-tools nets <snapshot>       - List nets with their ports and wires
    circe-tools grab <snapshot>       - Move a selection and reroute its wires
    circe-tools netlist <snapshot>    - Export a SPICE netlist
    circe-tools check <snapshot>      - Report floating nets
    circe-tools config                - View/manage configuration

Examples:
    circe nets amp.yaml
    circe nets amp.yaml --format json
    circe nets amp.yaml --net n3
    circe grab amp.yaml --devices R1 --dx 4 -o moved.yaml
    circe grab amp.yaml --vertices 7,8 --dy -2 --rotate 90 --in-place
    circe netlist amp.yaml -o amp.cir
    circe check amp.yaml
    circe config --init
"""

FORMATS = ["table", "json"]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="circe-tools",
        description="Schematic connectivity and rerouting toolkit",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=CLI_DOCSTRING,
    )
    parser.add_argument("--version", action="version", version=f"circe-tools {__version__}")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging and show full stack traces on errors",
        dest="global_verbose",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress informational output (for scripting)",
        dest="global_quiet",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_nets_parser(subparsers)
    _add_grab_parser(subparsers)
    _add_netlist_parser(subparsers)
    _add_check_parser(subparsers)
    _add_config_parser(subparsers)

    return parser


def _add_nets_parser(subparsers) -> None:
    """Add nets subcommand parser."""
    nets_parser = subparsers.add_parser("nets", help="List nets in a snapshot")
    nets_parser.add_argument("snapshot", help="Path to snapshot file")
    nets_parser.add_argument("--format", choices=FORMATS, default=None, help="Output format")
    nets_parser.add_argument("--net", help="Show a single net by name")


def _add_grab_parser(subparsers) -> None:
    """Add grab subcommand parser."""
    grab_parser = subparsers.add_parser(
        "grab", help="Move vertices/devices and reroute the wires they cut"
    )
    grab_parser.add_argument("snapshot", help="Path to snapshot file")
    grab_parser.add_argument("--vertices", help="Comma-separated vertex ids to move")
    grab_parser.add_argument("--devices", help="Comma-separated device references to move")
    grab_parser.add_argument("--labels", help="Comma-separated net label ids to move")
    grab_parser.add_argument("--dx", type=int, default=0, help="Horizontal offset in grid units")
    grab_parser.add_argument("--dy", type=int, default=0, help="Vertical offset in grid units")
    grab_parser.add_argument(
        "--rotate",
        type=int,
        default=0,
        choices=[0, 90, 180, 270],
        help="Counter-clockwise rotation in degrees",
    )
    grab_parser.add_argument("--pivot", help="Rotation pivot as X,Y (default: first vertex)")
    output = grab_parser.add_mutually_exclusive_group()
    output.add_argument("-o", "--output", help="Write the result to this file")
    output.add_argument(
        "--in-place", action="store_true", help="Overwrite the input snapshot"
    )
    grab_parser.add_argument("--format", choices=FORMATS, default=None, help="Report format")


def _add_netlist_parser(subparsers) -> None:
    """Add netlist subcommand parser."""
    netlist_parser = subparsers.add_parser("netlist", help="Export a SPICE netlist")
    netlist_parser.add_argument("snapshot", help="Path to snapshot file")
    netlist_parser.add_argument("-o", "--output", help="Output file (default: stdout)")
    netlist_parser.add_argument("--title", help="Netlist title line")


def _add_check_parser(subparsers) -> None:
    """Add check subcommand parser."""
    check_parser = subparsers.add_parser("check", help="Report floating nets")
    check_parser.add_argument("snapshot", help="Path to snapshot file")
    check_parser.add_argument("--format", choices=FORMATS, default=None, help="Output format")


def _add_config_parser(subparsers) -> None:
    """Add config subcommand parser."""
    config_parser = subparsers.add_parser("config", help="View/manage configuration")
    action = config_parser.add_mutually_exclusive_group()
    action.add_argument(
        "--show", action="store_true", help="Show effective configuration with sources"
    )
    action.add_argument(
        "--init", action="store_true", help="Create template config file in current directory"
    )
    action.add_argument("--paths", action="store_true", help="Show config file paths")
    config_parser.add_argument(
        "--user",
        action="store_true",
        help="Use user config (~/.config/circe-tools/config.toml) for --init",
    )
