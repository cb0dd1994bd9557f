"""
Config command for circe-tools CLI.

Usage:
    circe-tools config --show          Show effective configuration with sources
    circe-tools config --init          Create template config file
    circe-tools config --init --user   Create the user-level config file
    circe-tools config --paths         Show config file paths
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from circe_tools.config import (
    CONFIG_FILENAMES,
    USER_CONFIG_PATH,
    Config,
    ConfigError,
    generate_template,
    get_config_paths,
)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for config command."""
    parser = argparse.ArgumentParser(
        prog="circe-tools config",
        description="Manage circe-tools configuration",
    )
    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument(
        "--show", action="store_true", help="Show effective configuration with sources"
    )
    action_group.add_argument(
        "--init", action="store_true", help="Create template config file in current directory"
    )
    action_group.add_argument("--paths", action="store_true", help="Show config file paths")
    parser.add_argument(
        "--user",
        action="store_true",
        help="Use user config (~/.config/circe-tools/config.toml) for --init",
    )

    args = parser.parse_args(argv)

    try:
        if args.init:
            return _init_config(args.user)
        elif args.paths:
            return _show_paths()
        return _show_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _show_config() -> int:
    """Show effective configuration with sources."""
    config = Config.load()

    print("# Effective circe-tools configuration")
    for section, values in config.to_dict().items():
        print()
        print(f"[{section}]")
        for key, value in values.items():
            _print_value(key, value, config.get_source(f"{section}.{key}"))
    return 0


def _print_value(key: str, value, source: str) -> None:
    """Print a config value with its source."""
    if isinstance(value, str):
        formatted = f'"{value}"'
    elif isinstance(value, bool):
        formatted = "true" if value else "false"
    elif value is None:
        formatted = "# not set"
    else:
        formatted = str(value)

    source_display = Path(source).name if source != "default" else source
    print(f"{key} = {formatted}  # from: {source_display}")


def _init_config(user: bool) -> int:
    """Write the template config file, refusing to overwrite."""
    path = USER_CONFIG_PATH if user else Path.cwd() / CONFIG_FILENAMES[0]
    if path.exists():
        print(f"Error: Config file already exists: {path}", file=sys.stderr)
        return 1

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generate_template(), encoding="utf-8")
    print(f"Created config file: {path}")
    return 0


def _show_paths() -> int:
    """Show config file paths."""
    paths = get_config_paths()

    print(f"User config: {USER_CONFIG_PATH}")
    print("  Status: exists" if paths["user"] else "  Status: not found")
    print()
    print(f"Project config search: {', '.join(CONFIG_FILENAMES)}")
    if paths["project"]:
        print(f"  Found: {paths['project']}")
    else:
        print("  Status: not found")
    return 0
