"""
Configuration file support for circe-tools.

Provides hierarchical configuration loading from:
1. Project config: .circe-tools.toml or circe-tools.toml in project root
2. User config: ~/.config/circe-tools/config.toml

CLI arguments override config file values, and project config overrides user config.
"""

import sys
import warnings
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .exceptions import CirceToolsError

# Config file names to search for in project directories
CONFIG_FILENAMES = [".circe-tools.toml", "circe-tools.toml"]

# User-level config path
USER_CONFIG_PATH = Path.home() / ".config" / "circe-tools" / "config.toml"

# All known config keys for validation
KNOWN_KEYS = {
    "defaults": {"format", "verbose", "quiet"},
    "routing": {"margin", "max_expansions", "background"},
    "history": {"max_depth", "validate_invariants"},
    "netlist": {"title", "ground_net"},
}

OUTPUT_FORMATS = ("table", "json")


@dataclass
class DefaultsConfig:
    """Default options for CLI commands."""

    format: str = "table"
    verbose: bool = False
    quiet: bool = False


@dataclass
class RoutingConfig:
    """Grab rerouting configuration."""

    margin: int = 8
    max_expansions: int = 200_000
    background: bool = False


@dataclass
class HistoryConfig:
    """Undo/redo configuration."""

    max_depth: int = 0
    validate_invariants: bool = False


@dataclass
class NetlistConfig:
    """Netlist export configuration."""

    title: Optional[str] = None
    ground_net: str = "0"


@dataclass
class Config:
    """Merged configuration from all sources."""

    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    routing: RoutingConfig = field(default_factory=RoutingConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    netlist: NetlistConfig = field(default_factory=NetlistConfig)

    # Track which file each setting came from (for --show)
    _sources: dict = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, start_dir: Optional[Path] = None) -> "Config":
        """
        Load configuration with precedence: project > user > defaults.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Merged configuration object

        Raises:
            ConfigError: If a config file is not valid TOML or has bad values
        """
        if start_dir is None:
            start_dir = Path.cwd()

        config = cls()
        sources: Dict[str, str] = {}

        # Load user config first (lower precedence)
        if USER_CONFIG_PATH.exists():
            user_data = _load_toml_file(USER_CONFIG_PATH)
            _merge_config(config, user_data, str(USER_CONFIG_PATH), sources)

        # Load project config (higher precedence)
        project_config = _find_project_config(start_dir)
        if project_config:
            project_data = _load_toml_file(project_config)
            _merge_config(config, project_data, str(project_config), sources)

        config._sources = sources
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "Config":
        """Build a config from already-parsed TOML data."""
        config = cls()
        _merge_config(config, data, source, config._sources)
        return config

    def get_source(self, key: str) -> str:
        """Get the source file for a config key."""
        return self._sources.get(key, "default")

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Current values by section, for display."""
        result = {}
        for section in KNOWN_KEYS:
            values = getattr(self, section)
            result[section] = {f.name: getattr(values, f.name) for f in fields(values)}
        return result


class ConfigError(CirceToolsError):
    """Configuration-related errors."""

    pass


def _find_project_config(start_dir: Path) -> Optional[Path]:
    """
    Find project config by walking up the directory tree.

    Stops at .git directory or filesystem root.

    Args:
        start_dir: Directory to start searching from

    Returns:
        Path to config file if found, None otherwise
    """
    current = start_dir.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        # Stop at .git directory (project root)
        if (current / ".git").exists():
            break

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _load_toml_file(path: Path) -> Dict[str, Any]:
    """
    Load a TOML file.

    Raises:
        ConfigError: If TOML is invalid or the file cannot be read
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _check_type(section: str, key: str, value: Any, default: Any, source: str) -> None:
    """Reject values whose type does not match the field's default."""
    if default is None:
        expected: tuple = (str,)
    elif isinstance(default, bool):
        expected = (bool,)
    elif isinstance(default, int):
        expected = (int,)
    else:
        expected = (type(default),)

    # bool is an int subclass; do not accept it for integer settings
    if isinstance(value, bool) and bool not in expected:
        ok = False
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ConfigError(
            f"Config key '{section}.{key}' must be {expected[0].__name__}, "
            f"got {type(value).__name__}",
            context={"file": source, "value": value},
        )


def _merge_config(
    config: Config, data: Dict[str, Any], source: str, sources: Dict[str, str]
) -> None:
    """
    Merge loaded config data into Config object.

    Args:
        config: Config object to update
        data: Raw config data from TOML
        source: Source file path (for tracking)
        sources: Dict to update with source info
    """
    # Warn about unknown top-level keys
    for key in data:
        if key not in KNOWN_KEYS:
            warnings.warn(f"Unknown config key '{key}' in {source}", stacklevel=3)

    for section, known in KNOWN_KEYS.items():
        if section not in data:
            continue
        section_data = data[section]
        if not isinstance(section_data, dict):
            raise ConfigError(
                f"Config section '{section}' must be a table", context={"file": source}
            )
        _warn_unknown_keys(section_data, known, section, source)

        target = getattr(config, section)
        defaults = type(target)()
        for key in sorted(known):
            if key not in section_data:
                continue
            value = section_data[key]
            _check_type(section, key, value, getattr(defaults, key), source)
            setattr(target, key, value)
            sources[f"{section}.{key}"] = source

    if config.defaults.format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"Unknown output format '{config.defaults.format}'",
            context={"file": source},
            suggestions=[f"Use one of: {', '.join(OUTPUT_FORMATS)}"],
        )
    for key in ("margin", "max_expansions"):
        if getattr(config.routing, key) < 1:
            raise ConfigError(
                f"Config key 'routing.{key}' must be positive", context={"file": source}
            )
    if config.history.max_depth < 0:
        raise ConfigError("Config key 'history.max_depth' must be >= 0", context={"file": source})


def _warn_unknown_keys(data: Dict[str, Any], known: set, section: str, source: str) -> None:
    """Warn about unknown keys in a config section."""
    for key in data:
        if key not in known:
            warnings.warn(f"Unknown config key '{section}.{key}' in {source}", stacklevel=4)


def generate_template() -> str:
    """
    Generate a template config file with all options documented.

    Returns:
        Template TOML string
    """
    return """# circe-tools configuration file
# Place as .circe-tools.toml in project root or ~/.config/circe-tools/config.toml for user defaults

[defaults]
# Output format: table, json
# format = "table"

# Enable verbose output by default
# verbose = false

# Enable quiet mode by default
# quiet = false

[routing]
# Free grid cells added around the canvas bounding box for rerouting
# margin = 8

# Search-node budget per routing job; exhausting it leaves the net floating
# max_expansions = 200000

# Plan grabs on a background worker thread
# background = false

[history]
# Maximum number of undo steps (0 = unlimited)
# max_depth = 0

# Check graph invariants after every edit, undo and redo
# validate_invariants = false

[netlist]
# First line of exported SPICE netlists
# title = "Netlist Created by Circe"

# Name of the net connected to ground symbols
# ground_net = "0"
"""


def get_config_paths() -> Dict[str, Optional[Path]]:
    """
    Get paths to config files that would be loaded.

    Returns:
        Dict with 'user' and 'project' keys
    """
    project_config = _find_project_config(Path.cwd())

    return {
        "user": USER_CONFIG_PATH if USER_CONFIG_PATH.exists() else None,
        "project": project_config,
    }
