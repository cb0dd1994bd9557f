"""Shared utilities for CLI commands."""

from __future__ import annotations

import sys
import traceback
from typing import TYPE_CHECKING, List, Optional

from circe_tools.exceptions import CirceToolsError

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "format_error",
    "get_error_console",
    "load_session",
    "parse_id_list",
    "print_error",
]

# Module-level console for error output, created lazily
_error_console: Console | None = None


def get_error_console() -> Console:
    """Get or create the Rich console for error output.

    The console writes to stderr and is cached for reuse.
    """
    global _error_console
    if _error_console is None:
        from rich.console import Console

        _error_console = Console(stderr=True, force_terminal=None)
    return _error_console


def print_error(
    e: Exception,
    verbose: bool = False,
    use_rich: bool | None = None,
) -> None:
    """
    Print an exception, with Rich formatting on a terminal.

    Args:
        e: The exception to print
        verbose: If True, print the full stack trace instead
        use_rich: Override automatic TTY detection (None = auto-detect)
    """
    console = get_error_console()

    if use_rich is None:
        use_rich = console.is_terminal

    if verbose:
        print(traceback.format_exc(), file=sys.stderr)
        return

    if use_rich and isinstance(e, CirceToolsError):
        console.print(e)
    else:
        print(format_error(e), file=sys.stderr)


def format_error(e: Exception) -> str:
    """Plain-text error line for non-TTY output."""
    if isinstance(e, (CirceToolsError, FileNotFoundError)):
        return f"Error: {e}"
    return f"Error: {type(e).__name__}: {e}"


def parse_id_list(value: Optional[str]) -> List[int]:
    """Parse ``"1,2,5"`` into ``[1, 2, 5]``.

    Raises:
        ValueError: If an item is not an integer
    """
    if not value:
        return []
    ids = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            ids.append(int(item))
        except ValueError:
            raise ValueError(f"Not a vertex id: '{item}'") from None
    return ids


def load_session(path: str, config=None):
    """Open a snapshot file in an EditorSession using the effective config.

    Raises:
        FileNotFoundError: If the file doesn't exist
        LoadError: If the snapshot is invalid
        ConfigError: If a config file is invalid
    """
    from circe_tools.config import Config
    from circe_tools.session import EditorSession

    if config is None:
        config = Config.load()
    return EditorSession.from_file(path, config=config)
