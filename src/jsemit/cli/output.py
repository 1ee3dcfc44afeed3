"""Rich console output for the jsemit CLI.

Status messages go to stderr so that emitted code written to stdout can be
piped. NO_COLOR is respected, as is the --no-color flag.
"""

from __future__ import annotations

import os
from typing import Any

from rich.console import Console

_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a stderr Console with the requested color settings.

    Args:
        no_color: If True, disable colored output. Also respects NO_COLOR env var.

    Returns:
        Configured Console instance.
    """
    disabled = no_color or _force_no_color
    return Console(
        stderr=True,
        force_terminal=False if disabled else None,
        no_color=disabled,
        highlight=False,
        soft_wrap=True,
    )


console = create_console()


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with a green checkmark."""
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with a red X.

    The message is printed without markup so that specifiers and file paths
    containing brackets come through verbatim.
    """
    console.print("[red]✗[/red] ", end="")
    console.print(message, markup=False, **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning message with a yellow triangle."""
    console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def set_no_color(no_color: bool) -> None:
    """Replace the module console, enabling or disabling colors."""
    global console
    console = create_console(no_color=no_color)
