"""CLI error handling for jsemit.

Maps jsemit and pydantic exceptions to user-facing messages and exit codes.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, NoReturn

import click
from pydantic import ValidationError as PydanticValidationError

from jsemit.cli.output import error
from jsemit.errors import EmitError, EngineNotFoundError

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails


# Exit codes following sysexits.h convention
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Bad options, unresolvable modules, engine failures
EXIT_SYSTEM_ERROR = 2  # Missing engine, unreadable config, write failure


class CLIError(click.ClickException):
    """CLI-specific exception with exit code support.

    Attributes:
        message: User-facing error message.
        exit_code: Exit code for the CLI (default: 1).
    """

    def __init__(self, message: str, exit_code: int = EXIT_USER_ERROR) -> None:
        """Initialize CLIError.

        Args:
            message: User-facing error message.
            exit_code: Exit code for the CLI.
        """
        super().__init__(message)
        self.exit_code = exit_code


def format_pydantic_error(err: PydanticValidationError) -> str:
    """Format a pydantic validation error into a user-friendly message.

    Example:
        >>> format_pydantic_error(err)
        "Validation failed:\\n  - compilerOptions.jsx: Input should be a valid string"
    """
    errors: list[ErrorDetails] = err.errors()
    lines = ["Validation failed:"]

    for e in errors:
        loc = ".".join(str(x) for x in e["loc"])
        lines.append(f"  - {loc}: {e['msg']}")

    return "\n".join(lines)


def to_cli_error(err: Exception) -> CLIError:
    """Translate an exception raised while emitting into a CLIError.

    Args:
        err: The exception raised by bundle() or transpile().

    Returns:
        A CLIError carrying the message and exit code to report.
    """
    if isinstance(err, PydanticValidationError):
        return CLIError(format_pydantic_error(err))
    if isinstance(err, EngineNotFoundError):
        return CLIError(str(err), exit_code=EXIT_SYSTEM_ERROR)
    if isinstance(err, EmitError):
        prefix = f"{type(err).__name__}"
        if err.stage:
            prefix = f"{prefix} while {err.stage}"
        return CLIError(f"{prefix}: {err}")
    return CLIError(f"Emit failed: {err}")


def exit_with_error(message: str, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Exit the CLI with an error message.

    Every CLIError a command raises ends up here, printed unwrapped to stderr.

    Args:
        message: Error message to display.
        exit_code: Exit code for the CLI.
    """
    error(message)
    sys.exit(exit_code)
