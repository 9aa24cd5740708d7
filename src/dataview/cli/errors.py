"""
Standardized error handling and exit codes for the dataview CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for dataview CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic error, including remote failures."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Remote request failed",
        ...     reason="HTTP 503 for GET /contacts",
        ...     solution="dataview config  # check remote.base_url",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_config_error(reason: str) -> None:
    """Print error when the configuration cannot be loaded."""
    print_error(
        "Invalid configuration",
        reason=reason,
        solution="dataview config  # inspect the resolved configuration",
    )


def print_remote_error(reason: str) -> None:
    """Print error when a remote operation fails."""
    print_error(
        "Remote operation failed",
        reason=reason,
        solution="Check remote.base_url with: dataview config",
    )
