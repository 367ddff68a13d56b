"""Shared utilities for rpinode CLI modules."""
from __future__ import annotations

import os
from typing import Optional

import typer
from rich.console import Console

from rpinode.core.config import get_config
from rpinode.core.provisioner import Provisioner
from rpinode.services.command import CommandRunner


def is_mock() -> bool:
    """Return True when CLI runs in mock mode."""
    return os.environ.get("RPINODE_MOCK", "").lower() in ("1", "true")


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands.

    Args:
        log_file: Path to log file (optional)
        verbose: Enable verbose logging
    """
    from rpinode.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def build_provisioner(profile_path: Optional[str] = None) -> Provisioner:
    """Load the active profile and wire a Provisioner for this host.

    Raises:
        ProfileError: Profile file missing or invalid
    """
    from rpinode.config.loader import load_profile

    profile = load_profile(profile_path)
    return Provisioner(get_config(), profile, runner=CommandRunner(mock=is_mock()))


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Handle CLI errors with consistent formatting.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")
