"""Provisioning CLI commands - apply, config, restore."""
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from rpinode.cli_support import (
    build_provisioner,
    handle_cli_error,
    print_info,
    print_success,
    setup_file_logging,
)
from rpinode.core.errors import ProvisionError
from rpinode.core.provisioner import Provisioner, StepResult, check_root

# Module-level console instance (will be set by register function)
console: Console = Console()

PROFILE_HELP = "Profile YAML (default: $RPINODE_PROFILE, ./rpinode.yml, /etc/rpinode/rpinode.yml, built-in)"


def _render_results(results: List[StepResult]) -> None:
    table = Table(title="Provisioning Steps", show_header=True, header_style="bold")
    table.add_column("Step", style="cyan")
    table.add_column("Result")
    table.add_column("Detail", overflow="fold")

    for result in results:
        if result.skipped:
            outcome = "[dim]skipped[/dim]"
        elif result.changed:
            outcome = "[green]applied[/green]"
        else:
            outcome = "[blue]unchanged[/blue]"
        table.add_row(result.name, outcome, result.detail)

    console.print(table)


def apply(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help=PROFILE_HELP),
    skip: Optional[List[str]] = typer.Option(
        None, "--skip", help=f"Step to leave out (repeatable): {', '.join(Provisioner.STEP_NAMES)}"
    ),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tracebacks"),
):
    """Provision this host as a compute node.

    Runs every step in order and stops at the first fatal error. Safe to
    re-run: steps that are already satisfied are skipped.
    """
    setup_file_logging(log_file=log_file, verbose=verbose)

    try:
        provisioner = build_provisioner(profile)
        results = provisioner.run(skip=skip or ())
    except (ProvisionError, ValueError) as e:
        handle_cli_error(e, console, verbose)

    _render_results(results)
    print_success(console, "Script completed successfully!")


def config(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help=PROFILE_HELP),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tracebacks"),
):
    """Reconcile only the boot config.txt against the profile."""
    setup_file_logging(log_file=log_file, verbose=verbose)

    try:
        provisioner = build_provisioner(profile)
        check_root()
        result = provisioner.update_config()
    except (ProvisionError, ValueError) as e:
        handle_cli_error(e, console, verbose)

    print_success(console, f"Boot config reconciled: {result.detail}")


def restore(
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tracebacks"),
):
    """Put the original boot config.txt back from its backup.

    The backup is kept, so a later apply captures nothing new and
    re-applies the managed settings on top of the same original.
    """
    setup_file_logging(log_file=log_file, verbose=verbose)

    try:
        provisioner = build_provisioner()
        check_root()
        restored = provisioner.boot_config.restore()
    except (ProvisionError, ValueError) as e:
        handle_cli_error(e, console, verbose)

    if restored:
        print_success(console, f"Restored {provisioner.config.boot_config_path} from backup")
    else:
        print_info(console, "Boot config has no managed settings; nothing to restore")


def register_provision_commands(app: typer.Typer, shared_console: Console):
    """Register provisioning commands with the main Typer app.

    Args:
        app: Main Typer application
        shared_console: Shared Rich console instance
    """
    global console
    console = shared_console

    app.command()(apply)
    app.command()(config)
    app.command()(restore)
