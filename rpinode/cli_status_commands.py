"""Read-only CLI commands - status, version."""
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from rpinode import __version__
from rpinode.cli_support import build_provisioner, handle_cli_error, print_success, print_warning
from rpinode.core.errors import ProvisionError

# Module-level console instance (will be set by register function)
console: Console = Console()


def status(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="Profile YAML to compare against"),
):
    """Show which provisioning targets this host already satisfies.

    Does not change anything and does not need root.
    """
    try:
        provisioner = build_provisioner(profile)
        checks = provisioner.status()
    except (ProvisionError, ValueError) as e:
        handle_cli_error(e, console)

    table = Table(title="Node Status", show_header=True, header_style="bold")
    table.add_column("Check", style="cyan")
    table.add_column("State")
    table.add_column("Detail", overflow="fold")

    for check in checks:
        state = "[green]ok[/green]" if check.ok else "[yellow]pending[/yellow]"
        table.add_row(check.label, state, check.detail)

    console.print(table)

    pending = [c for c in checks if not c.ok]
    if pending:
        print_warning(console, f"{len(pending)} target(s) pending. Run 'rpinode apply' as root.")
    else:
        print_success(console, "Host matches the compute node profile")


def version():
    """Show rpinode version."""
    console.print(f"rpinode v{__version__}")


def register_status_commands(app: typer.Typer, shared_console: Console):
    """Register read-only commands with the main Typer app."""
    global console
    console = shared_console

    app.command()(status)
    app.command()(version)
