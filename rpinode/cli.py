#!/usr/bin/env python3
"""rpinode CLI - Raspberry Pi compute node provisioning."""

import typer
from rich.console import Console

from rpinode.cli_provision_commands import register_provision_commands
from rpinode.cli_status_commands import register_status_commands

app = typer.Typer(
    name="rpinode",
    help="""rpinode - Raspberry Pi compute node provisioning

Strips a fresh Raspberry Pi OS install down to a container-ready node.

Quick start:
  rpinode status                  # What is already in place
  sudo rpinode apply              # Provision this host
  sudo rpinode restore            # Put the original config.txt back
""",
    add_completion=False,
)

console = Console()

register_provision_commands(app, console)
register_status_commands(app, console)

if __name__ == "__main__":
    app()
