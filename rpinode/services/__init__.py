"""Capabilities wrapping the host's package, service and account tools."""
from rpinode.services.accounts import AccountManager
from rpinode.services.apt import AptManager
from rpinode.services.command import CommandError, CommandResult, CommandRunner
from rpinode.services.docker import DockerInstaller
from rpinode.services.systemd import SystemdManager

__all__ = [
    'AccountManager',
    'AptManager',
    'CommandError',
    'CommandResult',
    'CommandRunner',
    'DockerInstaller',
    'SystemdManager',
]
