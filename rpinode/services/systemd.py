"""systemd unit control."""
from rpinode.services.command import CommandRunner


class SystemdManager:
    """Thin wrapper over systemctl."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_enabled(self, unit: str) -> bool:
        """Return True if the unit is enabled; unknown units count as disabled."""
        return self.runner.run(["systemctl", "is-enabled", unit], check=False).ok

    def enable(self, unit: str) -> None:
        self.runner.run(["systemctl", "enable", unit])

    def disable(self, unit: str) -> None:
        self.runner.run(["systemctl", "disable", unit])

    def start(self, unit: str) -> None:
        self.runner.run(["systemctl", "start", unit])

    def stop(self, unit: str) -> None:
        self.runner.run(["systemctl", "stop", unit])
