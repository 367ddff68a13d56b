"""apt package management."""
import re
from typing import Sequence

from rpinode.core.logger import get_logger
from rpinode.services.command import CommandError, CommandRunner

logger = get_logger(__name__)

UPGRADE_SUMMARY = re.compile(r"(\d+) upgraded, (\d+) newly installed, (\d+) to remove")


class AptManager:
    """Installs, upgrades and purges Debian packages."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def update(self) -> None:
        self.runner.run(["apt", "update"])

    def upgrade(self) -> bool:
        """Upgrade installed packages.

        Returns:
            False only when apt reports nothing to upgrade, install or remove
        """
        result = self.runner.run(["apt", "upgrade", "-y"])
        summary = UPGRADE_SUMMARY.search(result.stdout)
        if summary is None:
            return True
        return any(int(count) for count in summary.groups())

    def install(self, packages: Sequence[str]) -> None:
        if not packages:
            return
        self.runner.run(["apt-get", "install", "-y", *packages])

    def purge(self, packages: Sequence[str], tolerate_failure: bool = False) -> bool:
        """Purge packages.

        Args:
            packages: Package names
            tolerate_failure: Log instead of raising when apt fails, e.g. because
                some of the packages were never installed

        Returns:
            True if apt succeeded
        """
        if not packages:
            return True
        try:
            self.runner.run(["apt", "purge", *packages, "-y"])
        except CommandError as e:
            if not tolerate_failure:
                raise
            logger.warning(f"Package purge failed, continuing: {e}")
            return False
        return True

    def autoremove(self) -> None:
        self.runner.run(["apt", "autoremove", "--purge", "-y"])
