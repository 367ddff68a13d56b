"""Local account and group membership."""
from pathlib import Path
from typing import Optional

from rpinode.services.command import CommandRunner


class AccountManager:
    """Looks up the primary login account and manages its groups."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @staticmethod
    def primary_user(home_dir: Path) -> Optional[str]:
        """Return the first home directory name in sorted order, if any."""
        home_dir = Path(home_dir)
        if not home_dir.is_dir():
            return None
        names = sorted(entry.name for entry in home_dir.iterdir())
        return names[0] if names else None

    def in_group(self, user: str, group: str) -> bool:
        result = self.runner.run(["id", "-nG", user], check=False)
        if not result.ok:
            return False
        return group in result.stdout.split()

    def add_to_group(self, user: str, group: str) -> None:
        self.runner.run(["usermod", "-aG", group, user])
