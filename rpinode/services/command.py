"""Command execution for opaque host tools (apt, systemctl, usermod, ...)."""
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from rpinode.core.errors import ProvisionError
from rpinode.core.logger import get_logger

logger = get_logger(__name__)


class CommandError(ProvisionError):
    """Raised when a host command exits non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed ({returncode}): {format_argv(argv)}"
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message)


@dataclass(frozen=True)
class CommandResult:
    argv: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandRunner:
    """Runs host commands, or just logs them in mock mode."""

    def __init__(self, mock: bool = False, timeout: Optional[int] = None):
        self.mock = mock or os.environ.get('RPINODE_MOCK', '').lower() in ('1', 'true')
        self.timeout = timeout

    def run(self, argv: Sequence[str], check: bool = True) -> CommandResult:
        """Run a command to completion.

        Args:
            argv: Command and arguments
            check: Raise CommandError on non-zero exit

        Returns:
            CommandResult with captured output
        """
        argv_list = [str(a) for a in argv]

        if self.mock:
            logger.info(f"MOCK: Would run: {format_argv(argv_list)}")
            return CommandResult(argv=argv_list, returncode=0)

        logger.debug(f"CMD {format_argv(argv_list)}")
        try:
            proc = subprocess.run(
                argv_list,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            if check:
                raise CommandError(argv_list, 127, f"{argv_list[0]}: command not found")
            return CommandResult(argv=argv_list, returncode=127, stderr=f"{argv_list[0]}: command not found")

        if proc.stdout:
            logger.debug(f"STDOUT {proc.stdout.strip()}")
        if proc.stderr:
            logger.debug(f"STDERR {proc.stderr.strip()}")

        if check and proc.returncode != 0:
            raise CommandError(argv_list, proc.returncode, proc.stderr or "")

        return CommandResult(
            argv=argv_list,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
