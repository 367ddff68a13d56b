"""Marker/backup guarded reconciliation of the firmware boot config.

The reconciler never edits managed lines in place. Every run restores the
pristine file captured on the first run, drops any line claimed by a desired
setting and appends the desired block after a marker. Re-running therefore
always converges to the same bytes, and a setting dropped from the desired
list reverts to whatever the pristine file said.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from rpinode.core.errors import BackupInconsistencyError, ProvisionError
from rpinode.core.host_files import atomic_copy, atomic_write_text, read_text
from rpinode.core.logger import get_logger

logger = get_logger(__name__)

MARKER = "# RPI-COMPUTE-NODE CONFIG"
SECTION_HEADER = "[all]"

# Directives that legitimately appear many times, once per parameter/overlay
REPEATABLE_DIRECTIVES = ("dtparam", "dtoverlay")


@dataclass(frozen=True)
class DesiredSetting:
    """A literal config.txt line and the key that claims existing lines."""

    line: str

    @property
    def key(self) -> str:
        return setting_key(self.line)

    def matches(self, existing_line: str) -> bool:
        """Raw prefix test; `arm_freq` also claims `arm_freq_min=...`."""
        return existing_line.startswith(self.key)


def setting_key(line: str) -> str:
    """Derive the managing key of a config.txt line.

    Examples:
        gpu_mem=16            -> gpu_mem
        dtparam=audio=off     -> dtparam=audio
        dtparam=sd_poll_once  -> dtparam=sd_poll_once
        dtoverlay=disable-bt  -> dtoverlay=disable-bt
        initramfs             -> initramfs
    """
    name, sep, value = line.partition("=")
    if not sep:
        return line
    if name in REPEATABLE_DIRECTIVES:
        parameter = re.split(r"[=,]", value, maxsplit=1)[0]
        return f"{name}={parameter}"
    return name


def split_lines(text: str) -> List[str]:
    """Split on \\n only, so \\r and other control characters stay in the line."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


@dataclass
class BootConfigStatus:
    managed: bool
    backup_exists: bool

    @property
    def consistent(self) -> bool:
        return self.backup_exists or not self.managed


class BootConfigReconciler:
    """Reconciles config.txt against an ordered list of desired settings."""

    def __init__(
        self,
        config_file: Union[str, Path],
        backup_file: Optional[Union[str, Path]] = None,
        marker: str = MARKER,
        section_header: str = SECTION_HEADER,
    ):
        self.config_file = Path(config_file)
        self.backup_file = (
            Path(backup_file)
            if backup_file
            else self.config_file.with_name(self.config_file.name + ".bak")
        )
        self.marker = marker
        self.section_header = section_header

    def is_managed(self) -> bool:
        """Return True if the marker line is present in the config file."""
        if not self.config_file.exists():
            return False
        return any(self.marker in line for line in split_lines(self.read()))

    def read(self) -> str:
        return read_text(self.config_file)

    def status(self) -> BootConfigStatus:
        return BootConfigStatus(managed=self.is_managed(), backup_exists=self.backup_file.exists())

    def restore(self) -> bool:
        """Put the pristine config back if managed settings are present.

        The backup itself is kept so later runs can restore again.

        Returns:
            True if the file was restored, False if it was already pristine

        Raises:
            BackupInconsistencyError: Marker present but no backup on disk
        """
        if not self.is_managed():
            return False

        if not self.backup_file.exists():
            raise BackupInconsistencyError(self.config_file, self.backup_file)

        logger.info("Restoring original configuration from backup")
        atomic_copy(self.backup_file, self.config_file)
        return True

    def reconcile(self, settings: Iterable[Union[str, DesiredSetting]]) -> str:
        """Apply desired settings to the config file.

        Args:
            settings: Desired lines in the order they should be written

        Returns:
            The new file contents

        Raises:
            BackupInconsistencyError: Marker present but no backup on disk
        """
        desired = [s if isinstance(s, DesiredSetting) else DesiredSetting(s) for s in settings]

        if not self.config_file.exists():
            raise ProvisionError(f"Boot config not found: {self.config_file}")

        if not self.restore() and not self.backup_file.exists():
            atomic_copy(self.config_file, self.backup_file)
            logger.info("Backup of original configuration created")

        if not desired:
            logger.info("No desired boot settings; leaving original configuration in place")
            return self.read()

        logger.info("Updating Raspberry Pi configuration...")
        content = self.render(split_lines(self.read()), desired)
        atomic_write_text(self.config_file, content)

        logger.info("Raspberry Pi configuration updated")
        return content

    def render(self, pristine_lines: Sequence[str], desired: Sequence[DesiredSetting]) -> str:
        """Build the managed file from pristine lines (no I/O)."""
        kept: List[str] = [
            line for line in pristine_lines
            if not any(setting.matches(line) for setting in desired)
        ]
        block = ["", self.section_header, self.marker] + [s.line for s in desired]
        return "\n".join(kept + block) + "\n"
