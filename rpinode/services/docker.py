"""Docker Engine installation from the upstream apt repository.

Follows the upstream Debian instructions:
- install prerequisites
- store the signing key under /etc/apt/keyrings
- add a signed-by source entry for the host's distribution and codename
- install the engine packages
"""
import os
import re
import shutil
from pathlib import Path
from typing import Dict, Sequence

import requests

from rpinode.core.config import NodeConfig
from rpinode.core.errors import ProvisionError
from rpinode.core.host_files import atomic_write_text
from rpinode.core.logger import get_logger
from rpinode.services.apt import AptManager
from rpinode.services.command import CommandRunner

logger = get_logger(__name__)


def read_os_release(path: Path) -> Dict[str, str]:
    """Parse an os-release file into a dict of unquoted values."""
    values: Dict[str, str] = {}
    for line in Path(path).read_text(encoding="utf-8").splitlines():
        match = re.match(r'^([A-Z0-9_]+)=(.*)$', line.strip())
        if not match:
            continue
        key, value = match.groups()
        values[key] = value.strip().strip('"').strip("'")
    return values


class DockerInstaller:
    """Installs Docker Engine and its CLI plugins."""

    def __init__(self, runner: CommandRunner, apt: AptManager, config: NodeConfig):
        self.runner = runner
        self.apt = apt
        self.config = config

    def is_installed(self) -> bool:
        return shutil.which("docker") is not None

    def install(self, prerequisites: Sequence[str], packages: Sequence[str]) -> None:
        """Install Docker from download.docker.com.

        Raises:
            ProvisionError: Signing key download failed or os-release is unusable
            CommandError: apt or dpkg failed
        """
        self.apt.install(prerequisites)

        if self.runner.mock:
            logger.info(f"MOCK: Would fetch {self.config.docker_gpg_url} into {self.config.docker_keyring_path}")
        else:
            self.config.keyring_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(self.config.keyring_dir, 0o755)
            self._fetch_signing_key()

        source_line = self.source_line()
        if self.runner.mock:
            logger.info(f"MOCK: Would write {self.config.docker_sources_list}: {source_line}")
        else:
            atomic_write_text(self.config.docker_sources_list, source_line + "\n")

        self.apt.update()
        self.runner.run(["apt", "install", "-y", *packages])

    def _fetch_signing_key(self) -> None:
        url = self.config.docker_gpg_url
        logger.debug(f"Downloading Docker signing key from: {url}")
        try:
            response = requests.get(url, timeout=self.config.http_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ProvisionError(f"Failed to download Docker signing key: {e}") from e

        key_path = self.config.docker_keyring_path
        key_path.write_bytes(response.content)
        os.chmod(key_path, 0o644)

    def source_line(self) -> str:
        """Build the apt source entry for this host."""
        arch = self.runner.run(["dpkg", "--print-architecture"]).stdout.strip()
        if not arch:
            arch = "arm64"  # mock runs produce no output

        try:
            os_release = read_os_release(self.config.os_release_path)
        except OSError as e:
            raise ProvisionError(f"Cannot read {self.config.os_release_path}: {e}") from e

        distro = os_release.get("ID")
        codename = os_release.get("VERSION_CODENAME")
        if not distro or not codename:
            raise ProvisionError(
                f"{self.config.os_release_path} does not define ID and VERSION_CODENAME"
            )

        return (
            f"deb [arch={arch} signed-by={self.config.docker_keyring_path}] "
            f"{self.config.docker_repo_base}/{distro} {codename} stable"
        )
