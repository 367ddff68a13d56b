"""rpinode runtime configuration and settings."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class NodeConfig:
    """Host paths and endpoints used by a provisioning run.

    Everything the steps would otherwise read ad hoc from the running system
    (platform file locations, OS identification, upstream URLs) lives here so
    tests can point a run at a temporary tree.

    Attributes:
        boot_config_path: Firmware config.txt managed by the boot config reconciler
        cmdline_path: Kernel command line file
        blacklist_path: modprobe blacklist written once
        swap_config_path: dphys-swapfile config; its presence means swap is active
        tmp_mount_source: Stock tmp.mount unit shipped by systemd
        tmp_mount_target: Location that enables tmp.mount as an admin unit
        keyring_dir: Directory holding apt signing keys
        docker_sources_list: apt source list entry for Docker
        home_dir: Directory scanned for the primary account
        os_release_path: os-release file used to pick the Docker repository
        docker_gpg_url: Docker signing key URL
        docker_repo_base: Base URL of the Docker apt repositories
        http_timeout: Timeout in seconds for the signing key download (default: 30)
    """

    boot_config_path: Path = Path("/boot/firmware/config.txt")
    cmdline_path: Path = Path("/boot/firmware/cmdline.txt")
    blacklist_path: Path = Path("/etc/modprobe.d/raspi-blacklist.conf")
    swap_config_path: Path = Path("/etc/dphys-swapfile")
    tmp_mount_source: Path = Path("/usr/share/systemd/tmp.mount")
    tmp_mount_target: Path = Path("/etc/systemd/system/tmp.mount")
    keyring_dir: Path = Path("/etc/apt/keyrings")
    docker_sources_list: Path = Path("/etc/apt/sources.list.d/docker.list")
    home_dir: Path = Path("/home")
    os_release_path: Path = Path("/etc/os-release")

    docker_gpg_url: str = "https://download.docker.com/linux/debian/gpg"
    docker_repo_base: str = "https://download.docker.com/linux"
    http_timeout: int = 30

    @property
    def boot_backup_path(self) -> Path:
        """Backup of the pristine boot config, next to the original."""
        return self.boot_config_path.with_name(self.boot_config_path.name + ".bak")

    @property
    def docker_keyring_path(self) -> Path:
        return self.keyring_dir / "docker.asc"

    @classmethod
    def from_env(cls) -> "NodeConfig":
        """Create config from environment variables.

        Environment variables:
            RPINODE_BOOT_CONFIG: Boot config.txt path
            RPINODE_CMDLINE: Kernel cmdline.txt path
            RPINODE_BLACKLIST: modprobe blacklist path
            RPINODE_SWAP_CONFIG: dphys-swapfile config path
            RPINODE_TMP_MOUNT_SOURCE / RPINODE_TMP_MOUNT_TARGET: tmp.mount unit paths
            RPINODE_KEYRING_DIR: apt keyring directory
            RPINODE_DOCKER_SOURCES: Docker apt source list path
            RPINODE_HOME_DIR: Home directory root
            RPINODE_OS_RELEASE: os-release path
            RPINODE_DOCKER_GPG_URL / RPINODE_DOCKER_REPO_BASE: Docker endpoints
            RPINODE_HTTP_TIMEOUT: Signing key download timeout in seconds

        Returns:
            NodeConfig instance with values from environment or defaults
        """
        return cls(
            boot_config_path=Path(os.getenv("RPINODE_BOOT_CONFIG", cls.boot_config_path)),
            cmdline_path=Path(os.getenv("RPINODE_CMDLINE", cls.cmdline_path)),
            blacklist_path=Path(os.getenv("RPINODE_BLACKLIST", cls.blacklist_path)),
            swap_config_path=Path(os.getenv("RPINODE_SWAP_CONFIG", cls.swap_config_path)),
            tmp_mount_source=Path(os.getenv("RPINODE_TMP_MOUNT_SOURCE", cls.tmp_mount_source)),
            tmp_mount_target=Path(os.getenv("RPINODE_TMP_MOUNT_TARGET", cls.tmp_mount_target)),
            keyring_dir=Path(os.getenv("RPINODE_KEYRING_DIR", cls.keyring_dir)),
            docker_sources_list=Path(os.getenv("RPINODE_DOCKER_SOURCES", cls.docker_sources_list)),
            home_dir=Path(os.getenv("RPINODE_HOME_DIR", cls.home_dir)),
            os_release_path=Path(os.getenv("RPINODE_OS_RELEASE", cls.os_release_path)),
            docker_gpg_url=os.getenv("RPINODE_DOCKER_GPG_URL", cls.docker_gpg_url),
            docker_repo_base=os.getenv("RPINODE_DOCKER_REPO_BASE", cls.docker_repo_base),
            http_timeout=int(os.getenv("RPINODE_HTTP_TIMEOUT", cls.http_timeout)),
        )


# Global config instance (can be overridden)
_config: Optional[NodeConfig] = None


def get_config() -> NodeConfig:
    """Get the global rpinode configuration.

    Returns:
        NodeConfig instance (creates from environment if not set)
    """
    global _config
    if _config is None:
        _config = NodeConfig.from_env()
    return _config


def set_config(config: Optional[NodeConfig]):
    """Set the global rpinode configuration.

    Args:
        config: NodeConfig instance to use globally, or None to re-read the environment
    """
    global _config
    _config = config
