"""Shared test fixtures for rpinode tests."""
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from rpinode.core.config import NodeConfig, set_config
from rpinode.models.profile import HostProfile
from rpinode.services.command import CommandError, CommandResult


class FakeRunner:
    """Records commands instead of running them.

    Responses are looked up by the longest matching argv prefix.
    """

    def __init__(self):
        self.mock = False
        self.calls: List[List[str]] = []
        self.responses: Dict[Tuple[str, ...], Tuple[int, str]] = {}

    def respond(self, argv_prefix, returncode: int = 0, stdout: str = ""):
        self.responses[tuple(argv_prefix)] = (returncode, stdout)

    def run(self, argv, check: bool = True) -> CommandResult:
        argv = [str(a) for a in argv]
        self.calls.append(argv)

        returncode, stdout = 0, ""
        best = -1
        for prefix, response in self.responses.items():
            if tuple(argv[:len(prefix)]) == prefix and len(prefix) > best:
                best = len(prefix)
                returncode, stdout = response

        if check and returncode != 0:
            raise CommandError(argv, returncode, "simulated failure")
        return CommandResult(argv=argv, returncode=returncode, stdout=stdout)

    def commands(self) -> List[str]:
        return [" ".join(call) for call in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def host_root(tmp_path) -> Path:
    """Minimal fake host tree with a pristine boot partition."""
    boot = tmp_path / "boot" / "firmware"
    boot.mkdir(parents=True)
    (boot / "config.txt").write_text(
        "# For more options and information see\n"
        "dtparam=audio=on\n"
        "camera_auto_detect=1\n"
        "dtoverlay=vc4-kms-v3d\n"
        "max_framebuffers=2\n"
        "\n"
        "[cm4]\n"
        "otg_mode=1\n"
    )
    (boot / "cmdline.txt").write_text(
        "console=serial0,115200 console=tty1 root=PARTUUID=1234-02 rootfstype=ext4 fsck.repair=yes rootwait\n"
    )

    systemd_share = tmp_path / "usr" / "share" / "systemd"
    systemd_share.mkdir(parents=True)
    (systemd_share / "tmp.mount").write_text("[Mount]\nWhat=tmpfs\nWhere=/tmp\nType=tmpfs\n")

    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "os-release").write_text(
        'PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\n'
        'ID=debian\n'
        'VERSION_CODENAME=bookworm\n'
    )
    (tmp_path / "etc" / "dphys-swapfile").write_text("CONF_SWAPSIZE=512\n")
    (tmp_path / "home" / "pi").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def node_config(host_root) -> NodeConfig:
    return NodeConfig(
        boot_config_path=host_root / "boot" / "firmware" / "config.txt",
        cmdline_path=host_root / "boot" / "firmware" / "cmdline.txt",
        blacklist_path=host_root / "etc" / "modprobe.d" / "raspi-blacklist.conf",
        swap_config_path=host_root / "etc" / "dphys-swapfile",
        tmp_mount_source=host_root / "usr" / "share" / "systemd" / "tmp.mount",
        tmp_mount_target=host_root / "etc" / "systemd" / "system" / "tmp.mount",
        keyring_dir=host_root / "etc" / "apt" / "keyrings",
        docker_sources_list=host_root / "etc" / "apt" / "sources.list.d" / "docker.list",
        home_dir=host_root / "home",
        os_release_path=host_root / "etc" / "os-release",
    )


@pytest.fixture
def profile() -> HostProfile:
    return HostProfile()


@pytest.fixture
def global_config(node_config):
    """Install node_config as the process-wide config for CLI tests."""
    set_config(node_config)
    yield node_config
    set_config(None)
