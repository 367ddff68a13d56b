"""Ordered provisioning pipeline for a compute node.

Each step checks whether the host already reflects its target state and is
a no-op when it does, so an interrupted run is finished by running again.
"""
import os
import shutil
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

from rpinode.core.boot_config import BootConfigReconciler
from rpinode.core.config import NodeConfig
from rpinode.core.errors import PrivilegeError
from rpinode.core.host_files import CmdlineEditor, ModuleBlacklist
from rpinode.core.logger import get_logger
from rpinode.models.profile import HostProfile
from rpinode.services.accounts import AccountManager
from rpinode.services.apt import AptManager
from rpinode.services.command import CommandRunner
from rpinode.services.docker import DockerInstaller
from rpinode.services.systemd import SystemdManager

logger = get_logger(__name__)


@dataclass
class StepResult:
    """Outcome of one provisioning step."""

    name: str
    changed: bool
    detail: str = ""
    skipped: bool = False


@dataclass
class StatusCheck:
    """Read-only convergence check shown by `rpinode status`."""

    label: str
    ok: bool
    detail: str = ""


def check_root() -> None:
    """Abort unless running as root.

    Raises:
        PrivilegeError: Effective UID is not 0
    """
    if os.geteuid() != 0:
        raise PrivilegeError("This script must be run as root")


class Provisioner:
    """Runs the provisioning steps in their fixed order."""

    STEP_NAMES = (
        "update_system",
        "update_config",
        "disable_swap",
        "disable_services_and_remove_packages",
        "blacklist_modules",
        "configure_tmp_mount",
        "modify_cmdline",
        "disable_apt_timers",
        "install_docker",
        "add_user_to_docker_group",
    )

    def __init__(
        self,
        config: NodeConfig,
        profile: HostProfile,
        runner: Optional[CommandRunner] = None,
        apt: Optional[AptManager] = None,
        systemd: Optional[SystemdManager] = None,
        accounts: Optional[AccountManager] = None,
        docker: Optional[DockerInstaller] = None,
    ):
        self.config = config
        self.profile = profile
        self.runner = runner or CommandRunner()
        self.apt = apt or AptManager(self.runner)
        self.systemd = systemd or SystemdManager(self.runner)
        self.accounts = accounts or AccountManager(self.runner)
        self.docker = docker or DockerInstaller(self.runner, self.apt, config)
        self.boot_config = BootConfigReconciler(config.boot_config_path, config.boot_backup_path)
        self.cmdline = CmdlineEditor(config.cmdline_path)
        self.blacklist = ModuleBlacklist(config.blacklist_path)

    @property
    def steps(self) -> List[Tuple[str, Callable[[], StepResult]]]:
        return [(name, getattr(self, name)) for name in self.STEP_NAMES]

    def run(self, skip: Iterable[str] = ()) -> List[StepResult]:
        """Check privileges, then run every step in order.

        Args:
            skip: Step names to leave out

        Returns:
            One StepResult per step, in execution order

        Raises:
            PrivilegeError: Not running as root (raised before any change)
            ProvisionError: First fatal step failure; later steps do not run
        """
        skip = set(skip)
        unknown = skip - set(self.STEP_NAMES)
        if unknown:
            raise ValueError(f"Unknown step(s): {', '.join(sorted(unknown))}")

        check_root()

        results: List[StepResult] = []
        for name, step in self.steps:
            if name in skip:
                logger.info(f"Skipping {name} (requested)")
                results.append(StepResult(name, changed=False, detail="skipped by request", skipped=True))
                continue
            results.append(step())

        logger.info("Provisioning completed successfully!")
        return results

    def update_system(self) -> StepResult:
        logger.info("Updating and upgrading the system...")
        self.apt.update()
        upgraded = self.apt.upgrade()
        detail = "packages upgraded" if upgraded else "already up to date"
        return StepResult("update_system", changed=upgraded, detail=detail)

    def update_config(self) -> StepResult:
        settings = self.profile.boot_settings
        path = self.config.boot_config_path
        before = path.read_bytes() if path.exists() else None
        had_backup = self.boot_config.backup_file.exists()

        self.boot_config.reconcile(settings)

        return StepResult(
            "update_config",
            changed=path.read_bytes() != before or not had_backup,
            detail=f"{len(settings)} setting(s) in {self.config.boot_config_path}",
        )

    def disable_swap(self) -> StepResult:
        logger.info("Disabling swap...")
        if not self.config.swap_config_path.exists():
            logger.info("Swap already disabled, skipping")
            return StepResult("disable_swap", changed=False, detail="already disabled")

        self.runner.run(["dphys-swapfile", "swapoff"])
        self.runner.run(["dphys-swapfile", "uninstall"])
        self.runner.run(["update-rc.d", "dphys-swapfile", "remove"])
        self.apt.purge(["dphys-swapfile"])
        logger.info("Swap disabled")
        return StepResult("disable_swap", changed=True, detail="dphys-swapfile removed")

    def disable_services_and_remove_packages(self) -> StepResult:
        logger.info("Disabling unnecessary services and removing packages...")
        disabled = []
        for service in self.profile.services_to_disable:
            if self.systemd.is_enabled(service):
                self.systemd.disable(service)
                self.systemd.stop(service)
                disabled.append(service)
                logger.info(f"Disabled and stopped {service}")
            else:
                logger.info(f"{service} is already disabled or not found")

        purged = self.apt.purge(self.profile.packages_to_remove, tolerate_failure=True)
        self.apt.autoremove()

        detail = f"{len(disabled)} service(s) disabled"
        if not purged:
            detail += ", package purge failed (ignored)"
        return StepResult("disable_services_and_remove_packages", changed=True, detail=detail)

    def blacklist_modules(self) -> StepResult:
        logger.info("Blacklisting unnecessary modules...")
        if self.blacklist.ensure(self.profile.module_blacklist):
            logger.info("Modules blacklisted")
            return StepResult("blacklist_modules", changed=True, detail=str(self.config.blacklist_path))
        logger.info("Modules already blacklisted, skipping")
        return StepResult("blacklist_modules", changed=False, detail="already present")

    def configure_tmp_mount(self) -> StepResult:
        logger.info("Configuring tmp mount...")
        target = self.config.tmp_mount_target
        if target.exists():
            logger.info("Tmp mount already configured, skipping")
            return StepResult("configure_tmp_mount", changed=False, detail="already configured")

        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.config.tmp_mount_source, target)
        self.systemd.enable("tmp.mount")
        self.systemd.start("tmp.mount")
        logger.info("Tmp mount configured")
        return StepResult("configure_tmp_mount", changed=True, detail=str(target))

    def modify_cmdline(self) -> StepResult:
        logger.info("Modifying cmdline.txt...")
        tokens = self.profile.cmdline_tokens
        if tokens and self.cmdline.apply(tokens, self.profile.cmdline_sentinel):
            logger.info("cmdline.txt modified")
            return StepResult("modify_cmdline", changed=True, detail=" ".join(tokens))
        logger.info("cmdline.txt already modified, skipping")
        return StepResult("modify_cmdline", changed=False, detail="already present")

    def disable_apt_timers(self) -> StepResult:
        logger.info("Disabling apt timers...")
        enabled = [timer for timer in self.profile.apt_timers if self.systemd.is_enabled(timer)]
        for timer in self.profile.apt_timers:
            self.systemd.disable(timer)
        detail = ", ".join(enabled) if enabled else "already disabled"
        return StepResult("disable_apt_timers", changed=bool(enabled), detail=detail)

    def install_docker(self) -> StepResult:
        logger.info("Installing Docker...")
        if self.docker.is_installed():
            logger.info("Docker already installed, skipping")
            return StepResult("install_docker", changed=False, detail="already installed")

        self.docker.install(self.profile.docker_prerequisites, self.profile.docker_packages)
        logger.info("Docker installed")
        return StepResult("install_docker", changed=True, detail=", ".join(self.profile.docker_packages))

    def add_user_to_docker_group(self) -> StepResult:
        logger.info("Adding user to Docker group...")
        group = self.profile.docker_group
        user = self.accounts.primary_user(self.config.home_dir)
        if user is None:
            logger.warning(f"No user found under {self.config.home_dir}, skipping")
            return StepResult("add_user_to_docker_group", changed=False, detail="no user found")

        if self.accounts.in_group(user, group):
            logger.info("User already in Docker group, skipping")
            return StepResult("add_user_to_docker_group", changed=False, detail=f"{user} already in {group}")

        self.accounts.add_to_group(user, group)
        logger.info("User added to Docker group")
        return StepResult("add_user_to_docker_group", changed=True, detail=f"{user} added to {group}")

    def status(self) -> List[StatusCheck]:
        """Report which targets the host already satisfies, without changing anything."""
        boot = self.boot_config.status()
        return [
            StatusCheck(
                "Boot config managed",
                boot.managed,
                str(self.config.boot_config_path),
            ),
            StatusCheck(
                "Boot config backup",
                boot.backup_exists if boot.managed else True,
                str(self.config.boot_backup_path)
                if boot.backup_exists
                else ("missing" if boot.managed else "not created yet"),
            ),
            StatusCheck(
                "Kernel cmdline tokens",
                self.cmdline.is_applied(self.profile.cmdline_sentinel),
                self.profile.cmdline_sentinel,
            ),
            StatusCheck(
                "Module blacklist",
                self.blacklist.exists(),
                str(self.config.blacklist_path),
            ),
            StatusCheck(
                "tmp.mount unit",
                self.config.tmp_mount_target.exists(),
                str(self.config.tmp_mount_target),
            ),
            StatusCheck(
                "Swap disabled",
                not self.config.swap_config_path.exists(),
                str(self.config.swap_config_path),
            ),
            StatusCheck(
                "Docker installed",
                self.docker.is_installed(),
                shutil.which("docker") or "docker not on PATH",
            ),
        ]
