"""Desired-state profile for a compute node."""
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rpinode.core.boot_config import MARKER, setting_key

DEFAULT_BOOT_SETTINGS = [
    "dtparam=audio=off",
    "camera_auto_detect=0",
    "display_auto_detect=0",
    "auto_initramfs=1",
    "disable_fw_kms_setup=1",
    "arm_64bit=1",
    "disable_overscan=1",
    "arm_boost=1",
    "dtoverlay=disable-bt",
    "dtoverlay=disable-wifi",
    "gpu_mem=16",
    "arm_freq=2200",
    "over_voltage=8",
    "max_framebuffers=0",
    "disable_camera_led=1",
    "dtparam=i2c_arm=off",
    "dtparam=spi=off",
    "enable_uart=0",
    "dtparam=sd_poll_once",
    "gpu_freq_min=100",
    "h264_freq_min=100",
    "isp_freq_min=100",
    "v3d_freq_min=100",
    "hevc_freq_min=100",
    "dtparam=pwr_led_trigger=default-on",
    "dtparam=pwr_led_activelow=off",
]

DEFAULT_SERVICES_TO_DISABLE = [
    "avahi-daemon.service",
    "bluetooth.service",
    "hciuart.service",
    "rpi-display-backlight.service",
    "triggerhappy.service",
    "ModemManager.service",
    "wpa_supplicant.service",
    "dphys-swapfile.service",
    "pigpiod.service",
    "rsync.service",
    "nfs-common.service",
    "rpcbind.service",
    "systemd-networkd.service",
    "systemd-networkd-wait-online.service",
    "udisks2.service",
]

DEFAULT_PACKAGES_TO_REMOVE = [
    "avahi-daemon",
    "bluez",
    "triggerhappy",
    "modemmanager",
    "wpasupplicant",
    "dphys-swapfile",
    "pigpio",
    "nfs-common",
    "rpcbind",
    "udisks2",
]

DEFAULT_MODULE_BLACKLIST = """\
# Disable Bluetooth modules
blacklist bluetooth
blacklist btbcm
blacklist hci_uart

# Disable Wi-Fi module
blacklist brcmfmac
blacklist brcmutil

# Disable audio modules
blacklist snd_bcm2835
blacklist snd_pcm
blacklist snd_timer
blacklist snd
"""

DEFAULT_CMDLINE_TOKENS = [
    "cgroup_enable=cpuset",
    "cgroup_enable=memory",
    "cgroup_memory=1",
    "cma=0",
]


class HostProfile(BaseModel):
    """Everything a provisioning run converges the host towards."""

    model_config = ConfigDict(extra='forbid')

    boot_settings: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BOOT_SETTINGS),
        description="config.txt lines, written in this order after the marker",
    )
    services_to_disable: List[str] = Field(default_factory=lambda: list(DEFAULT_SERVICES_TO_DISABLE))
    packages_to_remove: List[str] = Field(default_factory=lambda: list(DEFAULT_PACKAGES_TO_REMOVE))
    module_blacklist: str = Field(DEFAULT_MODULE_BLACKLIST, description="Verbatim modprobe blacklist body")
    cmdline_tokens: List[str] = Field(default_factory=lambda: list(DEFAULT_CMDLINE_TOKENS))
    cmdline_sentinel: str = Field("cgroup_enable=cpuset", description="Token whose presence means cmdline is done")
    apt_timers: List[str] = Field(default_factory=lambda: ["apt-daily.timer", "apt-daily-upgrade.timer"])
    docker_prerequisites: List[str] = Field(default_factory=lambda: ["ca-certificates", "curl"])
    docker_packages: List[str] = Field(
        default_factory=lambda: ["docker-ce", "docker-ce-cli", "containerd.io", "docker-buildx-plugin"]
    )
    docker_group: str = "docker"

    @field_validator('boot_settings')
    @classmethod
    def validate_boot_settings(cls, v):
        """Reject lines that would corrupt the managed block."""
        seen = {}
        for line in v:
            if not line.strip():
                raise ValueError("Boot settings must not be empty lines")
            if '\n' in line or '\r' in line:
                raise ValueError(f"Boot setting '{line!r}' spans multiple lines")
            if MARKER in line:
                raise ValueError(f"Boot setting '{line}' contains the managed marker")
            key = setting_key(line)
            if key in seen:
                raise ValueError(
                    f"Boot settings '{seen[key]}' and '{line}' share key '{key}'. "
                    "Each key may appear only once."
                )
            seen[key] = line
        return v

    @field_validator('cmdline_tokens')
    @classmethod
    def validate_cmdline_tokens(cls, v):
        for token in v:
            if not token or any(ch.isspace() for ch in token):
                raise ValueError(f"Kernel parameter '{token}' must be a single non-empty token")
        return v

    @model_validator(mode='after')
    def validate_sentinel(self) -> 'HostProfile':
        """The sentinel must be one of the tokens or the append is never detected."""
        if self.cmdline_tokens and not any(self.cmdline_sentinel in t for t in self.cmdline_tokens):
            raise ValueError(
                f"cmdline_sentinel '{self.cmdline_sentinel}' does not occur in cmdline_tokens"
            )
        return self
