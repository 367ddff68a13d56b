"""Exception hierarchy for provisioning runs.

Every error raised on purpose derives from ProvisionError so the CLI can turn
it into a non-zero exit with a single handler.
"""


class ProvisionError(Exception):
    """Base class for fatal provisioning failures."""
    pass


class PrivilegeError(ProvisionError):
    """Raised when the run does not have root privileges."""
    pass


class BackupInconsistencyError(ProvisionError):
    """Raised when the boot config is managed but its backup is gone.

    Continuing would discard the user's original configuration, so the run
    stops without touching the file.
    """

    def __init__(self, config_file, backup_file):
        self.config_file = config_file
        self.backup_file = backup_file
        super().__init__(
            f"{config_file} contains managed settings but backup {backup_file} was not found. "
            f"Cannot restore original configuration."
        )


class ProfileError(ProvisionError):
    """Raised when a profile file cannot be read or fails validation."""
    pass
