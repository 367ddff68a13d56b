"""YAML profile loader."""
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from rpinode.core.errors import ProfileError
from rpinode.core.logger import get_logger
from rpinode.models.profile import HostProfile

logger = get_logger(__name__)

# Profile search paths, checked after --profile and $RPINODE_PROFILE
PROFILE_PATHS = [
    "./rpinode.yml",
    "/etc/rpinode/rpinode.yml",
]


def find_profile(profile_path: Optional[str] = None) -> Optional[str]:
    """Locate the active profile file.

    Returns:
        Path to a profile file, or None to use the built-in profile
    """
    if profile_path:
        return profile_path

    if env_profile := os.environ.get("RPINODE_PROFILE"):
        return env_profile

    for path in PROFILE_PATHS:
        if Path(path).exists():
            return path

    return None


class ProfileLoader:
    """Loads and validates host profiles."""

    def __init__(self, profile_path: Optional[str] = None):
        self.profile_path = Path(profile_path) if profile_path else None
        self.raw_profile = None

    def load(self) -> HostProfile:
        """Load the profile, falling back to built-in defaults.

        Keys omitted from the YAML file keep their built-in values; a key
        that is present replaces the whole default list.

        Raises:
            ProfileError: File missing, not a mapping, or fails validation
        """
        if self.profile_path is None:
            logger.debug("No profile file found, using built-in profile")
            return HostProfile()

        if not self.profile_path.exists():
            raise ProfileError(f"Profile file not found: {self.profile_path}")

        try:
            with open(self.profile_path) as f:
                self.raw_profile = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ProfileError(f"Invalid YAML in {self.profile_path}: {e}") from e

        if self.raw_profile is None:
            self.raw_profile = {}
        if not isinstance(self.raw_profile, dict):
            raise ProfileError(f"Profile {self.profile_path} must be a mapping of settings")

        try:
            profile = HostProfile(**self.raw_profile)
        except ValidationError as e:
            raise ProfileError(f"Invalid profile {self.profile_path}:\n{e}") from e

        logger.info(f"Loaded profile: {self.profile_path}")
        return profile


def load_profile(profile_path: Optional[str] = None) -> HostProfile:
    """Resolve and load the active profile."""
    return ProfileLoader(find_profile(profile_path)).load()
