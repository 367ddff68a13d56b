"""Profile management."""
from rpinode.config.loader import ProfileLoader, find_profile, load_profile
from rpinode.core.errors import ProfileError

__all__ = ['ProfileLoader', 'ProfileError', 'find_profile', 'load_profile']
