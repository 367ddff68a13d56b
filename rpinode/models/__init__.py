"""Data models for rpinode."""
from rpinode.models.profile import HostProfile

__all__ = ['HostProfile']
