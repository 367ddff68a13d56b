"""rpinode - turn a fresh Raspberry Pi OS install into a container-ready compute node."""

__version__ = "0.1.0"
