"""Hierarchical file transfer and selection gateway for game server panels."""

__version__ = "1.0.0"
