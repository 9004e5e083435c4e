"""Scheduled playlist cache refresh for the DevBytes video feed."""

__version__ = "0.1.0"
