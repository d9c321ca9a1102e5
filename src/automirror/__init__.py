"""Automatic X11 monitor mirroring daemon."""

__version__ = "0.1.0"
