"""Automatic recorder for live HLS channels, with a command line and a web interface."""

__version__ = "2.0.2"

__all__ = ["__version__"]