"""Render and preview backend for the Cutline desktop video editor."""

__version__ = "0.1.0"
