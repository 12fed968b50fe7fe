"""Offline artifact/tool dependency resolution and packaging."""

__version__ = "0.4.0"
