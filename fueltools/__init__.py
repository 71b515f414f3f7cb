"""Fuel toolchain helpers: versions, components, channels, downloads and release commands."""

__version__ = "0.1.0"