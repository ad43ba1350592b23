"""Superkey forge - provisions and tears down cloud resources for sources."""

__version__ = "0.1.0"
