"""Exceptions raised by the fractal rendering core."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """A render request was rejected before any pixel was computed."""
