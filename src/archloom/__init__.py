"""Archloom - architecture rules evaluated against a project's import graph."""

__version__ = "0.4.0"
