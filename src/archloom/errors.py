"""Exceptions shared by the extraction, projection, and rule layers."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised for structurally invalid requests.

    Invalid pattern syntax, a dependency rule without any filter, an
    unparsable diagram, or a malformed ``rules.yml`` / ``archloom.yml``.
    Never reported as a violation.
    """


class ExtractionError(RuntimeError):
    """Raised when the import graph cannot be extracted from a project."""
