"""Per-call check context: logging sink, cache handle, and check options.

Every check receives its own :class:`CheckContext` instead of consulting
process-wide state, so concurrent checks in one process share nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from archloom.extraction.cache import GraphCache

DEFAULT_LOGGER_NAME = "archloom.checks"


@dataclass(frozen=True)
class CheckContext:
    """Options and collaborators threaded into a single check call.

    Attributes
    ----------
    logger:
        Sink for match tracing and check progress.
    cache:
        Optional extraction cache. Only the extraction boundary reads it.
    allow_empty:
        When ``True``, filters that match nothing do not produce an
        :class:`~archloom.rules.violations.EmptyResultViolation`.
    log_violations:
        Log every violation at INFO level as it is found.
    """

    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(DEFAULT_LOGGER_NAME))
    cache: GraphCache | None = None
    allow_empty: bool = False
    log_violations: bool = False

    def with_options(self, *, allow_empty: bool | None = None) -> CheckContext:
        """Return a copy with per-rule overrides applied."""
        if allow_empty is None:
            return self
        return replace(self, allow_empty=allow_empty)


def resolve_context(ctx: CheckContext | None) -> CheckContext:
    """Return *ctx*, or a default context when the caller passed none."""
    return ctx if ctx is not None else CheckContext()
