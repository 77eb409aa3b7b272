"""Dependency rule checker: should / should-not depend on, between two partitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archloom.context import resolve_context
from archloom.errors import ConfigurationError
from archloom.graph.patterns import matches_all
from archloom.rules.violations import (
    DependencyViolation,
    EmptyResultViolation,
    format_violation,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from archloom.context import CheckContext
    from archloom.graph.model import ProjectedEdge
    from archloom.graph.patterns import Filter
    from archloom.rules.violations import Violation


def check_dependencies(
    edges: Sequence[ProjectedEdge],
    object_filters: Sequence[Filter],
    subject_filters: Sequence[Filter],
    *,
    negated: bool,
    ctx: CheckContext | None = None,
) -> list[Violation]:
    """Evaluate a dependency rule between an object and a subject partition.

    The object partition is every unit (source or target label of any
    edge) matching all *object_filters*; the subject partition every unit
    matching all *subject_filters*.

    - ``negated=False`` (should): every edge leaving the object partition
      must end in the subject partition; edges that do not are reported.
    - ``negated=True`` (should not): edges from the object partition into
      the subject partition are reported.

    When either partition is empty a single :class:`EmptyResultViolation`
    is returned instead, unless the context allows empty results.

    Raises
    ------
    ConfigurationError
        When both filter lists are empty.
    """
    if not object_filters and not subject_filters:
        msg = "Dependency rule needs at least one object or subject filter"
        raise ConfigurationError(msg)

    ctx = resolve_context(ctx)
    log = ctx.logger

    units = {edge.source_label for edge in edges} | {edge.target_label for edge in edges}
    object_units = {u for u in sorted(units) if matches_all(u, object_filters, log=log)}
    subject_units = {u for u in sorted(units) if matches_all(u, subject_filters, log=log)}

    if not object_units or not subject_units:
        if not ctx.allow_empty:
            log.warning(
                "Dependency rule matched no units (object: %d, subject: %d filters)",
                len(object_filters),
                len(subject_filters),
            )
            return [EmptyResultViolation(tuple(object_filters) + tuple(subject_filters))]
        log.info("Dependency rule matched no units; empty results allowed")
        return []

    violations: list[Violation] = []
    for edge in edges:
        if edge.source_label not in object_units:
            continue
        if (edge.target_label in subject_units) == negated:
            log.debug("Edge under check: %s -> %s", edge.source_label, edge.target_label)
            violation = DependencyViolation(edge=edge, negated=negated)
            if ctx.log_violations:
                log.info("%s", format_violation(violation))
            violations.append(violation)

    log.info(
        "Dependency rule (%s) checked %d edges: %d violations",
        "should not" if negated else "should",
        len(edges),
        len(violations),
    )
    return violations
