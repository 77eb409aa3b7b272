"""Cycle-freedom check over a filtered set of projected edges."""

from __future__ import annotations

from typing import TYPE_CHECKING

from archloom.context import resolve_context
from archloom.graph.cycles import find_cycles
from archloom.graph.patterns import matches_all
from archloom.rules.violations import CycleViolation, EmptyResultViolation, format_violation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from archloom.context import CheckContext
    from archloom.graph.model import ProjectedEdge
    from archloom.graph.patterns import Filter
    from archloom.rules.violations import Violation


def check_cycle_free(
    edges: Sequence[ProjectedEdge],
    filters: Sequence[Filter] = (),
    *,
    ctx: CheckContext | None = None,
    max_length: int | None = None,
) -> list[Violation]:
    """Report one :class:`CycleViolation` per elementary cycle among matching units.

    Only edges whose two endpoints match every filter take part.  When no
    unit matches the filters, an :class:`EmptyResultViolation` is returned
    unless the context allows empty results.
    """
    ctx = resolve_context(ctx)
    log = ctx.logger

    units = {edge.source_label for edge in edges} | {edge.target_label for edge in edges}
    matching_units = {unit for unit in units if matches_all(unit, filters, log=log)}
    if not matching_units:
        if ctx.allow_empty:
            return []
        log.warning("Cycle check matched no units")
        return [EmptyResultViolation(tuple(filters))]

    under_check = [
        edge
        for edge in edges
        if not edge.is_self_loop
        and edge.source_label in matching_units
        and edge.target_label in matching_units
    ]
    for edge in under_check:
        log.debug("Edge under check: %s -> %s", edge.source_label, edge.target_label)

    violations: list[Violation] = []
    for cycle in find_cycles(under_check, max_length=max_length):
        violation = CycleViolation(cycle=cycle)
        if ctx.log_violations:
            log.info("%s", format_violation(violation))
        violations.append(violation)

    log.info(
        "Cycle check over %d units and %d edges: %d cycles",
        len(matching_units),
        len(under_check),
        len(violations),
    )
    return violations
