"""Violation vocabulary shared by every check, with one formatter per variant."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from archloom.graph.cycles import cycle_labels
from archloom.graph.patterns import describe_filters

if TYPE_CHECKING:
    from archloom.graph.model import Cycle, Node, ProjectedEdge
    from archloom.graph.patterns import Filter


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencyViolation:
    """An edge that breaks a should / should-not dependency rule."""

    edge: ProjectedEdge
    negated: bool = False


@dataclass(frozen=True)
class CycleViolation:
    """An elementary cycle, with every projected edge along it."""

    cycle: Cycle


@dataclass(frozen=True)
class DiagramRelation:
    """A directed relation between two labels (declared or forbidden)."""

    source: str
    target: str


@dataclass(frozen=True)
class DiagramViolation:
    """An edge that does not adhere to a diagram or matches a forbidden pair.

    ``rule`` is the forbidden relation that matched, or ``None`` when the
    edge matched no allowed relation of a diagram.
    """

    edge: ProjectedEdge
    rule: DiagramRelation | None = None


@dataclass(frozen=True)
class EmptyResultViolation:
    """The filters of a check matched no unit at all."""

    filters: tuple[Filter, ...]
    message: str = ""


@dataclass(frozen=True)
class NamingViolation:
    """A unit that does (or, negated, does not) match a required pattern."""

    node: Node
    pattern: Filter
    negated: bool = False


@dataclass(frozen=True)
class CustomFileViolation:
    """A unit rejected by a custom predicate."""

    path: str
    message: str


Violation = (
    DependencyViolation
    | CycleViolation
    | DiagramViolation
    | EmptyResultViolation
    | NamingViolation
    | CustomFileViolation
)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _edge_details(edge: ProjectedEdge) -> list[str]:
    lines: list[str] = []
    for raw in edge.cumulated_edges:
        if raw.source == edge.source_label and raw.target == edge.target_label:
            continue
        lines.append(f"    {raw.source} → {raw.target}")
    return lines


def format_dependency_violation(violation: DependencyViolation) -> str:
    edge = violation.edge
    verb = "must not depend on" if violation.negated else "is not allowed to depend on"
    return f"{edge.source_label} {verb} {edge.target_label}"


def format_cycle_violation(violation: CycleViolation) -> str:
    path = " → ".join(cycle_labels(violation.cycle))
    lines = [f"Circular dependency detected: {path}"]
    for edge in violation.cycle:
        lines.extend(_edge_details(edge))
    return "\n".join(lines)


def format_diagram_violation(violation: DiagramViolation) -> str:
    edge = violation.edge
    if violation.rule is None:
        head = (
            f"Dependency {edge.source_label} → {edge.target_label} "
            f"is not declared in the diagram"
        )
    else:
        head = (
            f"Forbidden dependency {violation.rule.source} → {violation.rule.target} "
            f"found"
        )
    return "\n".join([head, *_edge_details(edge)])


def format_empty_result_violation(violation: EmptyResultViolation) -> str:
    if violation.message:
        return violation.message
    described = describe_filters(violation.filters) or "<no filters>"
    return f"No units found matching pattern(s): {described}"


def format_naming_violation(violation: NamingViolation) -> str:
    expectation = "must not match" if violation.negated else "does not match"
    return f"{violation.node.label} {expectation} {violation.pattern.describe()}"


def format_custom_file_violation(violation: CustomFileViolation) -> str:
    return f"{violation.path}: {violation.message}"


def format_violation(violation: Violation) -> str:
    """Render any violation as a human-readable message."""
    if isinstance(violation, DependencyViolation):
        return format_dependency_violation(violation)
    if isinstance(violation, CycleViolation):
        return format_cycle_violation(violation)
    if isinstance(violation, DiagramViolation):
        return format_diagram_violation(violation)
    if isinstance(violation, EmptyResultViolation):
        return format_empty_result_violation(violation)
    if isinstance(violation, NamingViolation):
        return format_naming_violation(violation)
    if isinstance(violation, CustomFileViolation):
        return format_custom_file_violation(violation)
    msg = f"Unknown violation type: {type(violation).__name__}"
    raise TypeError(msg)


def violation_kind(violation: Violation) -> str:
    """Short machine-readable tag for *violation*."""
    kinds: dict[type, str] = {
        DependencyViolation: "dependency",
        CycleViolation: "cycle",
        DiagramViolation: "diagram",
        EmptyResultViolation: "empty",
        NamingViolation: "naming",
        CustomFileViolation: "custom",
    }
    return kinds[type(violation)]


def violation_endpoints(violation: Violation) -> tuple[str | None, str | None]:
    """Return the ``(from, to)`` labels a violation is about, where it has them."""
    if isinstance(violation, (DependencyViolation, DiagramViolation)):
        return violation.edge.source_label, violation.edge.target_label
    if isinstance(violation, CycleViolation) and violation.cycle:
        return violation.cycle[0].source_label, violation.cycle[0].target_label
    if isinstance(violation, NamingViolation):
        return violation.node.label, None
    if isinstance(violation, CustomFileViolation):
        return violation.path, None
    return None, None


def _edge_to_dict(edge: ProjectedEdge) -> dict[str, object]:
    return {
        "source": edge.source_label,
        "target": edge.target_label,
        "imports": [
            {
                "source": raw.source,
                "target": raw.target,
                "external": raw.external,
                "import_kinds": [kind.value for kind in raw.import_kinds],
            }
            for raw in edge.cumulated_edges
        ],
    }


def violation_to_dict(violation: Violation) -> dict[str, object]:
    """Structured form of *violation* for JSON output."""
    data: dict[str, object] = {"kind": violation_kind(violation)}
    if isinstance(violation, DependencyViolation):
        data["edge"] = _edge_to_dict(violation.edge)
        data["negated"] = violation.negated
    elif isinstance(violation, CycleViolation):
        data["cycle"] = [_edge_to_dict(edge) for edge in violation.cycle]
    elif isinstance(violation, DiagramViolation):
        data["edge"] = _edge_to_dict(violation.edge)
        data["rule"] = (
            None
            if violation.rule is None
            else {"source": violation.rule.source, "target": violation.rule.target}
        )
    elif isinstance(violation, EmptyResultViolation):
        data["filters"] = [flt.describe() for flt in violation.filters]
    elif isinstance(violation, NamingViolation):
        data["unit"] = violation.node.label
        data["pattern"] = violation.pattern.describe()
        data["negated"] = violation.negated
    elif isinstance(violation, CustomFileViolation):
        data["unit"] = violation.path
    data["message"] = format_violation(violation)
    return data
