"""Diagram-based conformance: PlantUML component diagrams as dependency rules.

Reads the component and relation declarations of a ``@startuml`` block,
flags projected edges the diagram does not declare, and renders a sliced
graph back into the same diagram syntax.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archloom.context import resolve_context
from archloom.errors import ConfigurationError
from archloom.rules.violations import DiagramRelation, DiagramViolation, format_violation

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from archloom.context import CheckContext
    from archloom.graph.model import ProjectedEdge
    from archloom.rules.violations import Violation


@dataclass(frozen=True)
class Diagram:
    """Declared components and the directed relations allowed between them."""

    components: frozenset[str]
    relations: frozenset[DiagramRelation]

    def allows(self, source: str, target: str) -> bool:
        return DiagramRelation(source, target) in self.relations


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

# Component reference: ``[Name With Spaces]``, ``"Quoted"``, or a bare identifier.
_REF = r"(?:\[([^\]]+)\]|\"([^\"]+)\"|([A-Za-z_$][\w$]*))"

_COMPONENT_RE = re.compile(
    rf"^component\s+{_REF}(?:\s+as\s+([A-Za-z_$][\w$]*))?"
    r"(?:\s*<<[^>]*>>)?(?:\s*#\w+)?\s*(?:\{)?$"
)
_BARE_COMPONENT_RE = re.compile(r"^\[([^\]]+)\](?:\s+as\s+([A-Za-z_$][\w$]*))?$")
_RELATION_RE = re.compile(
    rf"^{_REF}\s*(<)?([-.]+(?:\[[^\]]*\])?(?:left|right|up|down|le|ri|do)?[-.]*)(>)?\s*{_REF}"
    r"\s*(?::.*)?$"
)
_GROUP_OPEN_RE = re.compile(
    r"^(package|node|folder|frame|cloud|database|rectangle|together)\b[^{]*\{$"
)
_SKIPPED_PREFIXES = (
    "'",
    "!",
    "skinparam",
    "title",
    "header",
    "footer",
    "caption",
    "legend",
    "endlegend",
    "hide",
    "show",
    "left to right direction",
    "top to bottom direction",
    "scale",
    "note",
    "end note",
)


def _ref_name(groups: tuple[str | None, ...]) -> str:
    return next(g for g in groups if g is not None).strip()


def _strip_block(text: str) -> list[tuple[int, str]]:
    """Return the numbered lines between ``@startuml`` and ``@enduml``."""
    lines = text.splitlines()
    start = end = None
    for number, raw in enumerate(lines, start=1):
        stripped = raw.strip()
        if stripped.startswith("@startuml") and start is None:
            start = number
        elif stripped.startswith("@enduml") and start is not None:
            end = number
            break
    if start is None or end is None:
        msg = "Diagram must be enclosed in '@startuml' ... '@enduml'"
        raise ConfigurationError(msg)
    return [(number, lines[number - 1].strip()) for number in range(start + 1, end)]


def parse_diagram(text: str) -> Diagram:
    """Parse PlantUML component diagram text into a :class:`Diagram`.

    Aliases (``component [User Interface] as UI``) resolve to component
    names, so relations may use either.  Relations may reference names that
    are not declared as components; only declared names are components.

    Raises
    ------
    ConfigurationError
        When the ``@startuml``/``@enduml`` block is missing or a line can
        not be understood.
    """
    components: list[str] = []
    aliases: dict[str, str] = {}
    raw_relations: list[tuple[str, str]] = []
    in_note = False

    for number, line in _strip_block(text):
        if not line:
            continue
        if in_note:
            in_note = not line.startswith("end note")
            continue
        if line.startswith("note") and ":" not in line:
            in_note = True
            continue
        if line.startswith(_SKIPPED_PREFIXES) or line == "}":
            continue
        if _GROUP_OPEN_RE.match(line):
            continue

        match = _COMPONENT_RE.match(line) or _BARE_COMPONENT_RE.match(line)
        if match is not None:
            groups = match.groups()
            if match.re is _BARE_COMPONENT_RE:
                name, alias = groups[0].strip(), groups[1]
            else:
                name, alias = _ref_name(groups[:3]), groups[3]
            components.append(name)
            if alias:
                aliases[alias] = name
            continue

        match = _RELATION_RE.match(line)
        if match is not None:
            groups = match.groups()
            left = _ref_name(groups[0:3])
            reverse, forward = groups[3], groups[5]
            right = _ref_name(groups[6:9])
            if reverse:
                raw_relations.append((right, left))
            if forward or not reverse:
                raw_relations.append((left, right))
            continue

        msg = f"Unparsable diagram line {number}: '{line}'"
        raise ConfigurationError(msg)

    relations = frozenset(
        DiagramRelation(aliases.get(src, src), aliases.get(dst, dst))
        for src, dst in raw_relations
    )
    return Diagram(components=frozenset(components), relations=relations)


def load_diagram(path: Path) -> Diagram:
    """Read and parse a diagram file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read diagram file {path}: {exc}"
        raise ConfigurationError(msg) from exc
    return parse_diagram(text)


# ---------------------------------------------------------------------------
# Conformance
# ---------------------------------------------------------------------------


def check_diagram_adherence(
    edges: Sequence[ProjectedEdge],
    diagram: Diagram,
    *,
    ignore_unknown_nodes: bool = False,
    ctx: CheckContext | None = None,
) -> list[Violation]:
    """Flag every projected edge the diagram does not declare.

    An edge violates the diagram iff its ``(source, target)`` pair is not a
    declared relation.  With *ignore_unknown_nodes*, edges with at least one
    endpoint that is not a declared component are skipped ("not modeled"
    rather than "forbidden"); without it they are reported like any other
    undeclared edge.
    """
    ctx = resolve_context(ctx)
    log = ctx.logger
    violations: list[Violation] = []

    for edge in edges:
        log.debug("Found edge: From %s to %s", edge.source_label, edge.target_label)
        known = (
            edge.source_label in diagram.components and edge.target_label in diagram.components
        )
        if ignore_unknown_nodes and not known:
            continue
        if diagram.allows(edge.source_label, edge.target_label):
            continue
        violation = DiagramViolation(edge=edge, rule=None)
        if ctx.log_violations:
            log.info("%s", format_violation(violation))
        violations.append(violation)

    log.info(
        "Diagram check over %d edges (%d components, %d relations): %d violations",
        len(edges),
        len(diagram.components),
        len(diagram.relations),
        len(violations),
    )
    return violations


def check_forbidden_dependencies(
    edges: Sequence[ProjectedEdge],
    forbidden: Iterable[DiagramRelation],
    *,
    ctx: CheckContext | None = None,
) -> list[Violation]:
    """Flag every projected edge that matches a forbidden ``(source, target)`` pair."""
    ctx = resolve_context(ctx)
    rules = list(forbidden)
    violations: list[Violation] = []

    for edge in edges:
        for rule in rules:
            if edge.source_label == rule.source and edge.target_label == rule.target:
                violation = DiagramViolation(edge=edge, rule=rule)
                if ctx.log_violations:
                    ctx.logger.info("%s", format_violation(violation))
                violations.append(violation)

    ctx.logger.info(
        "Forbidden dependency check over %d edges and %d pairs: %d violations",
        len(edges),
        len(rules),
        len(violations),
    )
    return violations


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_diagram(edges: Iterable[ProjectedEdge]) -> str:
    """Render projected edges as a PlantUML component diagram.

    Every label becomes a component; self-edges are omitted.  The output
    parses back with :func:`parse_diagram`.
    """
    edge_list = list(edges)
    labels: dict[str, None] = {}
    for edge in edge_list:
        labels.setdefault(edge.source_label, None)
        labels.setdefault(edge.target_label, None)

    lines = ["@startuml"]
    lines.extend(f"component [{label}]" for label in labels)
    lines.extend(
        f"[{edge.source_label}] --> [{edge.target_label}]"
        for edge in edge_list
        if not edge.is_self_loop
    )
    lines.append("@enduml")
    return "\n".join(lines)
