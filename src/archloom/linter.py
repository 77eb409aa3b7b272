"""Linter orchestrator: extract the graph, load rules, evaluate, format results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from archloom.context import resolve_context
from archloom.errors import ConfigurationError
from archloom.extraction.config import load_project_config
from archloom.extraction.graph_extractor import extract_graph
from archloom.graph.projection import project_edges, project_internal_edges, project_to_nodes
from archloom.rules.cycle_free import check_cycle_free
from archloom.rules.dependencies import check_dependencies
from archloom.rules.diagram import check_diagram_adherence, check_forbidden_dependencies
from archloom.rules.files import check_matching_files
from archloom.rules.loader import (
    CycleRule,
    DependRule,
    DiagramRule,
    ForbidSlicesRule,
    MatchFilesRule,
    load_rules,
)
from archloom.rules.violations import (
    format_violation,
    violation_endpoints,
    violation_kind,
    violation_to_dict,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from archloom.context import CheckContext
    from archloom.graph.model import Edge
    from archloom.rules.loader import Rule
    from archloom.rules.violations import Violation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a configuration error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Finding:
    """A violation attributed to the rule that produced it."""

    rule_name: str
    rule_type: str
    severity: str
    description: str
    violation: Violation

    @property
    def message(self) -> str:
        return format_violation(self.violation)


@dataclass
class LintResult:
    """Result of a lint run."""

    findings: list[Finding] = field(default_factory=list)
    rules_evaluated: int = 0
    units_scanned: int = 0
    edges_extracted: int = 0
    elapsed_ms: float = 0.0

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "warn"]


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


_RULE_TYPES: dict[type, str] = {
    DependRule: "depend",
    CycleRule: "forbid_cycles",
    DiagramRule: "diagram",
    ForbidSlicesRule: "forbid_slices",
    MatchFilesRule: "match_files",
}


def rule_type_of(rule: Rule) -> str:
    return _RULE_TYPES[type(rule)]


def evaluate_rule(rule: Rule, edges: Sequence[Edge], ctx: CheckContext) -> list[Violation]:
    """Project *edges* the way *rule* needs and run its check."""
    if isinstance(rule, DependRule):
        return check_dependencies(
            project_internal_edges(edges),
            rule.from_filters,
            rule.to_filters,
            negated=rule.negated,
            ctx=ctx.with_options(allow_empty=rule.allow_empty),
        )
    if isinstance(rule, CycleRule):
        projected = (
            project_edges(edges, rule.slices)
            if rule.slices is not None
            else project_internal_edges(edges)
        )
        return check_cycle_free(
            projected,
            rule.within,
            ctx=ctx.with_options(allow_empty=rule.allow_empty),
            max_length=rule.max_length,
        )
    if isinstance(rule, DiagramRule):
        raw = [e for e in edges if not e.external] if rule.ignore_external else list(edges)
        return check_diagram_adherence(
            project_edges(raw, rule.slices),
            rule.diagram,
            ignore_unknown_nodes=rule.ignore_unknown_nodes,
            ctx=ctx,
        )
    if isinstance(rule, ForbidSlicesRule):
        return check_forbidden_dependencies(
            project_edges(edges, rule.slices), rule.pairs, ctx=ctx
        )
    return check_matching_files(
        project_to_nodes(edges),
        rule.pattern,
        rule.for_filters,
        negated=rule.negated,
        ctx=ctx.with_options(allow_empty=rule.allow_empty),
    )


def evaluate_all(
    rules: Sequence[Rule], edges: Sequence[Edge], *, ctx: CheckContext | None = None
) -> list[Finding]:
    """Evaluate every rule against one extracted graph."""
    ctx = resolve_context(ctx)
    findings: list[Finding] = []
    for rule in rules:
        rule_type = rule_type_of(rule)
        logger.debug("Evaluating rule '%s' (%s)", rule.name, rule_type)
        findings.extend(
            Finding(
                rule_name=rule.name,
                rule_type=rule_type,
                severity=rule.severity,
                description=rule.description,
                violation=violation,
            )
            for violation in evaluate_rule(rule, edges, ctx)
        )
    return findings


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    project: Path,
    *,
    rules_path: Path | None = None,
    ctx: CheckContext | None = None,
) -> LintResult:
    """Extract the import graph of *project* and evaluate its rules.

    Parameters
    ----------
    project:
        Project root directory or path to its ``archloom.yml``.
    rules_path:
        Optional explicit path to ``rules.yml``.  When *None* the path from
        the project configuration is used, and a missing file yields an
        empty result.
    ctx:
        Check context; its cache (if any) is used for extraction.

    Raises
    ------
    LintError
        When the project configuration or the rules file is invalid, or an
        explicitly given rules file does not exist.
    ExtractionError
        When the project path does not exist.
    """
    start = time.monotonic()
    ctx = resolve_context(ctx)

    try:
        config = load_project_config(project)
    except ConfigurationError as exc:
        msg = f"Invalid project configuration: {exc}"
        raise LintError(msg) from exc

    explicit = rules_path is not None
    if rules_path is None:
        rules_path = config.rules_path

    if rules_path is None or not rules_path.is_file():
        if explicit:
            msg = f"Rules file not found: {rules_path}"
            raise LintError(msg)
        logger.info("No rules file for %s, nothing to lint", config.root)
        return LintResult(elapsed_ms=(time.monotonic() - start) * 1000)

    try:
        rules = load_rules(rules_path)
    except ConfigurationError as exc:
        msg = f"Invalid rules configuration: {exc}"
        raise LintError(msg) from exc

    edges = extract_graph(config, cache=ctx.cache)
    units = {e.source for e in edges} | {e.target for e in edges if not e.external}

    try:
        findings = evaluate_all(rules, edges, ctx=ctx)
    except ConfigurationError as exc:
        msg = f"Invalid rules configuration: {exc}"
        raise LintError(msg) from exc

    return LintResult(
        findings=findings,
        rules_evaluated=len(rules),
        units_scanned=len(units),
        edges_extracted=len(edges),
        elapsed_ms=(time.monotonic() - start) * 1000,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_rich(result: LintResult) -> str:
    """Format a LintResult as human-readable text.

    Example output with violations::

        Rules: 3 loaded
        Units: 25 scanned, 142 edges extracted

        x ui-not-on-db [error]
          UI must not talk to the database directly
          src/ui/page.py must not depend on src/db/session.py

        1 violations found (3 rules evaluated, 0.8s)
    """
    lines: list[str] = []

    lines.append(f"Rules: {result.rules_evaluated} loaded")
    lines.append(f"Units: {result.units_scanned} scanned, {result.edges_extracted} edges extracted")
    lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    if result.findings:
        for f in result.findings:
            lines.append(f"✗ {f.rule_name} [{f.severity}]")
            if f.description:
                lines.append(f"  {f.description}")
            lines.extend(f"  {line}" for line in f.message.splitlines())
            lines.append("")

        count = len(result.findings)
        lines.append(
            f"{count} violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
    else:
        lines.append(
            f"✓ No violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )

    return "\n".join(lines)


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON.

    Returns a JSON string with ``violations`` array and ``summary`` object.
    """
    violations_list: list[dict[str, object]] = []
    for f in result.findings:
        entry: dict[str, object] = {
            "rule_name": f.rule_name,
            "rule_type": f.rule_type,
            "severity": f.severity,
        }
        entry.update(violation_to_dict(f.violation))
        violations_list.append(entry)

    output: dict[str, object] = {
        "violations": violations_list,
        "summary": {
            "rules_evaluated": result.rules_evaluated,
            "violations_count": len(result.findings),
            "errors": len(result.errors),
            "warnings": len(result.warnings),
            "units_scanned": result.units_scanned,
            "edges_extracted": result.edges_extracted,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2, ensure_ascii=False)


def format_porcelain(result: LintResult) -> str:
    """Format a LintResult as machine-readable one-line-per-violation output.

    Format: ``rule_name:rule_type:severity:kind:from:to``

    Missing endpoints are represented as empty strings.
    Returns empty string when there are no violations.
    """
    if not result.findings:
        return ""

    lines: list[str] = []
    for f in result.findings:
        source, target = violation_endpoints(f.violation)
        kind = violation_kind(f.violation)
        lines.append(
            f"{f.rule_name}:{f.rule_type}:{f.severity}:{kind}:{source or ''}:{target or ''}"
        )

    return "\n".join(lines)
