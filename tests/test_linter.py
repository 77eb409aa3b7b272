"""Tests for archloom.linter — lint orchestration and output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from archloom.context import CheckContext
from archloom.extraction.cache import GraphCache
from archloom.graph.model import Edge
from archloom.graph.patterns import path_filter
from archloom.linter import (
    Finding,
    LintError,
    LintResult,
    evaluate_all,
    format_json,
    format_porcelain,
    format_rich,
    lint,
)
from archloom.rules.loader import DependRule
from archloom.rules.violations import CycleViolation, DependencyViolation, DiagramViolation

if TYPE_CHECKING:
    from pathlib import Path

_RULES = """\
version: 1
rules:
  - name: db-not-on-services
    description: The data layer must not call services
    depend:
      from: { path: 'src/shop/db/**' }
      to: { path: 'src/shop/services/**' }

  - name: no-slice-cycles
    severity: warn
    forbid_cycles:
      slices: 'src/shop/(**)/'

  - name: layers
    diagram:
      slices: 'src/shop/(**)/'
      inline: |
        @startuml
        component [api]
        component [services]
        component [db]
        [api] --> [services]
        [services] --> [db]
        @enduml

  - name: service-naming
    match_files:
      for: { folder: 'src/shop/services' }
      pattern: { filename: '*_service.py' }
"""


def _write_rules(project: Path, content: str = _RULES) -> Path:
    path = project / "rules.yml"
    path.write_text(content, encoding="utf-8")
    return path


def _by_rule(result: LintResult) -> dict[str, list[Finding]]:
    grouped: dict[str, list[Finding]] = {}
    for finding in result.findings:
        grouped.setdefault(finding.rule_name, []).append(finding)
    return grouped


# ---------------------------------------------------------------------------
# lint()
# ---------------------------------------------------------------------------


class TestLint:
    def test_findings_per_rule(self, py_project: Path) -> None:
        _write_rules(py_project)
        result = lint(py_project)

        assert result.rules_evaluated == 4
        assert result.units_scanned == 3
        assert result.edges_extracted == 6

        grouped = _by_rule(result)
        assert set(grouped) == {"db-not-on-services", "no-slice-cycles", "layers"}

        (dependency,) = grouped["db-not-on-services"]
        assert isinstance(dependency.violation, DependencyViolation)
        assert dependency.violation.edge.source_label == "src/shop/db/session.py"
        assert dependency.description == "The data layer must not call services"

        cycles = grouped["no-slice-cycles"]
        assert len(cycles) == 2
        assert all(isinstance(f.violation, CycleViolation) for f in cycles)
        assert all(f.severity == "warn" for f in cycles)

        undeclared = {
            (f.violation.edge.source_label, f.violation.edge.target_label)
            for f in grouped["layers"]
            if isinstance(f.violation, DiagramViolation)
        }
        assert undeclared == {("db", "services"), ("services", "api")}

        assert len(result.errors) == 3
        assert len(result.warnings) == 2

    def test_clean_project(self, py_project: Path) -> None:
        _write_rules(
            py_project,
            "version: 1\n"
            "rules:\n"
            "  - name: api-not-on-db\n"
            "    depend: { from: { path: 'src/shop/api/**' }, to: { path: 'src/shop/db/**' } }\n",
        )
        result = lint(py_project)
        assert result.findings == []
        assert result.rules_evaluated == 1

    def test_no_rules_file_is_empty_result(self, py_project: Path) -> None:
        result = lint(py_project)
        assert result.findings == []
        assert result.rules_evaluated == 0
        assert result.edges_extracted == 0

    def test_explicit_rules_path(
        self, py_project: Path, tmp_path_factory: pytest.TempPathFactory
    ) -> None:
        rules_dir = tmp_path_factory.mktemp("rules")
        rules_path = _write_rules(rules_dir)
        result = lint(py_project, rules_path=rules_path)
        assert result.rules_evaluated == 4

    def test_explicit_missing_rules_path(self, py_project: Path) -> None:
        with pytest.raises(LintError, match="Rules file not found"):
            lint(py_project, rules_path=py_project / "absent.yml")

    def test_invalid_rules(self, py_project: Path) -> None:
        _write_rules(py_project, "version: 7\nrules: []\n")
        with pytest.raises(LintError, match="Invalid rules configuration"):
            lint(py_project)

    def test_invalid_project_config(self, py_project: Path) -> None:
        (py_project / "archloom.yml").write_text("scan_paths: src\n", encoding="utf-8")
        with pytest.raises(LintError, match="Invalid project configuration"):
            lint(py_project)

    def test_rules_path_from_project_config(self, py_project: Path) -> None:
        (py_project / "archloom.yml").write_text("rules: arch/rules.yml\n", encoding="utf-8")
        (py_project / "arch").mkdir()
        _write_rules(py_project / "arch")
        assert lint(py_project).rules_evaluated == 4

    def test_uses_context_cache(self, py_project: Path) -> None:
        _write_rules(py_project)
        cache = GraphCache()
        lint(py_project, ctx=CheckContext(cache=cache))
        assert cache.stats()["entries"] == 1


class TestEvaluateAll:
    def test_attributes_findings_to_rules(self) -> None:
        rule = DependRule(
            name="no-up",
            description="",
            from_filters=(path_filter("lib/**"),),
            to_filters=(path_filter("app/**"),),
            negated=True,
            severity="warn",
        )
        edges = [Edge("lib/util.py", "app/main.py"), Edge("app/main.py", "lib/util.py")]
        (finding,) = evaluate_all([rule], edges)
        assert finding.rule_name == "no-up"
        assert finding.rule_type == "depend"
        assert finding.severity == "warn"
        assert finding.message == "lib/util.py must not depend on app/main.py"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _result() -> LintResult:
    edges = [Edge("lib/util.py", "app/main.py")]
    rule = DependRule(
        name="no-up",
        description="Libraries stay independent of the app",
        from_filters=(path_filter("lib/**"),),
        to_filters=(path_filter("app/**"),),
        negated=True,
    )
    return LintResult(
        findings=evaluate_all([rule], edges),
        rules_evaluated=1,
        units_scanned=2,
        edges_extracted=1,
        elapsed_ms=120.0,
    )


class TestFormatters:
    def test_rich(self) -> None:
        text = format_rich(_result())
        assert "Rules: 1 loaded" in text
        assert "Units: 2 scanned, 1 edges extracted" in text
        assert "✗ no-up [error]" in text
        assert "  Libraries stay independent of the app" in text
        assert "  lib/util.py must not depend on app/main.py" in text
        assert "1 violations found (1 rules evaluated, 0.1s)" in text

    def test_rich_clean(self) -> None:
        text = format_rich(LintResult(rules_evaluated=2))
        assert "✓ No violations found (2 rules evaluated, 0.0s)" in text

    def test_json(self) -> None:
        data = json.loads(format_json(_result()))
        (violation,) = data["violations"]
        assert violation["rule_name"] == "no-up"
        assert violation["rule_type"] == "depend"
        assert violation["severity"] == "error"
        assert violation["kind"] == "dependency"
        assert violation["edge"]["source"] == "lib/util.py"
        assert data["summary"]["violations_count"] == 1
        assert data["summary"]["errors"] == 1
        assert data["summary"]["warnings"] == 0
        assert data["summary"]["units_scanned"] == 2

    def test_porcelain(self) -> None:
        assert format_porcelain(_result()) == (
            "no-up:depend:error:dependency:lib/util.py:app/main.py"
        )

    def test_porcelain_empty(self) -> None:
        assert format_porcelain(LintResult()) == ""
