"""Tests for archloom.rules.dependencies and archloom.rules.cycle_free."""

from __future__ import annotations

import logging

import pytest

from archloom.context import CheckContext
from archloom.errors import ConfigurationError
from archloom.graph.model import Edge
from archloom.graph.patterns import filename_filter, path_filter
from archloom.graph.projection import project_internal_edges
from archloom.rules.cycle_free import check_cycle_free
from archloom.rules.dependencies import check_dependencies
from archloom.rules.violations import (
    CycleViolation,
    DependencyViolation,
    EmptyResultViolation,
)

_SERVICES = [path_filter("services/**")]
_CONTROLLERS = [path_filter("controllers/**")]


def _edges(*pairs: tuple[str, str]) -> list:
    return project_internal_edges([Edge(s, t) for s, t in pairs])


# ---------------------------------------------------------------------------
# Should not
# ---------------------------------------------------------------------------


class TestShouldNotDepend:
    def test_forward_edge_is_violation(self) -> None:
        edges = _edges(("services/x.py", "controllers/y.py"))
        violations = check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True)
        assert len(violations) == 1
        violation = violations[0]
        assert isinstance(violation, DependencyViolation)
        assert violation.negated is True
        assert violation.edge.source_label == "services/x.py"
        assert violation.edge.target_label == "controllers/y.py"

    def test_reverse_edge_is_not_violation(self) -> None:
        edges = _edges(
            ("controllers/y.py", "services/x.py"),
            ("services/x.py", "services/z.py"),
        )
        assert check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True) == []

    def test_only_object_filters_matches_every_subject(self) -> None:
        edges = _edges(("services/x.py", "util/log.py"), ("util/log.py", "services/x.py"))
        violations = check_dependencies(edges, _SERVICES, [], negated=True)
        assert [(v.edge.source_label, v.edge.target_label) for v in violations] == [
            ("services/x.py", "util/log.py")
        ]

    def test_filters_are_and_combined(self) -> None:
        edges = _edges(
            ("services/x_test.py", "controllers/y.py"),
            ("services/x.py", "controllers/y.py"),
        )
        object_filters = [*_SERVICES, filename_filter("*_test.py")]
        violations = check_dependencies(edges, object_filters, _CONTROLLERS, negated=True)
        assert len(violations) == 1
        assert violations[0].edge.source_label == "services/x_test.py"


# ---------------------------------------------------------------------------
# Should
# ---------------------------------------------------------------------------


class TestShouldDepend:
    def test_edges_leaving_subject_are_violations(self) -> None:
        edges = _edges(
            ("controllers/y.py", "services/x.py"),
            ("controllers/y.py", "db/session.py"),
            ("services/x.py", "db/session.py"),
        )
        violations = check_dependencies(edges, _CONTROLLERS, _SERVICES, negated=False)
        assert len(violations) == 1
        assert violations[0].edge.target_label == "db/session.py"
        assert violations[0].negated is False

    def test_all_edges_into_subject(self) -> None:
        edges = _edges(("controllers/y.py", "services/x.py"))
        assert check_dependencies(edges, _CONTROLLERS, _SERVICES, negated=False) == []


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


class TestDependencyPreconditions:
    def test_no_filters_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            check_dependencies(_edges(("a", "b")), [], [], negated=True)

    def test_empty_object_partition(self) -> None:
        edges = _edges(("controllers/y.py", "models/m.py"))
        violations = check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True)
        assert len(violations) == 1
        assert isinstance(violations[0], EmptyResultViolation)
        assert violations[0].filters == (*_SERVICES, *_CONTROLLERS)

    def test_empty_subject_partition(self) -> None:
        edges = _edges(("services/x.py", "models/m.py"))
        violations = check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True)
        assert [type(v) for v in violations] == [EmptyResultViolation]

    def test_allow_empty_suppresses(self) -> None:
        edges = _edges(("controllers/y.py", "models/m.py"))
        ctx = CheckContext(allow_empty=True)
        assert check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True, ctx=ctx) == []

    def test_empty_result_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="archloom.checks"):
            check_dependencies(_edges(("a.py", "b.py")), _SERVICES, _CONTROLLERS, negated=True)
        assert any(rec.levelno == logging.WARNING for rec in caplog.records)

    def test_idempotent(self) -> None:
        edges = _edges(("services/x.py", "controllers/y.py"))
        first = check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True)
        second = check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True)
        assert first == second

    def test_violations_logged_with_context_logger(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        log = logging.getLogger("archloom.test.deps")
        ctx = CheckContext(logger=log, log_violations=True)
        edges = _edges(("services/x.py", "controllers/y.py"))
        with caplog.at_level(logging.INFO, logger="archloom.test.deps"):
            check_dependencies(edges, _SERVICES, _CONTROLLERS, negated=True, ctx=ctx)
        messages = [rec.getMessage() for rec in caplog.records if rec.name == "archloom.test.deps"]
        assert "services/x.py must not depend on controllers/y.py" in messages


# ---------------------------------------------------------------------------
# Cycle freedom
# ---------------------------------------------------------------------------


class TestCheckCycleFree:
    def test_reports_each_cycle(self) -> None:
        edges = _edges(
            ("src/a.py", "src/b.py"),
            ("src/b.py", "src/a.py"),
            ("src/a.py", "src/c.py"),
            ("src/c.py", "src/a.py"),
        )
        violations = check_cycle_free(edges, [path_filter("src/**")])
        assert len(violations) == 2
        assert all(isinstance(v, CycleViolation) for v in violations)

    def test_filters_restrict_both_endpoints(self) -> None:
        edges = _edges(
            ("src/a.py", "lib/b.py"),
            ("lib/b.py", "src/a.py"),
            ("src/x.py", "src/y.py"),
        )
        assert check_cycle_free(edges, [path_filter("src/**")]) == []

    def test_self_loops_ignored(self) -> None:
        edges = _edges(("src/a.py", "src/a.py"))
        assert check_cycle_free(edges) == []

    def test_no_matching_unit_is_empty_result(self) -> None:
        edges = _edges(("src/a.py", "src/b.py"))
        violations = check_cycle_free(edges, [path_filter("lib/**")])
        assert [type(v) for v in violations] == [EmptyResultViolation]

    def test_allow_empty(self) -> None:
        edges = _edges(("src/a.py", "src/b.py"))
        ctx = CheckContext(allow_empty=True)
        assert check_cycle_free(edges, [path_filter("lib/**")], ctx=ctx) == []

    def test_cycle_carries_raw_edges(self) -> None:
        edges = _edges(("src/a.py", "src/b.py"), ("src/b.py", "src/a.py"))
        (violation,) = check_cycle_free(edges)
        assert isinstance(violation, CycleViolation)
        raw = [e for projected in violation.cycle for e in projected.cumulated_edges]
        assert raw == [Edge("src/a.py", "src/b.py"), Edge("src/b.py", "src/a.py")]
