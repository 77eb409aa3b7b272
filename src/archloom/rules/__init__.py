"""Rules domain — checks, violations, PlantUML diagrams, and rules.yml loading."""

from archloom.rules.cycle_free import check_cycle_free
from archloom.rules.dependencies import check_dependencies
from archloom.rules.diagram import (
    Diagram,
    check_diagram_adherence,
    check_forbidden_dependencies,
    export_diagram,
    load_diagram,
    parse_diagram,
)
from archloom.rules.files import (
    FileInfo,
    build_file_info,
    check_custom_files,
    check_matching_files,
)
from archloom.rules.loader import (
    CycleRule,
    DependRule,
    DiagramRule,
    ForbidSlicesRule,
    MatchFilesRule,
    Rule,
    load_rules,
    parse_rules,
)
from archloom.rules.violations import (
    CustomFileViolation,
    CycleViolation,
    DependencyViolation,
    DiagramRelation,
    DiagramViolation,
    EmptyResultViolation,
    NamingViolation,
    Violation,
    format_violation,
    violation_to_dict,
)

__all__ = [
    "CustomFileViolation",
    "CycleRule",
    "CycleViolation",
    "DependRule",
    "DependencyViolation",
    "Diagram",
    "DiagramRelation",
    "DiagramRule",
    "DiagramViolation",
    "EmptyResultViolation",
    "FileInfo",
    "ForbidSlicesRule",
    "MatchFilesRule",
    "NamingViolation",
    "Rule",
    "Violation",
    "build_file_info",
    "check_custom_files",
    "check_cycle_free",
    "check_dependencies",
    "check_diagram_adherence",
    "check_forbidden_dependencies",
    "check_matching_files",
    "export_diagram",
    "format_violation",
    "load_diagram",
    "load_rules",
    "parse_diagram",
    "parse_rules",
    "violation_to_dict",
]
