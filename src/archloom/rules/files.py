"""Per-unit checks over projected nodes: naming, folder placement, custom predicates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from archloom.context import resolve_context
from archloom.graph.patterns import (
    extract_filename,
    matches_all,
    matches_pattern,
    path_without_filename,
)
from archloom.rules.violations import (
    CustomFileViolation,
    EmptyResultViolation,
    NamingViolation,
    format_violation,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from archloom.context import CheckContext
    from archloom.graph.model import Node
    from archloom.graph.patterns import Filter
    from archloom.rules.violations import Violation


@dataclass(frozen=True)
class FileInfo:
    """What a custom predicate gets to see about one unit."""

    path: str
    name: str
    extension: str
    directory: str
    content: str
    lines_of_code: int


def _select(
    nodes: Sequence[Node], preconditions: Sequence[Filter], ctx: CheckContext
) -> list[Node]:
    selected = [node for node in nodes if matches_all(node, preconditions, log=ctx.logger)]
    for node in selected:
        ctx.logger.debug("File under check: %s", node.label)
    return selected


def check_matching_files(
    nodes: Sequence[Node],
    pattern: Filter,
    preconditions: Sequence[Filter] = (),
    *,
    negated: bool = False,
    ctx: CheckContext | None = None,
) -> list[Violation]:
    """Every node selected by *preconditions* must match *pattern*.

    With ``negated=True`` selected nodes must *not* match instead.  This
    covers naming conventions (a filename pattern) and folder placement (a
    folder pattern).
    """
    ctx = resolve_context(ctx)
    selected = _select(nodes, preconditions, ctx)
    if not selected:
        if ctx.allow_empty:
            return []
        ctx.logger.warning("No files matched preconditions; reporting empty result")
        return [EmptyResultViolation(tuple(preconditions))]

    violations: list[Violation] = []
    for node in selected:
        matched = matches_pattern(node, pattern, log=ctx.logger)
        if matched == negated:
            violation = NamingViolation(node=node, pattern=pattern, negated=negated)
            if ctx.log_violations:
                ctx.logger.info("%s", format_violation(violation))
            violations.append(violation)
    return violations


def build_file_info(label: str, root: Path) -> FileInfo:
    """Collect path details and content of the unit *label* under *root*.

    Unreadable files yield empty content rather than an error.
    """
    name_with_ext = extract_filename(label)
    if "." in name_with_ext:
        name, extension = name_with_ext.rsplit(".", 1)
    else:
        name, extension = name_with_ext, ""

    try:
        content = (root / label).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        content = ""

    return FileInfo(
        path=label,
        name=name,
        extension=extension,
        directory=path_without_filename(label),
        content=content,
        lines_of_code=sum(1 for line in content.splitlines() if line.strip()),
    )


def check_custom_files(
    nodes: Sequence[Node],
    preconditions: Sequence[Filter],
    condition: Callable[[FileInfo], bool],
    message: str,
    *,
    root: Path,
    ctx: CheckContext | None = None,
) -> list[Violation]:
    """Report every selected unit for which *condition* returns ``False``."""
    ctx = resolve_context(ctx)
    selected = _select(nodes, preconditions, ctx)
    ctx.logger.debug("Found %d matching files from %d total nodes", len(selected), len(nodes))
    if not selected:
        if ctx.allow_empty:
            return []
        ctx.logger.warning("No files matched preconditions; reporting empty result")
        return [EmptyResultViolation(tuple(preconditions))]

    violations: list[Violation] = []
    for node in selected:
        info = build_file_info(node.label, root)
        if not condition(info):
            violation = CustomFileViolation(path=node.label, message=message)
            if ctx.log_violations:
                ctx.logger.info("%s", format_violation(violation))
            violations.append(violation)
    return violations
