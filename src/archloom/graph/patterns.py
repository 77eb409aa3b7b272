"""Filters: glob or regex patterns bound to the part of a unit they test."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archloom.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from archloom.graph.model import Node

logger = logging.getLogger(__name__)

Pattern = str | re.Pattern[str]


class MatchTarget(str, enum.Enum):
    """Which part of a unit identifier a filter is tested against."""

    FILENAME = "filename"
    PATH = "path"
    FOLDER = "path-no-filename"
    UNIT = "unit"


@dataclass(frozen=True)
class Filter:
    """A compiled pattern plus the target selector it applies to."""

    regex: re.Pattern[str]
    target: MatchTarget = MatchTarget.PATH
    source: str = ""

    def describe(self) -> str:
        """Human-readable form used in violation messages."""
        text = self.source or self.regex.pattern
        return f"{self.target.value}:{text}"


# ---------------------------------------------------------------------------
# Glob translation
# ---------------------------------------------------------------------------


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a glob into an anchored regular expression.

    ``?`` matches one character other than ``/``, ``*`` any run of such
    characters, ``**`` any run including ``/``; a ``**/`` segment also
    matches zero directories.  Character classes ``[...]`` pass through,
    with ``[!...]`` accepted as negation.

    Raises :class:`ConfigurationError` for an unterminated class.
    """
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if i + 1 < n and pattern[i + 1] == "*":
                i += 2
                if i < n and pattern[i] == "/":
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 2 if pattern[i + 1 : i + 2] in ("!", "^") else i + 1)
            if end == -1:
                msg = f"Invalid glob pattern '{pattern}': unterminated character class"
                raise ConfigurationError(msg)
            body = pattern[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
            i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return compile_regex("^" + "".join(out) + "$")


def compile_regex(expression: str) -> re.Pattern[str]:
    """Compile *expression*, converting syntax errors into ConfigurationError."""
    try:
        return re.compile(expression)
    except re.error as exc:
        msg = f"Invalid regular expression '{expression}': {exc}"
        raise ConfigurationError(msg) from exc


def _to_regex(pattern: Pattern) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return glob_to_regex(pattern)


def _source_of(pattern: Pattern) -> str:
    return pattern.pattern if isinstance(pattern, re.Pattern) else pattern


# ---------------------------------------------------------------------------
# Filter factories
# ---------------------------------------------------------------------------


def filename_filter(pattern: Pattern) -> Filter:
    """Match against the file name only (``user_service.py``)."""
    return Filter(_to_regex(pattern), MatchTarget.FILENAME, _source_of(pattern))


def path_filter(pattern: Pattern) -> Filter:
    """Match against the full project-relative path."""
    return Filter(_to_regex(pattern), MatchTarget.PATH, _source_of(pattern))


def folder_filter(pattern: Pattern) -> Filter:
    """Match against the path with the file name removed."""
    return Filter(_to_regex(pattern), MatchTarget.FOLDER, _source_of(pattern))


def unit_filter(pattern: Pattern) -> Filter:
    """Match against the logical unit name (a slice label, for example)."""
    return Filter(_to_regex(pattern), MatchTarget.UNIT, _source_of(pattern))


def exact_path_filter(file_path: str) -> Filter:
    """Match exactly one project-relative path."""
    normalized = normalize_path(file_path)
    return Filter(re.compile(f"^{re.escape(normalized)}$"), MatchTarget.PATH, normalized)


_FACTORIES = {
    MatchTarget.FILENAME: filename_filter,
    MatchTarget.PATH: path_filter,
    MatchTarget.FOLDER: folder_filter,
    MatchTarget.UNIT: unit_filter,
}


def make_filter(target: MatchTarget, pattern: Pattern) -> Filter:
    """Build a filter for an explicit target selector."""
    return _FACTORIES[target](pattern)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def extract_filename(path: str) -> str:
    return normalize_path(path).rsplit("/", 1)[-1]


def path_without_filename(path: str) -> str:
    normalized = normalize_path(path)
    if "/" not in normalized:
        return ""
    return normalized.rsplit("/", 1)[0]


def _target_string(label: str, target: MatchTarget) -> str:
    if target is MatchTarget.FILENAME:
        return extract_filename(label)
    if target is MatchTarget.FOLDER:
        return path_without_filename(label)
    if target is MatchTarget.UNIT:
        return label
    return normalize_path(label)


def matches_pattern(
    unit: Node | str, flt: Filter, *, log: logging.Logger | None = None
) -> bool:
    """Return True if *unit* (a label or a node) matches *flt*."""
    label = unit if isinstance(unit, str) else unit.label
    target_string = _target_string(label, flt.target)
    matched = flt.regex.search(target_string) is not None
    (log or logger).debug(
        "Testing %s: %s %r against %s -> %s",
        label,
        flt.target.value,
        target_string,
        flt.regex.pattern,
        matched,
    )
    return matched


def matches_all(
    unit: Node | str, filters: Iterable[Filter], *, log: logging.Logger | None = None
) -> bool:
    """All filters must match; an empty filter list matches every unit."""
    return all(matches_pattern(unit, flt, log=log) for flt in filters)


def matches_any(
    unit: Node | str, filters: Iterable[Filter], *, log: logging.Logger | None = None
) -> bool:
    """At least one filter must match."""
    return any(matches_pattern(unit, flt, log=log) for flt in filters)


def describe_filters(filters: Iterable[Filter]) -> str:
    return ", ".join(flt.describe() for flt in filters)
