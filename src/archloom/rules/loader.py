"""Rule file loader: parse rules.yml, validate, and build typed rule objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

from archloom.errors import ConfigurationError
from archloom.graph.patterns import MatchTarget, compile_regex, make_filter
from archloom.graph.projection import PatternProjection, SuffixProjection
from archloom.rules.diagram import load_diagram, parse_diagram
from archloom.rules.violations import DiagramRelation

if TYPE_CHECKING:
    from pathlib import Path

    from archloom.graph.patterns import Filter
    from archloom.graph.projection import Projection
    from archloom.rules.diagram import Diagram

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_RULE_SEVERITIES: frozenset[str] = frozenset({"error", "warn"})
VALID_DEPEND_MODES: frozenset[str] = frozenset({"should", "should_not"})
SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})
RULE_TYPES: tuple[str, ...] = (
    "depend",
    "forbid_cycles",
    "diagram",
    "forbid_slices",
    "match_files",
)

_FILTER_KEYS: dict[str, MatchTarget] = {
    "filename": MatchTarget.FILENAME,
    "path": MatchTarget.PATH,
    "folder": MatchTarget.FOLDER,
    "unit": MatchTarget.UNIT,
}

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependRule:
    """Units matched by ``from`` should (or should not) depend on units matched by ``to``."""

    name: str
    description: str
    from_filters: tuple[Filter, ...]
    to_filters: tuple[Filter, ...]
    negated: bool
    severity: str = "error"  # "error" | "warn"
    allow_empty: bool | None = None


@dataclass(frozen=True)
class CycleRule:
    """Forbid import cycles among matched units, optionally between slices."""

    name: str
    description: str
    within: tuple[Filter, ...]
    slices: Projection | None = None
    max_length: int | None = None
    severity: str = "error"  # "error" | "warn"
    allow_empty: bool | None = None


@dataclass(frozen=True)
class DiagramRule:
    """Sliced dependencies must all be declared in a component diagram."""

    name: str
    description: str
    slices: Projection
    diagram: Diagram
    ignore_unknown_nodes: bool = False
    ignore_external: bool = True
    severity: str = "error"  # "error" | "warn"


@dataclass(frozen=True)
class ForbidSlicesRule:
    """Forbid specific dependencies between named slices."""

    name: str
    description: str
    slices: Projection
    pairs: tuple[DiagramRelation, ...]
    severity: str = "error"  # "error" | "warn"


@dataclass(frozen=True)
class MatchFilesRule:
    """Units selected by ``for`` must (or must not) match ``pattern``."""

    name: str
    description: str
    for_filters: tuple[Filter, ...]
    pattern: Filter
    negated: bool = False
    severity: str = "error"  # "error" | "warn"
    allow_empty: bool | None = None


Rule = DependRule | CycleRule | DiagramRule | ForbidSlicesRule | MatchFilesRule


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _parse_filter(data: object, context: str) -> Filter:
    """Parse one filter mapping such as ``{filename: "*_service.py"}``.

    Exactly one of ``filename``, ``path``, ``folder``, ``unit`` must be
    given; ``regex: true`` treats its value as a regular expression
    instead of a glob.
    """
    if not isinstance(data, dict):
        msg = f"{context}: filter must be a mapping"
        raise ConfigurationError(msg)

    keys = [key for key in _FILTER_KEYS if key in data]
    if len(keys) != 1:
        msg = f"{context}: filter must have exactly one of {sorted(_FILTER_KEYS)}"
        raise ConfigurationError(msg)
    unknown = set(data) - set(_FILTER_KEYS) - {"regex"}
    if unknown:
        msg = f"{context}: unknown filter keys {sorted(unknown)}"
        raise ConfigurationError(msg)

    key = keys[0]
    value = data[key]
    if not isinstance(value, str) or not value:
        msg = f"{context}: '{key}' must be a non-empty string"
        raise ConfigurationError(msg)

    if data.get("regex", False):
        return make_filter(_FILTER_KEYS[key], compile_regex(value))
    return make_filter(_FILTER_KEYS[key], value)


def _parse_filters(data: object, context: str) -> tuple[Filter, ...]:
    """Parse one filter mapping or a list of them (AND-combined); absent means none."""
    if data is None:
        return ()
    if isinstance(data, list):
        return tuple(_parse_filter(item, f"{context}[{idx}]") for idx, item in enumerate(data))
    return (_parse_filter(data, context),)


def _parse_projection(data: object, context: str) -> Projection:
    """Parse a slice definition.

    A string is a slice pattern with one ``(**)`` placeholder; a mapping
    holds either ``regex`` (one capture group) or ``suffixes``
    (ordered ``suffix: label`` table).
    """
    if isinstance(data, str):
        return PatternProjection.from_slice_pattern(data)
    if isinstance(data, dict):
        if "regex" in data:
            return PatternProjection.from_regex(str(data["regex"]))
        suffixes = data.get("suffixes")
        if isinstance(suffixes, dict):
            return SuffixProjection.from_mapping({str(k): str(v) for k, v in suffixes.items()})
    msg = f"{context}: slices must be a pattern string or a mapping with 'regex' or 'suffixes'"
    raise ConfigurationError(msg)


def _parse_bool(data: dict[str, object], key: str, context: str, *, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        msg = f"{context}: '{key}' must be true or false"
        raise ConfigurationError(msg)
    return value


def _parse_depend_rule(
    name: str,
    description: str,
    data: dict[str, object],
    *,
    severity: str,
    allow_empty: bool | None,
) -> DependRule:
    """Parse the 'depend' block of a rule."""
    mode = str(data.get("mode", "should_not"))
    if mode not in VALID_DEPEND_MODES:
        msg = (
            f"Rule '{name}': invalid depend.mode '{mode}', "
            f"must be one of {sorted(VALID_DEPEND_MODES)}"
        )
        raise ConfigurationError(msg)

    from_filters = _parse_filters(data.get("from"), f"Rule '{name}' depend.from")
    to_filters = _parse_filters(data.get("to"), f"Rule '{name}' depend.to")
    if not from_filters and not to_filters:
        msg = f"Rule '{name}': depend needs at least one of 'from' or 'to'"
        raise ConfigurationError(msg)

    return DependRule(
        name=name,
        description=description,
        from_filters=from_filters,
        to_filters=to_filters,
        negated=mode == "should_not",
        severity=severity,
        allow_empty=allow_empty,
    )


def _parse_cycle_rule(
    name: str,
    description: str,
    data: dict[str, object],
    *,
    severity: str,
    allow_empty: bool | None,
) -> CycleRule:
    """Parse the 'forbid_cycles' block of a rule."""
    within = _parse_filters(data.get("within"), f"Rule '{name}' forbid_cycles.within")
    slices_raw = data.get("slices")
    slices = (
        _parse_projection(slices_raw, f"Rule '{name}' forbid_cycles")
        if slices_raw is not None
        else None
    )

    max_length_raw = data.get("max_length")
    max_length: int | None = None
    if max_length_raw is not None:
        if not isinstance(max_length_raw, int) or max_length_raw < 2:
            msg = f"Rule '{name}': forbid_cycles.max_length must be an integer >= 2"
            raise ConfigurationError(msg)
        max_length = max_length_raw

    return CycleRule(
        name=name,
        description=description,
        within=within,
        slices=slices,
        max_length=max_length,
        severity=severity,
        allow_empty=allow_empty,
    )


def _parse_diagram_rule(
    name: str,
    description: str,
    data: dict[str, object],
    *,
    severity: str,
    base_dir: Path,
) -> DiagramRule:
    """Parse the 'diagram' block of a rule; the diagram itself is read eagerly."""
    context = f"Rule '{name}' diagram"
    if "slices" not in data:
        msg = f"{context}: 'slices' is required"
        raise ConfigurationError(msg)
    slices = _parse_projection(data["slices"], context)

    inline = data.get("inline")
    file_name = data.get("file")
    if (inline is None) == (file_name is None):
        msg = f"{context}: exactly one of 'inline' or 'file' is required"
        raise ConfigurationError(msg)

    if inline is not None:
        diagram = parse_diagram(str(inline))
    else:
        diagram = load_diagram(base_dir / str(file_name))

    return DiagramRule(
        name=name,
        description=description,
        slices=slices,
        diagram=diagram,
        ignore_unknown_nodes=_parse_bool(data, "ignore_unknown_nodes", context, default=False),
        ignore_external=_parse_bool(data, "ignore_external", context, default=True),
        severity=severity,
    )


def _parse_forbid_slices_rule(
    name: str,
    description: str,
    data: dict[str, object],
    *,
    severity: str,
) -> ForbidSlicesRule:
    """Parse the 'forbid_slices' block of a rule."""
    context = f"Rule '{name}' forbid_slices"
    if "slices" not in data:
        msg = f"{context}: 'slices' is required"
        raise ConfigurationError(msg)
    slices = _parse_projection(data["slices"], context)

    pairs_raw = data.get("pairs")
    if not isinstance(pairs_raw, list) or not pairs_raw:
        msg = f"{context}: 'pairs' must be a non-empty list of [source, target]"
        raise ConfigurationError(msg)

    pairs: list[DiagramRelation] = []
    for idx, pair in enumerate(pairs_raw):
        if not isinstance(pair, list) or len(pair) != 2:
            msg = f"{context}: pair at index {idx} must be [source, target]"
            raise ConfigurationError(msg)
        pairs.append(DiagramRelation(str(pair[0]), str(pair[1])))

    return ForbidSlicesRule(
        name=name,
        description=description,
        slices=slices,
        pairs=tuple(pairs),
        severity=severity,
    )


def _parse_match_files_rule(
    name: str,
    description: str,
    data: dict[str, object],
    *,
    severity: str,
    allow_empty: bool | None,
) -> MatchFilesRule:
    """Parse the 'match_files' block of a rule."""
    context = f"Rule '{name}' match_files"
    for_filters = _parse_filters(data.get("for"), f"{context}.for")
    if "pattern" not in data:
        msg = f"{context}: 'pattern' is required"
        raise ConfigurationError(msg)
    pattern = _parse_filter(data["pattern"], f"{context}.pattern")

    return MatchFilesRule(
        name=name,
        description=description,
        for_filters=for_filters,
        pattern=pattern,
        negated=_parse_bool(data, "negated", context, default=False),
        severity=severity,
        allow_empty=allow_empty,
    )


def parse_rules(data: object, *, base_dir: Path) -> list[Rule]:
    """Validate an already-loaded rules document and build rule objects.

    *base_dir* anchors relative diagram file paths.
    """
    if not isinstance(data, dict):
        msg = "rules.yml must be a YAML mapping"
        raise ConfigurationError(msg)

    version = data.get("version")
    if version is None:
        msg = "rules.yml: missing required 'version' field"
        raise ConfigurationError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"rules.yml: unsupported version {version}, expected one of {expected}"
        raise ConfigurationError(msg)

    rules_data = data.get("rules", [])
    if not isinstance(rules_data, list):
        msg = "rules.yml: 'rules' must be a list"
        raise ConfigurationError(msg)

    seen_names: set[str] = set()
    rules: list[Rule] = []

    for idx, rule_data in enumerate(rules_data):
        if not isinstance(rule_data, dict):
            msg = f"rules.yml: rule at index {idx} must be a mapping"
            raise ConfigurationError(msg)

        name = rule_data.get("name")
        if name is None or not isinstance(name, str) or not name.strip():
            msg = f"rules.yml: rule at index {idx} missing required 'name' field"
            raise ConfigurationError(msg)

        if name in seen_names:
            msg = f"rules.yml: Duplicate rule name '{name}'"
            raise ConfigurationError(msg)
        seen_names.add(name)

        description = str(rule_data.get("description", ""))

        severity = str(rule_data.get("severity", "error"))
        if severity not in VALID_RULE_SEVERITIES:
            msg = (
                f"rules.yml: rule '{name}' has invalid severity '{severity}', "
                f"must be one of {sorted(VALID_RULE_SEVERITIES)}"
            )
            raise ConfigurationError(msg)

        allow_empty_raw = rule_data.get("allow_empty")
        if allow_empty_raw is not None and not isinstance(allow_empty_raw, bool):
            msg = f"rules.yml: rule '{name}' has non-boolean 'allow_empty'"
            raise ConfigurationError(msg)
        allow_empty: bool | None = allow_empty_raw

        present = [rule_type for rule_type in RULE_TYPES if rule_type in rule_data]
        if len(present) != 1:
            quoted = ", ".join(f"'{rule_type}'" for rule_type in RULE_TYPES)
            msg = f"rules.yml: rule '{name}' must have exactly one of {quoted}"
            raise ConfigurationError(msg)

        rule_type = present[0]
        body = rule_data[rule_type]
        if not isinstance(body, dict):
            msg = f"Rule '{name}': '{rule_type}' must be a mapping"
            raise ConfigurationError(msg)

        if rule_type == "depend":
            rules.append(
                _parse_depend_rule(
                    name, description, body, severity=severity, allow_empty=allow_empty
                )
            )
        elif rule_type == "forbid_cycles":
            rules.append(
                _parse_cycle_rule(
                    name, description, body, severity=severity, allow_empty=allow_empty
                )
            )
        elif rule_type == "diagram":
            rules.append(
                _parse_diagram_rule(name, description, body, severity=severity, base_dir=base_dir)
            )
        elif rule_type == "forbid_slices":
            rules.append(_parse_forbid_slices_rule(name, description, body, severity=severity))
        else:
            rules.append(
                _parse_match_files_rule(
                    name, description, body, severity=severity, allow_empty=allow_empty
                )
            )

    return rules


def load_rules(rules_path: Path) -> list[Rule]:
    """Parse rules.yml and return validated rule objects.

    Raises :class:`ConfigurationError` on a missing file, malformed YAML,
    or schema errors (missing version, unknown rule type, bad filters).
    """
    try:
        with rules_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except FileNotFoundError as exc:
        msg = f"Rules file not found: {rules_path}"
        raise ConfigurationError(msg) from exc
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read {rules_path}: {exc}"
        raise ConfigurationError(msg) from exc

    return parse_rules(data, base_dir=rules_path.parent)
