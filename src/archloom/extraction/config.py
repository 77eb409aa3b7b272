"""Project configuration: where sources live and how imports resolve.

The configuration locator is either a project root directory or the path of
an ``archloom.yml`` file inside it.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from archloom.errors import ConfigurationError, ExtractionError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "archloom.yml"
DEFAULT_RULES_FILENAME = "rules.yml"

_DEFAULT_SCAN_DIRS: tuple[str, ...] = ("src", "lib", "app")

# Well-known TS/JS path aliases mapped to directory names.
_DEFAULT_TS_ALIASES: dict[str, str] = {
    "@/": "src/",
    "~/": "src/",
}


@dataclass(frozen=True)
class ProjectConfig:
    """Resolved project configuration."""

    root: Path
    scan_paths: tuple[str, ...] = _DEFAULT_SCAN_DIRS
    exclude: tuple[str, ...] = ()
    aliases: dict[str, str] = field(default_factory=lambda: dict(_DEFAULT_TS_ALIASES))
    rules_path: Path | None = None

    def effective_scan_paths(self) -> list[str]:
        """Configured scan directories that exist; the root itself when none do."""
        existing = [p for p in self.scan_paths if (self.root / p).is_dir()]
        return existing or ["."]

    def fingerprint(self) -> str:
        """Stable digest of everything that influences extraction."""
        payload = json.dumps(
            {
                "root": str(self.root),
                "scan_paths": list(self.scan_paths),
                "exclude": list(self.exclude),
                "aliases": self.aliases,
            },
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _string_list(data: dict[str, object], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = data.get(key)
    if raw is None:
        return default
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        msg = f"{CONFIG_FILENAME}: '{key}' must be a list of strings"
        raise ConfigurationError(msg)
    return tuple(raw) or default


def _resolve_locator(locator: Path) -> tuple[Path, Path | None]:
    """Split a locator into ``(project_root, config_file_or_None)``."""
    if not locator.exists():
        msg = f"Project path does not exist: {locator}"
        raise ExtractionError(msg)
    if locator.is_file():
        return locator.parent.resolve(), locator.resolve()
    candidate = locator / CONFIG_FILENAME
    return locator.resolve(), candidate.resolve() if candidate.is_file() else None


def load_project_config(locator: Path) -> ProjectConfig:
    """Load the project configuration for *locator*.

    Missing ``archloom.yml`` yields the defaults.  A present but malformed
    file raises :class:`ConfigurationError`; a missing project path raises
    :class:`ExtractionError`.
    """
    root, config_path = _resolve_locator(locator)
    if config_path is None:
        logger.debug("No %s in %s, using defaults", CONFIG_FILENAME, root)
        default_rules = root / DEFAULT_RULES_FILENAME
        return ProjectConfig(root=root, rules_path=default_rules)

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Cannot read {config_path}: {exc}"
        raise ConfigurationError(msg) from exc

    if not isinstance(data, dict):
        msg = f"{CONFIG_FILENAME} must be a YAML mapping"
        raise ConfigurationError(msg)

    aliases_raw = data.get("aliases")
    aliases = dict(_DEFAULT_TS_ALIASES)
    if aliases_raw is not None:
        if not isinstance(aliases_raw, dict):
            msg = f"{CONFIG_FILENAME}: 'aliases' must be a mapping of prefix -> directory"
            raise ConfigurationError(msg)
        aliases = {str(k): str(v) for k, v in aliases_raw.items()}

    rules_raw = data.get("rules", DEFAULT_RULES_FILENAME)
    if not isinstance(rules_raw, str) or not rules_raw.strip():
        msg = f"{CONFIG_FILENAME}: 'rules' must be a non-empty path"
        raise ConfigurationError(msg)

    return ProjectConfig(
        root=root,
        scan_paths=_string_list(data, "scan_paths", _DEFAULT_SCAN_DIRS),
        exclude=_string_list(data, "exclude", ()),
        aliases=aliases,
        rules_path=config_path.parent / rules_raw,
    )
