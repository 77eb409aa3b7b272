"""Build the raw import graph of a project.

Source files under the configured scan paths are parsed with tree-sitter,
their imports resolved to canonical project-relative POSIX paths, and the
result merged into one :class:`Edge` per ``(source, target)`` pair.
Imports that do not resolve to a file in the project stay as their raw
specifier with ``external=True``.
"""

from __future__ import annotations

import functools
import logging
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

import anyio.to_thread

from archloom.extraction.config import ProjectConfig, load_project_config
from archloom.extraction.imports import extract_imports
from archloom.extraction.languages import PYTHON, get_lang_config, supported_extensions
from archloom.graph.model import Edge
from archloom.graph.patterns import glob_to_regex

if TYPE_CHECKING:
    from archloom.extraction.cache import GraphCache
    from archloom.extraction.imports import RawImport
    from archloom.graph.model import ImportKind

logger = logging.getLogger(__name__)

_TS_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx")

# Directories never descended into below a scan path.
_RECURSIVE_SKIP = frozenset(
    {
        "node_modules",
        "__pycache__",
        "venv",
        ".venv",
        "site-packages",
        "dist",
        "build",
        "vendor",
        ".git",
        ".tox",
        ".eggs",
        ".mypy_cache",
        ".ruff_cache",
        ".pytest_cache",
        "htmlcov",
    }
)


# ---------------------------------------------------------------------------
# Source collection
# ---------------------------------------------------------------------------


def collect_source_files(config: ProjectConfig) -> list[Path]:
    """Collect all supported source files from the configured scan paths.

    Vendored and generated directories such as ``.venv`` or
    ``node_modules`` are never entered, and files whose project-relative
    path matches an ``exclude`` glob are skipped.  The result is sorted and
    free of duplicates.
    """
    exts = supported_extensions()
    excludes = [glob_to_regex(pattern) for pattern in config.exclude]
    found: set[Path] = set()

    for dir_name in config.effective_scan_paths():
        base = config.root / dir_name
        if not base.is_dir():
            continue
        for ext in exts:
            for path in base.rglob(f"*{ext}"):
                if _is_in_skip_dir(path, base):
                    continue
                rel = path.relative_to(config.root).as_posix()
                if any(rx.search(rel) for rx in excludes):
                    continue
                found.add(path)

    return sorted(found)


def _is_in_skip_dir(path: Path, base: Path) -> bool:
    return any(part in _RECURSIVE_SKIP for part in path.relative_to(base).parts[:-1])


def _latest_mtime(files: list[Path]) -> float:
    latest = 0.0
    for path in files:
        try:
            latest = max(latest, path.stat().st_mtime)
        except OSError:
            continue
    return latest


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _is_project_file(config: ProjectConfig, rel_path: str) -> bool:
    if rel_path == ".." or rel_path.startswith("../"):
        return False
    return (config.root / rel_path).is_file()


def _python_module_candidates(module_path: str) -> list[str]:
    return [f"{module_path}.py", f"{module_path}/__init__.py"]


def _python_bases(config: ProjectConfig, imp: RawImport, source: str) -> list[str]:
    """Directory prefixes a (possibly relative) Python import is looked up under."""
    if imp.level == 0:
        return list(dict.fromkeys([*config.effective_scan_paths(), "."]))

    package = posixpath.dirname(source)
    for _ in range(imp.level - 1):
        package = posixpath.dirname(package)
    return [package]


def _join(base: str, parts: str) -> str:
    if base in ("", "."):
        return parts
    if not parts:
        return base
    return f"{base}/{parts}"


def _resolve_python_module(config: ProjectConfig, module_path: str) -> str | None:
    if not module_path:
        return None
    for candidate in _python_module_candidates(module_path):
        if _is_project_file(config, candidate):
            return candidate
    return None


def resolve_python_import(config: ProjectConfig, imp: RawImport, source: str) -> list[str]:
    """Resolve a Python import to project-relative file paths.

    ``from pkg import mod`` yields ``pkg/mod.py`` for every imported name
    that is itself a module; names that are not fall back to the package
    (or module) they are imported from.  Returns an empty list when
    nothing resolves.
    """
    parts = imp.specifier.replace(".", "/")
    for base in _python_bases(config, imp, source):
        module_dir = _join(base, parts)
        targets: list[str] = []
        fallback = False
        for name in imp.names:
            submodule = _resolve_python_module(config, _join(module_dir, name))
            if submodule is not None:
                targets.append(submodule)
            else:
                fallback = True
        if fallback or not imp.names:
            module = _resolve_python_module(config, module_dir)
            if module is not None:
                targets.append(module)
        if targets:
            return list(dict.fromkeys(targets))
    return []


def _normalize_ts_specifier(config: ProjectConfig, specifier: str, source: str) -> str | None:
    """Turn a relative or aliased TS/JS specifier into a project-relative base path.

    Returns *None* for package imports (not resolvable to a local file).
    """
    if specifier.startswith("."):
        return posixpath.normpath(posixpath.join(posixpath.dirname(source), specifier))
    for alias, replacement in config.aliases.items():
        if specifier.startswith(alias):
            return posixpath.normpath(replacement + specifier[len(alias) :])
    return None


def resolve_ts_import(config: ProjectConfig, specifier: str, source: str) -> str | None:
    """Resolve a TS/JS import to a project-relative file path, probing extensions."""
    base = _normalize_ts_specifier(config, specifier, source)
    if base is None:
        return None

    candidates = [base]
    candidates.extend(f"{base}{ext}" for ext in _TS_EXTENSIONS)
    candidates.extend(f"{base}/index{ext}" for ext in _TS_EXTENSIONS)
    for candidate in candidates:
        if _is_project_file(config, candidate):
            return candidate
    return None


def _external_name(imp: RawImport) -> str:
    return "." * imp.level + imp.specifier


def _targets_for(
    config: ProjectConfig, imp: RawImport, source: str, is_python: bool
) -> list[tuple[str, bool]]:
    if is_python:
        resolved = resolve_python_import(config, imp, source)
        if resolved:
            return [(target, False) for target in resolved]
        return [(_external_name(imp), True)]

    target = resolve_ts_import(config, imp.specifier, source)
    if target is not None:
        return [(target, False)]
    return [(imp.specifier, True)]


# ---------------------------------------------------------------------------
# Graph assembly
# ---------------------------------------------------------------------------


def _merge_kinds(existing: list[ImportKind], new: tuple[ImportKind, ...]) -> None:
    for kind in new:
        if kind not in existing:
            existing.append(kind)


def _build_edges(config: ProjectConfig, files: list[Path]) -> list[Edge]:
    merged: dict[tuple[str, str], tuple[bool, list[ImportKind]]] = {}

    for file_path in files:
        lang = get_lang_config(file_path.suffix)
        if lang is None:
            continue
        is_python = lang.name == PYTHON
        source = file_path.relative_to(config.root).as_posix()

        for imp in extract_imports(file_path):
            for target, external in _targets_for(config, imp, source, is_python):
                key = (source, target)
                if key not in merged:
                    merged[key] = (external, [])
                _merge_kinds(merged[key][1], imp.kinds)

    return [
        Edge(source=src, target=dst, external=external, import_kinds=tuple(kinds))
        for (src, dst), (external, kinds) in sorted(merged.items())
    ]


def extract_graph(
    locator: Path | ProjectConfig,
    *,
    cache: GraphCache | None = None,
) -> list[Edge]:
    """Extract the raw import edges of a project.

    *locator* is a project root, an ``archloom.yml`` path, or an already
    loaded :class:`ProjectConfig`.  Edges are sorted by ``(source, target)``.

    Raises
    ------
    ExtractionError
        When the project path does not exist.
    ConfigurationError
        When ``archloom.yml`` is malformed.
    """
    config = locator if isinstance(locator, ProjectConfig) else load_project_config(Path(locator))
    files = collect_source_files(config)
    root_key = str(config.root)
    fingerprint = config.fingerprint()

    if cache is not None:
        mtime = _latest_mtime(files)
        cached = cache.get(root_key, fingerprint, source_mtime=mtime, file_count=len(files))
        if cached is not None:
            logger.debug("Graph cache hit for %s", root_key)
            return list(cached)

    edges = _build_edges(config, files)
    logger.info(
        "Extracted %d edges from %d files under %s",
        len(edges),
        len(files),
        config.root,
    )

    if cache is not None:
        cache.put(
            root_key,
            fingerprint,
            tuple(edges),
            source_mtime=_latest_mtime(files),
            file_count=len(files),
        )
    return edges


async def extract_graph_async(
    locator: Path | ProjectConfig,
    *,
    cache: GraphCache | None = None,
) -> list[Edge]:
    """Run :func:`extract_graph` in a worker thread."""
    return await anyio.to_thread.run_sync(functools.partial(extract_graph, locator, cache=cache))
