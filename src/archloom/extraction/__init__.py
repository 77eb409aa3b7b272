"""Graph extraction — project config, tree-sitter imports, resolution, cache."""

from archloom.extraction.cache import GraphCache
from archloom.extraction.config import (
    CONFIG_FILENAME,
    DEFAULT_RULES_FILENAME,
    ProjectConfig,
    load_project_config,
)
from archloom.extraction.graph_extractor import (
    collect_source_files,
    extract_graph,
    extract_graph_async,
    resolve_python_import,
    resolve_ts_import,
)
from archloom.extraction.imports import RawImport, extract_imports

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_RULES_FILENAME",
    "GraphCache",
    "ProjectConfig",
    "RawImport",
    "collect_source_files",
    "extract_graph",
    "extract_graph_async",
    "extract_imports",
    "load_project_config",
    "resolve_python_import",
    "resolve_ts_import",
]
