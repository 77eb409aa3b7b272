"""Import statement extraction via tree-sitter (Python, TypeScript/JavaScript)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tree_sitter import Parser

from archloom.extraction.languages import PYTHON, get_lang_config
from archloom.graph.model import ImportKind

if TYPE_CHECKING:
    from pathlib import Path

    from tree_sitter import Node as TSNode

logger = logging.getLogger(__name__)

_TYPE_CHECKING_CONDITIONS = frozenset({"TYPE_CHECKING", "typing.TYPE_CHECKING"})


@dataclass(frozen=True)
class RawImport:
    """A single import statement as written in a source file.

    ``specifier`` is the dotted module path (Python) or the module string
    (TypeScript).  ``level`` counts leading dots of a relative Python import.
    ``names`` lists the names of a ``from X import a, b`` statement so that
    submodule imports can be resolved.
    """

    specifier: str
    line_number: int
    kinds: tuple[ImportKind, ...]
    level: int = 0
    names: tuple[str, ...] = ()


def _text(node: TSNode | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


# ---------------------------------------------------------------------------
# Python
# ---------------------------------------------------------------------------


def _python_imported_name(node: TSNode) -> str:
    """Name of an ``import`` target, unwrapping ``X as Y``."""
    if node.type == "aliased_import":
        return _text(node.child_by_field_name("name"))
    return _text(node)


def _python_import_from(node: TSNode, value_kind: ImportKind) -> RawImport | None:
    module = node.child_by_field_name("module_name")
    if module is None:
        return None

    level = 0
    specifier = ""
    if module.type == "relative_import":
        for sub in module.children:
            if sub.type == "import_prefix":
                level = len(_text(sub).strip())
            elif sub.type == "dotted_name":
                specifier = _text(sub)
    else:
        specifier = _text(module)

    wildcard = any(child.type == "wildcard_import" for child in node.children)
    names = tuple(
        _python_imported_name(child) for child in node.children_by_field_name("name")
    )
    kind = ImportKind.NAMESPACE if wildcard else ImportKind.NAMED
    return RawImport(
        specifier=specifier,
        line_number=node.start_point.row + 1,
        kinds=(kind, value_kind),
        level=level,
        names=names,
    )


def _is_type_checking_block(node: TSNode) -> bool:
    condition = node.child_by_field_name("condition")
    return _text(condition).strip() in _TYPE_CHECKING_CONDITIONS


def _walk_python(node: TSNode, results: list[RawImport], *, type_only: bool) -> None:
    value_kind = ImportKind.TYPE if type_only else ImportKind.VALUE
    for child in node.children:
        if child.type == "import_statement":
            for target in child.children_by_field_name("name"):
                name = _python_imported_name(target)
                if name:
                    results.append(
                        RawImport(
                            specifier=name,
                            line_number=child.start_point.row + 1,
                            kinds=(ImportKind.NAMESPACE, value_kind),
                        )
                    )
        elif child.type == "import_from_statement":
            info = _python_import_from(child, value_kind)
            if info is not None:
                results.append(info)
        elif child.type == "if_statement" and _is_type_checking_block(child):
            consequence = child.child_by_field_name("consequence")
            if consequence is not None:
                _walk_python(consequence, results, type_only=True)
            for other in child.children:
                if other.type in ("elif_clause", "else_clause"):
                    _walk_python(other, results, type_only=type_only)
        elif child.child_count:
            _walk_python(child, results, type_only=type_only)


# ---------------------------------------------------------------------------
# TypeScript / JavaScript
# ---------------------------------------------------------------------------


def _ts_source(node: TSNode) -> str | None:
    source = node.child_by_field_name("source")
    if source is None:
        return None
    for sub in source.children:
        if sub.type == "string_fragment":
            return _text(sub)
    return None


def _ts_clause_kinds(clause: TSNode) -> list[ImportKind]:
    kinds: list[ImportKind] = []
    for sub in clause.children:
        if sub.type == "identifier":
            kinds.append(ImportKind.DEFAULT)
        elif sub.type == "named_imports":
            kinds.append(ImportKind.NAMED)
        elif sub.type == "namespace_import":
            kinds.append(ImportKind.NAMESPACE)
    return kinds


def _ts_import(node: TSNode) -> RawImport | None:
    source = _ts_source(node)
    if not source:
        return None
    type_only = any(child.type == "type" for child in node.children)
    kinds: list[ImportKind] = []
    for child in node.children:
        if child.type == "import_clause":
            kinds.extend(_ts_clause_kinds(child))
    if kinds:
        kinds.append(ImportKind.TYPE if type_only else ImportKind.VALUE)
    return RawImport(specifier=source, line_number=node.start_point.row + 1, kinds=tuple(kinds))


def _ts_reexport(node: TSNode) -> RawImport | None:
    source = _ts_source(node)
    if not source:
        return None
    type_only = any(child.type == "type" for child in node.children)
    wildcard = any(child.type == "*" for child in node.children)
    kind = ImportKind.NAMESPACE if wildcard else ImportKind.NAMED
    return RawImport(
        specifier=source,
        line_number=node.start_point.row + 1,
        kinds=(kind, ImportKind.TYPE if type_only else ImportKind.VALUE),
    )


def _extract_ts_imports(root: TSNode) -> list[RawImport]:
    results: list[RawImport] = []
    for child in root.children:
        info: RawImport | None = None
        if child.type == "import_statement":
            info = _ts_import(child)
        elif child.type == "export_statement":
            info = _ts_reexport(child)
        if info is not None:
            results.append(info)
    return results


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def extract_imports(file_path: Path) -> list[RawImport]:
    """Extract import statements from a source file using tree-sitter.

    Detects language by file extension.  Returns an empty list if the
    language is not supported, the grammar package is not installed, or
    the file cannot be read.
    """
    config = get_lang_config(file_path.suffix)
    if config is None:
        return []

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.debug("Skipping unreadable file %s", file_path)
        return []

    if not content.strip():
        return []

    parser = Parser(config.language)
    tree = parser.parse(content.encode("utf-8"))

    if config.name == PYTHON:
        results: list[RawImport] = []
        _walk_python(tree.root_node, results, type_only=False)
        return results
    return _extract_ts_imports(tree.root_node)
