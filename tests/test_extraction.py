"""Tests for archloom.extraction — import parsing, resolution, and graph assembly."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import anyio

from archloom.extraction.cache import GraphCache
from archloom.extraction.config import ProjectConfig, load_project_config
from archloom.extraction.graph_extractor import (
    collect_source_files,
    extract_graph,
    extract_graph_async,
    resolve_python_import,
    resolve_ts_import,
)
from archloom.extraction.imports import RawImport, extract_imports
from archloom.graph.model import Edge, ImportKind

if TYPE_CHECKING:
    from pathlib import Path


def _by_pair(edges: list[Edge]) -> dict[tuple[str, str], Edge]:
    return {(e.source, e.target): e for e in edges}


# ---------------------------------------------------------------------------
# Import parsing
# ---------------------------------------------------------------------------


class TestExtractPythonImports:
    def test_import_forms(self, tmp_path: Path) -> None:
        src = tmp_path / "mod.py"
        src.write_text(
            "import os\n"
            "import xml.etree as et\n"
            "from pkg import a, b as c\n"
            "from . import sibling\n"
            "from ..parent.mod import *\n",
            encoding="utf-8",
        )
        imports = extract_imports(src)
        assert [(i.specifier, i.level) for i in imports] == [
            ("os", 0),
            ("xml.etree", 0),
            ("pkg", 0),
            ("", 1),
            ("parent.mod", 2),
        ]
        assert imports[0].kinds == (ImportKind.NAMESPACE, ImportKind.VALUE)
        assert imports[2].names == ("a", "b")
        assert imports[2].kinds == (ImportKind.NAMED, ImportKind.VALUE)
        assert imports[3].names == ("sibling",)
        assert imports[4].kinds == (ImportKind.NAMESPACE, ImportKind.VALUE)

    def test_line_numbers(self, tmp_path: Path) -> None:
        src = tmp_path / "mod.py"
        src.write_text('"""doc."""\n\nimport os\n', encoding="utf-8")
        assert extract_imports(src)[0].line_number == 3

    def test_type_checking_block_is_type_only(self, tmp_path: Path) -> None:
        src = tmp_path / "mod.py"
        src.write_text(
            "from typing import TYPE_CHECKING\n"
            "if TYPE_CHECKING:\n"
            "    from pkg.models import User\n"
            "else:\n"
            "    from pkg.stubs import User\n",
            encoding="utf-8",
        )
        kinds = {i.specifier: i.kinds for i in extract_imports(src)}
        assert kinds["pkg.models"] == (ImportKind.NAMED, ImportKind.TYPE)
        assert kinds["pkg.stubs"] == (ImportKind.NAMED, ImportKind.VALUE)

    def test_nested_imports_found(self, tmp_path: Path) -> None:
        src = tmp_path / "mod.py"
        src.write_text("def run():\n    import json\n    return json\n", encoding="utf-8")
        assert [i.specifier for i in extract_imports(src)] == ["json"]

    def test_future_import_skipped(self, tmp_path: Path) -> None:
        src = tmp_path / "mod.py"
        src.write_text("from __future__ import annotations\n", encoding="utf-8")
        assert extract_imports(src) == []

    def test_unsupported_and_empty_files(self, tmp_path: Path) -> None:
        other = tmp_path / "notes.md"
        other.write_text("import os\n", encoding="utf-8")
        empty = tmp_path / "empty.py"
        empty.write_text("\n\n", encoding="utf-8")
        assert extract_imports(other) == []
        assert extract_imports(empty) == []
        assert extract_imports(tmp_path / "missing.py") == []


class TestExtractTsImports:
    def test_import_clause_kinds(self, tmp_path: Path) -> None:
        src = tmp_path / "mod.ts"
        src.write_text(
            "import React from 'react';\n"
            "import { a, b } from './ab';\n"
            "import * as ns from './ns';\n"
            "import type { T } from './types';\n"
            "import './side-effect';\n"
            "export { x } from './x';\n"
            "export * from './all';\n"
            "export const local = 1;\n",
            encoding="utf-8",
        )
        kinds = {i.specifier: i.kinds for i in extract_imports(src)}
        assert kinds == {
            "react": (ImportKind.DEFAULT, ImportKind.VALUE),
            "./ab": (ImportKind.NAMED, ImportKind.VALUE),
            "./ns": (ImportKind.NAMESPACE, ImportKind.VALUE),
            "./types": (ImportKind.NAMED, ImportKind.TYPE),
            "./side-effect": (),
            "./x": (ImportKind.NAMED, ImportKind.VALUE),
            "./all": (ImportKind.NAMESPACE, ImportKind.VALUE),
        }


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolution:
    def test_python_submodule_and_fallback(self, py_project: Path) -> None:
        config = load_project_config(py_project)
        submodule = RawImport("shop.services", 1, (ImportKind.NAMED,), names=("order_service",))
        assert resolve_python_import(config, submodule, "src/shop/api/orders.py") == [
            "src/shop/services/order_service.py"
        ]
        name = RawImport("shop.db.session", 1, (ImportKind.NAMED,), names=("Session",))
        assert resolve_python_import(config, name, "src/shop/api/orders.py") == [
            "src/shop/db/session.py"
        ]
        package = RawImport("shop", 1, (ImportKind.NAMESPACE,))
        assert resolve_python_import(config, package, "src/shop/api/orders.py") == [
            "src/shop/__init__.py"
        ]

    def test_python_relative(self, py_project: Path) -> None:
        config = load_project_config(py_project)
        sibling = RawImport("", 1, (ImportKind.NAMED,), level=1, names=("orders",))
        assert resolve_python_import(config, sibling, "src/shop/api/__init__.py") == [
            "src/shop/api/orders.py"
        ]
        parent = RawImport("services", 2, (ImportKind.NAMED,), level=2, names=("order_service",))
        assert resolve_python_import(config, parent, "src/shop/db/session.py") == [
            "src/shop/services/order_service.py"
        ]

    def test_python_unresolved(self, py_project: Path) -> None:
        config = load_project_config(py_project)
        imp = RawImport("requests", 1, (ImportKind.NAMESPACE,))
        assert resolve_python_import(config, imp, "src/shop/api/orders.py") == []

    def test_ts_relative_alias_and_index(self, ts_project: Path) -> None:
        config = load_project_config(ts_project)
        assert resolve_ts_import(config, "../model/user", "src/ui/page.tsx") == (
            "src/model/user.ts"
        )
        assert resolve_ts_import(config, "@/api/client", "src/ui/page.tsx") == (
            "src/api/client.ts"
        )
        assert resolve_ts_import(config, "../model", "src/api/client.ts") == (
            "src/model/index.ts"
        )
        assert resolve_ts_import(config, "react", "src/ui/page.tsx") is None
        assert resolve_ts_import(config, "../../../outside", "src/ui/page.tsx") is None


# ---------------------------------------------------------------------------
# Graph assembly
# ---------------------------------------------------------------------------


class TestExtractGraph:
    def test_python_project(self, py_project: Path) -> None:
        edges = _by_pair(extract_graph(py_project))
        assert set(edges) == {
            ("src/shop/api/orders.py", "json"),
            ("src/shop/api/orders.py", "src/shop/services/order_service.py"),
            ("src/shop/db/session.py", "src/shop/services/order_service.py"),
            ("src/shop/services/order_service.py", "src/shop/api/orders.py"),
            ("src/shop/services/order_service.py", "src/shop/db/session.py"),
            ("src/shop/services/order_service.py", "typing"),
        }
        assert edges[("src/shop/api/orders.py", "json")].external is True
        forward = edges[("src/shop/api/orders.py", "src/shop/services/order_service.py")]
        assert forward.external is False
        assert forward.import_kinds == (ImportKind.NAMED, ImportKind.VALUE)
        back = edges[("src/shop/services/order_service.py", "src/shop/api/orders.py")]
        assert back.import_kinds == (ImportKind.NAMED, ImportKind.TYPE)

    def test_ts_project(self, ts_project: Path) -> None:
        edges = _by_pair(extract_graph(ts_project))
        assert edges[("src/ui/page.tsx", "src/api/client.ts")].import_kinds == (
            ImportKind.NAMED,
            ImportKind.VALUE,
        )
        assert edges[("src/ui/page.tsx", "src/model/user.ts")].import_kinds == (
            ImportKind.NAMED,
            ImportKind.TYPE,
        )
        react = edges[("src/ui/page.tsx", "react")]
        assert react.external is True
        assert react.import_kinds == (ImportKind.DEFAULT, ImportKind.VALUE)
        side_effect = edges[("src/ui/page.tsx", "./page.css")]
        assert side_effect.external is True
        assert side_effect.import_kinds == ()
        assert edges[("src/api/client.ts", "src/model/index.ts")].import_kinds == (
            ImportKind.NAMESPACE,
            ImportKind.VALUE,
        )
        assert ("src/api/client.ts", "src/api/helpers.ts") in edges
        assert ("src/model/index.ts", "src/model/user.ts") in edges

    def test_edges_sorted_and_unique(self, py_project: Path) -> None:
        edges = extract_graph(py_project)
        pairs = [(e.source, e.target) for e in edges]
        assert pairs == sorted(set(pairs))

    def test_repeated_imports_merge_kinds(self, tmp_path: Path) -> None:
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "a.py").write_text(
            "import b\nfrom b import thing\n", encoding="utf-8"
        )
        (tmp_path / "src" / "b.py").write_text("thing = 1\n", encoding="utf-8")
        (edge,) = extract_graph(tmp_path)
        assert (edge.source, edge.target) == ("src/a.py", "src/b.py")
        assert edge.import_kinds == (ImportKind.NAMESPACE, ImportKind.VALUE, ImportKind.NAMED)

    def test_exclude_globs(self, py_project: Path) -> None:
        config = ProjectConfig(root=py_project.resolve(), exclude=("**/db/**",))
        files = [p.relative_to(config.root).as_posix() for p in collect_source_files(config)]
        assert "src/shop/db/session.py" not in files
        assert "src/shop/api/orders.py" in files
        sources = {e.source for e in extract_graph(config)}
        assert "src/shop/db/session.py" not in sources

    def test_vendored_directories_not_scanned(self, tmp_path: Path) -> None:
        files = {
            "main.py": "import helper\n",
            "helper.py": "",
            ".venv/lib/site-packages/requests/api.py": "from requests import models\n",
            ".venv/lib/site-packages/requests/models.py": "from requests import api\n",
            "node_modules/lodash/index.js": "import './util'\n",
            "node_modules/lodash/util.js": "",
        }
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        config = load_project_config(tmp_path)
        scanned = [p.relative_to(config.root).as_posix() for p in collect_source_files(config)]
        assert scanned == ["helper.py", "main.py"]
        edges = extract_graph(config)
        assert [(e.source, e.target) for e in edges] == [("main.py", "helper.py")]

    def test_async_matches_sync(self, py_project: Path) -> None:
        assert anyio.run(extract_graph_async, py_project) == extract_graph(py_project)


class TestExtractionCache:
    def test_second_extraction_hits_cache(self, py_project: Path) -> None:
        cache = GraphCache()
        first = extract_graph(py_project, cache=cache)
        assert cache.stats()["entries"] == 1
        # Rewrite a file but keep its mtime; an unchanged snapshot is served from cache.
        orders = py_project / "src" / "shop" / "api" / "orders.py"
        stat = orders.stat()
        orders.write_text("import json\n", encoding="utf-8")
        os.utime(orders, ns=(stat.st_atime_ns, stat.st_mtime_ns))
        assert extract_graph(py_project, cache=cache) == first

    def test_deleted_source_invalidates(self, py_project: Path) -> None:
        cache = GraphCache()
        first = extract_graph(py_project, cache=cache)
        assert "src/shop/api/orders.py" in {e.source for e in first}
        (py_project / "src" / "shop" / "api" / "orders.py").unlink()
        edges = extract_graph(py_project, cache=cache)
        assert "src/shop/api/orders.py" not in {e.source for e in edges}
        assert cache.stats()["entries"] == 1

    def test_modified_source_invalidates(self, py_project: Path) -> None:
        cache = GraphCache()
        extract_graph(py_project, cache=cache)
        orders = py_project / "src" / "shop" / "api" / "orders.py"
        orders.write_text("import json\n", encoding="utf-8")
        stat = orders.stat()
        os.utime(orders, (stat.st_atime + 60, stat.st_mtime + 60))
        edges = extract_graph(py_project, cache=cache)
        assert ("src/shop/api/orders.py", "src/shop/services/order_service.py") not in {
            (e.source, e.target) for e in edges
        }
