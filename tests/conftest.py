"""Shared test fixtures for archloom."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path


def _write(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture()
def py_project(tmp_path: Path) -> Path:
    """A small layered Python project under ``src/shop``.

    ``api`` imports ``services``, ``services`` imports ``db``, and ``db``
    imports ``services`` back, so the two slices form a cycle.
    """
    _write(
        tmp_path,
        {
            "src/shop/__init__.py": "",
            "src/shop/api/__init__.py": "",
            "src/shop/api/orders.py": (
                "import json\n"
                "from shop.services import order_service\n"
            ),
            "src/shop/services/__init__.py": "",
            "src/shop/services/order_service.py": (
                "from __future__ import annotations\n"
                "from typing import TYPE_CHECKING\n"
                "from shop.db.session import Session\n"
                "if TYPE_CHECKING:\n"
                "    from shop.api.orders import Order\n"
            ),
            "src/shop/db/__init__.py": "",
            "src/shop/db/session.py": "from ..services import order_service\n",
        },
    )
    return tmp_path


@pytest.fixture()
def ts_project(tmp_path: Path) -> Path:
    """A small TypeScript project using relative and ``@/`` alias imports."""
    _write(
        tmp_path,
        {
            "src/ui/page.tsx": (
                "import React from 'react';\n"
                "import { fetchUser } from '@/api/client';\n"
                "import type { User } from '../model/user';\n"
                "import './page.css';\n"
            ),
            "src/api/client.ts": (
                "import * as model from '../model';\n"
                "export { helper } from './helpers';\n"
            ),
            "src/api/helpers.ts": "export const helper = 1;\n",
            "src/model/index.ts": "export * from './user';\n",
            "src/model/user.ts": "export interface User { id: string }\n",
        },
    )
    return tmp_path
