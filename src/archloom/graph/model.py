"""Graph value types: raw import edges, projected edges, and derived nodes."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ImportKind(str, enum.Enum):
    """How a unit is imported; an edge may carry several kinds."""

    VALUE = "value"
    TYPE = "type"
    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class Edge:
    """A raw directed import relation between two source units.

    ``source`` and ``target`` are canonical, project-relative identifiers
    (POSIX paths for internal units, the raw specifier for external ones).
    ``import_kinds`` is empty for side-effect-only imports.
    """

    source: str
    target: str
    external: bool = False
    import_kinds: tuple[ImportKind, ...] = ()


@dataclass(frozen=True)
class ProjectedEdge:
    """Aggregation of raw edges sharing one ``(source_label, target_label)`` pair."""

    source_label: str
    target_label: str
    cumulated_edges: tuple[Edge, ...] = ()

    @property
    def is_self_loop(self) -> bool:
        return self.source_label == self.target_label


@dataclass(frozen=True)
class Node:
    """A derived vertex with the raw edges entering and leaving it."""

    label: str
    incoming: tuple[Edge, ...] = ()
    outgoing: tuple[Edge, ...] = ()


# A closed walk of projected edges; edge[i].target_label == edge[i+1].source_label.
Cycle = tuple[ProjectedEdge, ...]
