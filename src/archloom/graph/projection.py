"""Projection of raw import edges onto labeled, aggregated edges and nodes.

A projection policy maps one raw :class:`Edge` to a ``(source, target)``
label pair, or to ``None`` to exclude the edge entirely.  The policies form
a closed set (identity, slice pattern, file-name suffix) dispatched by
:func:`project_edges`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from archloom.errors import ConfigurationError
from archloom.graph.model import Edge, Node, ProjectedEdge
from archloom.graph.patterns import compile_regex, extract_filename

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

LabelPair = tuple[str, str]

_SLICE_PLACEHOLDER = "(**)"


# ---------------------------------------------------------------------------
# Projection policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IdentityProjection:
    """Label every unit with its raw identifier.

    External edges are excluded unless *include_external* is set.
    """

    include_external: bool = False

    def map_edge(self, edge: Edge) -> LabelPair | None:
        if edge.external and not self.include_external:
            return None
        return (edge.source, edge.target)


@dataclass(frozen=True)
class PatternProjection:
    """Group units into slices named by the single capture group of a regex.

    Edges are dropped when either endpoint does not match, when the edge
    is external, or when both endpoints land in the same slice.
    """

    regex: re.Pattern[str]

    def __post_init__(self) -> None:
        if self.regex.groups != 1:
            msg = (
                f"Slice pattern '{self.regex.pattern}' must contain exactly one "
                f"capture group, found {self.regex.groups}"
            )
            raise ConfigurationError(msg)

    @classmethod
    def from_slice_pattern(cls, pattern: str) -> PatternProjection:
        """Build from a path pattern holding exactly one ``(**)`` placeholder.

        ``src/(**)/`` labels ``src/billing/invoice.py`` as ``billing``.
        """
        index = pattern.find(_SLICE_PLACEHOLDER)
        if index == -1:
            msg = (
                f"Could not find '{_SLICE_PLACEHOLDER}' inside slice pattern '{pattern}'. "
                f"It should contain exactly one occurrence of '{_SLICE_PLACEHOLDER}'"
            )
            raise ConfigurationError(msg)
        suffix = pattern[index + len(_SLICE_PLACEHOLDER) :]
        if _SLICE_PLACEHOLDER in suffix:
            msg = (
                f"Found too many '{_SLICE_PLACEHOLDER}' inside slice pattern '{pattern}'. "
                f"It should contain exactly one occurrence of '{_SLICE_PLACEHOLDER}'"
            )
            raise ConfigurationError(msg)
        prefix = re.escape(pattern[:index])
        return cls(compile_regex(f"^{prefix}([\\w-]+){re.escape(suffix)}.*$"))

    @classmethod
    def from_regex(cls, regex: str | re.Pattern[str]) -> PatternProjection:
        compiled = regex if isinstance(regex, re.Pattern) else compile_regex(regex)
        return cls(compiled)

    def slice_of(self, unit: str) -> str | None:
        match = self.regex.search(unit.replace("\\", "/"))
        if match is None:
            return None
        return match.group(1)

    def map_edge(self, edge: Edge) -> LabelPair | None:
        if edge.external:
            return None
        source = self.slice_of(edge.source)
        if source is None:
            return None
        target = self.slice_of(edge.target)
        if target is None or target == source:
            return None
        return (source, target)


@dataclass(frozen=True)
class SuffixProjection:
    """Classify units by the suffix of their base name (extension removed).

    The table is ordered; the first suffix a name ends with wins.
    ``{"_service": "services", "_repository": "repositories"}`` labels
    ``app/user_service.py`` as ``services``.
    """

    table: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, table: Mapping[str, str]) -> SuffixProjection:
        if not table:
            msg = "Suffix projection requires at least one suffix"
            raise ConfigurationError(msg)
        return cls(tuple(table.items()))

    def label_of(self, unit: str) -> str | None:
        name = extract_filename(unit)
        stem = name.rsplit(".", 1)[0] if "." in name else name
        for suffix, label in self.table:
            if stem.endswith(suffix):
                return label
        return None

    def map_edge(self, edge: Edge) -> LabelPair | None:
        if edge.external:
            return None
        source = self.label_of(edge.source)
        if source is None:
            return None
        target = self.label_of(edge.target)
        if target is None:
            return None
        return (source, target)


Projection = IdentityProjection | PatternProjection | SuffixProjection


# ---------------------------------------------------------------------------
# Edge projection
# ---------------------------------------------------------------------------


def project_edges(edges: Iterable[Edge], projection: Projection) -> list[ProjectedEdge]:
    """Map raw edges through *projection*, merging parallel edges.

    Returns at most one :class:`ProjectedEdge` per ordered label pair, in
    the order each pair was first produced.  Every mapped raw edge lands in
    exactly one bucket.
    """
    buckets: dict[LabelPair, list[Edge]] = {}
    for edge in edges:
        pair = projection.map_edge(edge)
        if pair is None:
            continue
        buckets.setdefault(pair, []).append(edge)

    return [
        ProjectedEdge(source_label=src, target_label=dst, cumulated_edges=tuple(raw))
        for (src, dst), raw in buckets.items()
    ]


def project_internal_edges(edges: Iterable[Edge]) -> list[ProjectedEdge]:
    """Identity projection over edges whose target lies inside the project."""
    return project_edges(edges, IdentityProjection())


# ---------------------------------------------------------------------------
# Node projection
# ---------------------------------------------------------------------------


def project_to_nodes(edges: Iterable[Edge], *, include_external: bool = False) -> list[Node]:
    """Derive the distinct units of *edges* with their incoming/outgoing edges.

    External edges are dropped first unless *include_external* is set.
    Nodes are returned sorted by label.
    """
    incoming: dict[str, list[Edge]] = {}
    outgoing: dict[str, list[Edge]] = {}
    for edge in edges:
        if edge.external and not include_external:
            continue
        outgoing.setdefault(edge.source, []).append(edge)
        incoming.setdefault(edge.target, []).append(edge)
        incoming.setdefault(edge.source, [])
        outgoing.setdefault(edge.target, [])

    return [
        Node(label=label, incoming=tuple(incoming[label]), outgoing=tuple(outgoing[label]))
        for label in sorted(incoming)
    ]
