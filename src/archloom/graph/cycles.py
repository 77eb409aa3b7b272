"""Elementary cycle enumeration over projected edges.

A Tarjan pass splits the graph into strongly connected components; inside
each component an iterative depth-first search keeps the current path on an
explicit stack and closes a cycle whenever it returns to the start vertex.
Searches rooted at a vertex only visit vertices ordered after it, so every
elementary cycle is produced once, rotated to begin at its smallest label.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from archloom.graph.model import Cycle, ProjectedEdge

Adjacency = dict[str, dict[str, "ProjectedEdge"]]


def _build_adjacency(edges: Iterable[ProjectedEdge]) -> Adjacency:
    """Index edges by source and target label, skipping self-loops."""
    adj: Adjacency = {}
    for edge in edges:
        adj.setdefault(edge.source_label, {})
        adj.setdefault(edge.target_label, {})
        if edge.is_self_loop:
            continue
        adj[edge.source_label][edge.target_label] = edge
    return adj


# ---------------------------------------------------------------------------
# Strongly connected components
# ---------------------------------------------------------------------------


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.sccs: list[list[str]] = []


def _strongconnect(root: str, adj: Adjacency, state: _TarjanState) -> None:
    """Iterative Tarjan visit rooted at *root*."""
    work: list[tuple[str, list[str]]] = []

    def _visit(node: str) -> None:
        state.indices[node] = state.index
        state.low_link[node] = state.index
        state.index += 1
        state.stack.append(node)
        state.on_stack.add(node)
        work.append((node, sorted(adj[node], reverse=True)))

    _visit(root)
    while work:
        node, pending = work[-1]
        if pending:
            neighbor = pending.pop()
            if neighbor not in state.indices:
                _visit(neighbor)
            elif neighbor in state.on_stack:
                state.low_link[node] = min(state.low_link[node], state.indices[neighbor])
            continue

        work.pop()
        if work:
            parent = work[-1][0]
            state.low_link[parent] = min(state.low_link[parent], state.low_link[node])

        if state.low_link[node] == state.indices[node]:
            scc: list[str] = []
            while True:
                member = state.stack.pop()
                state.on_stack.remove(member)
                scc.append(member)
                if member == node:
                    break
            state.sccs.append(scc)


def strongly_connected_components(adj: Adjacency) -> list[list[str]]:
    """Return the strongly connected components of *adj* (each sorted)."""
    state = _TarjanState()
    for node in sorted(adj):
        if node not in state.indices:
            _strongconnect(node, adj, state)
    return [sorted(scc) for scc in state.sccs]


# ---------------------------------------------------------------------------
# Cycle enumeration
# ---------------------------------------------------------------------------


def canonical_rotation(labels: list[str]) -> tuple[str, ...]:
    """Rotate a cycle's vertex list so that its smallest label comes first.

    ``[b, c, a]`` and ``[a, b, c]`` both become ``(a, b, c)``.
    """
    if not labels:
        return ()
    start = labels.index(min(labels))
    return tuple(labels[start:] + labels[:start])


def _descending(allowed: set[str], neighbours: dict[str, ProjectedEdge]) -> list[str]:
    # Popped from the end, so neighbours are visited in ascending order.
    return sorted(allowed & neighbours.keys(), reverse=True)


def _cycles_in_component(
    component: list[str],
    adj: Adjacency,
    max_length: int,
    seen: set[tuple[str, ...]],
) -> list[Cycle]:
    members = set(component)
    found: list[Cycle] = []

    for start in component:
        # Path stack of (vertex, remaining neighbours); on_path and on_path_set mirror it.
        allowed = {v for v in members if v >= start}
        stack: list[tuple[str, list[str]]] = [(start, _descending(allowed, adj[start]))]
        on_path: list[str] = [start]
        on_path_set: set[str] = {start}

        while stack:
            _, pending = stack[-1]
            if not pending:
                stack.pop()
                on_path_set.discard(on_path.pop())
                continue

            neighbor = pending.pop()
            if neighbor == start:
                key = canonical_rotation(on_path)
                if key not in seen:
                    seen.add(key)
                    walk = [*on_path, start]
                    found.append(tuple(adj[a][b] for a, b in zip(walk, walk[1:])))
            elif neighbor not in on_path_set and len(on_path) < max_length:
                on_path.append(neighbor)
                on_path_set.add(neighbor)
                stack.append((neighbor, _descending(allowed, adj[neighbor])))

    return found


def find_cycles(edges: Iterable[ProjectedEdge], *, max_length: int | None = None) -> list[Cycle]:
    """Enumerate every elementary cycle formed by *edges*.

    Each cycle is a tuple of the concrete :class:`ProjectedEdge` objects
    (with their ``cumulated_edges``) and starts at its smallest label.
    Self-loops never appear.  The result is sorted by length, then by label
    sequence, so it does not depend on input order.

    *max_length* caps the number of edges per cycle; it defaults to the
    number of vertices, which admits every elementary cycle.
    """
    adj = _build_adjacency(edges)
    limit = max_length if max_length is not None else len(adj)
    seen: set[tuple[str, ...]] = set()

    cycles: list[Cycle] = []
    for component in strongly_connected_components(adj):
        if len(component) < 2:
            continue
        cycles.extend(_cycles_in_component(component, adj, limit, seen))

    cycles.sort(key=lambda c: (len(c), [e.source_label for e in c]))
    return cycles


def cycle_labels(cycle: Cycle) -> list[str]:
    """Return the closed label walk of *cycle*: ``[a, b, c, a]``."""
    if not cycle:
        return []
    return [edge.source_label for edge in cycle] + [cycle[-1].target_label]
