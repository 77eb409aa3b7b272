"""Graph domain — edge model, pattern filters, projections, cycle detection."""

from archloom.graph.cycles import cycle_labels, find_cycles, strongly_connected_components
from archloom.graph.model import Cycle, Edge, ImportKind, Node, ProjectedEdge
from archloom.graph.patterns import (
    Filter,
    MatchTarget,
    exact_path_filter,
    filename_filter,
    folder_filter,
    glob_to_regex,
    make_filter,
    matches_all,
    matches_any,
    matches_pattern,
    path_filter,
    unit_filter,
)
from archloom.graph.projection import (
    IdentityProjection,
    PatternProjection,
    Projection,
    SuffixProjection,
    project_edges,
    project_internal_edges,
    project_to_nodes,
)

__all__ = [
    "Cycle",
    "Edge",
    "Filter",
    "IdentityProjection",
    "ImportKind",
    "MatchTarget",
    "Node",
    "PatternProjection",
    "ProjectedEdge",
    "Projection",
    "SuffixProjection",
    "cycle_labels",
    "exact_path_filter",
    "filename_filter",
    "find_cycles",
    "folder_filter",
    "glob_to_regex",
    "make_filter",
    "matches_all",
    "matches_any",
    "matches_pattern",
    "path_filter",
    "project_edges",
    "project_internal_edges",
    "project_to_nodes",
    "strongly_connected_components",
    "unit_filter",
]
