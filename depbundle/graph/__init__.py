"""Graph reconstruction, layout and edge bundling."""

from .bundling import BundleCache, BundlePath, basis_curve, control_points, node_path
from .ingestion import GraphSnapshot, fingerprint, ingest
from .layout import LayoutPosition, radial_layout
from .tree import Tree

__all__ = [
    "BundleCache",
    "BundlePath",
    "basis_curve",
    "control_points",
    "node_path",
    "GraphSnapshot",
    "fingerprint",
    "ingest",
    "LayoutPosition",
    "radial_layout",
    "Tree",
]
