"""Structure snapshots and the text formatting applied to them."""

from .formatting import (
    EMPTY_STATE_TEXT,
    NO_STRUCTURE_PLACEHOLDER,
    PLACEHOLDER_MARKER,
    FormattedStructure,
    diagnostic_placeholder,
    format_structure,
    validate_structure,
)
from .model import NodeKind, SourcePosition, StructureModel, StructureNode, iter_nodes, node_count

__all__ = [
    "EMPTY_STATE_TEXT",
    "NO_STRUCTURE_PLACEHOLDER",
    "PLACEHOLDER_MARKER",
    "FormattedStructure",
    "NodeKind",
    "SourcePosition",
    "StructureModel",
    "StructureNode",
    "diagnostic_placeholder",
    "format_structure",
    "iter_nodes",
    "node_count",
    "validate_structure",
]
