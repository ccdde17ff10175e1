"""Immutable structure snapshots produced by the analysis collaborator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping

__all__ = [
    "NodeKind",
    "SourcePosition",
    "StructureNode",
    "StructureModel",
    "iter_nodes",
    "node_count",
]


class NodeKind(str, Enum):
    """Kinds of outline entries reported by the analysis collaborator."""

    NAMESPACE = "namespace"
    TYPE = "type"
    MEMBER = "member"
    FUNCTION = "function"
    VARIABLE = "variable"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "NodeKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


@dataclass(slots=True, frozen=True)
class SourcePosition:
    """Location of a node in the source file.

    ``offset`` is what navigation uses; ``line`` and ``column`` are 1-based and
    purely informational.
    """

    offset: int
    line: int | None = None
    column: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"offset": self.offset, "line": self.line, "column": self.column}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | int) -> "SourcePosition":
        if isinstance(payload, int):
            return cls(offset=payload)
        line = payload.get("line")
        column = payload.get("column")
        return cls(
            offset=int(payload.get("offset", 0)),
            line=int(line) if line is not None else None,
            column=int(column) if column is not None else None,
        )


@dataclass(slots=True, frozen=True)
class StructureNode:
    """One outline entry; children are kept in document order."""

    label: str
    kind: NodeKind
    depth: int
    position: SourcePosition = field(default_factory=lambda: SourcePosition(0))
    children: tuple["StructureNode", ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "kind": self.kind.value,
            "depth": self.depth,
            "position": self.position.to_dict(),
            "children": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StructureNode":
        children_payload = payload.get("children", [])
        return cls(
            label=str(payload.get("label", "")),
            kind=NodeKind.coerce(payload.get("kind", NodeKind.OTHER)),
            depth=int(payload.get("depth", 0)),
            position=SourcePosition.from_dict(payload.get("position", 0)),
            children=tuple(
                StructureNode.from_dict(child) for child in children_payload if isinstance(child, Mapping)
            ),
        )


@dataclass(slots=True, frozen=True)
class StructureModel:
    """A single snapshot of a file's outline.

    Revisions increase strictly with every edit of the same source; the
    controller relies on that to drop results that arrive out of order.
    """

    source_id: str
    nodes: tuple[StructureNode, ...] = ()
    revision: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "revision": self.revision,
            "nodes": [node.to_dict() for node in self.nodes],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StructureModel":
        nodes_payload = payload.get("nodes", [])
        return cls(
            source_id=str(payload.get("source_id", "")),
            revision=int(payload.get("revision", 0)),
            nodes=tuple(StructureNode.from_dict(node) for node in nodes_payload if isinstance(node, Mapping)),
        )


def iter_nodes(model: StructureModel) -> Iterator[tuple[StructureNode, StructureNode | None]]:
    """Yield ``(node, parent)`` pairs depth-first in document order."""

    stack: list[tuple[StructureNode, StructureNode | None]] = [(node, None) for node in reversed(model.nodes)]
    while stack:
        node, parent = stack.pop()
        yield node, parent
        stack.extend((child, node) for child in reversed(node.children))


def node_count(model: StructureModel) -> int:
    return sum(1 for _ in iter_nodes(model))
