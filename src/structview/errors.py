"""Error taxonomy shared by the structure view and its controller."""

from __future__ import annotations

__all__ = [
    "StructureOutputError",
    "DisposedViewError",
    "AlreadyAttachedError",
    "NotAttachedError",
    "ViewInitializationError",
    "MalformedModelError",
]


class StructureOutputError(RuntimeError):
    """Base class for every error raised by the structure panel."""


class DisposedViewError(StructureOutputError):
    """Raised when a torn-down view is asked to display content."""


class AlreadyAttachedError(StructureOutputError):
    """Raised when a controller is attached a second time."""


class NotAttachedError(StructureOutputError):
    """Raised when a controller is used before :meth:`attach`."""


class ViewInitializationError(StructureOutputError):
    """Raised when the output widget cannot be (or was already) created."""


class MalformedModelError(StructureOutputError, ValueError):
    """A delivered structure model violates the depth invariant.

    Attributes:
        label: Label of the offending node.
        depth: Depth the node declared.
        expected_depth: Depth implied by its position in the tree.
    """

    def __init__(self, message: str, *, label: str = "", depth: int = 0, expected_depth: int = 0) -> None:
        super().__init__(message)
        self.label = label
        self.depth = depth
        self.expected_depth = expected_depth
