"""Turn structure models into the text shown by the output view."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import MalformedModelError
from .model import StructureModel, iter_nodes

__all__ = [
    "EMPTY_STATE_TEXT",
    "DEFAULT_INDENT_UNIT",
    "DEFAULT_NO_STRUCTURE_TEXT",
    "NO_STRUCTURE_PLACEHOLDER",
    "PLACEHOLDER_MARKER",
    "FormattedStructure",
    "diagnostic_placeholder",
    "format_structure",
    "placeholder_text",
    "validate_structure",
]

EMPTY_STATE_TEXT = ""
# Placeholders start with this character; labels never contain it, so a
# placeholder can not be mistaken for a rendered node.
PLACEHOLDER_MARKER = "\u2205"
DEFAULT_NO_STRUCTURE_TEXT = "(no structure)"
NO_STRUCTURE_PLACEHOLDER = f"{PLACEHOLDER_MARKER} {DEFAULT_NO_STRUCTURE_TEXT}"
DEFAULT_INDENT_UNIT = "  "
_LINE_BREAKS = re.compile(r"\r\n|[\r\n\u2028\u2029]")


@dataclass(slots=True, frozen=True)
class FormattedStructure:
    """Display text plus the source offset of each of its lines."""

    text: str
    line_offsets: tuple[int | None, ...] = ()

    @property
    def line_count(self) -> int:
        return len(self.line_offsets)


def validate_structure(model: StructureModel) -> None:
    """Raise :class:`MalformedModelError` when a depth invariant is broken."""

    for node, parent in iter_nodes(model):
        expected = 0 if parent is None else parent.depth + 1
        if node.depth != expected:
            where = "root node" if parent is None else f"child of {parent.label!r}"
            raise MalformedModelError(
                f"{where} {node.label!r} has depth {node.depth}, expected {expected}",
                label=node.label,
                depth=node.depth,
                expected_depth=expected,
            )


def format_structure(
    model: StructureModel,
    *,
    indent_unit: str = DEFAULT_INDENT_UNIT,
    no_structure_text: str = DEFAULT_NO_STRUCTURE_TEXT,
) -> FormattedStructure:
    """Render ``model`` as one line per node, indented by depth.

    Nodes are emitted depth-first in document order; nothing is sorted. An
    empty model renders as the marked ``no_structure_text`` with no navigable
    lines, which never equals the rendering of a non-empty model.
    """

    validate_structure(model)
    if model.is_empty:
        return FormattedStructure(text=placeholder_text(no_structure_text), line_offsets=(None,))

    lines: list[str] = []
    offsets: list[int | None] = []
    for node, _parent in iter_nodes(model):
        lines.append(f"{indent_unit * node.depth}{_label_text(node.label)}")
        offsets.append(node.position.offset)
    return FormattedStructure(text="\n".join(lines), line_offsets=tuple(offsets))


def placeholder_text(text: str) -> str:
    """Single-line ``text`` prefixed with :data:`PLACEHOLDER_MARKER`."""

    text = _single_line(text).replace(PLACEHOLDER_MARKER, "").strip()
    return f"{PLACEHOLDER_MARKER} {text}" if text else PLACEHOLDER_MARKER


def diagnostic_placeholder(message: str) -> str:
    return placeholder_text(f"(structure unavailable: {message})")


def _label_text(label: str) -> str:
    return _single_line(label).replace(PLACEHOLDER_MARKER, "")


def _single_line(text: str) -> str:
    return _LINE_BREAKS.sub(" ", text)
