"""Qt views of the structure panel."""

from .structure_output_view import InteractionCallback, StructureOutputView

__all__ = ["InteractionCallback", "StructureOutputView"]
