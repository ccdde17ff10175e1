"""Controllers of the structure panel."""

from .structure_output_controller import ControllerState, StructureOutputController

__all__ = ["ControllerState", "StructureOutputController"]
