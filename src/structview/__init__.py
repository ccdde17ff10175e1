"""Structure outline panel for code editors."""

from .analysis import StructureAnalysisRunner, StructureProvider
from .application import ApplicationController, ApplicationControllerProtocol
from .config import PanelSettings, SettingsStore
from .errors import (
    AlreadyAttachedError,
    DisposedViewError,
    MalformedModelError,
    NotAttachedError,
    StructureOutputError,
    ViewInitializationError,
)
from .structure import (
    NO_STRUCTURE_PLACEHOLDER,
    NodeKind,
    SourcePosition,
    StructureModel,
    StructureNode,
    format_structure,
)

__version__ = "0.1.0"

__all__ = [
    "AlreadyAttachedError",
    "ApplicationController",
    "ApplicationControllerProtocol",
    "DisposedViewError",
    "MalformedModelError",
    "NO_STRUCTURE_PLACEHOLDER",
    "NodeKind",
    "NotAttachedError",
    "PanelSettings",
    "SettingsStore",
    "SourcePosition",
    "StructureAnalysisRunner",
    "StructureModel",
    "StructureNode",
    "StructureOutputError",
    "StructureProvider",
    "ViewInitializationError",
    "format_structure",
]
