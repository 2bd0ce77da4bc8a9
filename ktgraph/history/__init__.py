"""
Command-based undo/redo for knowledge graph documents.
"""

from .commands import (
    AddEdgeCommand,
    AddEntityCommand,
    ChangeRelationCommand,
    Command,
    CompositeCommand,
    RemoveEdgeCommand,
    RemoveEntityCommand,
    SetAddonTypesCommand,
    SetContentCommand,
    SetPositionCommand,
    UpdateEntityCommand,
)
from .engine import CommandHistory

__all__ = [
    "AddEdgeCommand",
    "AddEntityCommand",
    "ChangeRelationCommand",
    "Command",
    "CommandHistory",
    "CompositeCommand",
    "RemoveEdgeCommand",
    "RemoveEntityCommand",
    "SetAddonTypesCommand",
    "SetContentCommand",
    "SetPositionCommand",
    "UpdateEntityCommand",
]
