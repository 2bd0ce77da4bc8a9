"""
Undo/redo engine.

Two plain stacks of commands: undo (most recent on top) and redo (filled
only by undo). Executing a new command clears redo.
"""

import logging
from typing import Optional

from ..errors import InternalConsistencyError, KTGraphError, NothingToRedo, NothingToUndo
from ..schema.graph import KnowledgeGraph
from .commands import Command

logger = logging.getLogger(__name__)


class CommandHistory:
    """
    Command engine bound to one document.

    Attributes:
        graph: The live document
        max_history: Undo depth limit (None = unlimited)
        coalesce: Whether consecutive drag moves merge into one command
    """

    def __init__(
        self,
        graph: Optional[KnowledgeGraph] = None,
        max_history: Optional[int] = None,
        coalesce: bool = True,
    ) -> None:
        if max_history is not None and max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.graph = graph if graph is not None else KnowledgeGraph()
        self.max_history = max_history
        self.coalesce = coalesce
        self._undo: list[Command] = []
        self._redo: list[Command] = []

    def execute(self, command: Command) -> Command:
        """
        Run a command and record it.

        Errors from the command propagate unchanged and nothing is recorded.
        """
        command.forward(self.graph)

        top = self._undo[-1] if self._undo else None
        if self.coalesce and top is not None and top.merge(command):
            logger.debug("Merged %r into %r", command, top)
        else:
            if top is not None:
                top.seal()
            self._undo.append(command)
            if self.max_history is not None and len(self._undo) > self.max_history:
                dropped = self._undo.pop(0)
                logger.debug("History full, dropped %r", dropped)
            logger.debug("Executed %r", command)
        self._redo.clear()
        return command

    def undo(self) -> Command:
        """Revert the most recent command."""
        if not self._undo:
            raise NothingToUndo()
        command = self._undo.pop()
        command.seal()
        self._replay(command, "undo", command.inverse)
        self._redo.append(command)
        logger.debug("Undid %r", command)
        return command

    def redo(self) -> Command:
        """Re-apply the most recently undone command."""
        if not self._redo:
            raise NothingToRedo()
        command = self._redo.pop()
        self._replay(command, "redo", command.forward)
        self._undo.append(command)
        logger.debug("Redid %r", command)
        return command

    def _replay(self, command: Command, action: str, operation) -> None:
        try:
            operation(self.graph)
        except (KTGraphError, ValueError) as e:
            logger.critical("%s of %r failed, document and history disagree: %s", action, command, e)
            raise InternalConsistencyError(f"{action} of {command.label!r} failed: {e}") from e

    def end_drag(self) -> None:
        """Close the current drag so the next move starts a new command."""
        if self._undo:
            self._undo[-1].seal()

    def reset(self, graph: Optional[KnowledgeGraph] = None) -> None:
        """Drop all history, optionally switching to another document."""
        if graph is not None:
            self.graph = graph
        self._undo.clear()
        self._redo.clear()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo_labels(self) -> list[str]:
        """Labels of undoable commands, most recent first."""
        return [c.label for c in reversed(self._undo)]

    def redo_labels(self) -> list[str]:
        """Labels of redoable commands, next redo first."""
        return [c.label for c in reversed(self._redo)]

    def __len__(self) -> int:
        return len(self._undo)
