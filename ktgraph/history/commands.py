"""
Invertible commands over a KnowledgeGraph.

Each command runs its forward operation once through CommandHistory.execute,
capturing whatever pre-state its inverse needs. Undo runs the inverse; redo
runs forward again and must reproduce the same ids and edge slots, so
commands that create things re-insert their captured values on replay.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..schema.edges import Relation
from ..schema.graph import EdgeRecord, KnowledgeGraph, RemovedEntity
from ..schema.nodes import AddonType, DistinctType, Entity


class Command(ABC):
    """Base class for undoable document mutations."""

    label: str = "command"

    @abstractmethod
    def forward(self, graph: KnowledgeGraph) -> None:
        """Apply the mutation. Must leave the graph unchanged on failure."""
        pass

    @abstractmethod
    def inverse(self, graph: KnowledgeGraph) -> None:
        """Revert a successful forward()."""
        pass

    def merge(self, other: "Command") -> bool:
        """
        Absorb a command that was just executed after this one.

        Returns:
            True if other is now represented by this command
        """
        return False

    def seal(self) -> None:
        """Stop accepting merges."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label!r}>"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class AddEntityCommand(Command):
    def __init__(
        self,
        content: str,
        distinct_type: DistinctType,
        addon_types: frozenset[AddonType],
        x: float,
        y: float,
    ) -> None:
        self.content = content
        self.distinct_type = distinct_type
        self.addon_types = addon_types
        self.x = x
        self.y = y
        self.entity: Optional[Entity] = None
        self.removed: Optional[RemovedEntity] = None
        self.label = f"add {distinct_type.value} entity"

    @property
    def entity_id(self) -> Optional[int]:
        return self.entity.id if self.entity else None

    def forward(self, graph: KnowledgeGraph) -> None:
        if self.entity is None:
            self.entity = graph.add_entity(
                self.content, self.distinct_type, self.addon_types, self.x, self.y
            )
        else:
            # Redo: same id and slot as the first run
            graph.restore_entity(self.removed)

    def inverse(self, graph: KnowledgeGraph) -> None:
        self.removed = graph.remove_entity(self.entity.id)


class RemoveEntityCommand(Command):
    """Delete an entity; undo restores it and exactly the edges cascaded with it."""

    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        self.removed: Optional[RemovedEntity] = None
        self.label = f"remove entity {entity_id}"

    def forward(self, graph: KnowledgeGraph) -> None:
        self.removed = graph.remove_entity(self.entity_id)

    def inverse(self, graph: KnowledgeGraph) -> None:
        graph.restore_entity(self.removed)


class UpdateEntityCommand(Command):
    """Change content, addon types and/or position of one entity."""

    def __init__(
        self,
        entity_id: int,
        *,
        content: Optional[str] = None,
        addon_types: Optional[frozenset[AddonType]] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        label: str = "edit entity",
    ) -> None:
        self.entity_id = entity_id
        self.content = content
        self.addon_types = addon_types
        self.x = x
        self.y = y
        self.previous: Optional[Entity] = None
        self.label = f"{label} {entity_id}"

    def forward(self, graph: KnowledgeGraph) -> None:
        previous = graph.update_entity(
            self.entity_id,
            content=self.content,
            addon_types=self.addon_types,
            x=self.x,
            y=self.y,
        )
        if self.previous is None:
            self.previous = previous

    def inverse(self, graph: KnowledgeGraph) -> None:
        graph.replace_entity(self.previous)


class SetContentCommand(UpdateEntityCommand):
    def __init__(self, entity_id: int, content: str) -> None:
        super().__init__(entity_id, content=content, label="set content of")


class SetAddonTypesCommand(UpdateEntityCommand):
    def __init__(self, entity_id: int, addon_types: frozenset[AddonType]) -> None:
        super().__init__(entity_id, addon_types=addon_types, label="set addon types of")


class SetPositionCommand(UpdateEntityCommand):
    """
    Move an entity.

    Drag moves of the same entity merge into the first one until sealed,
    so a whole drag undoes in one step back to where it started.
    """

    def __init__(self, entity_id: int, x: float, y: float, *, drag: bool = False) -> None:
        super().__init__(entity_id, x=x, y=y, label="move")
        self.drag = drag

    def merge(self, other: Command) -> bool:
        if not (
            self.drag
            and isinstance(other, SetPositionCommand)
            and other.drag
            and other.entity_id == self.entity_id
        ):
            return False
        self.x, self.y = other.x, other.y
        return True

    def seal(self) -> None:
        self.drag = False


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class AddEdgeCommand(Command):
    def __init__(self, from_id: int, to_id: int, relation: Relation) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.relation = relation
        self.record: Optional[EdgeRecord] = None
        self.label = f"add {relation.value} edge {from_id} -> {to_id}"

    def forward(self, graph: KnowledgeGraph) -> None:
        if self.record is None:
            self.record = graph.add_edge(self.from_id, self.to_id, self.relation)
        else:
            graph.restore_edge(self.record)

    def inverse(self, graph: KnowledgeGraph) -> None:
        graph.remove_edge(self.from_id, self.to_id, self.relation)


class RemoveEdgeCommand(Command):
    def __init__(self, from_id: int, to_id: int, relation: Relation) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.relation = relation
        self.record: Optional[EdgeRecord] = None
        self.label = f"remove {relation.value} edge {from_id} -> {to_id}"

    def forward(self, graph: KnowledgeGraph) -> None:
        self.record = graph.remove_edge(self.from_id, self.to_id, self.relation)

    def inverse(self, graph: KnowledgeGraph) -> None:
        graph.restore_edge(self.record)


class ChangeRelationCommand(Command):
    """Switch an edge between contain and order, keeping its slot."""

    def __init__(self, from_id: int, to_id: int, old: Relation, new: Relation) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.old = old
        self.new = new
        self.label = f"change edge {from_id} -> {to_id} to {new.value}"

    def forward(self, graph: KnowledgeGraph) -> None:
        graph.change_relation(self.from_id, self.to_id, self.old, self.new)

    def inverse(self, graph: KnowledgeGraph) -> None:
        graph.change_relation(self.from_id, self.to_id, self.new, self.old)


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


class CompositeCommand(Command):
    """Several commands undone and redone as one step."""

    def __init__(self, commands: list[Command], label: str) -> None:
        self.commands = list(commands)
        self.label = label

    def forward(self, graph: KnowledgeGraph) -> None:
        done: list[Command] = []
        try:
            for command in self.commands:
                command.forward(graph)
                done.append(command)
        except Exception:
            for command in reversed(done):
                command.inverse(graph)
            raise

    def inverse(self, graph: KnowledgeGraph) -> None:
        for command in reversed(self.commands):
            command.inverse(graph)
