"""
GraphEditor: the mutation API for one open knowledge graph.

GUI event handlers and scripting bindings call the same methods. Raw codes
("ka", "kte", "contain") are parsed here, every change runs as a command so
it can be undone, and loading a file swaps the whole document at once.
"""

import logging
from typing import Optional, Union

from .codec.xml_codec import DecodeResult, decode_with_report, encode
from .config import EditorConfig
from .errors import EdgeNotFound, EntityNotFound
from .history.commands import (
    AddEdgeCommand,
    AddEntityCommand,
    ChangeRelationCommand,
    CompositeCommand,
    RemoveEdgeCommand,
    RemoveEntityCommand,
    SetAddonTypesCommand,
    SetContentCommand,
    SetPositionCommand,
    UpdateEntityCommand,
)
from .history.engine import CommandHistory
from .schema.edges import Relation
from .schema.graph import KnowledgeGraph
from .schema.nodes import DistinctType, Entity
from .validation.schema_validator import (
    AddonInput,
    parse_addon_types,
    parse_distinct_type,
    parse_relation,
)

logger = logging.getLogger(__name__)


class GraphEditor:
    """
    One live document plus its undo/redo history.

    Not thread-safe: callers that share an editor between threads must
    serialize access to it themselves.
    """

    def __init__(
        self,
        graph: Optional[KnowledgeGraph] = None,
        config: Optional[EditorConfig] = None,
    ) -> None:
        self.config = config or EditorConfig()
        self.history = CommandHistory(
            graph,
            max_history=self.config.max_history,
            coalesce=self.config.coalesce_drags,
        )

    @property
    def graph(self) -> KnowledgeGraph:
        """The live document (read it, do not mutate it directly)."""
        return self.history.graph

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def add_entity(
        self,
        content: str,
        distinct_type: Union[str, DistinctType],
        addon_types: Optional[AddonInput] = None,
        x: float = 0.0,
        y: float = 0.0,
    ) -> int:
        """
        Create an entity.

        Args:
            content: Label text
            distinct_type: ka, ku, kp or kd
            addon_types: Codes from k, t, e, q, p, z ("kt" or ["k", "t"])
            x, y: Position

        Returns:
            The new entity id
        """
        command = AddEntityCommand(
            content,
            parse_distinct_type(distinct_type),
            parse_addon_types(addon_types),
            x,
            y,
        )
        self.history.execute(command)
        return command.entity_id

    def remove_entity(self, entity_id: int) -> None:
        """Remove an entity together with all of its edges."""
        self.history.execute(RemoveEntityCommand(entity_id))

    def set_content(self, entity_id: int, content: str) -> None:
        self.history.execute(SetContentCommand(entity_id, content))

    def set_addon_types(self, entity_id: int, addon_types: AddonInput) -> None:
        self.history.execute(SetAddonTypesCommand(entity_id, parse_addon_types(addon_types)))

    def set_position(self, entity_id: int, x: float, y: float, *, drag: bool = False) -> None:
        """
        Move an entity.

        With drag=True, consecutive moves of the same entity collapse into
        one undo step until end_drag() or any other change.
        """
        self.history.execute(SetPositionCommand(entity_id, x, y, drag=drag))

    def end_drag(self) -> None:
        self.history.end_drag()

    def update_entity(
        self,
        entity_id: int,
        content: Optional[str] = None,
        addon_types: Optional[AddonInput] = None,
    ) -> None:
        """Apply an entity edit dialog (content and addons) as one undo step."""
        self.history.execute(
            UpdateEntityCommand(
                entity_id,
                content=content,
                addon_types=None if addon_types is None else parse_addon_types(addon_types),
            )
        )

    def get_entity(self, entity_id: int) -> Entity:
        entity = self.graph.get_entity(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        return entity

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, from_id: int, to_id: int, relation: Union[str, Relation]) -> None:
        """Add a contain or order edge from one entity to another."""
        self.history.execute(AddEdgeCommand(from_id, to_id, parse_relation(relation)))

    def remove_edge(
        self,
        from_id: int,
        to_id: int,
        relation: Optional[Union[str, Relation]] = None,
    ) -> None:
        """
        Remove an edge.

        Without a relation, every relation present on the ordered pair is
        removed in one undo step. Raises EdgeNotFound if nothing matches.
        """
        if relation is not None:
            self.history.execute(RemoveEdgeCommand(from_id, to_id, parse_relation(relation)))
            return

        present = self.graph.relations_between(from_id, to_id)
        if not present:
            raise EdgeNotFound(from_id, to_id)
        removals = [RemoveEdgeCommand(from_id, to_id, r) for r in present]
        if len(removals) == 1:
            self.history.execute(removals[0])
        else:
            self.history.execute(CompositeCommand(removals, f"remove edges {from_id} -> {to_id}"))

    def update_edge(
        self,
        from_id: int,
        to_id: int,
        old_relation: Union[str, Relation],
        new_relation: Union[str, Relation],
    ) -> None:
        """Change the relation of an existing edge."""
        self.history.execute(
            ChangeRelationCommand(
                from_id, to_id, parse_relation(old_relation), parse_relation(new_relation)
            )
        )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def undo(self) -> str:
        """Undo the last change; returns its label. Raises NothingToUndo."""
        return self.history.undo().label

    def redo(self) -> str:
        """Redo the last undone change; returns its label. Raises NothingToRedo."""
        return self.history.redo().label

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def to_xml(self) -> str:
        return encode(self.graph)

    def load_xml(self, text: Union[str, bytes]) -> DecodeResult:
        """
        Replace the current document with a decoded one.

        The current document and its history stay untouched if decoding
        fails. On success the history starts empty.
        """
        result = decode_with_report(text, skip_unsupported=self.config.skip_unsupported)
        self.history.reset(result.graph)
        logger.info("Loaded %s", result.graph.summary())
        return result

    @classmethod
    def from_xml(
        cls, text: Union[str, bytes], config: Optional[EditorConfig] = None
    ) -> "GraphEditor":
        """Build an editor around a decoded document."""
        editor = cls(config=config)
        editor.load_xml(text)
        return editor

    def new_document(self) -> None:
        """Start over with an empty document and no history."""
        self.history.reset(KnowledgeGraph())

    def summary(self) -> str:
        return (
            f"{self.graph.summary()} "
            f"[undo={len(self.history.undo_labels())}, redo={len(self.history.redo_labels())}]"
        )
