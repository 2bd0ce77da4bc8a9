"""
Knowledge graph document and its store operations.

The document is the arena for one open file: entities keyed by integer id,
edges keyed by (from_id, to_id, relation). Every method validates completely
before touching state, so a failed call leaves the document unchanged.

Callers outside the core should not mutate a document directly; they go
through GraphEditor so that every change is recorded for undo.
"""

from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional

from ..errors import DuplicateEdge, EdgeNotFound, EntityNotFound, SelfLoop
from ..validation.schema_validator import (
    AddonInput,
    parse_addon_types,
    parse_distinct_type,
    parse_relation,
)
from .edges import Edge, EdgeKey, Relation
from .nodes import DistinctType, Entity


@dataclass(frozen=True)
class EdgeRecord:
    """An edge plus its insertion sequence number (its serialization slot)."""

    edge: Edge
    seq: int


class RemovedEntity(NamedTuple):
    """Everything remove_entity took out of the document."""

    entity: Entity
    edges: tuple[EdgeRecord, ...]
    slot: int


class KnowledgeGraph:
    """
    Teaching knowledge graph document.

    Invariants:
        - every edge endpoint is an entity in the document
        - entity ids are unique and never handed out twice
        - all type codes and relations belong to the fixed alphabets
    """

    def __init__(self) -> None:
        self._entities: dict[int, Entity] = {}
        self._slots: dict[int, int] = {}  # entity id -> serialization slot
        self._edges: dict[EdgeKey, EdgeRecord] = {}
        self.next_id = 1  # ids start at 1 for compatibility with KT-SQEP
        self._next_seq = 0
        self._next_slot = 0

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def add_entity(
        self,
        content: str,
        distinct_type: str | DistinctType,
        addon_types: Optional[AddonInput] = None,
        x: float = 0.0,
        y: float = 0.0,
    ) -> Entity:
        """Create an entity with a fresh id and return it."""
        entity = Entity(
            id=self.next_id,
            content=content,
            distinct_type=parse_distinct_type(distinct_type),
            addon_types=parse_addon_types(addon_types),
            x=x,
            y=y,
        )
        self.insert_entity(entity)
        return entity

    def insert_entity(self, entity: Entity, slot: Optional[int] = None) -> None:
        """
        Insert an entity that already has an id.

        Used when decoding files and when undo restores a deleted entity.
        Without a slot the entity goes after every existing one. The id
        counter moves past the inserted id so it is never reissued.
        """
        if entity.id in self._entities:
            raise ValueError(f"Entity {entity.id} already exists")
        if slot is None:
            slot = self._next_slot
        self._entities[entity.id] = entity
        self._slots[entity.id] = slot
        self._next_slot = max(self._next_slot, slot + 1)
        self.next_id = max(self.next_id, entity.id + 1)

    def remove_entity(self, entity_id: int) -> RemovedEntity:
        """Remove an entity and every edge incident to it."""
        entity = self._require(entity_id)
        cascaded = tuple(r for r in self._edge_records() if r.edge.touches(entity_id))
        for record in cascaded:
            del self._edges[record.edge.key]
        del self._entities[entity_id]
        return RemovedEntity(entity, cascaded, self._slots.pop(entity_id))

    def restore_entity(self, removed: RemovedEntity) -> None:
        """Put back an entity, in its old slot, and the edges removed with it."""
        self.insert_entity(removed.entity, removed.slot)
        for record in removed.edges:
            self.restore_edge(record)

    def update_entity(
        self,
        entity_id: int,
        *,
        content: Optional[str] = None,
        addon_types: Optional[AddonInput] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
    ) -> Entity:
        """
        Change mutable fields of an entity in place.

        Returns:
            The entity as it was before the change
        """
        previous = self._require(entity_id)
        changes: dict = {}
        if content is not None:
            changes["content"] = content
        if addon_types is not None:
            changes["addon_types"] = parse_addon_types(addon_types)
        if x is not None:
            changes["x"] = x
        if y is not None:
            changes["y"] = y
        # model_copy skips validation, so rebuild to re-check coordinates
        updated = Entity.model_validate({**previous.model_dump(), **changes})
        self._entities[entity_id] = updated
        return previous

    def replace_entity(self, entity: Entity) -> Entity:
        """Swap in a new value for an existing entity; returns the old value."""
        previous = self._require(entity.id)
        if previous.distinct_type != entity.distinct_type:
            raise ValueError(f"Distinct type of entity {entity.id} cannot change")
        self._entities[entity.id] = entity
        return previous

    def get_entity(self, entity_id: int) -> Optional[Entity]:
        """Get an entity by id."""
        return self._entities.get(entity_id)

    def has_entity(self, entity_id: int) -> bool:
        return entity_id in self._entities

    def entities(self) -> list[Entity]:
        """All entities in insertion order (file order for a decoded document)."""
        return [self._entities[i] for i in sorted(self._entities, key=self._slots.__getitem__)]

    def _require(self, entity_id: int) -> Entity:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        return entity

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, from_id: int, to_id: int, relation: str | Relation) -> EdgeRecord:
        """
        Add a directed edge.

        The same pair may carry both a contain and an order edge; adding an
        edge that already exists with the same relation is rejected.
        """
        relation = parse_relation(relation)
        self._require(from_id)
        self._require(to_id)
        if from_id == to_id:
            raise SelfLoop(from_id)
        key = EdgeKey(from_id, to_id, relation)
        if key in self._edges:
            raise DuplicateEdge(from_id, to_id, relation.value)

        record = EdgeRecord(Edge(from_id=from_id, to_id=to_id, relation=relation), self._next_seq)
        self._next_seq += 1
        self._edges[key] = record
        return record

    def remove_edge(self, from_id: int, to_id: int, relation: str | Relation) -> EdgeRecord:
        """Remove one edge; returns its record so it can be restored."""
        relation = parse_relation(relation)
        key = EdgeKey(from_id, to_id, relation)
        record = self._edges.get(key)
        if record is None:
            raise EdgeNotFound(from_id, to_id, relation.value)
        del self._edges[key]
        return record

    def restore_edge(self, record: EdgeRecord) -> None:
        """Re-insert a previously removed edge in its original slot."""
        edge = record.edge
        if not (self.has_entity(edge.from_id) and self.has_entity(edge.to_id)):
            raise ValueError(f"Edge {tuple(edge.key)} refers to a missing entity")
        if edge.key in self._edges:
            raise ValueError(f"Edge {tuple(edge.key)} already exists")
        self._edges[edge.key] = record
        self._next_seq = max(self._next_seq, record.seq + 1)

    def change_relation(
        self,
        from_id: int,
        to_id: int,
        old_relation: str | Relation,
        new_relation: str | Relation,
    ) -> tuple[EdgeRecord, EdgeRecord]:
        """
        Turn an existing edge into one of another relation.

        The edge keeps its serialization slot.

        Returns:
            (old_record, new_record)
        """
        old_relation = parse_relation(old_relation)
        new_relation = parse_relation(new_relation)
        old_key = EdgeKey(from_id, to_id, old_relation)
        old_record = self._edges.get(old_key)
        if old_record is None:
            raise EdgeNotFound(from_id, to_id, old_relation.value)
        new_key = EdgeKey(from_id, to_id, new_relation)
        if new_key in self._edges:
            raise DuplicateEdge(from_id, to_id, new_relation.value)

        new_record = EdgeRecord(
            Edge(from_id=from_id, to_id=to_id, relation=new_relation), old_record.seq
        )
        del self._edges[old_key]
        self._edges[new_key] = new_record
        return old_record, new_record

    def get_edge(self, from_id: int, to_id: int, relation: str | Relation) -> Optional[Edge]:
        record = self._edges.get(EdgeKey(from_id, to_id, parse_relation(relation)))
        return record.edge if record else None

    def has_edge(
        self, from_id: int, to_id: int, relation: Optional[str | Relation] = None
    ) -> bool:
        """True if an edge exists; with no relation, any relation counts."""
        if relation is not None:
            return EdgeKey(from_id, to_id, parse_relation(relation)) in self._edges
        return any(EdgeKey(from_id, to_id, r) in self._edges for r in Relation)

    def relations_between(self, from_id: int, to_id: int) -> list[Relation]:
        """Relations present on the ordered pair, in Relation order."""
        return [r for r in Relation if EdgeKey(from_id, to_id, r) in self._edges]

    def edges(self) -> list[Edge]:
        """All edges in insertion order."""
        return [r.edge for r in self._edge_records()]

    def edge_keys(self) -> set[EdgeKey]:
        return set(self._edges)

    def get_node_edges(self, entity_id: int) -> list[Edge]:
        """Get all edges connected to an entity."""
        return [e for e in self.edges() if e.touches(entity_id)]

    def get_outgoing_edges(self, entity_id: int) -> list[Edge]:
        """Get edges where the entity is the source."""
        return [e for e in self.edges() if e.from_id == entity_id]

    def get_incoming_edges(self, entity_id: int) -> list[Edge]:
        """Get edges where the entity is the target."""
        return [e for e in self.edges() if e.to_id == entity_id]

    def _edge_records(self) -> Iterable[EdgeRecord]:
        return sorted(self._edges.values(), key=lambda r: r.seq)

    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entities)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KnowledgeGraph):
            return NotImplemented
        return self.entities() == other.entities() and set(self._edges) == set(other._edges)

    def summary(self) -> str:
        """Return a summary of the graph."""
        return f"KnowledgeGraph(entities={len(self._entities)}, edges={len(self._edges)})"

    def __repr__(self) -> str:
        return self.summary()
