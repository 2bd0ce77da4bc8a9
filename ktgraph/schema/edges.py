"""
Edge schema definitions for the teaching knowledge graph.

Relations:
- contain: Hierarchical containment (知识领域 contains 知识单元)
- order: Sequential order (先学 A, 再学 B)

Critical-order and connect-resource relations exist upstream but are not
supported; the codec recognizes them by name and reports them.
"""

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict


class Relation(str, Enum):
    """Kind of directed edge between two entities."""

    CONTAIN = "contain"
    ORDER = "order"


class EdgeKey(NamedTuple):
    """Identity of an edge: ordered pair plus relation."""

    from_id: int
    to_id: int
    relation: Relation


class Edge(BaseModel):
    """
    Knowledge graph edge.

    Stores entity ids, never entity objects, so deleting an entity only
    needs an id lookup to find the edges that must go with it.
    """

    model_config = ConfigDict(frozen=True)

    from_id: int
    to_id: int
    relation: Relation

    @property
    def key(self) -> EdgeKey:
        return EdgeKey(self.from_id, self.to_id, self.relation)

    def touches(self, entity_id: int) -> bool:
        """Return True if the entity is either endpoint."""
        return self.from_id == entity_id or self.to_id == entity_id
