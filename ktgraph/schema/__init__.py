"""
Schema definitions for teaching knowledge graph entities and edges.

Follows the KT-SQEP teaching graph model: four distinct entity types, six
addon tags, and contain/order relations.
"""

from .nodes import AddonType, DistinctType, Entity, addon_codes
from .edges import Edge, EdgeKey, Relation
from .graph import EdgeRecord, KnowledgeGraph, RemovedEntity

__all__ = [
    "AddonType",
    "DistinctType",
    "Entity",
    "addon_codes",
    "Edge",
    "EdgeKey",
    "Relation",
    "EdgeRecord",
    "KnowledgeGraph",
    "RemovedEntity",
]
