"""
ktgraph - document core for KT-SQEP teaching knowledge graphs.

Core modules:
- schema: Entity/edge types and the KnowledgeGraph document store
- validation: Type code and relation checks
- history: Invertible commands and the undo/redo engine
- codec: KT-SQEP XML encoding and decoding
- editor: GraphEditor, the mutation API used by GUIs and bindings
"""

from .schema import AddonType, DistinctType, Edge, Entity, KnowledgeGraph, Relation
from .config import EditorConfig, load_config
from .editor import GraphEditor
from .codec import decode, decode_with_report, encode

__version__ = "0.1.0"

__all__ = [
    "AddonType",
    "DistinctType",
    "Edge",
    "EditorConfig",
    "Entity",
    "GraphEditor",
    "KnowledgeGraph",
    "Relation",
    "decode",
    "decode_with_report",
    "encode",
    "load_config",
]
