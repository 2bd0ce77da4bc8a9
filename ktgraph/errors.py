"""
Error taxonomy for the document core.

SchemaViolation  - a type code or relation token outside the fixed alphabets,
                   content XML cannot carry, or a non-finite coordinate
ReferentialError - missing entity/edge, self-loop, duplicate edge
HistoryError     - undo/redo with an empty stack (benign)
FormatError      - a KT-SQEP file that cannot be decoded
"""

from enum import Enum
from typing import Optional


class KTGraphError(Exception):
    """Base class for all document core errors."""


# --- Schema ---


class SchemaViolation(KTGraphError):
    """A value the KT-SQEP schema cannot represent."""


class InvalidSchemaCode(SchemaViolation):
    """Unknown distinct-type or addon-type code."""

    def __init__(self, code: object, kind: str = "schema") -> None:
        self.code = code
        self.kind = kind
        super().__init__(f"invalid {kind} code {code!r}")


class InvalidRelation(SchemaViolation):
    """Unknown relation token."""

    def __init__(self, token: object) -> None:
        self.token = token
        super().__init__(f"invalid relation {token!r}")


class InvalidContent(SchemaViolation):
    """Entity content holds a character XML 1.0 cannot encode."""

    def __init__(self, char: str) -> None:
        self.char = char
        super().__init__(f"content contains U+{ord(char):04X}, which XML cannot encode")


class InvalidCoordinate(SchemaViolation):
    """A position component that is not a finite number."""

    def __init__(self, axis: str, value: object) -> None:
        self.axis = axis
        self.value = value
        super().__init__(f"{axis} must be a finite number, got {value!r}")


# --- Referential ---


class ReferentialError(KTGraphError):
    """An operation refers to something that is (or is not) in the document."""


class EntityNotFound(ReferentialError):
    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        super().__init__(f"entity {entity_id} not found")


class EdgeNotFound(ReferentialError):
    def __init__(self, from_id: int, to_id: int, relation: Optional[str] = None) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.relation = relation
        kind = f" {relation}" if relation else ""
        super().__init__(f"edge ({from_id}, {to_id}){kind} not found")


class SelfLoop(ReferentialError):
    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        super().__init__(f"edge from entity {entity_id} to itself is not allowed")


class DuplicateEdge(ReferentialError):
    def __init__(self, from_id: int, to_id: int, relation: str) -> None:
        self.from_id = from_id
        self.to_id = to_id
        self.relation = relation
        super().__init__(f"edge ({from_id}, {to_id}) {relation} already exists")


# --- History ---


class HistoryError(KTGraphError):
    """Undo or redo requested with nothing on the stack."""


class NothingToUndo(HistoryError):
    def __init__(self) -> None:
        super().__init__("nothing to undo")


class NothingToRedo(HistoryError):
    def __init__(self) -> None:
        super().__init__("nothing to redo")


class InternalConsistencyError(KTGraphError):
    """
    An inverse (undo) or replayed forward (redo) operation failed.

    Correctly built commands never fail on replay, so this means the document
    and its history disagree. Callers should treat it as fatal.
    """


# --- Format ---


class FormatError(KTGraphError):
    """A file could not be decoded."""


class DecodeRule(str, Enum):
    """The specific rule a decoded element violated."""

    INVALID_XML = "invalid_xml"
    UNEXPECTED_ROOT = "unexpected_root"
    MISSING_FIELD = "missing_field"
    UNEXPECTED_ELEMENT = "unexpected_element"
    BAD_ID = "bad_id"
    DUPLICATE_ID = "duplicate_id"
    UNKNOWN_DISTINCT_TYPE = "unknown_distinct_type"
    LEVEL_MISMATCH = "level_mismatch"
    UNKNOWN_ADDON_CODE = "unknown_addon_code"
    BAD_COORDINATE = "bad_coordinate"
    UNKNOWN_RELATION = "unknown_relation"
    MISSING_ENTITY = "missing_entity"
    SELF_LOOP = "self_loop"
    DUPLICATE_EDGE = "duplicate_edge"

    # Upstream constructs this editor does not support
    ABILITY_ENTITY = "ability_entity"
    RESOURCE_ENTITY = "resource_entity"
    CRITICAL_ORDER = "critical_order"
    CONNECT_RESOURCE = "connect_resource"


class MalformedDocument(FormatError):
    """
    A KT-SQEP file violates the dialect or the schema.

    Attributes:
        rule: The violated DecodeRule
        element: Tag of the offending element ("entity", "relation", ...)
        index: Position of the element among its siblings, if known
        entity_id: Offending entity id (or edge source id), if known
        code: Offending raw value, if any
    """

    def __init__(
        self,
        rule: DecodeRule,
        message: str,
        *,
        element: Optional[str] = None,
        index: Optional[int] = None,
        entity_id: Optional[int] = None,
        code: Optional[str] = None,
    ) -> None:
        self.rule = rule
        self.element = element
        self.index = index
        self.entity_id = entity_id
        self.code = code
        self.detail = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        where = []
        if self.element:
            where.append(self.element if self.index is None else f"{self.element}[{self.index}]")
        if self.entity_id is not None:
            where.append(f"id={self.entity_id}")
        prefix = f"{' '.join(where)}: " if where else ""
        return f"{prefix}{message} ({self.rule.value})"


class UnsupportedConstruct(MalformedDocument):
    """An upstream KT-SQEP construct this editor recognizes but does not support."""
