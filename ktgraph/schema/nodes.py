"""
Entity schema definitions for the teaching knowledge graph.

Distinct types (exactly one per entity, fixed at creation):
- ka: Knowledge area (知识领域)
- ku: Knowledge unit (知识单元)
- kp: Knowledge point (知识点)
- kd: Key knowledge detail (关键知识细节)

Addon types (any subset, mutable):
- k: Knowledge (知识)
- t: Thinking (思维)
- e: Example (示例)
- q: Question (问题)
- p: Practice (练习)
- z: Political education (思政)
"""

import math
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ..errors import InvalidContent, InvalidCoordinate

# Characters outside the XML 1.0 Char production
_NON_XML_CHAR = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


class DistinctType(str, Enum):
    """Primary classification of an entity."""

    KNOWLEDGE_AREA = "ka"
    KNOWLEDGE_UNIT = "ku"
    KNOWLEDGE_POINT = "kp"
    KNOWLEDGE_DETAIL = "kd"


class AddonType(str, Enum):
    """Orthogonal tags attached to an entity."""

    KNOWLEDGE = "k"
    THINKING = "t"
    EXAMPLE = "e"
    QUESTION = "q"
    PRACTICE = "p"
    POLITICAL = "z"


def addon_codes(addon_types: frozenset[AddonType]) -> str:
    """Render an addon set as a code string in alphabet order ("kte")."""
    return "".join(a.value for a in AddonType if a in addon_types)


class Entity(BaseModel):
    """
    Knowledge graph entity.

    Entities are immutable values: the document replaces the stored value
    on every change, so a command can keep the previous one for undo.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1)
    content: str = ""
    distinct_type: DistinctType
    addon_types: frozenset[AddonType] = Field(default_factory=frozenset)
    x: float = Field(0.0, allow_inf_nan=False)
    y: float = Field(0.0, allow_inf_nan=False)

    @field_validator("content", mode="before")
    @classmethod
    def _xml_safe_content(cls, value):
        if isinstance(value, str):
            match = _NON_XML_CHAR.search(value)
            if match:
                raise InvalidContent(match.group())
        return value

    @field_validator("x", "y", mode="before")
    @classmethod
    def _finite_coordinate(cls, value, info: ValidationInfo):
        # Raised directly so callers see a SchemaViolation, not a ValidationError
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidCoordinate(info.field_name, value) from None
        if not math.isfinite(number):
            raise InvalidCoordinate(info.field_name, value)
        return number

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)

    def summary(self) -> str:
        """Return a one-line description."""
        addons = addon_codes(self.addon_types) or "-"
        return (
            f"Entity(id={self.id}, {self.distinct_type.value}/{addons}, "
            f"({self.x:g}, {self.y:g}), {self.content!r})"
        )
