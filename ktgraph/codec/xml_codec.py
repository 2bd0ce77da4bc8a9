"""
KT-SQEP XML codec.

Layout written and read (no whitespace between elements, every non-ASCII
character as a decimal character reference):

    <knowledge_graph>
      <entities>
        <entity><id>1</id><class_name>知识领域</class_name>
          <classification>内容方法型节点</classification><identity>知识</identity>
          <level>一级</level><attach>110000</attach><opentool>无</opentool>
          <content>...</content><x>1</x><y>2.5</y></entity>
      </entities>
      <relations>
        <relation><from>1</from><to>2</to><type>包含关系</type></relation>
      </relations>
    </knowledge_graph>

attach holds six 0/1 flags in the fixed order T Z Q K E P.
"""

import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Union

from ..errors import DecodeRule, MalformedDocument, UnsupportedConstruct
from ..schema.edges import Relation
from ..schema.graph import KnowledgeGraph
from ..schema.nodes import AddonType, DistinctType, Entity
from ..validation.schema_validator import parse_addon_types, parse_distinct_type, parse_relation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Dialect tables
# ---------------------------------------------------------------------------

ROOT_TAG = "knowledge_graph"
ENTITIES_TAG = "entities"
RELATIONS_TAG = "relations"
ENTITY_TAG = "entity"
RELATION_TAG = "relation"

CLASS_NAMES = {
    DistinctType.KNOWLEDGE_AREA: "知识领域",
    DistinctType.KNOWLEDGE_UNIT: "知识单元",
    DistinctType.KNOWLEDGE_POINT: "知识点",
    DistinctType.KNOWLEDGE_DETAIL: "关键知识细节",
}
LEVELS = {
    DistinctType.KNOWLEDGE_AREA: "一级",
    DistinctType.KNOWLEDGE_UNIT: "二级",
    DistinctType.KNOWLEDGE_POINT: "归纳级",
    DistinctType.KNOWLEDGE_DETAIL: "内容级",
}
CLASSIFICATION = "内容方法型节点"
IDENTITY = "知识"
OPENTOOL = "无"

ATTACH_ORDER = (
    AddonType.THINKING,
    AddonType.POLITICAL,
    AddonType.QUESTION,
    AddonType.KNOWLEDGE,
    AddonType.EXAMPLE,
    AddonType.PRACTICE,
)

RELATION_NAMES = {
    Relation.CONTAIN: "包含关系",
    Relation.ORDER: "次序关系",
}

# Upstream constructs recognized by name so they are never misread
ABILITY_IDENTITY = "能力"
RESOURCE_CLASS_NAMES = frozenset({"视频", "PPT", "文档"})
RESOURCE_CLASSIFICATION = "资源型节点"
UNSUPPORTED_RELATIONS = {
    "关键次序关系": DecodeRule.CRITICAL_ORDER,
    "连接资源": DecodeRule.CONNECT_RESOURCE,
}

_DISTINCT_BY_CLASS_NAME = {name: t for t, name in CLASS_NAMES.items()}
_RELATION_BY_NAME = {name: r for r, name in RELATION_NAMES.items()}

# ASCII only; int() and float() also take "1_0", "+1" and other scripts' digits
_ID_RE = re.compile(r"[ \t\r\n]*[0-9]+[ \t\r\n]*")
_NUMBER_RE = re.compile(r"[ \t\r\n]*-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?[ \t\r\n]*")


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def format_coordinate(value: float) -> str:
    """Shortest round-trip decimal, no exponent, no trailing ".0"."""
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def encode_attach(addon_types: frozenset[AddonType]) -> str:
    return "".join("1" if a in addon_types else "0" for a in ATTACH_ORDER)


def _sub(parent: ET.Element, tag: str, text: str) -> None:
    ET.SubElement(parent, tag).text = text


def _entity_element(entity: Entity) -> ET.Element:
    el = ET.Element(ENTITY_TAG)
    _sub(el, "id", str(entity.id))
    _sub(el, "class_name", CLASS_NAMES[entity.distinct_type])
    _sub(el, "classification", CLASSIFICATION)
    _sub(el, "identity", IDENTITY)
    _sub(el, "level", LEVELS[entity.distinct_type])
    _sub(el, "attach", encode_attach(entity.addon_types))
    _sub(el, "opentool", OPENTOOL)
    _sub(el, "content", entity.content)
    _sub(el, "x", format_coordinate(entity.x))
    _sub(el, "y", format_coordinate(entity.y))
    return el


def _to_text(el: ET.Element) -> str:
    # us-ascii turns every non-ASCII character into &#NNNN;
    raw = ET.tostring(el, encoding="us-ascii", short_empty_elements=False).decode("ascii")
    # Parsers normalize bare CR to LF; keep it as a reference so it survives
    return raw.replace("\r", "&#13;")


def encode_entity(entity: Entity) -> str:
    """Serialize a single entity element."""
    return _to_text(_entity_element(entity))


def encode(graph: KnowledgeGraph) -> str:
    """
    Serialize a document to KT-SQEP XML.

    Entities and edges are written in insertion order, so saving
    an unchanged document twice gives identical text.
    """
    root = ET.Element(ROOT_TAG)
    entities = ET.SubElement(root, ENTITIES_TAG)
    for entity in graph.entities():
        entities.append(_entity_element(entity))

    relations = ET.SubElement(root, RELATIONS_TAG)
    for edge in graph.edges():
        el = ET.SubElement(relations, RELATION_TAG)
        _sub(el, "from", str(edge.from_id))
        _sub(el, "to", str(edge.to_id))
        _sub(el, "type", RELATION_NAMES[edge.relation])

    logger.debug("Encoded %s", graph.summary())
    return _to_text(root)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

@dataclass
class DecodeResult:
    """A decoded document plus the unsupported constructs that were skipped."""

    graph: KnowledgeGraph
    skipped: list[UnsupportedConstruct] = field(default_factory=list)

    def summary(self) -> str:
        lines = [self.graph.summary()]
        if self.skipped:
            lines.append(f"  Skipped: {len(self.skipped)}")
            for issue in self.skipped:
                lines.append(f"    - {issue}")
        return "\n".join(lines)


class _Decoder:
    """Single-use decoder; builds a private graph that is only returned whole."""

    def __init__(self, skip_unsupported: bool) -> None:
        self.skip_unsupported = skip_unsupported
        self.graph = KnowledgeGraph()
        self.skipped: list[UnsupportedConstruct] = []
        self._skipped_ids: dict[int, DecodeRule] = {}

    def run(self, text: Union[str, bytes]) -> DecodeResult:
        if not text.strip():
            # KT-SQEP creates new files empty
            return DecodeResult(self.graph)

        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise MalformedDocument(DecodeRule.INVALID_XML, f"not well-formed XML: {e}") from e

        if root.tag != ROOT_TAG:
            raise MalformedDocument(
                DecodeRule.UNEXPECTED_ROOT,
                f"expected <{ROOT_TAG}> root element, got <{root.tag}>",
                element=root.tag,
            )

        for child in root:
            if child.tag not in (ENTITIES_TAG, RELATIONS_TAG):
                raise MalformedDocument(
                    DecodeRule.UNEXPECTED_ELEMENT,
                    f"unexpected element <{child.tag}>",
                    element=child.tag,
                )

        # Entities first so relations can be checked against them
        for container in root.findall(ENTITIES_TAG):
            for index, el in enumerate(container):
                self._expect_tag(el, ENTITY_TAG, index)
                self._entity(el, index)
        for container in root.findall(RELATIONS_TAG):
            for index, el in enumerate(container):
                self._expect_tag(el, RELATION_TAG, index)
                self._relation(el, index)

        logger.debug("Decoded %s (%d skipped)", self.graph.summary(), len(self.skipped))
        return DecodeResult(self.graph, self.skipped)

    # --- helpers -----------------------------------------------------------

    @staticmethod
    def _expect_tag(el: ET.Element, tag: str, index: int) -> None:
        if el.tag != tag:
            raise MalformedDocument(
                DecodeRule.UNEXPECTED_ELEMENT,
                f"expected <{tag}>, got <{el.tag}>",
                element=el.tag,
                index=index,
            )

    @staticmethod
    def _text(
        el: ET.Element,
        name: str,
        index: int,
        entity_id: Optional[int] = None,
        required: bool = True,
    ) -> Optional[str]:
        child = el.find(name)
        if child is None:
            if required:
                raise MalformedDocument(
                    DecodeRule.MISSING_FIELD,
                    f"missing <{name}>",
                    element=el.tag,
                    index=index,
                    entity_id=entity_id,
                )
            return None
        return child.text or ""

    def _int_id(self, el: ET.Element, name: str, index: int) -> int:
        raw = self._text(el, name, index)
        try:
            value = int(raw) if _ID_RE.fullmatch(raw) else 0
        except ValueError:  # past the interpreter's digit limit
            value = 0
        if value < 1:
            raise MalformedDocument(
                DecodeRule.BAD_ID, f"<{name}> is not a positive integer", element=el.tag, index=index, code=raw
            )
        return value

    def _coordinate(self, el: ET.Element, name: str, index: int, entity_id: int) -> float:
        raw = self._text(el, name, index, entity_id)
        value = float(raw) if _NUMBER_RE.fullmatch(raw) else math.nan
        if not math.isfinite(value):
            raise MalformedDocument(
                DecodeRule.BAD_COORDINATE,
                f"<{name}> is not a finite number",
                element=el.tag,
                index=index,
                entity_id=entity_id,
                code=raw,
            )
        return value

    def _unsupported(self, rule: DecodeRule, message: str, **where) -> None:
        issue = UnsupportedConstruct(rule, message, **where)
        if not self.skip_unsupported:
            raise issue
        logger.warning("Skipping unsupported construct: %s", issue)
        self.skipped.append(issue)

    # --- entities ----------------------------------------------------------

    def _entity(self, el: ET.Element, index: int) -> None:
        entity_id = self._int_id(el, "id", index)
        where = dict(element=ENTITY_TAG, index=index, entity_id=entity_id)
        if self.graph.has_entity(entity_id) or entity_id in self._skipped_ids:
            raise MalformedDocument(DecodeRule.DUPLICATE_ID, "duplicate entity id", **where)

        identity = self._text(el, "identity", index, entity_id, required=False)
        classification = self._text(el, "classification", index, entity_id, required=False)
        class_name = self._text(el, "class_name", index, entity_id)

        if identity == ABILITY_IDENTITY:
            self._skipped_ids[entity_id] = DecodeRule.ABILITY_ENTITY
            self._unsupported(
                DecodeRule.ABILITY_ENTITY, "ability graph entities are not supported", code=identity, **where
            )
            return
        if class_name in RESOURCE_CLASS_NAMES or classification == RESOURCE_CLASSIFICATION:
            self._skipped_ids[entity_id] = DecodeRule.RESOURCE_ENTITY
            self._unsupported(
                DecodeRule.RESOURCE_ENTITY, "resource entities are not supported", code=class_name, **where
            )
            return

        distinct = _DISTINCT_BY_CLASS_NAME.get(class_name)
        if distinct is None:
            raise MalformedDocument(
                DecodeRule.UNKNOWN_DISTINCT_TYPE, "unknown class_name", code=class_name, **where
            )
        distinct = parse_distinct_type(distinct.value)

        level = self._text(el, "level", index, entity_id, required=False)
        if level is not None and level != LEVELS[distinct]:
            raise MalformedDocument(
                DecodeRule.LEVEL_MISMATCH,
                f"level does not match class_name {class_name}",
                code=level,
                **where,
            )

        attach = self._text(el, "attach", index, entity_id, required=False)
        addon_types = frozenset()
        if attach is not None:
            if len(attach) != len(ATTACH_ORDER) or set(attach) - {"0", "1"}:
                raise MalformedDocument(
                    DecodeRule.UNKNOWN_ADDON_CODE,
                    f"attach must be {len(ATTACH_ORDER)} 0/1 flags",
                    code=attach,
                    **where,
                )
            addon_types = parse_addon_types(
                a.value for a, flag in zip(ATTACH_ORDER, attach) if flag == "1"
            )

        content = self._text(el, "content", index, entity_id, required=False) or ""
        x = self._coordinate(el, "x", index, entity_id)
        y = self._coordinate(el, "y", index, entity_id)

        self.graph.insert_entity(
            Entity(
                id=entity_id,
                content=content,
                distinct_type=distinct,
                addon_types=addon_types,
                x=x,
                y=y,
            )
        )

    # --- relations ---------------------------------------------------------

    def _relation(self, el: ET.Element, index: int) -> None:
        from_id = self._int_id(el, "from", index)
        to_id = self._int_id(el, "to", index)
        token = self._text(el, "type", index, from_id)
        where = dict(element=RELATION_TAG, index=index, entity_id=from_id)

        if token in UNSUPPORTED_RELATIONS:
            self._unsupported(UNSUPPORTED_RELATIONS[token], f"relation {token} is not supported", code=token, **where)
            return
        relation = _RELATION_BY_NAME.get(token)
        if relation is None:
            raise MalformedDocument(DecodeRule.UNKNOWN_RELATION, "unknown relation type", code=token, **where)
        relation = parse_relation(relation.value)

        for endpoint in (from_id, to_id):
            if self.graph.has_entity(endpoint):
                continue
            if endpoint in self._skipped_ids:
                self._unsupported(
                    self._skipped_ids[endpoint],
                    f"relation touches skipped entity {endpoint}",
                    code=token,
                    **where,
                )
                return
            raise MalformedDocument(
                DecodeRule.MISSING_ENTITY, f"relation refers to missing entity {endpoint}", code=str(endpoint), **where
            )

        if from_id == to_id:
            raise MalformedDocument(DecodeRule.SELF_LOOP, "relation from an entity to itself", **where)
        if self.graph.has_edge(from_id, to_id, relation):
            raise MalformedDocument(DecodeRule.DUPLICATE_EDGE, "duplicate relation", code=token, **where)

        self.graph.add_edge(from_id, to_id, relation)


def decode_with_report(text: Union[str, bytes], *, skip_unsupported: bool = False) -> DecodeResult:
    """
    Parse KT-SQEP XML into a fresh document.

    Args:
        text: XML text
        skip_unsupported: Skip ability/resource entities and critical-order/
            connect-resource relations instead of rejecting the file

    Raises:
        MalformedDocument: On any dialect or schema violation. No document
            is returned in that case.
    """
    return _Decoder(skip_unsupported).run(text)


def decode(text: Union[str, bytes]) -> KnowledgeGraph:
    """Parse KT-SQEP XML, rejecting the file on any unsupported construct."""
    return decode_with_report(text).graph
