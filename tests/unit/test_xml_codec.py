"""
Tests for the KT-SQEP XML codec.
"""

import pytest

from ktgraph.codec import decode, decode_with_report, encode, encode_entity, format_coordinate
from ktgraph.errors import DecodeRule, FormatError, MalformedDocument, UnsupportedConstruct
from ktgraph.schema.edges import EdgeKey, Relation
from ktgraph.schema.graph import KnowledgeGraph
from ktgraph.schema.nodes import AddonType, DistinctType, Entity


def escape(text: str) -> str:
    """Write non-ASCII characters as character references, like KT-SQEP."""
    return "".join(c if ord(c) < 128 else f"&#{ord(c)};" for c in text)


def entity_xml(
    id: str = "1",
    class_name: str = "知识点",
    level: str = "归纳级",
    attach: str = "000100",
    content: str = "A",
    x: str = "0",
    y: str = "0",
    identity: str = "知识",
    classification: str = "内容方法型节点",
) -> str:
    """Helper to build one <entity> element."""
    return (
        f"<entity><id>{id}</id><class_name>{class_name}</class_name>"
        f"<classification>{classification}</classification><identity>{identity}</identity>"
        f"<level>{level}</level><attach>{attach}</attach><opentool>无</opentool>"
        f"<content>{content}</content><x>{x}</x><y>{y}</y></entity>"
    )


def relation_xml(from_id: str, to_id: str, token: str = "包含关系") -> str:
    return f"<relation><from>{from_id}</from><to>{to_id}</to><type>{token}</type></relation>"


def doc_xml(entities: list[str], relations: list[str] = ()) -> str:
    return (
        "<knowledge_graph><entities>"
        + "".join(entities)
        + "</entities><relations>"
        + "".join(relations)
        + "</relations></knowledge_graph>"
    )


def sample_graph() -> KnowledgeGraph:
    graph = KnowledgeGraph()
    graph.add_entity("Data structures", "ka", "kz", 0, 0)
    graph.add_entity("Trees <& \"branches\">", "ku", "", -12.5, 300)
    graph.add_entity("二叉树 🦀\r\nline two", "kp", "teqp", 0.1, 1e-7)
    graph.add_entity("", "kd", "ktezqp", 1e21, -0.0)
    graph.add_edge(1, 2, "contain")
    graph.add_edge(2, 3, "contain")
    graph.add_edge(2, 3, "order")
    graph.add_edge(4, 1, "order")
    return graph


class TestFormatCoordinate:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (1.0, "1"),
            (2.5, "2.5"),
            (-0.125, "-0.125"),
            (0.1, "0.1"),
            (1e-7, "0.0000001"),
            (1e21, "1000000000000000000000"),
            (300, "300"),
        ],
    )
    def test_format(self, value, expected):
        assert format_coordinate(value) == expected


class TestEncodeEntity:
    """Entity layout matches files written by KT-SQEP."""

    EXPECTED = {
        DistinctType.KNOWLEDGE_AREA: "<entity><id>114514</id><class_name>&#30693;&#35782;&#39046;&#22495;</class_name><classification>&#20869;&#23481;&#26041;&#27861;&#22411;&#33410;&#28857;</classification><identity>&#30693;&#35782;</identity><level>&#19968;&#32423;</level><attach>111000</attach><opentool>&#26080;</opentool><content>Hello &#19990;&#30028;&#65281;&#129408;@#&amp; </content><x>1</x><y>2</y></entity>",
        DistinctType.KNOWLEDGE_UNIT: "<entity><id>114514</id><class_name>&#30693;&#35782;&#21333;&#20803;</class_name><classification>&#20869;&#23481;&#26041;&#27861;&#22411;&#33410;&#28857;</classification><identity>&#30693;&#35782;</identity><level>&#20108;&#32423;</level><attach>111000</attach><opentool>&#26080;</opentool><content>Hello &#19990;&#30028;&#65281;&#129408;@#&amp; </content><x>1</x><y>2</y></entity>",
        DistinctType.KNOWLEDGE_POINT: "<entity><id>114514</id><class_name>&#30693;&#35782;&#28857;</class_name><classification>&#20869;&#23481;&#26041;&#27861;&#22411;&#33410;&#28857;</classification><identity>&#30693;&#35782;</identity><level>&#24402;&#32435;&#32423;</level><attach>111000</attach><opentool>&#26080;</opentool><content>Hello &#19990;&#30028;&#65281;&#129408;@#&amp; </content><x>1</x><y>2</y></entity>",
        DistinctType.KNOWLEDGE_DETAIL: "<entity><id>114514</id><class_name>&#20851;&#38190;&#30693;&#35782;&#32454;&#33410;</class_name><classification>&#20869;&#23481;&#26041;&#27861;&#22411;&#33410;&#28857;</classification><identity>&#30693;&#35782;</identity><level>&#20869;&#23481;&#32423;</level><attach>111000</attach><opentool>&#26080;</opentool><content>Hello &#19990;&#30028;&#65281;&#129408;@#&amp; </content><x>1</x><y>2</y></entity>",
    }

    @pytest.mark.parametrize("distinct_type", list(DistinctType))
    def test_encode_entity(self, distinct_type):
        entity = Entity(
            id=114514,
            content="Hello 世界！🦀@#& ",
            distinct_type=distinct_type,
            addon_types=frozenset({AddonType.THINKING, AddonType.POLITICAL, AddonType.QUESTION}),
            x=1.0,
            y=2.0,
        )
        assert encode_entity(entity) == self.EXPECTED[distinct_type]

    def test_attach_order(self):
        """attach flags follow T Z Q K E P."""
        entity = Entity(
            id=1,
            distinct_type=DistinctType.KNOWLEDGE_AREA,
            addon_types=frozenset({AddonType.KNOWLEDGE, AddonType.PRACTICE}),
        )
        assert "<attach>000101</attach>" in encode_entity(entity)

    def test_empty_content(self):
        entity = Entity(id=1, distinct_type=DistinctType.KNOWLEDGE_AREA)
        assert "<content></content>" in encode_entity(entity)


class TestEncode:
    def test_empty_document(self):
        assert encode(KnowledgeGraph()) == (
            "<knowledge_graph><entities></entities><relations></relations></knowledge_graph>"
        )

    def test_document_layout(self):
        graph = KnowledgeGraph()
        graph.add_entity("A", "ka", "k", 0, 0)
        graph.add_entity("B", "ka", "k", 10, 10)
        graph.add_edge(1, 2, "contain")

        expected = escape(
            doc_xml(
                [
                    entity_xml("1", "知识领域", "一级", "000100", "A", "0", "0"),
                    entity_xml("2", "知识领域", "一级", "000100", "B", "10", "10"),
                ],
                [relation_xml("1", "2", "包含关系")],
            )
        )
        assert encode(graph) == expected

    def test_output_is_ascii(self):
        assert encode(sample_graph()).isascii()

    def test_encoding_is_deterministic(self):
        graph = sample_graph()
        assert encode(graph) == encode(graph)

    def test_order_relation_token(self):
        graph = KnowledgeGraph()
        graph.add_entity("A", "ka")
        graph.add_entity("B", "ka")
        graph.add_edge(2, 1, "order")
        assert escape(relation_xml("2", "1", "次序关系")) in encode(graph)


class TestRoundTrip:
    def test_round_trip(self):
        graph = sample_graph()
        decoded = decode(encode(graph))

        assert decoded == graph
        assert decoded.entities() == graph.entities()
        assert decoded.edges() == graph.edges()

    def test_text_is_stable(self):
        text = encode(sample_graph())
        assert encode(decode(text)) == text

    def test_file_order_is_kept(self):
        text = encode(decode(doc_xml([entity_xml("5"), entity_xml("3")])))

        assert text.index("<id>5</id>") < text.index("<id>3</id>")
        assert [e.id for e in decode(text).entities()] == [5, 3]

    def test_whitespace_around_numbers(self):
        graph = decode(doc_xml([entity_xml(" 4\n", x=" -1.5 ", y="2e1")]))
        assert graph.get_entity(4).position == (-1.5, 20.0)

    def test_round_trip_after_deletions(self):
        graph = sample_graph()
        graph.remove_entity(2)
        decoded = decode(encode(graph))

        assert decoded == graph
        assert decoded.add_entity("next", "ka").id == 5


class TestDecode:
    def test_decode_raw_unicode(self):
        graph = decode(doc_xml([entity_xml("7", content="二叉树", x="1.5", y="-2")]))
        entity = graph.get_entity(7)

        assert entity.content == "二叉树"
        assert entity.distinct_type == DistinctType.KNOWLEDGE_POINT
        assert entity.addon_types == frozenset({AddonType.KNOWLEDGE})
        assert entity.position == (1.5, -2.0)

    def test_decode_keeps_ids(self):
        graph = decode(
            doc_xml(
                [entity_xml("10"), entity_xml("3")],
                [relation_xml("10", "3"), relation_xml("3", "10", "次序关系")],
            )
        )
        assert [e.id for e in graph.entities()] == [10, 3]
        assert graph.edge_keys() == {
            EdgeKey(10, 3, Relation.CONTAIN),
            EdgeKey(3, 10, Relation.ORDER),
        }
        assert graph.next_id == 11

    def test_decode_bytes_with_declaration(self):
        text = '<?xml version="1.0" encoding="UTF-8"?>' + doc_xml([entity_xml()])
        assert len(decode(text.encode("utf-8"))) == 1

    def test_empty_file_is_empty_document(self):
        assert len(decode("")) == 0
        assert len(decode("  \n")) == 0

    def test_missing_attach_and_level_allowed(self):
        text = doc_xml(
            ["<entity><id>1</id><class_name>知识单元</class_name><x>0</x><y>0</y></entity>"]
        )
        entity = decode(text).get_entity(1)
        assert entity.addon_types == frozenset()
        assert entity.content == ""


class TestDecodeErrors:
    """Every violation names its rule and nothing is returned."""

    def decode_error(self, text: str) -> MalformedDocument:
        with pytest.raises(MalformedDocument) as exc_info:
            decode(text)
        return exc_info.value

    def test_invalid_xml(self):
        assert self.decode_error("<knowledge_graph><entities>").rule == DecodeRule.INVALID_XML

    def test_wrong_root(self):
        assert self.decode_error("<graph/>").rule == DecodeRule.UNEXPECTED_ROOT

    def test_unexpected_element(self):
        text = "<knowledge_graph><entities><node/></entities></knowledge_graph>"
        error = self.decode_error(text)
        assert error.rule == DecodeRule.UNEXPECTED_ELEMENT
        assert error.element == "node"

    def test_unknown_class_name(self):
        error = self.decode_error(doc_xml([entity_xml("5", class_name="知识库")]))
        assert error.rule == DecodeRule.UNKNOWN_DISTINCT_TYPE
        assert error.entity_id == 5
        assert error.code == "知识库"
        assert error.element == "entity"

    def test_level_mismatch(self):
        error = self.decode_error(doc_xml([entity_xml(level="一级")]))
        assert error.rule == DecodeRule.LEVEL_MISMATCH

    @pytest.mark.parametrize("attach", ["00010", "0001000", "00010x", "kt"])
    def test_bad_attach(self, attach):
        error = self.decode_error(doc_xml([entity_xml(attach=attach)]))
        assert error.rule == DecodeRule.UNKNOWN_ADDON_CODE
        assert error.code == attach

    @pytest.mark.parametrize("x", ["abc", "", "nan", "inf", "1e400", "1_0", "\u0663"])
    def test_bad_coordinate(self, x):
        error = self.decode_error(doc_xml([entity_xml(x=x)]))
        assert error.rule == DecodeRule.BAD_COORDINATE

    def test_missing_coordinate(self):
        text = doc_xml(["<entity><id>1</id><class_name>知识点</class_name><x>0</x></entity>"])
        error = self.decode_error(text)
        assert error.rule == DecodeRule.MISSING_FIELD
        assert "<y>" in str(error)

    @pytest.mark.parametrize("entity_id", ["0", "-3", "one", "", "+1", "1_0", "1.0", "\u0661"])
    def test_bad_id(self, entity_id):
        assert self.decode_error(doc_xml([entity_xml(entity_id)])).rule == DecodeRule.BAD_ID

    def test_duplicate_id(self):
        error = self.decode_error(doc_xml([entity_xml("1"), entity_xml("1")]))
        assert error.rule == DecodeRule.DUPLICATE_ID
        assert error.index == 1

    def test_unknown_relation(self):
        text = doc_xml([entity_xml("1"), entity_xml("2")], [relation_xml("1", "2", "link")])
        error = self.decode_error(text)
        assert error.rule == DecodeRule.UNKNOWN_RELATION
        assert error.code == "link"

    def test_relation_to_missing_entity(self):
        text = doc_xml([entity_xml("1")], [relation_xml("1", "9")])
        error = self.decode_error(text)
        assert error.rule == DecodeRule.MISSING_ENTITY
        assert error.code == "9"

    def test_self_loop(self):
        text = doc_xml([entity_xml("1")], [relation_xml("1", "1")])
        assert self.decode_error(text).rule == DecodeRule.SELF_LOOP

    def test_duplicate_relation(self):
        text = doc_xml(
            [entity_xml("1"), entity_xml("2")], [relation_xml("1", "2"), relation_xml("1", "2")]
        )
        assert self.decode_error(text).rule == DecodeRule.DUPLICATE_EDGE

    def test_error_message_names_element(self):
        error = self.decode_error(doc_xml([entity_xml("4", x="oops")]))
        assert str(error).startswith("entity[0] id=4: ")
        assert isinstance(error, FormatError)


class TestUnsupportedConstructs:
    ABILITY = entity_xml("2", identity="能力")
    RESOURCE = entity_xml("3", class_name="视频", level="")
    RESOURCE_BY_CLASSIFICATION = entity_xml("3", classification="资源型节点")

    def test_ability_entity_rejected(self):
        with pytest.raises(UnsupportedConstruct) as exc_info:
            decode(doc_xml([entity_xml("1"), self.ABILITY]))
        assert exc_info.value.rule == DecodeRule.ABILITY_ENTITY
        assert exc_info.value.entity_id == 2

    @pytest.mark.parametrize("element", [RESOURCE, RESOURCE_BY_CLASSIFICATION])
    def test_resource_entity_rejected(self, element):
        with pytest.raises(UnsupportedConstruct) as exc_info:
            decode(doc_xml([element]))
        assert exc_info.value.rule == DecodeRule.RESOURCE_ENTITY

    @pytest.mark.parametrize(
        "token, rule",
        [("关键次序关系", DecodeRule.CRITICAL_ORDER), ("连接资源", DecodeRule.CONNECT_RESOURCE)],
    )
    def test_unsupported_relation_rejected(self, token, rule):
        text = doc_xml([entity_xml("1"), entity_xml("2")], [relation_xml("1", "2", token)])
        with pytest.raises(UnsupportedConstruct) as exc_info:
            decode(text)
        assert exc_info.value.rule == rule

    def test_skip_mode_reports_everything(self):
        text = doc_xml(
            [entity_xml("1"), entity_xml("4"), self.ABILITY, self.RESOURCE],
            [
                relation_xml("1", "4"),
                relation_xml("1", "2"),
                relation_xml("3", "1", "次序关系"),
                relation_xml("4", "1", "关键次序关系"),
            ],
        )
        result = decode_with_report(text, skip_unsupported=True)

        assert [e.id for e in result.graph.entities()] == [1, 4]
        assert result.graph.edge_keys() == {EdgeKey(1, 4, Relation.CONTAIN)}
        assert [issue.rule for issue in result.skipped] == [
            DecodeRule.ABILITY_ENTITY,
            DecodeRule.RESOURCE_ENTITY,
            DecodeRule.ABILITY_ENTITY,
            DecodeRule.RESOURCE_ENTITY,
            DecodeRule.CRITICAL_ORDER,
        ]
        assert "Skipped: 5" in result.summary()

    def test_skipped_ids_still_unique(self):
        text = doc_xml([self.ABILITY, entity_xml("2")])
        with pytest.raises(MalformedDocument) as exc_info:
            decode_with_report(text, skip_unsupported=True)
        assert exc_info.value.rule == DecodeRule.DUPLICATE_ID
