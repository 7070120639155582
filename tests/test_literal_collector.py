"""LiteralCollectorのテスト。"""

from fakes import literal, literal_in, make_unit, marked, node, unit_from_source
from string_literal_finder.analyzer.literal_collector import LiteralCollector
from string_literal_finder.config import ExclusionConfig
from string_literal_finder.models.found_literal import CharacterLocation
from string_literal_finder.models.nodes import NodeKind


SOURCE = (
    'const char* kTitle = "Main window";\n'
    'const char* kKey = "settings.key";\n'
    'void f() {\n'
    '    show("Hello",\n'
    '         "World"); // NON-NLS\n'
    '}\n'
)


def _build_unit():
    title = literal_in(SOURCE, "Main window")
    key = literal_in(SOURCE, "settings.key")
    hello = literal_in(SOURCE, "Hello")
    world = literal_in(SOURCE, "World")

    root = node(
        NodeKind.COMPILATION_UNIT,
        node(NodeKind.VARIABLE_DECLARATION, title),
        node(NodeKind.VARIABLE_DECLARATION, key, symbol=marked("kKey")),
        node(
            NodeKind.FUNCTION_DECLARATION,
            node(NodeKind.METHOD_INVOCATION, hello, world),
        ),
    )
    return make_unit(root, SOURCE, path="/project/src/main.cpp")


class TestLiteralCollector:
    """LiteralCollectorのテスト。"""

    def test_collects_reportable_literals_in_source_order(self):
        found = LiteralCollector(ExclusionConfig()).collect(_build_unit())

        assert [f.string_value for f in found] == ["Main window", "Hello"]

    def test_locations(self):
        found = LiteralCollector(ExclusionConfig()).collect(_build_unit())

        title = found[0]
        assert title.file_path == "/project/src/main.cpp"
        assert title.loc == CharacterLocation(line=1, column=22)
        assert title.loc_end == CharacterLocation(line=1, column=35)

        hello = found[1]
        assert hello.loc == CharacterLocation(line=4, column=10)
        assert hello.loc_end == CharacterLocation(line=4, column=17)
        assert hello.char_length == len('"Hello"')

    def test_collect_is_idempotent(self):
        unit = _build_unit()
        collector = LiteralCollector(ExclusionConfig())

        assert collector.collect(unit) == collector.collect(unit)

    def test_does_not_descend_into_literals(self):
        outer = literal("outer")
        outer.add_child(literal("inner"))
        unit = make_unit(node(NodeKind.COMPILATION_UNIT, node(NodeKind.OTHER, outer)))

        found = LiteralCollector(ExclusionConfig()).collect(unit)

        assert [f.string_value for f in found] == ["outer"]

    def test_empty_unit(self):
        unit = make_unit(node(NodeKind.COMPILATION_UNIT))
        assert LiteralCollector(ExclusionConfig()).collect(unit) == []

    def test_regex_configuration(self):
        config = ExclusionConfig.from_dict({
            "string_literal_finder": {"ignore_string_literal_regexes": ["^[a-z.]+$"]}
        })
        unit = unit_from_source("/project/a.cpp", 'f("a.b"); g("Text");\n')

        found = LiteralCollector(config).collect(unit)

        assert [f.string_value for f in found] == ["Text"]
