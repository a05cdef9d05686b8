"""Script parser tests"""

from src.parser import ScriptParser

BASIC = """
! version = 2.0
! var name = Aiden
! global debug = false
! sub what's = what is
! person i am = you are
! array colors = red|dark blue|green

// a comment
/* a block
   comment */
+ hello bot // inline comment
- Hello, human!
- Hi there!

+ how old am i
* <get age> == undefined => I don't know.
- You are <get age>.

+ hey
@ hello bot

+ *
% who is there
- <sentence> who?
"""


def parse(code: str, strict: bool = True):
    return ScriptParser(strict=strict).parse("test.rive", code)


class TestDefinitions:
    def test_tables(self):
        begin = parse(BASIC).begin
        assert begin.var == {"name": "Aiden"}
        assert begin.global_ == {"debug": "false"}
        assert begin.sub == {"what's": "what is"}
        assert begin.person == {"i am": "you are"}
        assert begin.array == {"colors": ["red", "dark blue", "green"]}

    def test_space_separated_array(self):
        begin = parse("! array pets = cat dog").begin
        assert begin.array["pets"] == ["cat", "dog"]

    def test_undef(self):
        begin = parse("! var name = <undef>").begin
        assert begin.var["name"] == "<undef>"

    def test_bad_definition_warns(self, caplog):
        root = parse("! var name")
        assert root.begin.var == {}
        assert "test.rive line 1" in caplog.text


class TestTriggers:
    def test_fields(self):
        triggers = parse(BASIC).topics["random"].triggers
        by_pattern = {t.pattern: t for t in triggers}

        assert by_pattern["hello bot"].replies == ["Hello, human!", "Hi there!"]
        assert by_pattern["how old am i"].conditions == ["<get age> == undefined => I don't know."]
        assert by_pattern["hey"].redirect == "hello bot"
        assert by_pattern["*"].previous == "who is there"

    def test_reply_before_trigger_warns(self, caplog):
        root = parse("- orphan reply")
        assert root.topics == {}
        assert "before any trigger" in caplog.text

    def test_strict_skips_uppercase(self):
        root = parse("+ Hello\n- hi")
        assert root.topics == {}

    def test_lenient_lowercases(self):
        root = parse("+ Hello\n- hi", strict=False)
        assert root.topics["random"].triggers[0].pattern == "hello"

    def test_unbalanced_brackets_rejected(self):
        assert parse("+ hello (there\n- hi").topics == {}

    def test_blank_alternative_rejected(self):
        assert parse("+ hello (a||b)\n- hi").topics == {}


class TestContinuations:
    def test_default_concat_none(self):
        trigger = parse("+ hi\n- Hello\n^ world").topics["random"].triggers[0]
        assert trigger.replies == ["Helloworld"]

    def test_concat_space(self):
        code = "! local concat = space\n+ hi\n- Hello\n^ world"
        trigger = parse(code).topics["random"].triggers[0]
        assert trigger.replies == ["Hello world"]

    def test_concat_newline(self):
        code = "! local concat = newline\n+ hi\n- Hello\n^ world"
        trigger = parse(code).topics["random"].triggers[0]
        assert trigger.replies == ["Hello\nworld"]

    def test_array_continuation(self):
        code = "! array colors = red|green\n^ blue|white"
        assert parse(code).begin.array["colors"] == ["red", "green", "blue", "white"]


class TestLabels:
    def test_topic_graph(self):
        code = """
> topic game includes chat inherits base
+ look
- You see a door.
< topic

+ hello
- hi
"""
        root = parse(code)
        game = root.topics["game"]
        assert game.includes == ["chat"]
        assert game.inherits == ["base"]
        assert [t.pattern for t in game.triggers] == ["look"]
        assert [t.pattern for t in root.topics["random"].triggers] == ["hello"]

    def test_begin_block(self):
        root = parse("> begin\n+ request\n- {ok}\n< begin")
        assert "__begin__" in root.topics

    def test_object_body_verbatim(self):
        code = """
> object add python
    a = int(args[0])
    return a + int(args[1])
< object
"""
        objects = parse(code).objects
        assert len(objects) == 1
        assert objects[0].name == "add"
        assert objects[0].language == "python"
        assert objects[0].code == ["    a = int(args[0])", "    return a + int(args[1])"]

    def test_unknown_label_warns(self, caplog):
        parse("> widget thing")
        assert "Unknown label type" in caplog.text
