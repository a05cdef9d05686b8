"""TopicIndex tests"""

from src.core.models import Trigger
from src.core.topic_index import TopicIndex


def make_index() -> TopicIndex:
    index = TopicIndex()
    index.add_trigger(Trigger("hello", topic="random", replies=("hi",)))
    return index


class TestWalk:
    def test_cycle_terminates(self):
        index = TopicIndex()
        index.add_edges("a", includes=["b"])
        index.add_edges("b", includes=["a"])
        assert list(index.walk("a")) == [("a", 0), ("b", 0)]

    def test_inherit_levels(self):
        index = TopicIndex()
        index.add_edges("a", inherits=["b"])
        index.add_edges("b", inherits=["c"])
        index.add_edges("c")
        assert list(index.walk("a")) == [("a", 0), ("b", 1), ("c", 2)]

    def test_include_keeps_level(self):
        index = TopicIndex()
        index.add_edges("a", includes=["b"], inherits=["c"])
        index.add_edges("b")
        index.add_edges("c")
        assert dict(index.walk("a")) == {"a": 0, "b": 0, "c": 1}

    def test_no_graph(self):
        index = TopicIndex()
        index.add_edges("a", includes=["b"])
        assert list(index.walk("a", follow_graph=False)) == [("a", 0)]


class TestTriggers:
    def test_redeclare_replaces(self):
        index = make_index()
        index.add_trigger(Trigger("hello", topic="random", replies=("hey",)))
        triggers = index.get("random").triggers
        assert len(triggers) == 1
        assert triggers[0].replies == ("hey",)

    def test_same_pattern_other_previous_is_kept(self):
        index = make_index()
        index.add_trigger(Trigger("hello", topic="random", previous="who is there"))
        assert len(index.get("random").triggers) == 2
        assert index.has_thats("random")

    def test_visible_triggers_through_include(self):
        index = make_index()
        index.add_edges("game", includes=["random"])
        index.add_trigger(Trigger("look", topic="game"))
        visible = [(t.pattern, level) for t, level in index.visible_triggers("game")]
        assert visible == [("look", 0), ("hello", 0)]

    def test_missing_topic_skipped(self, caplog):
        index = make_index()
        index.add_edges("random", includes=["ghost"])
        assert [t.pattern for t, _ in index.visible_triggers("random")] == ["hello"]
        assert "ghost" in caplog.text

    def test_that_triggers_own_only(self):
        index = TopicIndex()
        index.add_edges("a", inherits=["b"])
        index.add_trigger(Trigger("yes", topic="b", previous="are you sure"))
        assert index.visible_that_triggers("a", follow_graph=False) == []
        assert len(index.visible_that_triggers("a")) == 1

    def test_dump(self):
        index = make_index()
        assert "+ hello" in index.dump()
        assert "- hi" in index.dump()

    def test_topic_tree(self):
        index = TopicIndex()
        index.add_edges("a", includes=["b"], inherits=["c"])
        assert index.topic_tree("a") == ["a", "b", "c"]
