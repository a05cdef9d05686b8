"""Topic Index - topics, include/inherit graph and the %Previous index.

Visibility is resolved breadth-first over the include/inherit graph with a
visited set, so a cyclic graph visits every topic exactly once.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Iterator

from src.core.logging import get_logger
from src.core.models import Topic, Trigger

logger = get_logger(__name__)


class TopicIndex:
    """Per-topic trigger storage.

    thats maps topic -> {(pattern, previous): Trigger} for triggers that
    carry a %Previous line.
    """

    def __init__(self) -> None:
        self._topics: dict[str, Topic] = {}
        self._thats: dict[str, dict[tuple[str, str], Trigger]] = {}

    # === Loading ===

    def topic(self, name: str) -> Topic:
        """Get or create a topic"""
        if name not in self._topics:
            self._topics[name] = Topic(name=name)
        return self._topics[name]

    def add_edges(
        self, name: str, includes: Iterable[str] = (), inherits: Iterable[str] = ()
    ) -> None:
        topic = self.topic(name)
        topic.includes.update(includes)
        topic.inherits.update(inherits)

    def add_trigger(self, trigger: Trigger) -> None:
        """Append a trigger; re-declaring the same pattern + previous replaces it."""
        triggers = self.topic(trigger.topic).triggers
        for position, existing in enumerate(triggers):
            if existing.pattern == trigger.pattern and existing.previous == trigger.previous:
                triggers[position] = trigger
                break
        else:
            triggers.append(trigger)

        if trigger.has_previous:
            key = (trigger.pattern, trigger.previous or "")
            self._thats.setdefault(trigger.topic, {})[key] = trigger

    # === Queries ===

    @property
    def names(self) -> list[str]:
        return list(self._topics)

    def __contains__(self, name: object) -> bool:
        return name in self._topics

    def get(self, name: str) -> Topic | None:
        return self._topics.get(name)

    def has_thats(self, name: str) -> bool:
        return bool(self._thats.get(name))

    def walk(self, name: str, follow_graph: bool = True) -> Iterator[tuple[str, int]]:
        """Breadth-first (topic, inheritance level) pairs starting at name.

        Included topics share the level of the topic including them,
        inherited topics sit one level lower.
        """
        visited = {name}
        queue: deque[tuple[str, int]] = deque([(name, 0)])
        while queue:
            current, level = queue.popleft()
            yield current, level

            topic = self._topics.get(current)
            if topic is None or not follow_graph:
                continue

            for included in sorted(topic.includes):
                if included not in visited:
                    visited.add(included)
                    queue.append((included, level))
            for inherited in sorted(topic.inherits):
                if inherited not in visited:
                    visited.add(inherited)
                    queue.append((inherited, level + 1))

    def topic_tree(self, name: str) -> list[str]:
        return [topic for topic, _ in self.walk(name)]

    def visible_triggers(self, name: str) -> list[tuple[Trigger, int]]:
        """Own triggers plus every included/inherited one, with their level."""
        result: list[tuple[Trigger, int]] = []
        for topic_name, level in self.walk(name):
            topic = self._topics.get(topic_name)
            if topic is None:
                logger.warning("Topic '%s' referenced by '%s' does not exist", topic_name, name)
                continue
            result.extend((trigger, level) for trigger in topic.triggers)
        return result

    def visible_that_triggers(
        self, name: str, follow_graph: bool = True
    ) -> list[tuple[Trigger, int]]:
        """%Previous triggers visible from a topic (own only if not follow_graph)."""
        result: list[tuple[Trigger, int]] = []
        for topic_name, level in self.walk(name, follow_graph):
            for trigger in self._thats.get(topic_name, {}).values():
                result.append((trigger, level))
        return result

    def dump(self) -> str:
        lines: list[str] = []
        for name, topic in self._topics.items():
            lines.append(f"Topic: {name}")
            for trigger in topic.triggers:
                lines.append(f"  + {trigger.pattern}")
                if trigger.previous:
                    lines.append(f"    % {trigger.previous}")
                lines.extend(f"    * {cond}" for cond in trigger.conditions)
                lines.extend(f"    - {reply}" for reply in trigger.replies)
                if trigger.redirect:
                    lines.append(f"    @ {trigger.redirect}")
        return "\n".join(lines)
