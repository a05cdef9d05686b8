"""Line-oriented script parser.

Every line starts with a command character:

    !  definition       > / <  open / close a label (topic, begin, object)
    +  trigger          -  reply          %  previous (that-context)
    *  condition        @  redirect       ^  continuation of the line above

Malformed lines are logged as warnings with their location and skipped;
parsing never aborts.
"""

from __future__ import annotations

import re
from typing import Optional, Union

from src.core.logging import get_logger
from src.core.models import BEGIN_TOPIC, DEFAULT_TOPIC, UNDEF_TAG
from src.parser.ast import ObjectAST, RootAST, TopicAST, TriggerAST

logger = get_logger(__name__)

# --- Syntax checks ---
RE_DEFINITION = re.compile(r"^.+(?:\s+.+|)\s*=\s*.+?$")
RE_LABEL_NAME = re.compile(r"[^a-z0-9_\-\s]")
RE_TRIGGER_CHARS = re.compile(r"[^a-z0-9(|)\[\]*_#@{}<>=/\s]")
RE_TRIGGER_CHARS_UTF8 = re.compile(r"[A-Z\\.]")
RE_CONDITION = re.compile(r"^.+?\s*(?:==|eq|!=|ne|<>|<|<=|>|>=)\s*.+?=>.+?$")

CONCAT_MODES = {"none": "", "space": " ", "newline": "\n"}
DEFINITION_TYPES = {"global", "var", "sub", "person", "array", "version", "local"}


class ScriptParser:
    """Turn script text into a RootAST"""

    def __init__(self, strict: bool = True, utf8: bool = False) -> None:
        self.strict = strict
        self.utf8 = utf8

    def parse(self, filename: str, code: Union[str, list[str]]) -> RootAST:
        lines = code.split("\n") if isinstance(code, str) else list(code)
        root = RootAST()

        topic = DEFAULT_TOPIC
        trigger: Optional[TriggerAST] = None
        concat = "none"
        in_comment = False
        in_object: Optional[ObjectAST] = None
        consumed: set[int] = set()

        def topic_ast(name: str) -> TopicAST:
            if name not in root.topics:
                root.topics[name] = TopicAST()
            return root.topics[name]

        for index, raw in enumerate(lines):
            lineno = index + 1
            line = raw.strip()

            # --- object macro bodies are kept verbatim ---
            if in_object is not None:
                if re.match(r"^<\s*object", line):
                    root.objects.append(in_object)
                    in_object = None
                else:
                    in_object.code.append(raw)
                continue

            # --- comments ---
            if in_comment:
                if "*/" in line:
                    in_comment = False
                continue
            if line.startswith("//"):
                continue
            if line.startswith("/*"):
                if "*/" not in line:
                    in_comment = True
                continue
            if not line or index in consumed:
                continue
            if " // " in line:
                line = line.split(" // ")[0].strip()

            if len(line) < 2:
                self._warn("Weird single-character line", filename, lineno)
                continue

            cmd, rest = line[0], line[1:].strip()

            if cmd == "^":
                self._warn("Continuation line without a command above it", filename, lineno)
                continue

            # --- ^ continuations ---
            rest = self._join_continuations(lines, index, cmd, rest, concat, consumed)

            error = self._check_syntax(cmd, rest)
            if error:
                self._warn(error, filename, lineno)
                if self.strict:
                    continue
                if cmd in "+%@":
                    rest = rest.lower()

            if cmd == "!":
                concat = self._definition(root, rest, concat, filename, lineno)

            elif cmd == ">":
                parts = rest.split()
                label = parts[0].lower() if parts else ""
                if label == "begin":
                    topic, trigger = BEGIN_TOPIC, None
                    topic_ast(topic)
                elif label == "topic":
                    if len(parts) < 2:
                        self._warn("Topic label without a name", filename, lineno)
                        continue
                    topic, trigger = parts[1].lower(), None
                    ast = topic_ast(topic)
                    mode = None
                    for word in parts[2:]:
                        if word in ("includes", "inherits"):
                            mode = word
                        elif mode == "includes" and word not in ast.includes:
                            ast.includes.append(word.lower())
                        elif mode == "inherits" and word not in ast.inherits:
                            ast.inherits.append(word.lower())
                elif label == "object":
                    name = parts[1].lower() if len(parts) > 1 else ""
                    language = parts[2].lower() if len(parts) > 2 else ""
                    if not name or not language:
                        self._warn("Object label needs a name and a language", filename, lineno)
                    in_object = ObjectAST(name=name or "_", language=language or "_")
                else:
                    self._warn(f"Unknown label type '{label}'", filename, lineno)

            elif cmd == "<":
                if rest in ("begin", "topic"):
                    topic, trigger = DEFAULT_TOPIC, None
                else:
                    self._warn(f"Unexpected close label '{rest}'", filename, lineno)

            elif cmd == "+":
                trigger = TriggerAST(pattern=rest)
                topic_ast(topic).triggers.append(trigger)

            elif cmd in "-*@%":
                if trigger is None:
                    self._warn(f"'{cmd}' line found before any trigger", filename, lineno)
                    continue
                if cmd == "-":
                    trigger.replies.append(rest)
                elif cmd == "*":
                    trigger.conditions.append(rest)
                elif cmd == "@":
                    trigger.redirect = rest
                else:
                    trigger.previous = rest

            else:
                self._warn(f"Unrecognized command '{cmd}'", filename, lineno)

        if in_object is not None:
            self._warn(f"Object '{in_object.name}' is never closed", filename, len(lines))
            root.objects.append(in_object)

        root.objects = [obj for obj in root.objects if obj.name != "_" and obj.language != "_"]
        return root

    # === Helpers ===

    def _join_continuations(
        self,
        lines: list[str],
        index: int,
        cmd: str,
        rest: str,
        concat: str,
        consumed: set[int],
    ) -> str:
        for ahead in range(index + 1, len(lines)):
            nxt = lines[ahead].strip()
            if not nxt or nxt.startswith("//"):
                continue
            if not nxt.startswith("^"):
                break
            consumed.add(ahead)
            addition = nxt[1:].strip()
            if cmd == "!":
                joiner = "|" if "|" in rest else " "
            else:
                joiner = CONCAT_MODES.get(concat, "")
            rest += joiner + addition
        return rest

    def _definition(
        self, root: RootAST, rest: str, concat: str, filename: str, lineno: int
    ) -> str:
        """Handle a ! line; returns the (possibly updated) concat mode."""
        left, _, value = rest.partition("=")
        parts = left.split()
        value = value.strip()
        if not parts:
            self._warn("Definition without a type", filename, lineno)
            return concat

        kind = parts[0]
        name = " ".join(parts[1:]).strip()

        if kind not in DEFINITION_TYPES:
            self._warn(f"Unknown definition type '{kind}'", filename, lineno)
            return concat

        if kind == "version":
            try:
                if float(name or value) > 2.0:
                    self._warn(f"Unsupported script version {name or value}", filename, lineno)
            except ValueError:
                self._warn("Version is not a number", filename, lineno)
            return concat

        if not name:
            self._warn(f"Undefined variable name in '! {kind}'", filename, lineno)
            return concat

        if kind == "local":
            if name == "concat":
                if value not in CONCAT_MODES:
                    self._warn(f"Unknown concat mode '{value}'", filename, lineno)
                    return concat
                return value
            return concat

        begin = root.begin
        if kind == "global":
            begin.global_[name] = value
        elif kind == "var":
            begin.var[name] = value
        elif kind == "sub":
            begin.sub[name.lower()] = value
        elif kind == "person":
            begin.person[name.lower()] = value
        elif kind == "array":
            if value == UNDEF_TAG:
                begin.array[name] = [UNDEF_TAG]
            else:
                entries = value.split("|") if "|" in value else value.split()
                begin.array[name] = [e.replace(r"\s", " ").strip() for e in entries if e.strip()]
        return concat

    def _check_syntax(self, cmd: str, line: str) -> Optional[str]:
        """Return a description of the syntax problem, or None."""
        if cmd == "!":
            if not RE_DEFINITION.match(line):
                return "Invalid format for !Definition line: must be '! type name = value' OR '! type = value'"
        elif cmd == ">":
            parts = line.split()
            if parts and parts[0] in ("topic", "begin") and RE_LABEL_NAME.search(" ".join(parts[1:])):
                return "Topics should be lowercased and contain only numbers and letters"
        elif cmd in "+%@":
            checker = RE_TRIGGER_CHARS_UTF8 if self.utf8 else RE_TRIGGER_CHARS
            if checker.search(line):
                return (
                    "Triggers may only contain lowercase letters, numbers, "
                    "and these symbols: ( | ) [ ] * _ # @ { } < > ="
                )
            for opener, closer in ("()", "[]", "{}", "<>"):
                if line.count(opener) != line.count(closer):
                    return f"Unmatched '{opener}{closer}' brackets"
            if "||" in line or "(|" in line or "|)" in line or "[|" in line or "|]" in line:
                return "Piped alternations can't include blank entries"
        elif cmd == "*":
            if not RE_CONDITION.match(line):
                return "Invalid format for !Condition: should be like '* value symbol value => response'"
        return None

    @staticmethod
    def _warn(message: str, filename: str, lineno: int) -> None:
        logger.warning("%s at %s line %d", message, filename, lineno)
