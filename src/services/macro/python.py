"""Python object macro handler."""

import textwrap
from typing import Any, Callable

from src.core.logging import get_logger
from src.services.macro.base import MacroHandler

logger = get_logger(__name__)


class PythonHandler(MacroHandler):
    """Compiles object bodies into `def RSOBJ(rs, args)` functions.

    Example script:

        > object add python
            return int(args[0]) + int(args[1])
        < object
    """

    def __init__(self) -> None:
        self._objects: dict[str, Callable[[Any, list[str]], Any]] = {}

    @property
    def name(self) -> str:
        return "python"

    def load(self, name: str, code: list[str]) -> bool:
        body = textwrap.dedent("\n".join(code)).strip("\n") or "pass"
        source = "def RSOBJ(rs, args):\n" + textwrap.indent(body, "    ") + "\n"
        namespace: dict[str, Any] = {}
        try:
            exec(compile(source, f"<object {name}>", "exec"), namespace)
        except SyntaxError as e:
            logger.error("Failed to load Python object '%s': %s", name, e)
            return False
        self._objects[name] = namespace["RSOBJ"]
        logger.debug("Loaded Python object '%s'", name)
        return True

    def call(self, engine: Any, name: str, args: list[str]) -> str:
        func = self._objects[name]
        result = func(engine, args)
        return "" if result is None else str(result)
