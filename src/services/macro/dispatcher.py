"""Macro Dispatcher - registry of object macros keyed by name."""

from typing import Any, Callable, Optional

from src.core.errors import DeepRecursionError, MacroError, MacroNotFoundError
from src.core.logging import get_logger
from src.services.macro.base import MacroHandler

logger = get_logger(__name__)

# subroutine signature: (engine, args) -> text
Subroutine = Callable[[Any, list[str]], Any]


class MacroDispatcher:
    """Maps macro names to either a Python subroutine or a language handler.

    Subroutines registered in code win over script-defined objects of the
    same name.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, MacroHandler] = {}
        self._subroutines: dict[str, Subroutine] = {}
        self._languages: dict[str, str] = {}  # macro name -> language
        self._pending: dict[str, tuple[str, list[str]]] = {}  # waiting for a handler

    # === Registration ===

    def set_handler(self, language: str, handler: Optional[MacroHandler]) -> None:
        """Register (or with None, remove) a language handler."""
        language = language.lower()
        if handler is None:
            self._handlers.pop(language, None)
            logger.info("Macro handler removed: %s", language)
            return

        self._handlers[language] = handler
        logger.info("Macro handler registered: %s", language)

        # objects loaded before their handler existed
        for name, (lang, code) in list(self._pending.items()):
            if lang == language:
                del self._pending[name]
                self.load_object(name, lang, code)

    def set_subroutine(self, name: str, func: Optional[Subroutine]) -> None:
        if func is None:
            self._subroutines.pop(name, None)
        else:
            self._subroutines[name] = func

    def load_object(self, name: str, language: str, code: list[str]) -> bool:
        handler = self._handlers.get(language)
        if handler is None:
            logger.warning(
                "No handler for object '%s' in language '%s'; kept until one is set",
                name,
                language,
            )
            self._pending[name] = (language, code)
            return False
        if handler.load(name, code):
            self._languages[name] = language
            return True
        return False

    # === Queries ===

    @property
    def handlers(self) -> dict[str, MacroHandler]:
        return dict(self._handlers)

    def has(self, name: str) -> bool:
        return name in self._subroutines or (
            name in self._languages and self._languages[name] in self._handlers
        )

    # === Dispatch ===

    def invoke(self, engine: Any, name: str, args: list[str]) -> str:
        """Run a macro.

        Raises:
            MacroNotFoundError: nothing is registered under name.
            MacroError: the macro raised.
        """
        if name in self._subroutines:
            runner: Callable[[], Any] = lambda: self._subroutines[name](engine, args)  # noqa: E731
        elif name in self._languages and self._languages[name] in self._handlers:
            handler = self._handlers[self._languages[name]]
            runner = lambda: handler.call(engine, name, args)  # noqa: E731
        else:
            raise MacroNotFoundError(name)

        try:
            result = runner()
        except DeepRecursionError:
            raise
        except Exception as e:
            logger.exception("Object macro '%s' failed", name)
            raise MacroError(name, e) from e

        return "" if result is None else str(result)
