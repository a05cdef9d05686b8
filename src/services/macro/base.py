"""Abstract base class for object macro language handlers."""

from abc import ABC, abstractmethod
from typing import Any


class MacroHandler(ABC):
    """Executes object macros written in one language.

    Handlers are registered on the dispatcher under a language name
    (the third word of a `> object <name> <language>` line) and never
    reached directly by the reply resolver.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the language name."""
        ...

    @abstractmethod
    def load(self, name: str, code: list[str]) -> bool:
        """Compile the body of an object macro.

        Args:
            name: The macro name used by <call>.
            code: Source lines between the object labels.

        Returns:
            True if the macro is ready to be called.
        """
        ...

    @abstractmethod
    def call(self, engine: Any, name: str, args: list[str]) -> str:
        """Run a loaded macro and return the text to substitute.

        Args:
            engine: The RiveScript engine (exposed to the macro as `rs`).
            name: The macro name.
            args: Arguments parsed from the <call> tag.
        """
        ...
