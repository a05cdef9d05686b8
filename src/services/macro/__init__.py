"""Object macro module."""

from src.services.macro.base import MacroHandler
from src.services.macro.dispatcher import MacroDispatcher, Subroutine
from src.services.macro.python import PythonHandler

__all__ = [
    "MacroHandler",
    "MacroDispatcher",
    "PythonHandler",
    "Subroutine",
]
