"""Engine exceptions and fixed error replies."""

# --- Error replies (returned as reply text, never raised) ---
ERR_NO_MATCH = "[ERR: No Reply Matched]"
ERR_NO_REPLY = "[ERR: No Reply Found]"
ERR_DEEP_RECURSION = "[ERR: Deep Recursion Detected]"
ERR_OBJECT_NOT_FOUND = "[ERR: Object Not Found]"
ERR_OBJECT_FAILED = "[ERR: Error when executing object]"


class RiveScriptError(Exception):
    """Base class for all engine errors."""


class RepliesNotSortedError(RiveScriptError):
    """reply() was called before sort_replies() (or after a reload)."""

    def __init__(self) -> None:
        super().__init__("You must call sort_replies() once you are done loading scripts")


class DeepRecursionError(RiveScriptError):
    """Redirect / macro chain went deeper than the configured limit."""

    def __init__(self, depth: int) -> None:
        super().__init__(f"Deep recursion detected (depth > {depth})")
        self.depth = depth


class MacroNotFoundError(RiveScriptError):
    """No subroutine or handler is registered under the macro name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Object macro not found: {name}")
        self.name = name


class MacroError(RiveScriptError):
    """A macro raised while executing."""

    def __init__(self, name: str, cause: Exception) -> None:
        super().__init__(f"Object macro '{name}' failed: {cause}")
        self.name = name
        self.cause = cause


class SessionError(RiveScriptError):
    """Invalid operation on the user store."""
