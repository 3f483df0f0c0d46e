"""
Exception hierarchy for the bffold interpreter.

Compile errors abort before any instruction runs. Execution errors abort a
running program. Neither is retried.
"""

from typing import Optional


class BffError(Exception):
    """Base class for every error raised by bffold."""


class CompileError(BffError):
    """Raised when a program cannot be compiled."""

    def __init__(self, message: str, position: Optional[int] = None):
        self.position = position
        if position is not None:
            message = f"{message} (symbol {position})"
        super().__init__(message)


class UnbalancedLoopCloseError(CompileError):
    """A `]` was found with no enclosing `[`."""

    def __init__(self, position: Optional[int] = None):
        super().__init__("unbalanced ']'", position)


class UnbalancedLoopOpenError(CompileError):
    """A `[` was never closed before the end of the program."""

    def __init__(self, position: Optional[int] = None):
        super().__init__("unbalanced '['", position)


class ExecutionError(BffError):
    """Raised when a compiled program fails at runtime."""


class TapeUnderflowError(ExecutionError):
    """A cell left of index 0 was addressed."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"tape access at index {index} is left of the first cell")


class StepLimitExceededError(ExecutionError):
    """The configured step budget ran out before the program finished."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"step limit of {limit} exceeded")


class ConfigError(BffError):
    """Invalid interpreter configuration."""
