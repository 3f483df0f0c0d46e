"""
Interpreter configuration.

Defaults can be overridden with BFFOLD_* environment variables; command-line
flags override both.
"""

import dataclasses
import os
from typing import Mapping, Optional

from .core.tape import DEFAULT_TAPE_SIZE
from .errors import ConfigError

DEFAULT_EOF_VALUE = -1

MEMORY_UNITS = {
    "": 1,
    "B": 1,
    "k": 1024,
    "M": 1024 * 1024,
    "G": 1024 * 1024 * 1024,
}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def parse_memory_size(value: str) -> int:
    """
    Parse a memory size such as "256", "256B", "64k" or "2M" into cells.

    Raises:
        ConfigError: The number or the unit is invalid
    """
    value = value.strip()
    digits = ""
    for char in value:
        if not char.isdigit():
            break
        digits += char
    unit = value[len(digits):]

    if not digits:
        raise ConfigError(f"Invalid memory size: {value!r}")
    if unit not in MEMORY_UNITS:
        raise ConfigError(f"Invalid memory unit {unit!r} in {value!r}")

    size = int(digits) * MEMORY_UNITS[unit]
    if size <= 0:
        raise ConfigError(f"Memory size must be positive: {value!r}")
    return size


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclasses.dataclass
class InterpreterConfig:
    memory_size: int = DEFAULT_TAPE_SIZE
    eof_value: int = DEFAULT_EOF_VALUE
    linear: bool = True
    max_steps: Optional[int] = None

    def __post_init__(self):
        if self.memory_size <= 0:
            raise ConfigError(f"memory_size must be positive, got {self.memory_size}")
        if self.max_steps is not None and self.max_steps <= 0:
            raise ConfigError(f"max_steps must be positive, got {self.max_steps}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "InterpreterConfig":
        """Build a config from BFFOLD_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if env.get("BFFOLD_MEMORY_SIZE"):
            kwargs["memory_size"] = parse_memory_size(env["BFFOLD_MEMORY_SIZE"])
        if env.get("BFFOLD_EOF_VALUE"):
            kwargs["eof_value"] = _parse_int("BFFOLD_EOF_VALUE", env["BFFOLD_EOF_VALUE"])
        if env.get("BFFOLD_LINEAR"):
            kwargs["linear"] = _parse_bool("BFFOLD_LINEAR", env["BFFOLD_LINEAR"])
        if env.get("BFFOLD_MAX_STEPS"):
            kwargs["max_steps"] = _parse_int("BFFOLD_MAX_STEPS", env["BFFOLD_MAX_STEPS"])
        return cls(**kwargs)
