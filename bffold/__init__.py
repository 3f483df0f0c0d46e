"""
Optimizing interpreter with run folding and linear loop evaluation.
"""

# Core model
from .core import DEFAULT_TAPE_SIZE, Instruction, OpKind, Tape

# Compilation and execution
from .compiler import CompiledProgram, Compiler, LinearityDiagnostic, compile_program
from .engine import Engine, ExecutionResult, execute, run_naive
from .api import compile_source, run_source, run_stream

# Configuration and errors
from .config import InterpreterConfig, parse_memory_size
from .errors import (
    BffError,
    CompileError,
    ConfigError,
    ExecutionError,
    StepLimitExceededError,
    TapeUnderflowError,
    UnbalancedLoopCloseError,
    UnbalancedLoopOpenError,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "Instruction",
    "OpKind",
    "Tape",
    "DEFAULT_TAPE_SIZE",
    # Compilation and execution
    "Compiler",
    "CompiledProgram",
    "LinearityDiagnostic",
    "compile_program",
    "Engine",
    "ExecutionResult",
    "execute",
    "run_naive",
    "compile_source",
    "run_source",
    "run_stream",
    # Configuration and errors
    "InterpreterConfig",
    "parse_memory_size",
    "BffError",
    "CompileError",
    "ConfigError",
    "ExecutionError",
    "StepLimitExceededError",
    "TapeUnderflowError",
    "UnbalancedLoopCloseError",
    "UnbalancedLoopOpenError",
]
