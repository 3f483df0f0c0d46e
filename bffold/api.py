from typing import BinaryIO, Optional, Union

from .compiler import CompiledProgram, compile_program
from .config import InterpreterConfig
from .engine import ExecutionResult, InputSource, execute
from .tokenizer import split_program


def compile_source(source: str, *, linear: bool = True) -> CompiledProgram:
    return compile_program(source, linear=linear)


def run_source(
    source: str,
    input_bytes: InputSource = b"",
    *,
    output: Optional[BinaryIO] = None,
    config: Optional[InterpreterConfig] = None,
) -> ExecutionResult:
    """Compile `source` and run it against `input_bytes`."""
    config = config or InterpreterConfig()
    program = compile_program(source, linear=config.linear)
    return execute(program, input_bytes, output=output, config=config)


def run_stream(
    data: Union[bytes, str],
    *,
    output: Optional[BinaryIO] = None,
    config: Optional[InterpreterConfig] = None,
) -> ExecutionResult:
    """Run a combined stream: program text, then `!`, then the program's input."""
    source, input_bytes = split_program(data)
    return run_source(source, input_bytes, output=output, config=config)
