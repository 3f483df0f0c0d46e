"""
Execution engine for compiled programs.

The engine walks the instruction list with a single cursor. Loop instructions
jump by index; RUN instructions apply their batched cell changes and move the
pointer. A linear loop is resolved at its LOOP_OPEN: when the control cell is
a positive multiple of the loop's factor the body is applied once, scaled by
the iteration count. Otherwise the body is applied pass by pass until the
control cell reaches zero, exactly as plain iteration would. A scan loop moves
the pointer by its step until it lands on a zero cell.

Output goes to the attached stream when there is one. Only runs without an
output stream collect their bytes in ExecutionResult.output.
"""

import dataclasses
import io
from typing import BinaryIO, List, Optional, Union

import structlog

from .compiler import CompiledProgram
from .config import InterpreterConfig
from .core.instruction import Instruction, OpKind
from .core.tape import Tape
from .errors import (
    ExecutionError,
    StepLimitExceededError,
    UnbalancedLoopCloseError,
    UnbalancedLoopOpenError,
)
from .tokenizer import iter_symbols

logger = structlog.get_logger(__name__)

InputSource = Union[bytes, bytearray, BinaryIO]


@dataclasses.dataclass
class ExecutionResult:
    """Outcome of one program run. `output` is empty when output was streamed."""

    output: bytes
    tape: List[int]
    pointer: int
    steps: int = 0
    linear_evaluations: int = 0
    fallback_passes: int = 0
    scan_passes: int = 0


class Engine:
    def __init__(
        self,
        program: CompiledProgram,
        *,
        input_bytes: InputSource = b"",
        output: Optional[BinaryIO] = None,
        config: Optional[InterpreterConfig] = None,
    ):
        self.program = program
        self.config = config or InterpreterConfig()
        self.tape = Tape(self.config.memory_size)
        if isinstance(input_bytes, (bytes, bytearray)):
            input_bytes = io.BytesIO(bytes(input_bytes))
        self.input = input_bytes
        self.output = output
        self.buffer = bytearray()

        self.cursor = 0
        self.steps = 0
        self.linear_evaluations = 0
        self.fallback_passes = 0
        self.scan_passes = 0

    def run(self) -> ExecutionResult:
        """
        Execute the program to completion.

        Raises:
            TapeUnderflowError: A cell left of index 0 was addressed
            StepLimitExceededError: config.max_steps was exceeded
        """
        instructions = self.program.instructions
        tape = self.tape
        end = len(instructions)

        try:
            while self.cursor < end:
                self._tick()
                instr = instructions[self.cursor]
                kind = instr.kind

                if kind is OpKind.RUN:
                    tape.apply(instr.deltas, instr.base_offset, lowest=instr.min_offset)
                    tape.shift(instr.net_shift)
                elif kind is OpKind.LOOP_OPEN:
                    if tape.get() == 0:
                        self.cursor = instr.jump_target
                        continue
                    if instr.linear_factor is not None:
                        self._evaluate_linear(instr, instructions[self.cursor + 1])
                        self.cursor = instr.jump_target
                        continue
                    if instr.scan_step is not None:
                        self._scan(instr.scan_step)
                        self.cursor = instr.jump_target
                        continue
                elif kind is OpKind.LOOP_CLOSE:
                    if tape.get() != 0:
                        self.cursor = instr.jump_target
                        continue
                elif kind is OpKind.READ:
                    tape.set(self._read())
                elif kind is OpKind.WRITE:
                    self._write(tape.get())

                self.cursor += 1
        except ExecutionError as e:
            logger.error(
                "Execution failed",
                cursor=self.cursor,
                pointer=tape.pointer,
                steps=self.steps,
                error=str(e),
            )
            raise
        finally:
            if self.output is not None:
                self.output.flush()

        logger.debug(
            "Execution finished",
            steps=self.steps,
            linear_evaluations=self.linear_evaluations,
            fallback_passes=self.fallback_passes,
            scan_passes=self.scan_passes,
            tape_size=tape.size,
        )
        return self.result()

    def result(self) -> ExecutionResult:
        return ExecutionResult(
            output=bytes(self.buffer),
            tape=self.tape.snapshot(),
            pointer=self.tape.pointer,
            steps=self.steps,
            linear_evaluations=self.linear_evaluations,
            fallback_passes=self.fallback_passes,
            scan_passes=self.scan_passes,
        )

    def _evaluate_linear(self, loop: Instruction, body: Instruction) -> None:
        tape = self.tape
        value = tape.get()
        factor = loop.linear_factor

        if value > 0 and value % factor == 0:
            tape.apply(body.deltas, body.base_offset, value // factor, lowest=body.min_offset)
            self.linear_evaluations += 1
            return

        logger.debug(
            "Linear loop falling back to iteration",
            cursor=self.cursor,
            value=value,
            factor=factor,
        )
        while tape.get() != 0:
            self._tick()
            tape.apply(body.deltas, body.base_offset, lowest=body.min_offset)
            self.fallback_passes += 1

    def _scan(self, step: int) -> None:
        tape = self.tape
        while tape.get() != 0:
            self._tick()
            tape.shift(step)
            self.scan_passes += 1

    def _tick(self) -> None:
        self.steps += 1
        limit = self.config.max_steps
        if limit is not None and self.steps > limit:
            raise StepLimitExceededError(limit)

    def _read(self) -> int:
        data = self.input.read(1) if self.input is not None else b""
        if not data:
            return self.config.eof_value
        return data[0]

    def _write(self, value: int) -> None:
        byte = value & 0xFF
        if self.output is None:
            self.buffer.append(byte)
            return
        self.output.write(bytes((byte,)))
        if byte == 0x0A:
            self.output.flush()


def execute(
    program: CompiledProgram,
    input_bytes: InputSource = b"",
    *,
    output: Optional[BinaryIO] = None,
    config: Optional[InterpreterConfig] = None,
) -> ExecutionResult:
    return Engine(program, input_bytes=input_bytes, output=output, config=config).run()


def run_naive(
    source: str,
    input_bytes: InputSource = b"",
    *,
    output: Optional[BinaryIO] = None,
    config: Optional[InterpreterConfig] = None,
) -> ExecutionResult:
    """
    Interpret program text symbol by symbol, without folding or linear loops.

    Shares the tape, I/O and end-of-input conventions of Engine so the two
    can be compared output for output.
    """
    symbols = list(iter_symbols(source))
    jumps = _match_brackets(symbols)

    # Reuse the engine's I/O and step accounting over an empty program.
    engine = Engine(CompiledProgram([]), input_bytes=input_bytes, output=output, config=config)
    tape = engine.tape
    pc = 0
    try:
        while pc < len(symbols):
            engine._tick()
            symbol = symbols[pc]
            if symbol == "+":
                tape.add(0, 1)
            elif symbol == "-":
                tape.add(0, -1)
            elif symbol == ">":
                tape.shift(1)
            elif symbol == "<":
                tape.shift(-1)
            elif symbol == ",":
                tape.set(engine._read())
            elif symbol == ".":
                engine._write(tape.get())
            elif symbol == "[":
                if tape.get() == 0:
                    pc = jumps[pc]
            elif symbol == "]":
                if tape.get() != 0:
                    pc = jumps[pc]
            pc += 1
    finally:
        if output is not None:
            output.flush()
    return engine.result()


def _match_brackets(symbols: List[str]) -> dict:
    stack = []
    jumps = {}
    for i, symbol in enumerate(symbols):
        if symbol == "[":
            stack.append(i)
        elif symbol == "]":
            if not stack:
                raise UnbalancedLoopCloseError(i)
            start = stack.pop()
            jumps[start] = i
            jumps[i] = start
    if stack:
        raise UnbalancedLoopOpenError(stack[0])
    return jumps
