"""
Compiler from program text to a flat instruction list.

Consecutive `+ - < >` symbols are folded into one RUN instruction that applies
all of their cell changes at once and then moves the pointer. `[`, `]`, `,` and
`.` each become a standalone instruction. Loop instructions are linked by
index. Loops whose body is a single pointer-balanced RUN that decrements
the control cell are marked linear so the engine can resolve them with one
multiplication instead of iterating. Loops whose body only moves the pointer
are marked as scans.
"""

import dataclasses
from typing import Iterator, List, Optional, Sequence, Union

import structlog

from .core.instruction import Instruction, OpKind, run_instruction
from .errors import UnbalancedLoopCloseError, UnbalancedLoopOpenError
from .tokenizer import iter_symbols

logger = structlog.get_logger(__name__)

RUN_SYMBOLS = "+-<>"


@dataclasses.dataclass(frozen=True)
class LinearityDiagnostic:
    """A loop with linear shape whose body does not decrement its control cell."""

    index: int
    control_delta: int
    message: str


@dataclasses.dataclass
class CompiledProgram(Sequence):
    """Instruction list produced by the compiler, plus its diagnostics."""

    instructions: List[Instruction]
    diagnostics: List[LinearityDiagnostic] = dataclasses.field(default_factory=list)

    def __getitem__(self, index):
        return self.instructions[index]

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    @property
    def linear_loops(self) -> List[int]:
        return [i for i, instr in enumerate(self.instructions) if instr.is_linear]

    @property
    def scan_loops(self) -> List[int]:
        return [i for i, instr in enumerate(self.instructions) if instr.is_scan]


class RunBuilder:
    """
    Folds a stretch of `+ - < >` symbols into a single RUN instruction.

    `mp` is a virtual pointer into `run`. Moving left past the first slot
    prepends a zero slot and lowers `base_offset`, so `run[0]` always sits at
    `base_offset` relative to the pointer at run entry. `min_offset` records
    the leftmost position a `+` or `-` touched, before compaction.
    """

    def __init__(self):
        self.run = [0]
        self.mp = 0
        self.base_offset = 0
        self.min_offset: Optional[int] = None
        self.symbols: List[str] = []

    def feed(self, symbol: str) -> None:
        self.symbols.append(symbol)
        if symbol in "+-":
            self.run[self.mp] += 1 if symbol == "+" else -1
            position = self.mp + self.base_offset
            if self.min_offset is None or position < self.min_offset:
                self.min_offset = position
        elif symbol == ">":
            self.mp += 1
            if self.mp >= len(self.run):
                self.run.append(0)
        elif symbol == "<":
            if self.mp > 0:
                self.mp -= 1
            else:
                self.base_offset -= 1
                self.run.insert(0, 0)
        else:
            raise ValueError(f"not a run symbol: {symbol!r}")

    def build(self) -> Optional[Instruction]:
        """
        Compact the run and return it.

        Returns None only when the run changes no cell, moves nothing, and
        touched no cell left of its entry pointer. A cancelled run that
        reached left is kept so the engine still bound-checks that cell.
        """
        net_shift = self.mp + self.base_offset
        run = list(self.run)
        base_offset = self.base_offset

        while run and run[-1] == 0:
            run.pop()
        while run and run[0] == 0:
            run.pop(0)
            base_offset += 1

        if not run:
            reached_left = self.min_offset is not None and self.min_offset < 0
            if net_shift == 0 and not reached_left:
                return None
            base_offset = 0
        return run_instruction(
            run, base_offset, net_shift, "".join(self.symbols), min_offset=self.min_offset
        )


class Compiler:
    def __init__(self, linear: bool = True):
        self.linear = linear

    def compile(self, source: Union[str, Sequence[str]]) -> CompiledProgram:
        """
        Compile program text.

        Args:
            source: Program text or an iterable of symbols. Text is filtered
                down to the eight language symbols and stops at `!`.

        Returns:
            CompiledProgram with linked jumps and linear loops marked

        Raises:
            UnbalancedLoopCloseError: A `]` has no matching `[`
            UnbalancedLoopOpenError: A `[` is still open at the end
        """
        if not isinstance(source, str):
            source = "".join(source)
        symbols = iter_symbols(source)
        instructions: List[Instruction] = []
        open_positions = {}
        builder: Optional[RunBuilder] = None

        for position, symbol in enumerate(symbols):
            if symbol in RUN_SYMBOLS:
                if builder is None:
                    builder = RunBuilder()
                builder.feed(symbol)
                continue

            if builder is not None:
                self._flush(builder, instructions)
                builder = None

            if symbol == "]":
                opening = find_matching_open(instructions, position)
                closing = len(instructions)
                instructions[opening] = instructions[opening].with_jump(closing)
                del open_positions[opening]
                instructions.append(
                    Instruction(OpKind.LOOP_CLOSE, jump_target=opening, source=symbol)
                )
            else:
                if symbol == "[":
                    open_positions[len(instructions)] = position
                instructions.append(Instruction(OpKind(symbol), source=symbol))

        if builder is not None:
            self._flush(builder, instructions)

        if open_positions:
            first = min(open_positions)
            logger.error("Unmatched loop open", index=first, position=open_positions[first])
            raise UnbalancedLoopOpenError(open_positions[first])

        program = CompiledProgram(instructions)
        detect_scan_loops(program)
        if self.linear:
            detect_linear_loops(program)

        logger.debug(
            "Compiled program",
            instructions=len(program),
            linear_loops=len(program.linear_loops),
            scan_loops=len(program.scan_loops),
            diagnostics=len(program.diagnostics),
        )
        return program

    @staticmethod
    def _flush(builder: RunBuilder, instructions: List[Instruction]) -> None:
        instr = builder.build()
        if instr is not None:
            instructions.append(instr)


def find_matching_open(instructions: Sequence[Instruction], position: Optional[int] = None) -> int:
    """
    Find the `[` matching a `]` about to be appended to `instructions`.

    Scans backward counting depth: `]` adds one, `[` removes one.

    Raises:
        UnbalancedLoopCloseError: The start is reached before depth hits zero
    """
    depth = 1
    for index in range(len(instructions) - 1, -1, -1):
        kind = instructions[index].kind
        if kind is OpKind.LOOP_CLOSE:
            depth += 1
        elif kind is OpKind.LOOP_OPEN:
            depth -= 1
            if depth == 0:
                return index
    logger.error("Unmatched loop close", position=position)
    raise UnbalancedLoopCloseError(position)


def detect_linear_loops(program: CompiledProgram) -> None:
    """
    Mark every linear loop of `program` in place.

    A loop is linear when its body is exactly one RUN with no net pointer
    movement that touches the control cell. Its factor is the amount the
    body subtracts from the control cell per iteration.
    """
    instructions = program.instructions
    for index, instr in enumerate(instructions):
        if instr.kind is not OpKind.LOOP_OPEN or instr.jump_target != index + 2:
            continue
        body = instructions[index + 1]
        if body.kind is not OpKind.RUN or body.net_shift != 0 or body.base_offset > 0:
            continue

        factor = -body.control_delta()
        if factor > 0:
            instructions[index] = instr.with_linear_factor(factor)
            continue

        if factor < 0:
            message = "potential infinite loop: body increments its control cell"
        else:
            message = "potential infinite loop: body never changes its control cell"
        diagnostic = LinearityDiagnostic(index=index, control_delta=-factor, message=message)
        program.diagnostics.append(diagnostic)
        logger.warning(message, index=index, body=repr(body))


def detect_scan_loops(program: CompiledProgram) -> None:
    """Mark loops whose body only moves the pointer, such as `[>]` or `[<<]`."""
    instructions = program.instructions
    for index, instr in enumerate(instructions):
        if instr.kind is not OpKind.LOOP_OPEN or instr.jump_target != index + 2:
            continue
        body = instructions[index + 1]
        if (
            body.kind is OpKind.RUN
            and not body.deltas
            and body.min_offset is None
            and body.net_shift != 0
        ):
            instructions[index] = instr.with_scan_step(body.net_shift)


def compile_program(source: Union[str, Sequence[str]], *, linear: bool = True) -> CompiledProgram:
    return Compiler(linear=linear).compile(source)
