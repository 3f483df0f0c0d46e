"""
Compiled instruction model.

A program compiles to a flat list of Instructions. Loop instructions refer to
their partner by index into that list, so the list owns every instruction and
no instruction holds a reference to another.
"""

import dataclasses
from enum import Enum
from typing import Dict, Optional, Tuple


class OpKind(Enum):
    """Instruction kinds. Control and I/O kinds use their source symbol."""

    LOOP_OPEN = "["
    LOOP_CLOSE = "]"
    READ = ","
    WRITE = "."
    RUN = "run"


@dataclasses.dataclass(frozen=True)
class Instruction:
    """
    One compiled step.

    Only RUN instructions carry a payload. `deltas[i]` is added to the cell at
    `pointer + base_offset + i`, then the pointer moves by `net_shift`.
    `min_offset` is the leftmost cell the run's symbols touched, even when
    compaction removed it from `deltas`; None when no cell was touched.
    """

    kind: OpKind
    deltas: Tuple[int, ...] = ()
    base_offset: int = 0
    net_shift: int = 0
    jump_target: Optional[int] = None
    linear_factor: Optional[int] = None
    scan_step: Optional[int] = None
    min_offset: Optional[int] = None
    source: str = ""

    def __post_init__(self):
        if self.linear_factor is not None and self.linear_factor <= 0:
            raise ValueError(f"linear factor must be positive, got {self.linear_factor}")
        if self.deltas and (self.deltas[0] == 0 or self.deltas[-1] == 0):
            raise ValueError(f"deltas are not compacted: {self.deltas}")
        if self.scan_step == 0:
            raise ValueError("scan step must be nonzero")
        if self.deltas and (self.min_offset is None or self.min_offset > self.base_offset):
            raise ValueError(
                f"min_offset {self.min_offset} is right of base_offset {self.base_offset}"
            )

    def __repr__(self) -> str:
        if self.kind is OpKind.RUN:
            return (
                f"Instruction(run, deltas={list(self.deltas)}, "
                f"offset={self.base_offset}, shift={self.net_shift})"
            )
        if self.is_loop:
            extra = f", linear={self.linear_factor}" if self.is_linear else ""
            if self.is_scan:
                extra = f", scan={self.scan_step}"
            return f"Instruction({self.kind.value}, go={self.jump_target}{extra})"
        return f"Instruction({self.kind.value})"

    @property
    def is_loop(self) -> bool:
        return self.kind in (OpKind.LOOP_OPEN, OpKind.LOOP_CLOSE)

    @property
    def is_linear(self) -> bool:
        return self.linear_factor is not None

    @property
    def is_scan(self) -> bool:
        return self.scan_step is not None

    def control_delta(self) -> int:
        """Net change this run applies to the cell under the entry pointer."""
        index = -self.base_offset
        if 0 <= index < len(self.deltas):
            return self.deltas[index]
        return 0

    def effects(self) -> Dict[int, int]:
        """Nonzero cell changes keyed by position relative to the entry pointer."""
        return {
            self.base_offset + i: delta
            for i, delta in enumerate(self.deltas)
            if delta != 0
        }

    def with_jump(self, target: int) -> "Instruction":
        return dataclasses.replace(self, jump_target=target)

    def with_linear_factor(self, factor: int) -> "Instruction":
        return dataclasses.replace(self, linear_factor=factor)

    def with_scan_step(self, step: int) -> "Instruction":
        return dataclasses.replace(self, scan_step=step)


def run_instruction(
    deltas,
    base_offset: int,
    net_shift: int,
    source: str = "",
    min_offset: Optional[int] = None,
) -> Instruction:
    deltas = tuple(deltas)
    if min_offset is None and deltas:
        min_offset = base_offset
    return Instruction(
        kind=OpKind.RUN,
        deltas=deltas,
        base_offset=base_offset,
        net_shift=net_shift,
        min_offset=min_offset,
        source=source,
    )
