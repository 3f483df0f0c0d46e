"""
Runtime memory: a growable row of integer cells and a pointer into it.

The tape only grows to the right. New cells are always zero. Addressing a cell
left of index 0 raises TapeUnderflowError instead of wrapping.
"""

from typing import List, Optional, Sequence

import structlog

from ..errors import TapeUnderflowError

logger = structlog.get_logger(__name__)

DEFAULT_TAPE_SIZE = 1024
# Cells are Python ints, not bytes. Larger requested sizes are reached by
# growth on demand instead of up front.
MAX_INITIAL_TAPE_SIZE = 1 << 20


class Tape:
    def __init__(self, size: int = DEFAULT_TAPE_SIZE):
        if size > MAX_INITIAL_TAPE_SIZE:
            logger.debug("Initial tape size capped", requested=size, size=MAX_INITIAL_TAPE_SIZE)
            size = MAX_INITIAL_TAPE_SIZE
        self.cells: List[int] = [0] * max(size, 1)
        self.pointer = 0

    def __len__(self) -> int:
        return len(self.cells)

    @property
    def size(self) -> int:
        return len(self.cells)

    def ensure(self, index: int) -> None:
        """Grow the tape with zero cells so that `index` is addressable."""
        if index < 0:
            raise TapeUnderflowError(index)
        if index >= len(self.cells):
            grow_by = index + 1 - len(self.cells)
            self.cells.extend([0] * grow_by)
            logger.debug("Tape grown", size=len(self.cells), grow_by=grow_by)

    def get(self) -> int:
        self.ensure(self.pointer)
        return self.cells[self.pointer]

    def set(self, value: int) -> None:
        self.ensure(self.pointer)
        self.cells[self.pointer] = value

    def add(self, position: int, delta: int) -> None:
        """Add `delta` to the cell `position` cells away from the pointer."""
        index = self.pointer + position
        self.ensure(index)
        self.cells[index] += delta

    def apply(
        self,
        deltas: Sequence[int],
        base_offset: int,
        factor: int = 1,
        lowest: Optional[int] = None,
    ) -> None:
        """
        Add `factor * deltas[i]` to the cell at `pointer + base_offset + i`.

        `lowest` is the leftmost relative position the change was folded from.
        It is bound-checked even when its own delta cancelled to zero.
        """
        if lowest is not None and self.pointer + lowest < 0:
            raise TapeUnderflowError(self.pointer + lowest)
        if not deltas:
            return
        start = self.pointer + base_offset
        if start < 0:
            raise TapeUnderflowError(start)
        self.ensure(start + len(deltas) - 1)
        cells = self.cells
        if factor == 1:
            for i, delta in enumerate(deltas):
                cells[start + i] += delta
        else:
            for i, delta in enumerate(deltas):
                cells[start + i] += factor * delta

    def shift(self, amount: int) -> None:
        """Move the pointer. Moving right grows the tape to cover the new cell."""
        self.pointer += amount
        if amount > 0:
            self.ensure(self.pointer)

    def snapshot(self) -> List[int]:
        return list(self.cells)
