from .instruction import Instruction, OpKind, run_instruction
from .tape import DEFAULT_TAPE_SIZE, Tape

__all__ = ["Instruction", "OpKind", "run_instruction", "Tape", "DEFAULT_TAPE_SIZE"]
