"""
Human-readable listings of compiled programs.

Listings are diagnostics only; nothing in bffold reads them back.
"""

import json
from typing import Any, Dict, List, TextIO

import yaml

from .compiler import CompiledProgram
from .core.instruction import Instruction, OpKind

LISTING_FORMATS = ("text", "json", "yaml")


def instruction_to_dict(index: int, instr: Instruction) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"index": index, "kind": instr.kind.name.lower()}
    if instr.kind is OpKind.RUN:
        entry["source"] = instr.source
        entry["deltas"] = list(instr.deltas)
        entry["base_offset"] = instr.base_offset
        entry["net_shift"] = instr.net_shift
        if instr.min_offset is not None:
            entry["min_offset"] = instr.min_offset
    if instr.jump_target is not None:
        entry["jump_target"] = instr.jump_target
    if instr.linear_factor is not None:
        entry["linear_factor"] = instr.linear_factor
    if instr.scan_step is not None:
        entry["scan_step"] = instr.scan_step
    return entry


def program_to_dict(program: CompiledProgram) -> Dict[str, Any]:
    return {
        "instructions": [instruction_to_dict(i, instr) for i, instr in enumerate(program)],
        "linear_loops": program.linear_loops,
        "scan_loops": program.scan_loops,
        "diagnostics": [
            {"index": d.index, "control_delta": d.control_delta, "message": d.message}
            for d in program.diagnostics
        ],
    }


def format_instruction(index: int, instr: Instruction) -> str:
    """One listing line: index, symbol, source, shift, offset, target, deltas."""
    symbol = "+" if instr.kind is OpKind.RUN else instr.kind.value
    go = "-" if instr.jump_target is None else str(instr.jump_target)
    line = (
        f"{index:5d}  {symbol}  '{instr.source}' shift={instr.net_shift} "
        f"offset={instr.base_offset} go={go} d=[ {' '.join(str(d) for d in instr.deltas)} ]"
    )
    if instr.linear_factor is not None:
        line += f" linear={instr.linear_factor}"
    if instr.scan_step is not None:
        line += f" scan={instr.scan_step}"
    return line


def format_text(program: CompiledProgram) -> str:
    lines: List[str] = [format_instruction(i, instr) for i, instr in enumerate(program)]
    for diagnostic in program.diagnostics:
        lines.append(f"warning: {diagnostic.message} at {diagnostic.index}")
    return "\n".join(lines) + "\n"


def export_listing(program: CompiledProgram, fmt: str, stream: TextIO) -> None:
    """Write a listing of `program` to `stream` as text, json or yaml."""
    if fmt == "text":
        stream.write(format_text(program))
    elif fmt == "json":
        json.dump(program_to_dict(program), stream, indent=2)
        stream.write("\n")
    elif fmt == "yaml":
        yaml.safe_dump(program_to_dict(program), stream, default_flow_style=False, sort_keys=False)
    else:
        raise ValueError(f"Unknown listing format: {fmt}")
