import pytest
from bffold.compiler import Compiler, RunBuilder, compile_program, find_matching_open
from bffold.core.instruction import OpKind
from bffold.errors import UnbalancedLoopCloseError, UnbalancedLoopOpenError


def kinds(program):
    return [instr.kind for instr in program]

def build_run(symbols):
    builder = RunBuilder()
    for symbol in symbols:
        builder.feed(symbol)
    return builder.build()


# --- Run folding ---

def test_fold_increments():
    program = compile_program("++++++++.")
    assert kinds(program) == [OpKind.RUN, OpKind.WRITE]
    run = program[0]
    assert run.deltas == (8,)
    assert run.base_offset == 0
    assert run.net_shift == 0

def test_fold_right_then_back():
    """`>++<` touches only offset 1 and leaves the pointer where it was."""
    run = build_run(">++<")
    assert run.deltas == (2,)
    assert run.base_offset == 1
    assert run.net_shift == 0

def test_fold_moving_left_first():
    run = build_run("<<+>>")
    assert run.deltas == (1,)
    assert run.base_offset == -2
    assert run.net_shift == 0

def test_fold_keeps_interior_zeros():
    run = build_run("+>>-<<")
    assert run.deltas == (1, 0, -1)
    assert run.base_offset == 0

def test_fold_with_net_shift():
    run = build_run("+>+>+")
    assert run.deltas == (1, 1, 1)
    assert run.net_shift == 2

    run = build_run("<-<-")
    assert run.deltas == (-1, -1)
    assert run.base_offset == -2
    assert run.net_shift == -2

def test_pure_pointer_move_has_no_deltas():
    run = build_run(">>")
    assert run.deltas == ()
    assert run.net_shift == 2

    run = build_run("<")
    assert run.deltas == ()
    assert run.base_offset == 0
    assert run.net_shift == -1

def test_cancelling_run_is_dropped():
    assert build_run("+-") is None
    assert build_run("><") is None
    assert len(compile_program("+-><.")) == 1

def test_cancelling_run_left_of_entry_is_kept():
    """The run still has to bound-check the cell it touched."""
    run = build_run("<+->")
    assert run.deltas == ()
    assert run.net_shift == 0
    assert run.min_offset == -1

    assert build_run(">+-<") is None

def test_min_offset_tracks_cells_touched_before_compaction():
    run = build_run("<<+->>+")
    assert run.deltas == (1,)
    assert run.base_offset == 0
    assert run.min_offset == -2

    assert build_run("<<>>") is None
    assert build_run("<<").min_offset is None

def test_run_keeps_source_symbols():
    run = build_run(">+<")
    assert run.source == ">+<"

def test_builder_rejects_control_symbols():
    with pytest.raises(ValueError):
        RunBuilder().feed("[")

def test_non_symbols_are_ignored():
    program = compile_program("hello + world +\n.")
    assert kinds(program) == [OpKind.RUN, OpKind.WRITE]
    assert program[0].deltas == (2,)

def test_sentinel_ends_program():
    program = compile_program("+.!+++.")
    assert kinds(program) == [OpKind.RUN, OpKind.WRITE]

def test_io_symbols_split_runs():
    program = compile_program("+,>-.")
    assert kinds(program) == [OpKind.RUN, OpKind.READ, OpKind.RUN, OpKind.WRITE]
    assert program[2].deltas == (-1,)
    assert program[2].base_offset == 1
    assert program[2].net_shift == 1

def test_symbol_list_input():
    program = Compiler().compile(["+", "+", "."])
    assert program[0].deltas == (2,)


# --- Bracket matching ---

def test_loop_targets_are_symmetric():
    program = compile_program("[[-]>[-<+>]]")
    for index, instr in enumerate(program):
        if instr.kind is OpKind.LOOP_OPEN:
            partner = program[instr.jump_target]
            assert partner.kind is OpKind.LOOP_CLOSE
            assert partner.jump_target == index
        elif instr.kind is OpKind.LOOP_CLOSE:
            assert program[instr.jump_target].kind is OpKind.LOOP_OPEN

def test_nested_loop_targets():
    program = compile_program("[[]]")
    assert [instr.jump_target for instr in program] == [3, 2, 1, 0]

def test_unbalanced_close():
    with pytest.raises(UnbalancedLoopCloseError):
        compile_program("]")

def test_unbalanced_close_reports_position():
    with pytest.raises(UnbalancedLoopCloseError) as excinfo:
        compile_program("+[]]")
    assert excinfo.value.position == 3

def test_unbalanced_open():
    with pytest.raises(UnbalancedLoopOpenError):
        compile_program("[+")

def test_unbalanced_open_reports_first_unmatched():
    with pytest.raises(UnbalancedLoopOpenError) as excinfo:
        compile_program("+[[-]")
    assert excinfo.value.position == 1

def test_find_matching_open_on_empty_sequence():
    with pytest.raises(UnbalancedLoopCloseError):
        find_matching_open([])

def test_empty_program():
    program = compile_program("")
    assert len(program) == 0
    assert program.diagnostics == []
