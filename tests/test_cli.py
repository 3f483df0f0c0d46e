import io
import json
import logging
from unittest.mock import patch

import pytest
import yaml
from bffold.cli import (
    EXIT_COMPILE_ERROR,
    EXIT_OK,
    EXIT_RUNTIME_ERROR,
    EXIT_USAGE_ERROR,
    main,
)


def make_stream(data: bytes = b""):
    return io.TextIOWrapper(io.BytesIO(data), encoding="latin-1")


def run_cli(args, stdin_data: bytes = b""):
    """Run main() with fake stdin/stdout and return (exit code, stdout bytes)."""
    stdin = make_stream(stdin_data)
    stdout = make_stream()
    with patch("sys.stdin", stdin), patch("sys.stdout", stdout):
        code = main(args)
        stdout.flush()
    return code, stdout.buffer.getvalue()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BFFOLD_MEMORY_SIZE", "BFFOLD_EOF_VALUE", "BFFOLD_LINEAR", "BFFOLD_MAX_STEPS"):
        monkeypatch.delenv(name, raising=False)
    yield
    # main() points the root handler at the captured stderr of the test.
    logging.basicConfig(force=True)


def test_program_and_input_from_stdin():
    code, out = run_cli([], b",.,.!ok")
    assert code == EXIT_OK
    assert out == b"ok"

def test_program_from_file(tmp_path):
    program = tmp_path / "echo.b"
    program.write_text(",[.,]")
    code, out = run_cli([str(program), "--eof-value", "0"], b"abc")
    assert code == EXIT_OK
    assert out == b"abc"

def test_eof_value_flag(tmp_path):
    program = tmp_path / "eof.b"
    program.write_text(",+.")
    code, out = run_cli([str(program), "--eof-value", "0"])
    assert out == bytes([1])

def test_unbalanced_close_exits_nonzero_without_output():
    code, out = run_cli([], b".]")
    assert code == EXIT_COMPILE_ERROR
    assert out == b""

def test_unbalanced_open_exits_nonzero():
    code, out = run_cli([], b"[.")
    assert code == EXIT_COMPILE_ERROR
    assert out == b""

def test_degenerate_loop_is_not_an_error():
    code, out = run_cli([], b"[+>+<]+.")
    assert code == EXIT_OK
    assert out == bytes([1])

def test_tape_underflow_exits_with_runtime_error():
    code, _ = run_cli([], b"<+")
    assert code == EXIT_RUNTIME_ERROR

def test_step_limit_flag():
    code, _ = run_cli(["--max-steps", "100"], b"+[]")
    assert code == EXIT_RUNTIME_ERROR

def test_naive_mode():
    code, out = run_cli(["--naive"], b"+++[->++<]>.")
    assert code == EXIT_OK
    assert out == bytes([6])

def test_no_linear_flag():
    code, out = run_cli(["--no-linear"], b"+++[->++<]>.")
    assert code == EXIT_OK
    assert out == bytes([6])

def test_missing_file():
    code, _ = run_cli(["/nonexistent/program.b"])
    assert code == EXIT_USAGE_ERROR

def test_bad_memory_size_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        run_cli(["-m", "12Q"], b"+")
    assert excinfo.value.code == 2

def test_bad_environment_is_usage_error(monkeypatch):
    monkeypatch.setenv("BFFOLD_MAX_STEPS", "lots")
    code, _ = run_cli([], b"+")
    assert code == EXIT_USAGE_ERROR

def test_environment_step_limit(monkeypatch):
    monkeypatch.setenv("BFFOLD_MAX_STEPS", "10")
    code, _ = run_cli([], b"+[]")
    assert code == EXIT_RUNTIME_ERROR

def test_dump_text():
    code, out = run_cli(["--dump", "text"], b"++[->+<]")
    assert code == EXIT_OK
    lines = out.decode().splitlines()
    assert len(lines) == 4
    assert "linear=1" in lines[1]

def test_dump_json():
    code, out = run_cli(["--dump", "json"], b"+[-].")
    listing = json.loads(out)
    assert [entry["kind"] for entry in listing["instructions"]] == [
        "run", "loop_open", "run", "loop_close", "write"
    ]
    assert listing["linear_loops"] == [1]

def test_dump_yaml():
    code, out = run_cli(["--dump", "yaml"], b"[+>+<]")
    listing = yaml.safe_load(out)
    assert listing["diagnostics"][0]["control_delta"] == 1

def test_dump_does_not_run_program():
    code, out = run_cli(["--dump", "text"], b",.")
    assert code == EXIT_OK
    assert len(out.decode().splitlines()) == 2

def test_time_flag_reports_on_stderr(capsys):
    code, out = run_cli(["--time"], b"+.")
    assert code == EXIT_OK
    assert out == bytes([1])
    assert "Executed in" in capsys.readouterr().err

def test_large_memory_size_runs_without_preallocating():
    code, out = run_cli(["-m", "1G"], b"+.")
    assert code == EXIT_OK
    assert out == bytes([1])
