#!/usr/bin/env python3
"""
Command-line entry point for the bffold interpreter.

Without a FILE argument the program is read from stdin up to the first `!`;
the rest of stdin is the program's input. With a FILE argument the whole file
is the program and stdin is its input.
"""

import argparse
import sys
import time
from typing import List, Optional

import structlog

from .compiler import compile_program
from .config import InterpreterConfig, parse_memory_size
from .engine import execute, run_naive
from .errors import CompileError, ConfigError, ExecutionError
from .listing import LISTING_FORMATS, export_listing
from .logging_config import LOG_LEVELS, configure_logging
from .tokenizer import read_program

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_COMPILE_ERROR = 1
EXIT_USAGE_ERROR = 2
EXIT_RUNTIME_ERROR = 3
EXIT_INTERRUPTED = 130


def build_parser(defaults: InterpreterConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bffold",
        description="Optimizing interpreter with run folding and linear loop evaluation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "file",
        nargs="?",
        help="Program file to interpret. Leave empty to read 'program!input' from stdin",
    )
    parser.add_argument(
        "-m", "--memory-size",
        default=str(defaults.memory_size),
        help="Initial tape size in cells, not bytes. Accepts suffixes B, k, M, G. "
        "The tape grows on demand",
    )
    parser.add_argument(
        "--eof-value",
        type=int,
        default=defaults.eof_value,
        help="Value stored by ',' once input is exhausted",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=defaults.max_steps,
        help="Abort after this many executed steps",
    )
    parser.add_argument(
        "--no-linear",
        dest="linear",
        action="store_false",
        default=defaults.linear,
        help="Disable closed-form evaluation of linear loops",
    )
    parser.add_argument(
        "--naive",
        action="store_true",
        help="Interpret symbol by symbol without any compilation",
    )
    parser.add_argument(
        "--dump",
        choices=LISTING_FORMATS,
        help="Print the compiled instruction listing instead of running",
    )
    parser.add_argument(
        "--time",
        action="store_true",
        help="Report the execution time on stderr",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging level",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default="console",
        help="Log renderer",
    )
    return parser


def load_source(path: str) -> str:
    with open(path, "rb") as f:
        return f.read().decode("latin-1")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, compile and run the program.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        defaults = InterpreterConfig.from_env()
    except ConfigError as e:
        print(f"bffold: {e}", file=sys.stderr)
        return EXIT_USAGE_ERROR

    parser = build_parser(defaults)
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    try:
        config = InterpreterConfig(
            memory_size=parse_memory_size(args.memory_size),
            eof_value=args.eof_value,
            linear=args.linear,
            max_steps=args.max_steps,
        )
    except ConfigError as e:
        parser.error(str(e))

    stdin = sys.stdin.buffer
    stdout = sys.stdout.buffer

    try:
        if args.file:
            source = load_source(args.file)
        else:
            source = read_program(stdin)
    except OSError as e:
        logger.error("Could not read program", file=args.file, error=str(e))
        return EXIT_USAGE_ERROR

    start = time.perf_counter()
    try:
        if args.naive:
            run_naive(source, stdin, output=stdout, config=config)
        else:
            program = compile_program(source, linear=config.linear)
            if args.dump:
                export_listing(program, args.dump, sys.stdout)
                return EXIT_OK
            execute(program, stdin, output=stdout, config=config)
    except CompileError as e:
        logger.error("Compilation failed", error=str(e))
        return EXIT_COMPILE_ERROR
    except ExecutionError as e:
        logger.error("Execution aborted", error=str(e))
        return EXIT_RUNTIME_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED

    if args.time:
        elapsed = time.perf_counter() - start
        print(f"\nExecuted in {elapsed:.6f}s", file=sys.stderr)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
