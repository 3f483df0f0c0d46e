"""
Symbol filtering and the program/input split.

Programs and their input share one stream separated by `!`. Everything that is
not one of the eight language symbols is ignored in the program text.
"""

from typing import BinaryIO, Iterator, Tuple, Union

SYMBOLS = "+-<>[],."
SENTINEL = "!"


def iter_symbols(text: str) -> Iterator[str]:
    """Yield the language symbols of `text`, stopping at the sentinel."""
    for char in text:
        if char == SENTINEL:
            return
        if char in SYMBOLS:
            yield char


def read_program(stream: BinaryIO) -> str:
    """
    Read program text from `stream` up to the sentinel or end of stream.

    The stream is left positioned just after the sentinel so the rest of it
    can be handed to the program as input.
    """
    chunks = []
    while True:
        byte = stream.read(1)
        if not byte or byte == SENTINEL.encode("ascii"):
            break
        chunks.append(byte)
    return b"".join(chunks).decode("latin-1")


def split_program(data: Union[bytes, str]) -> Tuple[str, bytes]:
    """
    Split a combined stream into program text and runtime input.

    Args:
        data: Raw stream contents

    Returns:
        Tuple of (program text, input bytes). The input is empty when the
        stream has no sentinel.
    """
    if isinstance(data, str):
        program, sep, rest = data.partition(SENTINEL)
        return program, rest.encode("utf-8") if sep else b""
    program, sep, rest = data.partition(SENTINEL.encode("ascii"))
    return program.decode("latin-1"), rest if sep else b""
