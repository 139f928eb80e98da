# src/otk/ingest/sources.py
"""Input sources: a file path or ``-`` for standard input."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

STDIN_TOKEN = "-"


@contextmanager
def open_source(location: str) -> Iterator[BinaryIO]:
    """Open ``location`` for binary reading.

    Standard input is yielded but never closed. Errors opening a file
    propagate as OSError.
    """
    if location == STDIN_TOKEN:
        yield sys.stdin.buffer
        return
    with Path(location).expanduser().open("rb") as stream:
        yield stream


def read_payload(stream: BinaryIO) -> bytes:
    """Read the whole stream as one payload."""
    return stream.read()


def iter_lines(stream: BinaryIO) -> Iterator[tuple[int, bytes]]:
    """Yield ``(line_number, line)`` pairs as lines arrive.

    Uses readline() so each line is handed over as soon as it is complete,
    which keeps a live pipe (``tail -f ... | otk decode -b -``) flowing.
    Line numbers are 1-based.
    """
    for line_number, line in enumerate(iter(stream.readline, b""), start=1):
        yield line_number, line
