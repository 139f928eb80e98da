# src/otk/ingest/quarantine.py
"""Quarantine files for records that failed to decode.

Each failed record is written to ``<prefix>.<suffix>.bin`` where suffix is
7 random ASCII letters/digits. Uniqueness is best-effort: an existing file
with the same name is overwritten, there is no collision check.
"""

from __future__ import annotations

import random
import string
from pathlib import Path

from otk.core.logging import get_logger

logger = get_logger(__name__)

SUFFIX_ALPHABET = string.ascii_letters + string.digits
SUFFIX_LENGTH = 7
DEFAULT_PREFIX = "otk"


def random_suffix(length: int = SUFFIX_LENGTH, rng: random.Random | None = None) -> str:
    """Random alphanumeric suffix (not cryptographically secure)."""
    chooser = rng if rng is not None else random
    return "".join(chooser.choices(SUFFIX_ALPHABET, k=length))


class QuarantineWriter:
    """Writes offending payloads to side files for later replay.

    Example:
        writer = QuarantineWriter(prefix="otk")
        path = writer.write(b"\\x0a\\xff")  # -> otk.Ab3dE9z.bin
        # replay: otk decode -n Span otk.Ab3dE9z.bin
    """

    def __init__(
        self,
        prefix: str = DEFAULT_PREFIX,
        directory: Path | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._prefix = prefix
        self._directory = directory if directory is not None else Path(".")
        self._rng = rng

    def next_path(self) -> Path:
        return self._directory / f"{self._prefix}.{random_suffix(rng=self._rng)}.bin"

    def write(self, payload: bytes) -> Path:
        """Write ``payload`` to a new quarantine file and return its path.

        Raises:
            OSError: If the file cannot be written
        """
        path = self.next_path()
        path.write_bytes(payload)
        logger.debug("Payload quarantined", path=str(path), size_bytes=len(payload))
        return path
