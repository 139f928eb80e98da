# tests/ingest/test_quarantine.py
"""Tests for quarantine file naming and writing."""

import random
import re
from pathlib import Path

from otk.ingest.quarantine import SUFFIX_LENGTH, QuarantineWriter, random_suffix

NAME_PATTERN = re.compile(r"otk\.[A-Za-z0-9]{7}\.bin")


class TestRandomSuffix:
    def test_length_and_alphabet(self) -> None:
        for _ in range(50):
            suffix = random_suffix()
            assert len(suffix) == SUFFIX_LENGTH
            assert suffix.isascii()
            assert suffix.isalnum()

    def test_seeded_rng_is_reproducible(self) -> None:
        assert random_suffix(rng=random.Random(7)) == random_suffix(rng=random.Random(7))


class TestQuarantineWriter:
    def test_writes_payload_with_expected_name(self, tmp_path: Path) -> None:
        writer = QuarantineWriter(directory=tmp_path)

        path = writer.write(b"\x0a\xff")

        assert path.parent == tmp_path
        assert NAME_PATTERN.fullmatch(path.name)
        assert path.read_bytes() == b"\x0a\xff"

    def test_default_directory_is_cwd(self, isolated_cwd: Path) -> None:
        path = QuarantineWriter().write(b"x")

        assert (isolated_cwd / path).read_bytes() == b"x"

    def test_custom_prefix(self, tmp_path: Path) -> None:
        path = QuarantineWriter(prefix="capture", directory=tmp_path).write(b"")

        assert path.name.startswith("capture.")
        assert path.name.endswith(".bin")

    def test_successive_writes_use_distinct_files(self, tmp_path: Path) -> None:
        writer = QuarantineWriter(directory=tmp_path)

        paths = {writer.write(b"payload") for _ in range(20)}

        assert len(paths) == 20
        assert len(list(tmp_path.iterdir())) == 20
