# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- isolated_cwd: run a test inside tmp_path (quarantine files land there)
- clean_otk_env: strip OTK_* variables so settings come from defaults
- b64_line: base64 text line for a protobuf message

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import base64
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from google.protobuf.message import Message
from hypothesis import Phase, Verbosity, settings

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Change into tmp_path for the duration of the test."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def clean_otk_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Remove OTK_* environment variables that would leak into settings."""
    for key in list(os.environ):
        if key.startswith("OTK_"):
            monkeypatch.delenv(key)
    yield


@pytest.fixture
def b64_line() -> Callable[[Message], str]:
    """Encode a message as one base64 line (with trailing newline)."""

    def _encode(message: Message) -> str:
        return base64.b64encode(message.SerializeToString()).decode("ascii") + "\n"

    return _encode
