# src/otk/contracts/results.py
"""Per-record outcomes for the streaming pipeline.

These types answer: "What happened to this line?"

IMPORTANT:
- RecordOutcome.status uses Literal["decoded", "quarantined"], NOT an enum
- A decoded outcome always carries a message; a quarantined outcome always
  carries the error and the quarantine file path
- Use the factory methods to create instances
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from google.protobuf.message import Message

    from otk.contracts.errors import CodecError, EncodingError
    from otk.contracts.shapes import Shape


@dataclass(frozen=True)
class DecodedMessage:
    """A payload parsed as one shape.

    ``value`` is the protobuf message for concrete shapes, or the untouched
    payload bytes for ``Shape.DIRECT``.
    """

    shape: Shape
    value: Message | bytes


@dataclass(frozen=True)
class RecordOutcome:
    """Result of processing one streaming line.

    Fields:
        status: "decoded" or "quarantined"
        line_number: 1-based line number in the source
        message: The decoded message (decoded outcomes only)
        error: The per-line failure (quarantined outcomes only)
        quarantine_path: Where the offending bytes were written (quarantined only)
    """

    status: Literal["decoded", "quarantined"]
    line_number: int
    message: DecodedMessage | None = None
    error: CodecError | EncodingError | None = None
    quarantine_path: Path | None = None

    def __post_init__(self) -> None:
        if self.status == "decoded" and self.message is None:
            raise ValueError("RecordOutcome with status='decoded' MUST carry a message")
        if self.status == "quarantined" and (self.error is None or self.quarantine_path is None):
            raise ValueError("RecordOutcome with status='quarantined' MUST carry error and quarantine_path")

    @classmethod
    def decoded(cls, line_number: int, message: DecodedMessage) -> RecordOutcome:
        return cls(status="decoded", line_number=line_number, message=message)

    @classmethod
    def quarantined(
        cls,
        line_number: int,
        error: CodecError | EncodingError,
        quarantine_path: Path,
    ) -> RecordOutcome:
        return cls(
            status="quarantined",
            line_number=line_number,
            error=error,
            quarantine_path=quarantine_path,
        )

    @property
    def is_decoded(self) -> bool:
        return self.status == "decoded"


@dataclass
class StreamSummary:
    """Running totals for one streaming run."""

    decoded: int = 0
    quarantined: int = 0
    skipped: int = 0

    def record(self, outcome: RecordOutcome) -> None:
        if outcome.is_decoded:
            self.decoded += 1
        else:
            self.quarantined += 1

    def to_dict(self) -> dict[str, Any]:
        return {"decoded": self.decoded, "quarantined": self.quarantined, "skipped": self.skipped}
