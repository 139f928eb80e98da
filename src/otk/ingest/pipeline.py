# src/otk/ingest/pipeline.py
"""Ingestion pipeline: binary payloads and base64 line streams.

Binary mode decodes the whole input once and lets errors propagate.

Streaming mode turns every line into a RecordOutcome. Base64 and codec
failures are caught at the line boundary, quarantined, and returned as
"quarantined" outcomes; nothing but OSError escapes the generator.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable, Iterator

from otk.codec.dispatcher import decode
from otk.contracts.errors import CodecError, EncodingError
from otk.contracts.results import DecodedMessage, RecordOutcome, StreamSummary
from otk.contracts.shapes import Shape
from otk.core.logging import get_logger
from otk.ingest.quarantine import QuarantineWriter

logger = get_logger(__name__)


def decode_base64(text: bytes) -> bytes:
    """Strict standard-alphabet base64 decode.

    Raises:
        EncodingError: If ``text`` is not valid base64
    """
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise EncodingError(str(e)) from e


def decode_binary(shape: Shape, payload: bytes) -> DecodedMessage:
    """Decode a whole binary payload; CodecError propagates to the caller."""
    logger.debug("Decoding binary payload", shape=shape.value, size_bytes=len(payload))
    return decode(shape, payload)


class StreamingDecoder:
    """Decodes a base64 line stream with per-line fault isolation.

    Each line goes decoding -> decoded | quarantined. There is no retry
    and no state shared between lines apart from the running summary.

    Example:
        decoder = StreamingDecoder(Shape.SPAN, QuarantineWriter())
        with open_source("-") as stream:
            for outcome in decoder.outcomes(iter_lines(stream)):
                ...
    """

    def __init__(self, shape: Shape, quarantine: QuarantineWriter) -> None:
        self._shape = shape
        self._quarantine = quarantine
        self.summary = StreamSummary()

    @property
    def shape(self) -> Shape:
        return self._shape

    def process_line(self, line_number: int, line: bytes) -> RecordOutcome | None:
        """Decode one line.

        Returns:
            The line's outcome, or None for a blank line

        Raises:
            OSError: If a quarantine file cannot be written
        """
        text = line.strip()
        if not text:
            self.summary.skipped += 1
            return None

        try:
            raw = decode_base64(text)
        except EncodingError as e:
            outcome = self._quarantine_record(line_number, e, text)
        else:
            try:
                message = decode(self._shape, raw)
            except CodecError as e:
                outcome = self._quarantine_record(line_number, e, raw)
            else:
                outcome = RecordOutcome.decoded(line_number, message)

        self.summary.record(outcome)
        return outcome

    def outcomes(self, lines: Iterable[tuple[int, bytes]]) -> Iterator[RecordOutcome]:
        """Yield one outcome per non-blank line, in input order."""
        for line_number, line in lines:
            outcome = self.process_line(line_number, line)
            if outcome is not None:
                yield outcome
        logger.info("Stream finished", shape=self._shape.value, **self.summary.to_dict())

    def _quarantine_record(
        self,
        line_number: int,
        error: CodecError | EncodingError,
        payload: bytes,
    ) -> RecordOutcome:
        path = self._quarantine.write(payload)
        logger.warning(
            "Record quarantined",
            line=line_number,
            error_type=type(error).__name__,
            path=str(path),
        )
        return RecordOutcome.quarantined(line_number, error, path)
