# src/otk/contracts/errors.py
"""Exception hierarchy for otk.

Error kinds and where they are handled:

- CodecError: wire bytes do not parse as the requested shape. Fatal in
  binary mode, quarantined per line in streaming mode.
- EncodingError: a streaming line is not valid base64. Always recovered
  per line.
- ConfigurationError: bad shape name, trace id, key=value pair or settings.
  Rejected before any input is read.
- ReporterError: the emission collaborator could not be set up.

I/O failures are not wrapped: the builtin OSError propagates and is fatal
in every mode.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from otk.contracts.shapes import Shape


class OtkError(Exception):
    """Base class for all otk errors."""


class CodecError(OtkError):
    """Raised when a payload cannot be decoded as the requested shape.

    Attributes:
        shape: The shape the payload was decoded as
        detail: Error text reported by the protobuf runtime, verbatim
    """

    def __init__(self, shape: Shape, detail: str) -> None:
        self.shape = shape
        self.detail = detail
        super().__init__(f"failed to decode {shape.value}: {detail}")


class EncodingError(OtkError):
    """Raised when a streaming line is not valid base64.

    Attributes:
        detail: Error text reported by the base64 decoder
    """

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"invalid base64 input: {detail}")


class ConfigurationError(OtkError):
    """Raised for invalid user input detected before any I/O."""


class ReporterError(OtkError):
    """Raised when a reporter fails during setup.

    Raised from init() and exporter construction only. Export failures
    during a run are handled and logged by the OpenTelemetry SDK.

    Attributes:
        reporter: Name of the reporter that failed
        message: Human-readable error description
    """

    def __init__(self, reporter: str, message: str) -> None:
        self.reporter = reporter
        self.message = message
        super().__init__(f"Reporter '{reporter}' failed: {message}")
