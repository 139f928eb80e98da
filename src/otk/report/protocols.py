# src/otk/report/protocols.py
"""Protocol definition for reporters.

Reporters submit test telemetry to an OTLP collector. The network side
(batching, retries, timeouts) belongs to the OpenTelemetry SDK; otk only
drives the lifecycle.

Lifecycle:
    1. Construction: endpoint settings and resource attributes
    2. init(): build exporter and SDK provider (raises ReporterError)
    3. Emission: signal-specific emit()/record() calls
    4. shutdown(): flush and release the provider (idempotent)

Providers are never installed as OpenTelemetry globals, so several
reporters can coexist in one process (and in one test session).
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ReporterProtocol(Protocol):
    """Protocol for signal reporters."""

    @property
    def name(self) -> str:
        """Reporter name used in log and error messages."""
        ...

    @property
    def started(self) -> bool:
        """True between init() and shutdown()."""
        ...

    def init(self) -> None:
        """Create the exporter and provider.

        Raises:
            ReporterError: If already initialized or the exporter cannot be built
        """
        ...

    def shutdown(self) -> None:
        """Flush pending telemetry and release the provider.

        Must be idempotent - calling shutdown() multiple times should be safe.
        """
        ...
