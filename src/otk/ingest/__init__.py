"""Reading payloads from files or stdin and decoding them record by record."""

from otk.ingest.pipeline import StreamingDecoder, decode_base64, decode_binary
from otk.ingest.quarantine import QuarantineWriter
from otk.ingest.sources import STDIN_TOKEN, iter_lines, open_source, read_payload

__all__ = [
    "STDIN_TOKEN",
    "QuarantineWriter",
    "StreamingDecoder",
    "decode_base64",
    "decode_binary",
    "iter_lines",
    "open_source",
    "read_payload",
]
