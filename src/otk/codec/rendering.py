# src/otk/codec/rendering.py
"""Textual rendering of decoded messages.

Protobuf messages render as JSON using the proto field names. OTLP id
fields (trace_id, span_id, parent_span_id) are shown as lowercase hex, the
form used by collectors and tracing UIs, instead of protobuf's base64.

Direct payloads render as a Python bytes literal (compact) or a hex dump
(pretty).

Rendering operates on already-validated data and never raises.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from google.protobuf.json_format import MessageToDict

from otk.contracts.results import DecodedMessage

_HEX_ID_FIELDS = frozenset({"trace_id", "span_id", "parent_span_id"})
_HEXDUMP_WIDTH = 16


def _hexify_ids(node: Any) -> Any:
    """Rewrite base64 id fields as hex, recursively."""
    if isinstance(node, dict):
        result: dict[str, Any] = {}
        for key, value in node.items():
            if key in _HEX_ID_FIELDS and isinstance(value, str):
                result[key] = base64.b64decode(value).hex()
            else:
                result[key] = _hexify_ids(value)
        return result
    if isinstance(node, list):
        return [_hexify_ids(item) for item in node]
    return node


def hexdump(payload: bytes) -> str:
    """Offset / hex / ASCII dump, 16 bytes per row."""
    if not payload:
        return "(empty)"
    rows = []
    for offset in range(0, len(payload), _HEXDUMP_WIDTH):
        chunk = payload[offset : offset + _HEXDUMP_WIDTH]
        hex_part = " ".join(f"{b:02x}" for b in chunk)
        ascii_part = "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in chunk)
        rows.append(f"{offset:08x}  {hex_part:<{_HEXDUMP_WIDTH * 3 - 1}}  |{ascii_part}|")
    return "\n".join(rows)


def message_to_dict(decoded: DecodedMessage) -> dict[str, Any]:
    """JSON-ready dict for a protobuf-backed DecodedMessage."""
    assert not isinstance(decoded.value, bytes), "Direct payloads have no dict form"
    data = MessageToDict(decoded.value, preserving_proto_field_name=True)
    hexified: dict[str, Any] = _hexify_ids(data)
    return hexified


def render(decoded: DecodedMessage, *, pretty: bool = False) -> str:
    """Render a decoded message for primary output.

    Args:
        decoded: Message to render
        pretty: Multi-line indented form if True, single line otherwise

    Returns:
        Text without a trailing newline
    """
    if isinstance(decoded.value, bytes):
        return hexdump(decoded.value) if pretty else repr(decoded.value)
    data = message_to_dict(decoded)
    if pretty:
        return json.dumps(data, indent=2)
    return json.dumps(data)
