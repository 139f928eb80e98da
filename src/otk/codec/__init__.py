"""Protobuf decoding and rendering for OTLP payloads."""

from otk.codec.dispatcher import decode, parse_shape
from otk.codec.rendering import render

__all__ = ["decode", "parse_shape", "render"]
