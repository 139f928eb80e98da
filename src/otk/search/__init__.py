"""Searching decoded trace batches."""

from otk.search.engine import SEARCHABLE_SHAPE, TraceQuery, contains_trace, iter_trace_ids, matches

__all__ = ["SEARCHABLE_SHAPE", "TraceQuery", "contains_trace", "iter_trace_ids", "matches"]
