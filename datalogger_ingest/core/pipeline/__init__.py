"""Pipeline layer - Despacho de registros."""

from .counter import RecordCounter
from .dispatcher import RecordDispatcher, build_log_row, to_local_time

__all__ = ["RecordCounter", "RecordDispatcher", "build_log_row", "to_local_time"]
