"""Persistence infrastructure - Log tabular CSV."""

from .csv_log_writer import (
    LogWriteError,
    TabularLogWriter,
    format_header,
    format_row,
    format_timestamp,
)

__all__ = [
    "LogWriteError",
    "TabularLogWriter",
    "format_header",
    "format_row",
    "format_timestamp",
]
