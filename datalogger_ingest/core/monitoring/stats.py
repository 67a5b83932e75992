"""Estadísticas de procesamiento."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from ..domain.outcomes import (
    DataHandled,
    DecodeFailed,
    DispatchOutcome,
    MetadataHandled,
    Unclassified,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Stats:
    """Estadísticas de procesamiento de mensajes."""

    received: int = 0
    processed: int = 0
    failed: int = 0

    data_records: int = 0
    metadata_records: int = 0
    unclassified: int = 0
    decode_errors: int = 0
    write_errors: int = 0

    last_message_at: float = 0
    started_at: datetime = field(default_factory=_utcnow)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} processed={self.processed} "
            f"failed={self.failed} data={self.data_records} "
            f"metadata={self.metadata_records} unclassified={self.unclassified}"
        )

    def record(self, outcome: DispatchOutcome) -> None:
        """Acumula un outcome de despacho."""
        if isinstance(outcome, DataHandled):
            self.data_records += 1
            if outcome.written:
                self.processed += 1
            else:
                self.write_errors += 1
                self.failed += 1
        elif isinstance(outcome, MetadataHandled):
            self.metadata_records += 1
            self.processed += 1
        elif isinstance(outcome, Unclassified):
            self.unclassified += 1
            self.processed += 1
        elif isinstance(outcome, DecodeFailed):
            self.decode_errors += 1
            self.failed += 1

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "received": self.received,
            "processed": self.processed,
            "failed": self.failed,
            "data_records": self.data_records,
            "metadata_records": self.metadata_records,
            "unclassified": self.unclassified,
            "decode_errors": self.decode_errors,
            "write_errors": self.write_errors,
            "last_message_at": self.last_message_at,
            "started_at": self.started_at.isoformat(),
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        total = self.processed + self.failed
        if total == 0:
            return 1.0
        return self.processed / total

    def reset(self):
        """Reinicia estadísticas."""
        self.received = 0
        self.processed = 0
        self.failed = 0
        self.data_records = 0
        self.metadata_records = 0
        self.unclassified = 0
        self.decode_errors = 0
        self.write_errors = 0
        self.last_message_at = 0
        self.started_at = _utcnow()
