"""Despachador de registros clasificados.

Pipeline por mensaje:
1. UNKNOWN  → Unclassified (sin decodificar, sin contador)
2. DATA     → contador++ → decode → LogRow → CSV → DataHandled
3. METADATA → decode → MetadataHandled (no se persiste)

Los errores de decode y de escritura se convierten en outcomes;
dispatch() no lanza por payloads inválidos ni por fallos de disco.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

from ..domain.outcomes import (
    DataHandled,
    DecodeFailed,
    DispatchOutcome,
    LogRow,
    MetadataHandled,
    Unclassified,
)
from ..domain.payloads import DataBatch
from ..domain.topic import RecordKind, TopicIdentity
from ..validation.payload_decoder import DecodeError, PayloadDecoder, payload_text
from ...infrastructure.persistence.csv_log_writer import LogWriteError, TabularLogWriter
from .counter import RecordCounter

logger = logging.getLogger(__name__)


def to_local_time(ts: datetime) -> datetime:
    """Convierte a hora local. Timestamps sin offset se asumen UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone()


def build_log_row(batch: DataBatch, record_no: int) -> Tuple[Tuple[str, ...], LogRow]:
    """Arma (field_names, LogRow) a partir del primer registro del batch.

    Campos y valores se emparejan hasta el más corto de los dos.
    Los registros después del primero se ignoran.
    """
    sample = batch.first_sample
    names = batch.field_names
    count = min(len(names), len(sample.vals))

    row = LogRow(
        record_no=record_no,
        timestamp=to_local_time(sample.time),
        values=tuple(sample.vals[:count]),
    )
    return tuple(names[:count]), row


class RecordDispatcher:
    """Enruta cada mensaje clasificado a su handler según RecordKind."""

    def __init__(
        self,
        writer: TabularLogWriter,
        counter: Optional[RecordCounter] = None,
        decoder: Optional[PayloadDecoder] = None,
        table_path: Optional[Union[str, Path]] = None,
    ):
        self._writer = writer
        self._counter = counter or RecordCounter()
        self._decoder = decoder or PayloadDecoder()
        self._table_path = Path(table_path) if table_path else writer.default_path

        # Serializa contador + append para que record_no siga el orden del CSV
        self._data_lock = threading.Lock()

    @property
    def counter(self) -> RecordCounter:
        return self._counter

    @property
    def table_path(self) -> Path:
        return self._table_path

    def dispatch(
        self,
        identity: TopicIdentity,
        payload: Union[bytes, str],
        topic: str = "",
    ) -> DispatchOutcome:
        """Procesa un mensaje ya clasificado.

        Args:
            identity: Resultado de classify(topic)
            payload: Bytes crudos del mensaje
            topic: Topic original (solo para diagnóstico de Unclassified)

        Returns:
            Unclassified | DataHandled | MetadataHandled | DecodeFailed
        """
        kind = identity.kind

        if kind is RecordKind.UNKNOWN:
            return Unclassified(topic=topic, raw_payload=payload_text(payload))
        if kind is RecordKind.DATA:
            return self._handle_data(identity, payload)
        if kind is RecordKind.METADATA:
            return self._handle_metadata(identity, payload)

        raise ValueError(f"Unhandled record kind: {kind!r}")

    def _handle_data(self, identity: TopicIdentity, payload) -> DispatchOutcome:
        with self._data_lock:
            record_no = self._counter.increment()

            try:
                batch = self._decoder.decode(RecordKind.DATA, payload)
            except DecodeError as e:
                logger.debug(
                    "[DISPATCH] Data decode failed record_no=%d: %s", record_no, e.cause
                )
                return DecodeFailed(
                    identity=identity, cause=str(e), raw_payload=e.raw_payload
                )

            try:
                field_names, row = build_log_row(batch, record_no)
            except (OverflowError, ValueError) as e:
                # Timestamp fuera de rango al convertirlo a hora local
                error = DecodeError(
                    payload_text(payload), f"data.0.time: {e}", RecordKind.DATA
                )
                logger.debug(
                    "[DISPATCH] Data timestamp out of range record_no=%d: %s",
                    record_no,
                    e,
                )
                return DecodeFailed(
                    identity=identity, cause=str(error), raw_payload=error.raw_payload
                )

            write_error = None
            try:
                self._writer.append(self._table_path, field_names, row)
            except LogWriteError as e:
                logger.debug("[DISPATCH] %s", e)
                write_error = str(e)

        return DataHandled(
            identity=identity,
            field_names=field_names,
            row=row,
            table_path=str(self._table_path),
            write_error=write_error,
        )

    def _handle_metadata(self, identity: TopicIdentity, payload) -> DispatchOutcome:
        try:
            metadata = self._decoder.decode(RecordKind.METADATA, payload)
        except DecodeError as e:
            return DecodeFailed(identity=identity, cause=str(e), raw_payload=e.raw_payload)

        return MetadataHandled(
            identity=identity,
            definitions=metadata.first_definitions(),
            keys=tuple(metadata.keys),
        )
