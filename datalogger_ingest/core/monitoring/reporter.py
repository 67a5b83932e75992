"""Reporte de diagnóstico de cada mensaje despachado.

Renderiza los DispatchOutcome en el log, con suficiente detalle (topic,
payload crudo, causa) para depurar un mensaje malformado sin reproducirlo.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..domain.outcomes import (
    DataHandled,
    DecodeFailed,
    DispatchOutcome,
    MetadataHandled,
    Unclassified,
)
from ...infrastructure.persistence.csv_log_writer import format_timestamp

REPORT_LOGGER = "datalogger_ingest.report"


class DiagnosticReporter:
    """Escribe un bloque de diagnóstico por outcome."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logging.getLogger(REPORT_LOGGER)

    def report(self, outcome: DispatchOutcome) -> None:
        if isinstance(outcome, DataHandled):
            self._report_data(outcome)
        elif isinstance(outcome, MetadataHandled):
            self._report_metadata(outcome)
        elif isinstance(outcome, DecodeFailed):
            self._report_decode_failed(outcome)
        elif isinstance(outcome, Unclassified):
            self._report_unclassified(outcome)
        else:
            self._log.warning("[REPORT] Unexpected outcome type: %r", outcome)

    def _report_data(self, outcome: DataHandled) -> None:
        row = outcome.row
        self._log.info("--- NEW RECORD PARSED ---")
        self._log.info("+ Topic Data: %s", outcome.identity)
        self._log.info("+ JSON Data Parsed Successfully:")
        self._log.info("  > RecordNo: %d", row.record_no)
        self._log.info(
            "  > Timestamp: %s", format_timestamp(row.timestamp)
        )
        for name, value in zip(outcome.field_names, row.values):
            self._log.info("  > %s: %s", name, value)

        if outcome.write_error:
            self._log.error("+ %s", outcome.write_error)
        else:
            self._log.info("+ Data successfully written to '%s'", outcome.table_path)

    def _report_metadata(self, outcome: MetadataHandled) -> None:
        self._log.info("--- NEW RECORD PARSED ---")
        self._log.info("+ Topic Data: %s", outcome.identity)
        self._log.info("+ JSON Metadata Parsed Successfully:")
        for name, first in outcome.definitions.items():
            self._log.info("  > Field: %s (Type: %s)", name, first)

    def _report_decode_failed(self, outcome: DecodeFailed) -> None:
        self._log.info("--- NEW RECORD PARSED ---")
        self._log.info("+ Topic Data: %s", outcome.identity)
        self._log.error("+ %s", outcome.cause)
        self._log.error("+ Raw Payload: %s", outcome.raw_payload)

    def _report_unclassified(self, outcome: Unclassified) -> None:
        self._log.warning("--- Unknown Message Received ---")
        self._log.warning("+ Topic:   %s", outcome.topic)
        self._log.warning("+ Payload: %s", outcome.raw_payload)
