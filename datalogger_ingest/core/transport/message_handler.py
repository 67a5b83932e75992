"""Handler de mensajes MQTT."""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..classification.topic_classifier import TopicClassifier
from ..domain.outcomes import DispatchOutcome
from ..monitoring.reporter import DiagnosticReporter
from ..monitoring.stats import Stats
from ..pipeline.dispatcher import RecordDispatcher

logger = logging.getLogger(__name__)


class MessageHandler:
    """Maneja mensajes MQTT y los procesa a través del pipeline.

    Responsabilidades:
    - Clasificación del topic
    - Delegación al dispatcher (decode + CSV)
    - Reporte de diagnóstico
    - Tracking de estadísticas

    Cada mensaje es independiente: ningún error sale de handle() hacia
    el loop de red de paho.
    """

    def __init__(
        self,
        dispatcher: RecordDispatcher,
        reporter: Optional[DiagnosticReporter] = None,
        classifier: Optional[TopicClassifier] = None,
        stats_log_every: int = 100,
    ):
        self._dispatcher = dispatcher
        self._reporter = reporter or DiagnosticReporter()
        self._classifier = classifier or TopicClassifier()
        self._stats = Stats()
        self._stats_log_every = stats_log_every

    def handle(self, topic: str, payload: bytes) -> Optional[DispatchOutcome]:
        """Procesa un mensaje MQTT."""
        self._stats.received += 1
        self._stats.last_message_at = time.time()

        try:
            # 1. Clasificar topic
            identity = self._classifier.classify(topic)

            # 2. Decodificar + persistir
            outcome = self._dispatcher.dispatch(identity, payload, topic=topic)
            self._stats.record(outcome)

            # 3. Diagnóstico
            self._reporter.report(outcome)

            # Log periódico
            if self._stats_log_every and self._stats.received % self._stats_log_every == 0:
                logger.info("[HANDLER] %s", self._stats)

            return outcome

        except Exception as e:
            logger.exception("[HANDLER] Error: %s (topic=%s)", e, topic)
            self._stats.failed += 1
            return None

    @property
    def stats(self) -> Stats:
        return self._stats
