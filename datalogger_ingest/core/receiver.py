"""Receptor MQTT de dataloggers - Punto de entrada principal.

Usa la arquitectura modular:
- transport/       → Cliente MQTT + handler por mensaje
- classification/  → Topic → TopicIdentity
- validation/      → Payload → DataBatch / MetadataSet
- pipeline/        → Despacho + contador de registros
- monitoring/      → Stats y reporte de diagnóstico
"""

from __future__ import annotations

import logging
from typing import Optional

from common.config import Settings, get_settings

from ..infrastructure.persistence.csv_log_writer import TabularLogWriter
from .monitoring.reporter import DiagnosticReporter
from .monitoring.stats import Stats
from .pipeline.dispatcher import RecordDispatcher
from .transport.message_handler import MessageHandler
from .transport.mqtt_client import MQTTClient

logger = logging.getLogger(__name__)


class DatalogReceiver:
    """Receptor MQTT que clasifica, decodifica y loguea mensajes de dataloggers.

    Componentes:
    - MQTTClient: Conexión y suscripción MQTT
    - MessageHandler: Clasificación + despacho + reporte
    - RecordDispatcher: Decode y contador de registros
    - TabularLogWriter: Append al CSV
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._writer: Optional[TabularLogWriter] = None
        self._handler: Optional[MessageHandler] = None
        self._mqtt: Optional[MQTTClient] = None
        self._running = False

    def build_handler(self) -> MessageHandler:
        """Arma el pipeline completo sin tocar la red."""
        settings = self._settings

        self._writer = TabularLogWriter(settings.output_path)
        dispatcher = RecordDispatcher(self._writer)
        self._handler = MessageHandler(
            dispatcher,
            DiagnosticReporter(),
            stats_log_every=settings.stats_log_every,
        )
        return self._handler

    def start(self) -> bool:
        """Inicia el receptor."""
        settings = self._settings

        try:
            # 1. Pipeline
            handler = self.build_handler()

            # 2. Cliente MQTT
            self._mqtt = MQTTClient(
                broker_host=settings.mqtt_broker_host,
                broker_port=settings.mqtt_broker_port,
                username=settings.mqtt_username,
                password=settings.mqtt_password,
                client_id=settings.mqtt_client_id,
                topic=settings.mqtt_topic,
                qos=settings.mqtt_qos,
                transport=settings.mqtt_transport,
                ws_path=settings.mqtt_ws_path,
                use_tls=settings.mqtt_use_tls,
            )
            self._mqtt.set_message_handler(handler.handle)

            # 3. Conectar MQTT
            if not self._mqtt.connect():
                logger.error("[RECEIVER] MQTT connection failed")
                return False

            self._running = True
            logger.info(
                "[RECEIVER] Started successfully (output=%s)", settings.output_path
            )
            return True

        except Exception as e:
            logger.exception("[RECEIVER] Start failed: %s", e)
            return False

    def stop(self):
        """Detiene el receptor."""
        self._running = False

        if self._mqtt:
            self._mqtt.disconnect()

        if self._handler:
            logger.info("[RECEIVER] Stopped. %s", self._handler.stats)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._mqtt.is_connected if self._mqtt else False

    @property
    def stats(self) -> dict:
        """Estadísticas del receptor."""
        handler_stats = self._handler.stats if self._handler else Stats()
        return {
            "running": self._running,
            "connected": self.is_connected,
            "broker": f"{self._settings.mqtt_broker_host}:{self._settings.mqtt_broker_port}",
            "topic": self._settings.mqtt_topic,
            "output_path": str(self._settings.output_path),
            **handler_stats.to_dict(),
        }

    def health_check(self) -> dict:
        """Health check del receptor."""
        if not self._handler:
            return {"healthy": False, "reason": "Not initialized"}

        return {
            "healthy": self._running and self.is_connected,
            "running": self._running,
            "connected": self.is_connected,
            "messages_processed": self._handler.stats.processed,
            "messages_failed": self._handler.stats.failed,
            "csv": self._writer.stats if self._writer else {},
        }


# Singleton
_receiver: Optional[DatalogReceiver] = None


def get_receiver() -> Optional[DatalogReceiver]:
    """Obtiene el receptor singleton."""
    return _receiver


def start_receiver(settings: Optional[Settings] = None) -> bool:
    """Inicia el receptor."""
    global _receiver

    if _receiver is not None:
        return _receiver.is_running

    _receiver = DatalogReceiver(settings)
    return _receiver.start()


def stop_receiver():
    """Detiene el receptor."""
    global _receiver

    if _receiver is not None:
        _receiver.stop()
        _receiver = None
