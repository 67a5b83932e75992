"""Cliente MQTT para recepción de mensajes de dataloggers."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)


MessageCallback = Callable[[str, bytes], None]


class MQTTClient:
    """Cliente MQTT ligero para recepción de mensajes.

    Responsabilidades:
    - Conexión/desconexión a broker MQTT (TCP o WebSocket, TLS opcional)
    - Suscripción al topic filter configurado
    - Delegación de (topic, payload) al handler
    """

    CONNECT_TIMEOUT_SECONDS = 5.0

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "datalogger-subscriber",
        topic: str = "#",
        qos: int = 1,
        transport: str = "tcp",
        ws_path: str = "/mqtt",
        use_tls: bool = False,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.client_id = f"{client_id}-{int(time.time())}"
        self.topic = topic
        self.qos = qos
        self.transport = transport
        self.ws_path = ws_path
        self.use_tls = use_tls

        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._message_handler: Optional[MessageCallback] = None

    def set_message_handler(self, handler: MessageCallback):
        """Configura el handler de mensajes."""
        self._message_handler = handler

    def _create_client(self) -> mqtt.Client:
        client = mqtt.Client(
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
            transport=self.transport,
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
        )

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        if self.transport == "websockets":
            client.ws_set_options(path=self.ws_path)

        if self.use_tls:
            client.tls_set()

        if self.username and self.password:
            client.username_pw_set(self.username, self.password)

        return client

    def connect(self) -> bool:
        """Conecta al broker MQTT y espera el CONNACK."""
        try:
            self._client = self._create_client()

            logger.info(
                "[MQTT] Connecting to %s:%d (transport=%s tls=%s)",
                self.broker_host,
                self.broker_port,
                self.transport,
                self.use_tls,
            )
            self._client.connect(self.broker_host, self.broker_port, keepalive=60)
            self._client.loop_start()

            # Esperar conexión
            deadline = time.monotonic() + self.CONNECT_TIMEOUT_SECONDS
            while time.monotonic() < deadline:
                if self._connected:
                    return True
                time.sleep(0.1)

            logger.error("[MQTT] Connection timeout")
            return False

        except Exception as e:
            logger.exception("[MQTT] Connection failed: %s", e)
            return False

    def disconnect(self):
        """Desconecta del broker."""
        if self._client:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        """Callback de conexión."""
        if rc == 0:
            self._connected = True
            logger.info("[MQTT] Connected to broker")
            client.subscribe(self.topic, qos=self.qos)
            logger.info("[MQTT] Subscribed to '%s'", self.topic)
        else:
            self._connected = False
            logger.error("[MQTT] Connection failed: rc=%s", rc)

    def _on_disconnect(self, client, userdata, flags, rc, properties=None):
        """Callback de desconexión."""
        self._connected = False
        logger.warning("[MQTT] Disconnected (rc=%s)", rc)

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - delega al handler."""
        if self._message_handler:
            self._message_handler(msg.topic, msg.payload)

    @property
    def is_connected(self) -> bool:
        return self._connected
