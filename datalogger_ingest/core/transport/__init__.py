"""Transport layer - Recepción de mensajes MQTT."""

from .mqtt_client import MQTTClient
from .message_handler import MessageHandler

__all__ = ["MQTTClient", "MessageHandler"]
