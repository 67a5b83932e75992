from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en el directorio de trabajo, igual que el despliegue del suscriptor.
    return str(Path.cwd() / ".env")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    mqtt_broker_host: str
    mqtt_broker_port: int
    mqtt_transport: str
    mqtt_ws_path: str
    mqtt_use_tls: bool
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_topic: str
    mqtt_qos: int
    mqtt_client_id: str

    output_folder: str
    output_file: str

    log_level: str
    stats_log_every: int

    @property
    def output_path(self) -> Path:
        return Path(self.output_folder) / self.output_file


def get_settings(env_file: Optional[str] = None) -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = env_file or os.getenv("DATALOGGER_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    mqtt_broker_host = os.getenv("MQTT_BROKER_HOST", "localhost")
    mqtt_broker_port = int(os.getenv("MQTT_BROKER_PORT", "1883"))

    # HiveMQ Cloud expone MQTT sobre WebSocket en 8884 (wss) con path /mqtt.
    # Valores: tcp | websockets
    mqtt_transport = os.getenv("MQTT_TRANSPORT", "tcp").strip().lower()
    mqtt_ws_path = os.getenv("MQTT_WS_PATH", "/mqtt")
    mqtt_use_tls = _env_bool("MQTT_USE_TLS")

    mqtt_username = os.getenv("MQTT_USERNAME") or None
    mqtt_password = os.getenv("MQTT_PASSWORD") or None

    mqtt_topic = os.getenv("MQTT_TOPIC", "#")
    mqtt_qos = int(os.getenv("MQTT_QOS", "1"))
    mqtt_client_id = os.getenv("MQTT_CLIENT_ID", "datalogger-subscriber")

    output_folder = os.getenv("DATALOG_OUTPUT_FOLDER", "Datalog")
    output_file = os.getenv("DATALOG_OUTPUT_FILE", "datalog.csv")

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    stats_log_every = int(os.getenv("STATS_LOG_EVERY", "100"))

    return Settings(
        mqtt_broker_host=mqtt_broker_host,
        mqtt_broker_port=mqtt_broker_port,
        mqtt_transport=mqtt_transport,
        mqtt_ws_path=mqtt_ws_path,
        mqtt_use_tls=mqtt_use_tls,
        mqtt_username=mqtt_username,
        mqtt_password=mqtt_password,
        mqtt_topic=mqtt_topic,
        mqtt_qos=mqtt_qos,
        mqtt_client_id=mqtt_client_id,
        output_folder=output_folder,
        output_file=output_file,
        log_level=log_level,
        stats_log_every=stats_log_every,
    )
