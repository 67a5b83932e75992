"""Identidad de un mensaje derivada de su topic MQTT."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


UNKNOWN_SEGMENT = "Unknown"


class RecordKind(Enum):
    """Tipo de registro según la forma del topic."""
    DATA = "Data"
    METADATA = "Metadata"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class TopicIdentity:
    """Datalogger + tabla que publicó el mensaje.

    Topics reconocidos:
    - cs/v1/data/{model}/{serial}/{table}
    - cs/v1/metadata/{model}/{serial}/{table}

    Si el topic no encaja en ninguna forma, kind=UNKNOWN y los segmentos
    quedan en el valor centinela "Unknown".
    """
    model: str = UNKNOWN_SEGMENT
    serial: str = UNKNOWN_SEGMENT
    table: str = UNKNOWN_SEGMENT
    kind: RecordKind = RecordKind.UNKNOWN

    @classmethod
    def unknown(cls) -> TopicIdentity:
        return cls()

    @property
    def is_known(self) -> bool:
        return self.kind is not RecordKind.UNKNOWN

    def __str__(self) -> str:
        return (
            f"[{self.kind.value}] Model: {self.model}, "
            f"Serial: {self.serial}, Table: {self.table}"
        )
