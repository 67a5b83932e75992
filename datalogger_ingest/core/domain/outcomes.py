"""Resultados de despacho por mensaje.

Cada mensaje produce exactamente uno de:
- Unclassified:    topic fuera de las formas conocidas
- DataHandled:     registro de datos decodificado (y escrito al CSV si se pudo)
- MetadataHandled: definiciones de campos decodificadas (no se persisten)
- DecodeFailed:    payload inválido para su tipo
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple, Union

from .topic import TopicIdentity


@dataclass(frozen=True)
class LogRow:
    """Fila del log tabular. Vive solo durante la llamada a append()."""
    record_no: int
    timestamp: datetime
    values: Tuple[float, ...]


@dataclass(frozen=True)
class Unclassified:
    topic: str
    raw_payload: str


@dataclass(frozen=True)
class DataHandled:
    identity: TopicIdentity
    field_names: Tuple[str, ...]
    row: LogRow
    table_path: Optional[str] = None
    write_error: Optional[str] = None

    @property
    def written(self) -> bool:
        return self.write_error is None


@dataclass(frozen=True)
class MetadataHandled:
    identity: TopicIdentity
    definitions: Dict[str, Any]
    keys: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DecodeFailed:
    identity: TopicIdentity
    cause: str
    raw_payload: str


DispatchOutcome = Union[Unclassified, DataHandled, MetadataHandled, DecodeFailed]
