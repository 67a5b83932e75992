"""Decodificación de payloads JSON según el tipo de topic.

El decoder es todo-o-nada: devuelve un DataBatch / MetadataSet completo
o lanza DecodeError con el payload crudo para poder loguearlo tal cual.
"""

from __future__ import annotations

from typing import Optional, Type, Union

import orjson
from pydantic import ValidationError

from ..domain.payloads import DataBatch, FoldedModel, MetadataSet
from ..domain.topic import RecordKind


DecodedPayload = Union[DataBatch, MetadataSet]


class DecodeError(Exception):
    """Payload inválido para su tipo de registro."""

    def __init__(self, raw_payload: str, cause: str, kind: Optional[RecordKind] = None):
        super().__init__(cause)
        self.raw_payload = raw_payload
        self.cause = cause
        self.kind = kind

    def __str__(self) -> str:
        label = self.kind.value if self.kind else "payload"
        return f"JSON Parse Error ({label}): {self.cause}"


def payload_text(payload: Union[bytes, bytearray, str]) -> str:
    """Payload como texto para diagnóstico (nunca lanza)."""
    if isinstance(payload, str):
        return payload
    return bytes(payload).decode("utf-8", errors="backslashreplace")


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class PayloadDecoder:
    """Convierte bytes de payload en el modelo tipado de su RecordKind."""

    MODELS: dict = {
        RecordKind.DATA: DataBatch,
        RecordKind.METADATA: MetadataSet,
    }

    def decode(self, kind: RecordKind, payload: Union[bytes, str]) -> DecodedPayload:
        """Decodifica el payload.

        Args:
            kind: Tipo del topic (DATA o METADATA)
            payload: Bytes crudos del mensaje MQTT

        Returns:
            DataBatch para DATA, MetadataSet para METADATA

        Raises:
            DecodeError: JSON inválido, estructura faltante o tipo incorrecto
            ValueError: kind=UNKNOWN (el caller debe ramificar antes)
        """
        model: Optional[Type[FoldedModel]] = self.MODELS.get(kind)
        if model is None:
            raise ValueError(f"Cannot decode payload for record kind {kind!r}")

        raw = payload_text(payload)

        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            raise DecodeError(raw, f"Invalid JSON: {e}", kind) from e

        if not isinstance(data, dict):
            raise DecodeError(
                raw, f"Expected a JSON object, got {type(data).__name__}", kind
            )

        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise DecodeError(raw, _format_validation_error(e), kind) from e


_default_decoder = PayloadDecoder()


def decode(kind: RecordKind, payload: Union[bytes, str]) -> DecodedPayload:
    """Decodifica con el decoder por defecto."""
    return _default_decoder.decode(kind, payload)
