"""Modelos de payload JSON publicados por los dataloggers.

Dos formas:
- Data:     {"head": {"fields": [...]}, "data": [{"time": ..., "vals": [...]}]}
- Metadata: {"fields": {"key": [...], "definitions": {"BattV": ["Volts"], ...}}}

Las claves llegan en snake_case desde el firmware, pero no siempre con el
mismo casing. FoldedModel las normaliza antes de validar: "Set_Table",
"settable" y "SETTABLE" caen todas en el campo `settable`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def fold_key(key: str) -> str:
    """Clave sin separadores y en minúsculas."""
    return key.replace("_", "").replace("-", "").lower()


class FoldedModel(BaseModel):
    """BaseModel que acepta claves case/separator-insensitive."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _fold_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        folded = {fold_key(name): name for name in cls.model_fields}
        result: Dict[str, Any] = {}
        for key, value in data.items():
            if not isinstance(key, str):
                continue
            target = folded.get(fold_key(key))
            if target is None:
                continue
            # La primera clave gana si el payload trae duplicados plegados
            result.setdefault(target, value)
        return result


class FieldDef(FoldedModel):
    """Columna de una tabla del datalogger."""

    name: str = ""
    type: Optional[str] = None
    process: Optional[str] = None
    settable: bool = False


class Sample(FoldedModel):
    """Un registro con timestamp y valores en orden de columnas."""

    time: datetime
    vals: List[float]

    @field_validator("vals", mode="before")
    @classmethod
    def validate_vals(cls, v):
        if not isinstance(v, list):
            raise ValueError("vals must be a list")
        for i, item in enumerate(v):
            # JSON numbers only: "12.5" o true no son valores válidos
            if isinstance(item, bool) or not isinstance(item, (int, float)):
                raise ValueError(f"vals[{i}] is not numeric: {item!r}")
        return v


class DataHead(FoldedModel):
    transaction: Optional[int] = None
    signature: Optional[int] = None
    fields: List[FieldDef]


class DataBatch(FoldedModel):
    """Payload de un topic cs/v1/data/..."""

    head: DataHead
    data: List[Sample]

    @field_validator("data")
    @classmethod
    def validate_not_empty(cls, v):
        if not v:
            raise ValueError("data contains no samples")
        return v

    @property
    def fields(self) -> List[FieldDef]:
        return self.head.fields

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.head.fields]

    @property
    def samples(self) -> List[Sample]:
        return self.data

    @property
    def first_sample(self) -> Sample:
        """Solo se consume el primer registro de cada mensaje."""
        return self.data[0]


class MetadataFields(FoldedModel):
    key: List[str] = Field(default_factory=list)
    definitions: Dict[str, List[Any]]


class MetadataSet(FoldedModel):
    """Payload de un topic cs/v1/metadata/..."""

    fields: MetadataFields

    @property
    def keys(self) -> List[str]:
        return self.fields.key

    @property
    def definitions(self) -> Dict[str, List[Any]]:
        return self.fields.definitions

    def first_definitions(self) -> Dict[str, Any]:
        """Primer valor de definición por campo (None si la lista está vacía)."""
        return {
            name: (values[0] if values else None)
            for name, values in self.fields.definitions.items()
        }
