"""Domain layer - Modelos y contratos."""

from .topic import RecordKind, TopicIdentity
from .payloads import DataBatch, FieldDef, MetadataSet, Sample
from .outcomes import (
    DataHandled,
    DecodeFailed,
    DispatchOutcome,
    LogRow,
    MetadataHandled,
    Unclassified,
)

__all__ = [
    "RecordKind",
    "TopicIdentity",
    "DataBatch",
    "FieldDef",
    "MetadataSet",
    "Sample",
    "DataHandled",
    "DecodeFailed",
    "DispatchOutcome",
    "LogRow",
    "MetadataHandled",
    "Unclassified",
]
