"""Clasificador de topics de dataloggers Campbell.

Formas reconocidas (en este orden de prioridad):
- cs/v1/data/{model}/{serial}/{table}     → RecordKind.DATA
- cs/v1/metadata/{model}/{serial}/{table} → RecordKind.METADATA

Cualquier otro topic (statusInfo, watchdogEvent, segmentos de más o de
menos, ...) es RecordKind.UNKNOWN. No es un error: el mensaje se reporta
tal cual y no se decodifica.
"""

from __future__ import annotations

import re
from typing import Pattern, Tuple

from ..domain.topic import RecordKind, TopicIdentity


DATA_TOPIC_PATTERN = r"^cs/v1/data/([^/]+)/([^/]+)/([^/]+)$"
METADATA_TOPIC_PATTERN = r"^cs/v1/metadata/([^/]+)/([^/]+)/([^/]+)$"


class TopicClassifier:
    """Convierte un topic en TopicIdentity. Función pura, nunca lanza."""

    def __init__(self):
        self._shapes: Tuple[Tuple[RecordKind, Pattern[str]], ...] = (
            (RecordKind.DATA, re.compile(DATA_TOPIC_PATTERN)),
            (RecordKind.METADATA, re.compile(METADATA_TOPIC_PATTERN)),
        )

    def classify(self, topic: str) -> TopicIdentity:
        if not isinstance(topic, str):
            return TopicIdentity.unknown()

        for kind, pattern in self._shapes:
            match = pattern.fullmatch(topic)
            if match:
                model, serial, table = match.groups()
                return TopicIdentity(
                    model=model,
                    serial=serial,
                    table=table,
                    kind=kind,
                )

        return TopicIdentity.unknown()


_default_classifier = TopicClassifier()


def classify(topic: str) -> TopicIdentity:
    """Clasifica un topic con el clasificador por defecto."""
    return _default_classifier.classify(topic)
