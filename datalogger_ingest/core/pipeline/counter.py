"""Contador de registros de datos del proceso."""

from __future__ import annotations

import threading


class RecordCounter:
    """Contador monótono de mensajes de datos.

    Se incrementa antes de decodificar, así que un payload inválido también
    consume un número: el CSV puede tener huecos en record_no.
    Se reinicia solo al reiniciar el proceso.
    """

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Incrementa y devuelve el nuevo valor."""
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"RecordCounter(value={self._value})"
