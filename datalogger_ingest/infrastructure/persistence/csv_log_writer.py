"""Log tabular en CSV para registros de datos del datalogger.

Formato:
    record_no,timestamp,<campo1>,<campo2>,...
    1,2024-01-01 01:00:00,12.5,4.5

- El header se escribe una sola vez, cuando el archivo no existe.
- El header usa el esquema del payload que crea el archivo. Si el esquema
  cambia a mitad de ejecución, las filas nuevas no coinciden con el header.
- Valores y campos se emparejan hasta el más corto; el resto se descarta.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Sequence, Union

from ...core.domain.outcomes import LogRow

logger = logging.getLogger(__name__)


PathLike = Union[str, "os.PathLike[str]"]


def format_timestamp(ts: datetime) -> str:
    """YYYY-MM-DD HH:MM:SS con año de 4 dígitos siempre."""
    # %Y no rellena con ceros años < 1000 en glibc
    return f"{ts.year:04d}-{ts:%m-%d %H:%M:%S}"


class LogWriteError(OSError):
    """No se pudo crear o escribir el archivo de log."""

    def __init__(self, path: PathLike, cause: Exception):
        super().__init__(f"CSV Write Error: {cause} (path={path})")
        self.path = str(path)
        self.cause = cause


def format_row(field_names: Sequence[str], row: LogRow) -> str:
    """Línea de datos sin terminador."""
    values = [str(value) for _, value in zip(field_names, row.values)]
    return ",".join(
        [str(row.record_no), format_timestamp(row.timestamp), *values]
    )


def format_header(field_names: Sequence[str]) -> str:
    return ",".join(["record_no", "timestamp", *field_names])


class TabularLogWriter:
    """Escritor append-only del log CSV.

    Thread-safe: el check de existencia + header + append se hacen bajo
    el mismo lock, así dos mensajes concurrentes no duplican el header.
    """

    def __init__(self, default_path: PathLike = Path("Datalog") / "datalog.csv"):
        self._default_path = Path(default_path)
        self._lock = threading.Lock()

        # Métricas
        self._rows_written = 0
        self._write_errors = 0

    @property
    def default_path(self) -> Path:
        return self._default_path

    def append(
        self,
        table_path: PathLike,
        field_names: Sequence[str],
        row: LogRow,
    ) -> None:
        """Agrega una fila al log, creando carpeta y header si hace falta.

        Raises:
            LogWriteError: permisos, disco lleno, path inválido, ...
        """
        path = Path(table_path)

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)

                lines = []
                if not path.exists():
                    lines.append(format_header(field_names) + os.linesep)
                    logger.info("[CSV] Creating %s", path)
                lines.append(format_row(field_names, row) + os.linesep)

                # newline="" evita traducir os.linesep dos veces en Windows
                with open(path, "a", encoding="utf-8", newline="") as fh:
                    fh.write("".join(lines))

            except OSError as e:
                self._write_errors += 1
                raise LogWriteError(path, e) from e

            self._rows_written += 1

        logger.debug("[CSV] Appended record_no=%d to %s", row.record_no, path)

    @property
    def stats(self) -> dict:
        return {
            "default_path": str(self._default_path),
            "rows_written": self._rows_written,
            "write_errors": self._write_errors,
        }
