"""
History Store

Append-only, human readable log of persisted fixes. Each fix becomes one
banner-delimited block of tagged lines; the CSV exporter reads the same
labels back.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union
import os
import threading
from loguru import logger

from ..location.base import Fix
from .errors import PersistenceError


BANNER = "=" * 40

LABEL_DATETIME = "Fecha y Hora:"
LABEL_LATITUDE = "Latitud:"
LABEL_LONGITUDE = "Longitud:"
LABEL_PROVIDER = "Proveedor:"
LABEL_ACCURACY = "Precisión:"
LABEL_MOCK = "Ubicación Simulada:"

ACCURACY_SUFFIX = " metros"
MOCK_YES = "Sí"
MOCK_NO = "No"

EMPTY_HISTORY_MESSAGE = "No hay historial de ubicaciones guardado"


def format_record(fix: Fix, written_at: Optional[datetime] = None) -> str:
    """
    Render one history block for a fix.

    Args:
        fix: Fix to render
        written_at: Time stamped in the block header (defaults to now)

    Returns:
        Complete block, terminated by a blank line
    """
    written_at = written_at or datetime.now()
    lines = [
        BANNER,
        f"Registro de Ubicación - {written_at.strftime('%Y-%m-%d %H:%M:%S')}",
        BANNER,
        f"{LABEL_DATETIME} {fix.formatted_datetime()}",
        f"{LABEL_LATITUDE} {fix.latitude}",
        f"{LABEL_LONGITUDE} {fix.longitude}",
        f"{LABEL_PROVIDER} {fix.provider_label}",
        f"{LABEL_ACCURACY} {fix.accuracy:.1f}{ACCURACY_SUFFIX}",
        f"{LABEL_MOCK} {MOCK_YES if fix.is_mock else MOCK_NO}",
        BANNER,
        "",
    ]
    return "\n".join(lines) + "\n"


class HistoryStore:
    """
    Owns the location history log file.

    The file is created on first append and is never rotated or truncated,
    except to roll back a write that failed partway.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def exists(self) -> bool:
        return self._path.exists()

    def append(self, fix: Fix) -> None:
        """
        Append one record with a single write.

        Raises:
            PersistenceError: The record could not be written
        """
        block = format_record(fix).encode("utf-8")

        with self._lock:
            size_before = None
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._path, "ab") as f:
                    size_before = f.tell()
                    f.write(block)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                if size_before is not None:
                    self._rollback(size_before)
                logger.error(f"Error al guardar la ubicación: {e}")
                raise PersistenceError(f"Error al guardar la ubicación: {e}") from e

        logger.debug(f"Saved fix {fix.latitude:.6f}, {fix.longitude:.6f} to {self._path}")

    def _rollback(self, size: int) -> None:
        try:
            with open(self._path, "r+b") as f:
                f.truncate(size)
        except OSError as e:
            logger.warning(f"Could not roll back partial history write: {e}")

    def read_all(self) -> str:
        """
        Return the whole log, or a placeholder message if it does not exist.

        Raises:
            PersistenceError: The log exists but could not be read
        """
        if not self._path.exists():
            return EMPTY_HISTORY_MESSAGE
        try:
            return self._path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Error al leer el historial: {e}")
            raise PersistenceError(f"Error al leer el historial: {e}") from e
