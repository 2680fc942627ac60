"""
CSV Exporter

Converts the text history log into a CSV document. Parsing is lenient:
records are recognised by their tagged line labels, a row is closed by the
mock-flag line, and malformed records produce short rows instead of
failing the export.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, List, Union
import csv
import io
from loguru import logger

from .errors import ExportError, PersistenceError
from .history import (
    HistoryStore,
    LABEL_DATETIME,
    LABEL_LATITUDE,
    LABEL_LONGITUDE,
    LABEL_PROVIDER,
    LABEL_ACCURACY,
    LABEL_MOCK,
    ACCURACY_SUFFIX,
    MOCK_YES,
    MOCK_NO,
)


CSV_HEADER = ['Fecha', 'Hora', 'Latitud', 'Longitud', 'Proveedor', 'Precision (m)', 'Simulado']


def _datetime_cells(value: str) -> List[str]:
    date, _, time = value.partition(" ")
    return [date, time]


def _accuracy_cells(value: str) -> List[str]:
    return [value.replace(ACCURACY_SUFFIX, "").strip()]


def _mock_cells(value: str) -> List[str]:
    return [MOCK_YES if value == MOCK_YES else MOCK_NO]


def _plain_cells(value: str) -> List[str]:
    return [value]


# Checked in order; the first matching label wins
FIELD_PARSERS = [
    (LABEL_DATETIME, _datetime_cells),
    (LABEL_LATITUDE, _plain_cells),
    (LABEL_LONGITUDE, _plain_cells),
    (LABEL_PROVIDER, _plain_cells),
    (LABEL_ACCURACY, _accuracy_cells),
    (LABEL_MOCK, _mock_cells),
]


def parse_history(text: str) -> List[List[str]]:
    """
    Extract CSV rows from history log text.

    Args:
        text: Raw log content

    Returns:
        List of rows; a trailing record without a mock-flag line is
        returned as a short row
    """
    rows: List[List[str]] = []
    row: List[str] = []

    for line in text.splitlines():
        line = line.strip()
        for label, parse in FIELD_PARSERS:
            if line.startswith(label):
                row.extend(parse(line[len(label):].strip()))
                if label == LABEL_MOCK:
                    rows.append(row)
                    row = []
                break

    if row:
        rows.append(row)

    return rows


def render_csv(text: str) -> str:
    """Build the complete CSV document for history log text"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(parse_history(text))
    return buffer.getvalue()


class CsvExporter:
    """Writes CSV snapshots of the history log"""

    def __init__(self, store: HistoryStore, export_dir: Union[str, Path]):
        self._store = store
        self._export_dir = Path(export_dir)

    @property
    def export_dir(self) -> Path:
        return self._export_dir

    def render(self, text: str) -> str:
        """Convert history log text to a CSV document"""
        return render_csv(text)

    def export(self) -> Optional[Path]:
        """
        Export the current history to a new CSV file.

        Returns:
            Path of the generated file, or None if there is no history

        Raises:
            ExportError: The history could not be read or the file written
        """
        if not self._store.exists:
            logger.info("No history to export")
            return None

        try:
            text = self._store.read_all()
        except PersistenceError as e:
            raise ExportError(str(e)) from e

        document = self.render(text)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self._export_dir / f"location_history_{timestamp}.csv"

        try:
            self._export_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8', newline='') as f:
                f.write(document)
        except OSError as e:
            logger.error(f"CSV export failed: {e}")
            raise ExportError(str(e)) from e

        logger.info(f"CSV export completed: {filepath}")
        return filepath
