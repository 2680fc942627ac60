"""
Storage Module

This module provides the append-only location history log and its CSV
export.

Example usage:
    from fixtrack.storage import HistoryStore, CsvExporter

    store = HistoryStore("data/location_history.txt")
    store.append(fix)
    print(store.read_all())

    path = CsvExporter(store, "data/exports").export()
"""

from .errors import StorageError, PersistenceError, ExportError
from .history import HistoryStore, format_record, EMPTY_HISTORY_MESSAGE
from .export import CsvExporter, parse_history, render_csv, CSV_HEADER

__all__ = [
    # Errors
    'StorageError',
    'PersistenceError',
    'ExportError',

    # History
    'HistoryStore',
    'format_record',
    'EMPTY_HISTORY_MESSAGE',

    # Export
    'CsvExporter',
    'parse_history',
    'render_csv',
    'CSV_HEADER',
]
