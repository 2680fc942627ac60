"""
Storage exceptions
"""


class StorageError(Exception):
    """Base exception for history storage errors"""
    pass


class PersistenceError(StorageError):
    """Raised when the history log cannot be written or read"""
    pass


class ExportError(StorageError):
    """Raised when a CSV export cannot be produced"""
    pass
