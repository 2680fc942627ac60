"""
API Models Module

Pydantic models for API request/response schemas.
"""

from .session import (
    PermissionStatus,
    ReadinessStatus,
    ProviderName,
    FixResponse,
    SessionStateResponse,
    PermissionSignal,
    SettingsTargetResponse,
    HistoryResponse,
    ExportResultResponse,
)

__all__ = [
    'PermissionStatus', 'ReadinessStatus', 'ProviderName',
    'FixResponse', 'SessionStateResponse', 'PermissionSignal',
    'SettingsTargetResponse', 'HistoryResponse', 'ExportResultResponse',
]
