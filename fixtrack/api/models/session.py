"""
Session API Models

Pydantic models for session state, history, and export requests/responses.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field
from enum import Enum

from ...core.session import SessionState
from ...location import Fix


class PermissionStatus(str, Enum):
    """Location permission state"""
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


class ReadinessStatus(str, Enum):
    """Provider availability state"""
    CHECKING = "checking"
    ENABLED = "enabled"
    DISABLED = "disabled"


class ProviderName(str, Enum):
    """Positioning source of a fix"""
    GPS = "gps"
    NETWORK = "network"
    PASSIVE = "passive"
    UNKNOWN = "unknown"


class FixResponse(BaseModel):
    """One location fix"""
    latitude: float = Field(..., description="Latitude in degrees")
    longitude: float = Field(..., description="Longitude in degrees")
    accuracy: float = Field(..., ge=0, description="Horizontal accuracy in meters")
    provider: ProviderName
    provider_label: str
    is_mock: bool
    timestamp: int = Field(..., description="Milliseconds since epoch")
    recorded_at: datetime

    @classmethod
    def from_fix(cls, fix: Fix) -> 'FixResponse':
        return cls(
            latitude=fix.latitude,
            longitude=fix.longitude,
            accuracy=fix.accuracy,
            provider=ProviderName(fix.provider.value),
            provider_label=fix.provider_label,
            is_mock=fix.is_mock,
            timestamp=fix.timestamp,
            recorded_at=fix.recorded_at,
        )


class SessionStateResponse(BaseModel):
    """Observable session state"""
    permission: PermissionStatus
    readiness: ReadinessStatus
    current_fix: Optional[FixResponse] = None
    error: Optional[str] = None
    last_saved_fix: Optional[FixResponse] = None
    export_status: Optional[str] = None
    streaming: bool = False

    @classmethod
    def from_state(cls, state: SessionState, streaming: bool = False) -> 'SessionStateResponse':
        return cls(
            permission=PermissionStatus(state.permission.value),
            readiness=ReadinessStatus(state.readiness.value),
            current_fix=FixResponse.from_fix(state.current_fix) if state.current_fix else None,
            error=state.error,
            last_saved_fix=FixResponse.from_fix(state.last_saved_fix) if state.last_saved_fix else None,
            export_status=state.export_status,
            streaming=streaming,
        )


class PermissionSignal(BaseModel):
    """Outcome of the permission request flow"""
    granted: bool = Field(..., description="Whether the user granted location access")


class SettingsTargetResponse(BaseModel):
    """Where the user can enable location providers"""
    target: str


class HistoryResponse(BaseModel):
    """Raw location history log"""
    exists: bool
    content: str


class ExportResultResponse(BaseModel):
    """Result of a CSV export"""
    exported: bool
    status: Optional[str] = None
    file_name: Optional[str] = None
    download_url: Optional[str] = None
