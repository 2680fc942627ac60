"""
Session API Routes

Endpoints for reading the session state and feeding it external triggers:
permission results, manual refreshes, and stop requests.
"""

from fastapi import APIRouter, Depends
from loguru import logger

from ..models import SessionStateResponse, PermissionSignal, SettingsTargetResponse
from ..dependencies import get_coordinator
from ...core.session import SessionCoordinator
from ...location import StaticPermissionSource

router = APIRouter()


def _state_response(coordinator: SessionCoordinator) -> SessionStateResponse:
    return SessionStateResponse.from_state(coordinator.state, streaming=coordinator.is_streaming)


@router.get("", response_model=SessionStateResponse)
def get_session_state(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Get the current session state.
    """
    return _state_response(coordinator)


@router.post("/permission", response_model=SessionStateResponse)
def report_permission(
    signal: PermissionSignal,
    coordinator: SessionCoordinator = Depends(get_coordinator)
):
    """
    Report the outcome of the permission request flow.

    Granting starts location updates; denying surfaces an explanation.
    """
    permissions = coordinator.permissions
    if isinstance(permissions, StaticPermissionSource):
        if signal.granted:
            permissions.grant()
        else:
            permissions.revoke()

    if signal.granted:
        coordinator.on_permission_granted()
    else:
        coordinator.on_permission_denied()

    logger.info(f"Permission signal received: granted={signal.granted}")
    return _state_response(coordinator)


@router.post("/refresh", response_model=SessionStateResponse)
def refresh_session(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Re-check provider availability and restart updates if enabled.
    """
    coordinator.refresh()
    return _state_response(coordinator)


@router.post("/stop", response_model=SessionStateResponse)
def stop_session(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Stop continuous location updates.
    """
    coordinator.stop_updates()
    return _state_response(coordinator)


@router.get("/settings-target", response_model=SettingsTargetResponse)
def get_settings_target(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Get the reference for opening the location settings.
    """
    return SettingsTargetResponse(target=coordinator.open_location_settings())
