"""
Core Module

This module provides configuration, logging setup, and the session
coordinator that orchestrates location tracking.
"""

from .config import settings, get_settings, Settings
from .logging import setup_logging
from .session import (
    SessionCoordinator,
    SessionState,
    PermissionState,
    ReadinessState,
    create_session_coordinator,
    get_session_coordinator,
    reset_session_coordinator,
)

__all__ = [
    # Config
    'settings',
    'get_settings',
    'Settings',
    'setup_logging',
    # Session
    'SessionCoordinator',
    'SessionState',
    'PermissionState',
    'ReadinessState',
    'create_session_coordinator',
    'get_session_coordinator',
    'reset_session_coordinator',
]
