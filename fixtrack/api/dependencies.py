"""
API Dependencies

FastAPI dependency injection functions.
"""

from ..core.session import SessionCoordinator, get_session_coordinator


def get_coordinator() -> SessionCoordinator:
    """Session coordinator dependency"""
    return get_session_coordinator()
