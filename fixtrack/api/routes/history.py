"""
History API Routes
"""

from fastapi import APIRouter, Depends

from ..models import HistoryResponse
from ..dependencies import get_coordinator
from ...core.session import SessionCoordinator

router = APIRouter()


@router.get("", response_model=HistoryResponse)
def get_history(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Get the raw location history log.
    """
    return HistoryResponse(
        exists=coordinator.store.exists,
        content=coordinator.get_location_history()
    )
