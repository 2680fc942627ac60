"""
Export API Routes

Endpoints for exporting the location history to CSV.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse
from loguru import logger

from ..models import ExportResultResponse
from ..dependencies import get_coordinator
from ...core.session import SessionCoordinator

router = APIRouter()


@router.post("/csv", response_model=ExportResultResponse)
def export_csv(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Export the location history to a new CSV file.
    """
    path = coordinator.export_csv()
    export_status = coordinator.state.export_status

    if path is None:
        return ExportResultResponse(exported=False, status=export_status)

    logger.info(f"Created CSV export: {path.name}")
    return ExportResultResponse(
        exported=True,
        status=export_status,
        file_name=path.name,
        download_url=f"/api/export/download/{path.name}"
    )


@router.get("/download/{file_name}")
def download_export(
    file_name: str,
    coordinator: SessionCoordinator = Depends(get_coordinator)
):
    """
    Download a generated CSV file.
    """
    export_dir = coordinator.exporter.export_dir.resolve()
    file_path = (export_dir / file_name).resolve()

    if file_path.parent != export_dir or file_path.suffix != ".csv":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid export file name"
        )

    if not file_path.exists():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Export file not found"
        )

    return FileResponse(
        path=str(file_path),
        filename=file_name,
        media_type="text/csv"
    )


@router.delete("/status", status_code=status.HTTP_204_NO_CONTENT)
def clear_export_status(coordinator: SessionCoordinator = Depends(get_coordinator)):
    """
    Clear the one-shot export status message.
    """
    coordinator.clear_export_status()
