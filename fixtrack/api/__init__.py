"""
API Module

This module provides the FastAPI application and all REST endpoints
for the Fix Tracker.

To run the API server:
    uvicorn fixtrack.api.main:app --reload

Or use the convenience script:
    python -m fixtrack.api.main
"""

from .main import app

__all__ = ['app']
