"""
API Routes Module

This module contains all API route definitions organized by resource.
"""

from . import session
from . import history
from . import export
from . import websocket

__all__ = ['session', 'history', 'export', 'websocket']
