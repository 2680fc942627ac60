"""
WebSocket Routes

Real-time session state updates via WebSocket.
"""

import asyncio
from typing import Set, Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from ..models import SessionStateResponse
from ...core.session import SessionCoordinator, SessionState, get_session_coordinator


router = APIRouter()


class ConnectionManager:
    """
    Manages WebSocket connections for session updates.

    State changes arrive on whatever thread produced them (often the
    location provider's); they are handed to the event loop captured by
    attach().
    """

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._coordinator: Optional[SessionCoordinator] = None

    def attach(self, coordinator: SessionCoordinator, loop: asyncio.AbstractEventLoop) -> None:
        """Start forwarding the coordinator's state changes"""
        self._loop = loop
        self._coordinator = coordinator
        coordinator.add_listener(self._on_state)

    def detach(self) -> None:
        if self._coordinator is not None:
            self._coordinator.remove_listener(self._on_state)
        self._coordinator = None
        self._loop = None

    def _on_state(self, state: SessionState) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or not self.active_connections:
            return
        message = self.state_message(state)
        asyncio.run_coroutine_threadsafe(self.broadcast(message), loop)

    def state_message(self, state: SessionState) -> dict:
        streaming = self._coordinator.is_streaming if self._coordinator else False
        return {
            'type': 'state',
            'state': SessionStateResponse.from_state(state, streaming=streaming).model_dump(mode='json')
        }

    async def connect(self, websocket: WebSocket):
        """Accept a new WebSocket connection"""
        await websocket.accept()
        async with self._lock:
            self.active_connections.add(websocket)
        logger.debug("WebSocket connected to session channel")

    async def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection"""
        async with self._lock:
            self.active_connections.discard(websocket)
        logger.debug("WebSocket disconnected from session channel")

    async def broadcast(self, message: dict):
        """Broadcast message to all connections"""
        async with self._lock:
            connections = self.active_connections.copy()

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_json(message)
            except Exception:
                disconnected.append(websocket)

        if disconnected:
            async with self._lock:
                for ws in disconnected:
                    self.active_connections.discard(ws)

    async def send_to(self, websocket: WebSocket, message: dict):
        """Send message to a specific connection"""
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.error(f"Failed to send WebSocket message: {e}")

    def get_connection_count(self) -> int:
        return len(self.active_connections)


# Global connection manager
manager = ConnectionManager()


@router.websocket("/session")
async def session_websocket(websocket: WebSocket):
    """
    WebSocket endpoint for session state updates.

    Messages sent:
    - type: "state" - Full session state snapshot
    - type: "error" - Error messages

    Messages received:
    - type: "refresh" - Trigger a manual refresh
    - type: "get_state" - Request the current snapshot
    """
    await manager.connect(websocket)
    coordinator = get_session_coordinator()

    try:
        await manager.send_to(websocket, manager.state_message(coordinator.state))

        while True:
            message = await websocket.receive_json()
            msg_type = message.get('type', '')

            if msg_type == 'refresh':
                await asyncio.to_thread(coordinator.refresh)
                await manager.send_to(websocket, manager.state_message(coordinator.state))
            elif msg_type == 'get_state':
                await manager.send_to(websocket, manager.state_message(coordinator.state))
            else:
                await manager.send_to(websocket, {
                    'type': 'error',
                    'message': f"Unknown message type: {msg_type}"
                })

    except WebSocketDisconnect:
        logger.debug("Session WebSocket client disconnected")
    except Exception as e:
        logger.error(f"Session WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)
