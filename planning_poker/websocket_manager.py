"""WebSocket connection manager."""

import uuid
from typing import Iterable

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

logger = structlog.get_logger()

# Raised by a send on a socket the peer already closed.
_SEND_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


class ConnectionManager:
    """Owns the live WebSocket of every connection, keyed by connection id.

    Game state only stores connection ids; sends go through here so a dead
    socket is dropped without affecting other recipients.
    """

    def __init__(self):
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """Accept and register a new connection. Returns its id."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.active_connections[connection_id] = websocket
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """Remove a connection."""
        self.active_connections.pop(connection_id, None)

    async def _send_text(self, connection_id: str, message: str) -> bool:
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_text(message)
        except _SEND_ERRORS as e:
            logger.info("dropping dead connection", connection_id=connection_id, error=str(e))
            await self.disconnect(connection_id)
            return False
        return True

    async def send_event(self, connection_id: str, event: BaseModel) -> None:
        """Send an event to a specific connection."""
        await self._send_text(connection_id, event.model_dump_json(by_alias=True))

    async def broadcast(self, connection_ids: Iterable[str], event: BaseModel) -> None:
        """Send one serialized event to each of the given connections."""
        message = event.model_dump_json(by_alias=True)
        for connection_id in list(connection_ids):
            await self._send_text(connection_id, message)

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self.active_connections)

    async def close_all(self) -> None:
        """Close all connections."""
        for websocket in list(self.active_connections.values()):
            try:
                await websocket.close()
            except _SEND_ERRORS:
                pass
        self.active_connections.clear()
