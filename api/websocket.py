"""WebSocket handler for real-time article and notification updates."""
import asyncio
import json
import logging
from typing import Optional, Set, Dict
from fastapi import WebSocket, WebSocketDisconnect
import redis.asyncio as redis
from shared.config import settings

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections for lifecycle updates."""

    def __init__(self):
        # Map of user_id to set of WebSocket connections
        self.user_connections: Dict[str, Set[WebSocket]] = {}
        # All connections (for broadcast)
        self.all_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket, user_id: Optional[str] = None):
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self.all_connections.add(websocket)

        if user_id:
            self.user_connections.setdefault(user_id, set()).add(websocket)

    def disconnect(self, websocket: WebSocket, user_id: Optional[str] = None):
        """Remove a WebSocket connection."""
        self.all_connections.discard(websocket)

        if user_id and user_id in self.user_connections:
            self.user_connections[user_id].discard(websocket)
            if not self.user_connections[user_id]:
                del self.user_connections[user_id]

    async def send_to_user(self, user_id: str, message: dict):
        """Send message to every connection of one user."""
        disconnected = set()
        for connection in list(self.user_connections.get(user_id, ())):
            try:
                await connection.send_json(message)
            except Exception:
                disconnected.add(connection)

        # Clean up disconnected clients
        for conn in disconnected:
            self.disconnect(conn, user_id)

    async def broadcast(self, message: dict):
        """Send message to all connected clients."""
        disconnected = set()
        for connection in list(self.all_connections):
            try:
                await connection.send_json(message)
            except Exception:
                disconnected.add(connection)

        # Clean up disconnected clients
        for conn in disconnected:
            self.all_connections.discard(conn)


# Global connection manager
manager = ConnectionManager()


async def dispatch_message(raw: str, connections: ConnectionManager = manager):
    """Route one pub/sub payload: user-addressed messages stay private."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Dropping malformed event payload: {raw!r}")
        return

    user_id = data.get("user_id")
    if user_id:
        await connections.send_to_user(user_id, data)
    else:
        await connections.broadcast(data)


async def redis_subscriber(redis_client: redis.Redis):
    """Subscribe to the event channels and forward messages to WebSocket clients."""
    pubsub = redis_client.pubsub()
    await pubsub.subscribe(settings.redis_event_channel)
    await pubsub.psubscribe(f"{settings.redis_user_channel_prefix}:*")

    try:
        async for message in pubsub.listen():
            if message["type"] in ("message", "pmessage"):
                await dispatch_message(message["data"])
    except asyncio.CancelledError:
        pass
    finally:
        await pubsub.unsubscribe(settings.redis_event_channel)
        await pubsub.punsubscribe(f"{settings.redis_user_channel_prefix}:*")
        await pubsub.aclose()


async def websocket_endpoint(websocket: WebSocket, user_id: Optional[str] = None):
    """WebSocket endpoint for lifecycle updates."""
    await manager.connect(websocket, user_id)

    try:
        while True:
            # Keep connection alive with heartbeat
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=settings.ws_heartbeat_interval
                )
                # Handle ping/pong
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                # Send heartbeat
                await websocket.send_json({"type": "heartbeat"})
    except WebSocketDisconnect:
        manager.disconnect(websocket, user_id)
