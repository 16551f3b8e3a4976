"""Open chat connections and the identity bound to each of them."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from src.features.auth.token_factory import TokenClaims

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionIdentity(TokenClaims):
    """Claims verified at connect time, bound to one connection for its lifetime."""

    connection_id: str = field(default_factory=lambda: uuid4().hex)

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "ConnectionIdentity":
        return cls(user_id=claims.user_id, phone_number=claims.phone_number, role=claims.role)


class ConnectionManager:
    """Tracks accepted sockets and fans out events to all of them.

    Broadcasts are serialized by a lock, so every peer receives them in the
    order the server produced them.
    """

    def __init__(self):
        self._connections: dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket, identity: ConnectionIdentity) -> None:
        await websocket.accept()
        self._connections[identity.connection_id] = websocket
        logger.info(f"Chat connection {identity.connection_id} opened for user {identity.user_id}")

    def disconnect(self, identity: ConnectionIdentity) -> None:
        if self._connections.pop(identity.connection_id, None) is not None:
            logger.info(f"Chat connection {identity.connection_id} closed for user {identity.user_id}")

    async def broadcast(self, event: str, data: dict[str, Any]) -> None:
        frame = {"event": event, "data": data}
        async with self._lock:
            stale = []
            for connection_id, websocket in list(self._connections.items()):
                try:
                    await websocket.send_json(frame)
                except Exception as err:
                    logger.warning(f"Dropping chat connection {connection_id}: {err}")
                    stale.append(connection_id)
            for connection_id in stale:
                self._connections.pop(connection_id, None)


manager = ConnectionManager()
