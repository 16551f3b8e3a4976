"""Realtime chat gateway.

Each connection is authenticated once, at the handshake. Every later frame is
handled with the identity bound then; privileged events are checked against
that identity's role without looking at the token again.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from src.features.auth.dependencies import (
    ADMIN_ONLY,
    AUTHENTICATED,
    RoutePolicy,
    authenticate_request,
    authorize_identity,
)
from src.features.auth.exceptions import InvalidAccessTokenException
from src.features.auth.token_factory import TokenFactory

from .connections import ConnectionIdentity, ConnectionManager
from .exceptions import InvalidChatFrame, UnknownChatEvent
from .schemas import ChatFrame, NewMessagePayload, PinMessagePayload, TypingPayload
from .service import ChatService

logger = logging.getLogger(__name__)

# Close code sent when the handshake token is missing or invalid
WS_UNAUTHORIZED = 4401

Handler = Callable[[ConnectionIdentity, dict[str, Any]], Awaitable[None]]


def handshake_token(websocket: WebSocket) -> str | None:
    """Access token from the `token` query parameter or an Authorization header."""
    token = websocket.query_params.get("token")
    if token:
        return token

    scheme, _, credentials = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


async def authenticate_connection(websocket: WebSocket, tokens: TokenFactory) -> ConnectionIdentity | None:
    """Verify the handshake token, or close the socket before it is accepted."""
    try:
        claims = authenticate_request(AUTHENTICATED, handshake_token(websocket), tokens)
    except InvalidAccessTokenException as err:
        logger.warning(f"Chat handshake rejected: {err.detail}")
        await websocket.close(code=WS_UNAUTHORIZED)
        return None

    return ConnectionIdentity.from_claims(claims)


def authorize_action(identity: ConnectionIdentity, policy: RoutePolicy, event: str) -> None:
    """Role check for an in-channel action against the bound identity.

    Raises:
        AccessDeniedException: If the identity lacks a required role

    """
    authorize_identity(policy, identity, event=f"ws:{event}")


class ChatGateway:
    """Dispatches inbound frames of one connection."""

    def __init__(self, manager: ConnectionManager, chat: ChatService):
        self.manager = manager
        self.chat = chat
        self._handlers: dict[str, Handler] = {
            "message:new": self.handle_new_message,
            "typing": self.handle_typing,
            "message:pin": self.handle_pin,
        }

    async def serve(self, websocket: WebSocket, identity: ConnectionIdentity) -> None:
        """Process frames until the client disconnects."""
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                await self.dispatch(websocket, identity, message.get("text"))
        except WebSocketDisconnect:
            logger.info(f"Chat client {identity.connection_id} disconnected")

    async def dispatch(self, websocket: WebSocket, identity: ConnectionIdentity, raw: str | None) -> None:
        """Run the handler for one frame; failures go back to this connection only.

        Binary frames (no text) are rejected as invalid.
        """
        event = "unknown"
        try:
            if raw is None:
                raise InvalidChatFrame()
            try:
                frame = ChatFrame.model_validate_json(raw)
            except ValidationError as err:
                raise InvalidChatFrame() from err

            event = frame.event
            handler = self._handlers.get(event)
            if handler is None:
                raise UnknownChatEvent(event)
            await handler(identity, frame.data)
        except HTTPException as err:
            logger.warning(f"Chat event {event} from user {identity.user_id} failed: {err.detail}")
            await self.send_error(websocket, event, err)

    @staticmethod
    async def send_error(websocket: WebSocket, event: str, err: HTTPException) -> None:
        await websocket.send_json(
            {"event": "error", "data": {"event": event, "status_code": err.status_code, "detail": err.detail}}
        )

    @staticmethod
    def _payload(model, data: dict[str, Any]):
        try:
            return model.model_validate(data)
        except ValidationError as err:
            raise InvalidChatFrame() from err

    async def handle_new_message(self, identity: ConnectionIdentity, data: dict[str, Any]) -> None:
        payload = self._payload(NewMessagePayload, data)
        message = await self.chat.create_message(identity.user_id, payload.content)
        await self.manager.broadcast("message:new", message.model_dump(mode="json"))

    async def handle_typing(self, identity: ConnectionIdentity, data: dict[str, Any]) -> None:
        payload = self._payload(TypingPayload, data)
        await self.manager.broadcast("typing", {"user_id": identity.user_id, "is_typing": payload.is_typing})

    async def handle_pin(self, identity: ConnectionIdentity, data: dict[str, Any]) -> None:
        """Pin or unpin a message (ADMIN only)."""
        authorize_action(identity, ADMIN_ONLY, "message:pin")
        payload = self._payload(PinMessagePayload, data)
        message = await self.chat.pin_message(payload.message_id, payload.pinned)
        await self.manager.broadcast("message:updated", message.model_dump(mode="json"))
