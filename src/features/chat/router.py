"""Chat router (message history and the realtime WebSocket)."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, WebSocket

from src.features.auth.dependencies import get_current_identity, get_token_factory
from src.features.auth.token_factory import TokenClaims, TokenFactory

from .connections import ConnectionManager
from .dependencies import get_chat_service, get_connection_manager
from .gateway import ChatGateway, authenticate_connection
from .schemas import MessageResponse
from .service import ChatService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chat", tags=["Chat"])


@router.get("/messages", response_model=list[MessageResponse])
async def list_messages(
    limit: int = Query(20, ge=1, le=100),
    before: datetime | None = Query(None, description="Only messages created before this timestamp"),
    _: TokenClaims = Depends(get_current_identity),
    chat: ChatService = Depends(get_chat_service),
):
    """Chat history, oldest first."""
    return await chat.list_messages(limit=limit, before=before)


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    tokens: TokenFactory = Depends(get_token_factory),
    manager: ConnectionManager = Depends(get_connection_manager),
    chat: ChatService = Depends(get_chat_service),
):
    """Realtime chat.

    Connect with `?token=<access token>`. Frames are `{"event": ..., "data": {...}}`:
    `message:new` {content}, `typing` {is_typing}, `message:pin` {message_id, pinned} (ADMIN).
    """
    identity = await authenticate_connection(websocket, tokens)
    if identity is None:
        return

    await manager.connect(websocket, identity)
    try:
        await ChatGateway(manager, chat).serve(websocket, identity)
    finally:
        manager.disconnect(identity)
