"""Chat feature dependencies."""

from src.database.client import get_session_factory

from .connections import ConnectionManager, manager
from .service import ChatService


def get_chat_service() -> ChatService:
    return ChatService(get_session_factory())


def get_connection_manager() -> ConnectionManager:
    return manager
