"""Chat exceptions."""

from fastapi import HTTPException, status


class ChatException(HTTPException):
    """Base chat exception."""

    def __init__(self, detail: str = "Chat operation failed", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class MessageNotFound(ChatException):
    """Raised when a message id does not exist."""

    def __init__(self):
        super().__init__(detail="Message not found", status_code=status.HTTP_404_NOT_FOUND)


class UnknownChatEvent(ChatException):
    """Raised for a frame whose event name has no handler."""

    def __init__(self, event: str):
        super().__init__(detail=f"Unknown event: {event}")


class InvalidChatFrame(ChatException):
    """Raised when a frame or its payload fails validation."""

    def __init__(self):
        super().__init__(detail="Invalid frame", status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class ChatStorageError(ChatException):
    """Raised when a chat message cannot be read or written."""

    def __init__(self):
        super().__init__(detail="Chat storage unavailable", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
