# ruff: noqa: D107
"""Storage and conversation exceptions."""

from typing import Any

from .base import BaseAppException, NotFoundError


class StorageError(BaseAppException):
    """Base exception for persistence failures."""

    def __init__(
        self,
        message: str = "Failed to save or load data",
        error_code: str = "STORAGE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, status_code=500, error_code=error_code, details=details)


class StorageReadError(StorageError):
    """Raised when a persisted collection is unreadable or corrupt."""

    def __init__(
        self,
        message: str = "Stored collection could not be read",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "STORAGE_READ_ERROR", details)


class StorageWriteError(StorageError):
    """Raised when a persisted collection could not be written."""

    def __init__(
        self,
        message: str = "Stored collection could not be written",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, "STORAGE_WRITE_ERROR", details)


class ConversationNotFoundError(NotFoundError):
    """Raised when an operation requires a conversation that does not exist."""

    def __init__(self, conversation_id: str):
        super().__init__(
            message=f"Conversation {conversation_id} not found",
            details={"conversation_id": conversation_id},
            error_code="CONVERSATION_NOT_FOUND",
        )
