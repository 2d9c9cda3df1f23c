"""Conversation API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Path, Query, Request

from app.core.dependencies import get_append_service, get_current_user_id, get_directory
from app.domains.conversation.service import ConversationDirectory
from app.domains.message.service import CappedAppendService
from app.exceptions.storage import ConversationNotFoundError
from app.schemas.base import ResponseSchema
from app.schemas.chat import (
    AppendMessagesRequest,
    ConversationCreate,
    ConversationUpdate,
    DeleteConversationsRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/conversations",
    tags=["conversations"],
)


@router.post("", response_model=ResponseSchema, status_code=201)
async def create_conversation(
    _request: Request,
    payload: ConversationCreate | None = Body(None),
    current_user_id: str = Depends(get_current_user_id),
    directory: ConversationDirectory = Depends(get_directory),
):
    """Create a new conversation."""
    payload = payload or ConversationCreate()
    conversation = await directory.create(
        title=payload.title,
        user_id=payload.user_id or current_user_id,
        preset_id=payload.preset_id,
    )
    return ResponseSchema(
        status="success",
        message="Conversation created successfully",
        data=conversation.model_dump(mode="json"),
    )


@router.get("", response_model=ResponseSchema)
async def list_conversations(
    _request: Request,
    user_id: str | None = Query(None, description="Owner, defaults to the local user"),
    current_user_id: str = Depends(get_current_user_id),
    directory: ConversationDirectory = Depends(get_directory),
):
    """List conversations, most recently updated first, with message counts."""
    conversations = await directory.list_by_user(user_id or current_user_id)
    return ResponseSchema(
        status="success",
        message="Conversations retrieved successfully",
        data=[conversation.model_dump(mode="json") for conversation in conversations],
    )


@router.get("/{conversation_id}", response_model=ResponseSchema)
async def get_conversation(
    _request: Request,
    conversation_id: str = Path(..., description="Conversation ID"),
    limit: int | None = Query(None, ge=1, description="Most recent messages to include"),
    directory: ConversationDirectory = Depends(get_directory),
):
    """Get a conversation with its most recent messages, oldest first."""
    detail = await directory.get(conversation_id, message_limit=limit)
    return ResponseSchema(
        status="success",
        message="Conversation retrieved successfully",
        data=detail.model_dump(mode="json"),
    )


@router.patch("/{conversation_id}", response_model=ResponseSchema)
async def update_conversation(
    _request: Request,
    conversation_id: str = Path(..., description="Conversation ID"),
    patch: ConversationUpdate = Body(...),
    directory: ConversationDirectory = Depends(get_directory),
):
    """Update conversation metadata (title, preset, version graph)."""
    updated = await directory.update_metadata(conversation_id, patch)
    if updated is None:
        raise ConversationNotFoundError(conversation_id)
    return ResponseSchema(
        status="success",
        message="Conversation updated successfully",
        data=updated.model_dump(mode="json"),
    )


@router.delete("/{conversation_id}", response_model=ResponseSchema)
async def delete_conversation(
    _request: Request,
    conversation_id: str = Path(..., description="Conversation ID"),
    directory: ConversationDirectory = Depends(get_directory),
):
    """Delete a conversation and all of its messages."""
    deleted = await directory.delete(conversation_id)
    return ResponseSchema(
        status="success",
        message="Conversation deleted successfully" if deleted else "Conversation did not exist",
        data={"deleted": deleted},
    )


@router.post("/delete", response_model=ResponseSchema)
async def delete_conversations(
    _request: Request,
    payload: DeleteConversationsRequest = Body(...),
    directory: ConversationDirectory = Depends(get_directory),
):
    """Delete several conversations; each id is attempted independently."""
    deleted = await directory.delete_many(payload.ids)
    return ResponseSchema(
        status="success",
        message=f"Deleted {deleted} conversations",
        data={"deleted": deleted},
    )


@router.post("/{conversation_id}/messages", response_model=ResponseSchema, status_code=201)
async def append_messages(
    _request: Request,
    conversation_id: str = Path(..., description="Conversation ID"),
    payload: AppendMessagesRequest = Body(...),
    service: CappedAppendService = Depends(get_append_service),
):
    """Append messages and trim the conversation to the retention cap."""
    result = await service.append_capped(conversation_id, payload.messages, cap=payload.cap)
    logger.debug(f"Append to {conversation_id}: {len(result.created)} created")
    return ResponseSchema(
        status="success",
        message="Messages appended successfully",
        data=result.model_dump(mode="json"),
    )
