"""
services/messaging/router.py
Support chat endpoints. Customers talk to the support inbox (wire id "admin");
administrators answer from that inbox.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.messaging import service
from shared.middleware.auth import get_mailbox_identity
from shared.models.counterparty import mailbox_for, parse_counterparty
from shared.schemas.schemas import (
    ChatMessageResponse,
    ChatSummaryResponse,
    MessageCreateRequest,
    SuccessResponse,
)
from shared.utils.security import Identity

router = APIRouter(prefix="/messages", tags=["Messages"])


@router.get("", response_model=list[ChatMessageResponse])
async def get_thread(
    user_id: Optional[str] = Query(None, alias="userId"),
    identity: Identity = Depends(get_mailbox_identity),
    db: AsyncSession = Depends(get_db),
):
    """Messages between the caller's mailbox and userId, oldest first."""
    other = parse_counterparty(user_id)
    return await service.list_messages(db, mailbox_for(identity), other)


@router.post("", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageCreateRequest,
    identity: Identity = Depends(get_mailbox_identity),
    db: AsyncSession = Depends(get_db),
):
    recipient = parse_counterparty(data.recipient_id)
    message_id = await service.send_message(db, identity, recipient, data.content)
    return SuccessResponse(id=str(message_id))


@router.post("/read", response_model=SuccessResponse)
async def mark_thread_read(
    user_id: Optional[str] = Query(None, alias="userId"),
    identity: Identity = Depends(get_mailbox_identity),
    db: AsyncSession = Depends(get_db),
):
    """Mark messages sent by userId to the caller's mailbox as read."""
    sender = parse_counterparty(user_id)
    await service.mark_read(db, mailbox_for(identity), sender)
    return SuccessResponse()


@router.get("/users", response_model=list[ChatSummaryResponse])
async def get_chats(
    identity: Identity = Depends(get_mailbox_identity),
    db: AsyncSession = Depends(get_db),
):
    """Admins get every customer conversation with the inbox; others get their own chat list."""
    if identity.is_admin:
        return await service.list_admin_chats(db)
    return await service.list_user_chats(db, identity.id)
