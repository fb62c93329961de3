"""
services/messaging/service.py
Directed messages between users and the support inbox, read receipts, and
per-conversation chat summaries.

Summaries are never stored. Each call ranks messages per counterpart with
window functions and keeps the newest row of every partition:

    counterpart   the party on the other side of the message
    rn            row_number() over (partition by counterpart order by created_at desc)
    unread_count  sum(unread-to-me) over (partition by counterpart)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import unit_of_work
from shared.models.counterparty import (
    Counterparty,
    RealUser,
    SupportInbox,
    from_column,
    mailbox_for,
)
from shared.models.models import Message, User, UserRole
from shared.schemas.schemas import ChatMessageResponse, ChatSummaryResponse
from shared.utils.exceptions import NotFoundError, ValidationError
from shared.utils.security import Identity
from shared.utils.validation import is_blank

logger = logging.getLogger(__name__)

SUPPORT_DISPLAY_NAME = "Support"


def _is(column, party: Counterparty):
    """SQL predicate: column holds this party (NULL for the support inbox)."""
    value = party.column_value
    return column.is_(None) if value is None else column == value


def _thread(a: Counterparty, b: Counterparty):
    return or_(
        and_(_is(Message.sender_id, a), _is(Message.recipient_id, b)),
        and_(_is(Message.sender_id, b), _is(Message.recipient_id, a)),
    )


# ── Messages ──────────────────────────────────────────────────

async def send_message(
    db: AsyncSession,
    identity: Identity,
    recipient: Counterparty,
    content: Optional[str],
) -> uuid.UUID:
    """Insert an unread message from the caller's mailbox to `recipient`."""
    if is_blank(content):
        raise ValidationError("Recipient ID and content are required")

    sender = mailbox_for(identity)
    if sender is SupportInbox and recipient is SupportInbox:
        raise ValidationError("The support inbox cannot message itself")

    async with unit_of_work(db):
        if isinstance(recipient, RealUser) and await db.get(User, recipient.id) is None:
            raise NotFoundError("Recipient not found")

        message = Message(
            id=uuid.uuid4(),
            sender_id=sender.column_value,
            recipient_id=recipient.column_value,
            author_id=identity.id,
            content=content,
            read=False,
            created_at=datetime.now(timezone.utc),
        )
        db.add(message)

    logger.info(f"Message {message.id} sent {sender.wire_id} -> {recipient.wire_id}")
    return message.id


async def mark_read(db: AsyncSession, reader: Counterparty, sender: Counterparty) -> int:
    """
    Mark every unread message from `sender` to `reader` as read.
    Returns the number of rows changed, so a repeat call returns 0.
    """
    async with unit_of_work(db):
        result = await db.execute(
            update(Message)
            .where(
                _is(Message.recipient_id, reader),
                _is(Message.sender_id, sender),
                Message.read == False,
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )

    logger.debug(f"Marked {result.rowcount} message(s) read for {reader.wire_id} from {sender.wire_id}")
    return result.rowcount


async def list_messages(
    db: AsyncSession,
    a: Counterparty,
    b: Counterparty,
) -> list[ChatMessageResponse]:
    """Both directions of the a/b thread, oldest first, with the author's name and role."""
    result = await db.execute(
        select(Message, User.first_name, User.last_name, User.role)
        .outerjoin(User, Message.author_id == User.id)
        .where(_thread(a, b))
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    messages = []
    for message, first_name, last_name, role in result.all():
        messages.append(ChatMessageResponse(
            id=message.id,
            sender_id=from_column(message.sender_id).wire_id,
            recipient_id=from_column(message.recipient_id).wire_id,
            content=message.content,
            created_at=message.created_at,
            read=message.read,
            sender_name=f"{first_name or ''} {last_name or ''}".strip() or None,
            sender_role=role,
        ))
    return messages


# ── Chat summaries ────────────────────────────────────────────

def _ranked(counterpart, unread, *criteria):
    return (
        select(
            counterpart.label("counterpart_id"),
            Message.content.label("last_message"),
            Message.created_at.label("last_message_time"),
            func.row_number().over(
                partition_by=counterpart,
                order_by=(Message.created_at.desc(), Message.id.desc()),
            ).label("rn"),
            func.sum(unread).over(partition_by=counterpart).label("unread_count"),
        )
        .where(*criteria)
        .subquery()
    )


def _summary(row, counterpart_id: Optional[uuid.UUID]) -> ChatSummaryResponse:
    if counterpart_id is None:
        return ChatSummaryResponse(
            id=SupportInbox.wire_id,
            first_name=SUPPORT_DISPLAY_NAME,
            last_name="",
            role=UserRole.ADMIN.value,
            unread_count=int(row.unread_count or 0),
            last_message=row.last_message,
            last_message_time=row.last_message_time,
        )
    return ChatSummaryResponse(
        id=str(counterpart_id),
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        unread_count=int(row.unread_count or 0),
        last_message=row.last_message,
        last_message_time=row.last_message_time,
    )


async def list_user_chats(db: AsyncSession, user_id: uuid.UUID) -> list[ChatSummaryResponse]:
    """One summary per party the user has exchanged messages with, newest conversation first."""
    counterpart = case(
        (Message.sender_id == user_id, Message.recipient_id),
        else_=Message.sender_id,
    )
    unread = case(
        (and_(Message.recipient_id == user_id, Message.read == False), 1),
        else_=0,
    )
    ranked = _ranked(
        counterpart,
        unread,
        or_(Message.sender_id == user_id, Message.recipient_id == user_id),
        counterpart.is_distinct_from(user_id),
    )

    result = await db.execute(
        select(ranked, User.first_name, User.last_name, User.role)
        .outerjoin(User, User.id == ranked.c.counterpart_id)
        .where(ranked.c.rn == 1)
        .order_by(ranked.c.last_message_time.desc())
    )
    return [_summary(row, row.counterpart_id) for row in result.all()]


async def list_admin_chats(db: AsyncSession) -> list[ChatSummaryResponse]:
    """One summary per customer who has exchanged messages with the support inbox."""
    counterpart = func.coalesce(Message.sender_id, Message.recipient_id)
    unread = case(
        (and_(Message.recipient_id.is_(None), Message.read == False), 1),
        else_=0,
    )
    ranked = _ranked(
        counterpart,
        unread,
        or_(Message.sender_id.is_(None), Message.recipient_id.is_(None)),
    )

    result = await db.execute(
        select(ranked, User.first_name, User.last_name, User.role)
        .join(User, User.id == ranked.c.counterpart_id)
        .where(ranked.c.rn == 1, User.role == UserRole.CUSTOMER.value)
        .order_by(ranked.c.last_message_time.desc())
    )
    return [_summary(row, row.counterpart_id) for row in result.all()]
