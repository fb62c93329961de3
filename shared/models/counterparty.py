"""
shared/models/counterparty.py
Typed chat party: either a real user row or the single support inbox.

The inbox is stored as NULL in messages.sender_id / recipient_id and shown
on the wire as "admin", so it can never collide with a real user's UUID.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Union

from shared.utils.exceptions import ValidationError

SUPPORT_INBOX_WIRE_ID = "admin"


@dataclass(frozen=True)
class RealUser:
    id: uuid.UUID

    @property
    def column_value(self) -> Optional[uuid.UUID]:
        return self.id

    @property
    def wire_id(self) -> str:
        return str(self.id)


@dataclass(frozen=True)
class _SupportInbox:
    @property
    def column_value(self) -> Optional[uuid.UUID]:
        return None

    @property
    def wire_id(self) -> str:
        return SUPPORT_INBOX_WIRE_ID

    def __repr__(self) -> str:
        return "SupportInbox"


SupportInbox = _SupportInbox()

Counterparty = Union[RealUser, _SupportInbox]


def parse_counterparty(raw: Optional[str]) -> Counterparty:
    """Parse a wire id ("admin" or a user UUID) into a Counterparty."""
    if raw is None or not str(raw).strip():
        raise ValidationError("User ID is required")
    raw = str(raw).strip()
    if raw == SUPPORT_INBOX_WIRE_ID:
        return SupportInbox
    try:
        return RealUser(uuid.UUID(raw))
    except ValueError:
        raise ValidationError(f"Invalid user id: {raw}")


def from_column(value: Optional[uuid.UUID]) -> Counterparty:
    """Map a messages.sender_id / recipient_id column value back to a Counterparty."""
    return SupportInbox if value is None else RealUser(value)


def mailbox_for(identity) -> Counterparty:
    """The mailbox an identity reads and writes as: admins share the support inbox."""
    if identity.is_admin:
        return SupportInbox
    return RealUser(identity.id)
