"""
shared/models/models.py
All SQLAlchemy ORM models for the Savanna Tours booking platform.
UUID primary keys throughout, except attractions (integer catalog ids).
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ──────────────────────────────────────────────

class UserRole(str, PyEnum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class BookingType(str, PyEnum):
    ATTRACTION = "attraction"
    SAFARI = "safari"


class BookingStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, PyEnum):
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"   # Only ever set by a deposit payment
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentType(str, PyEnum):
    DEPOSIT = "deposit"
    FINAL = "final"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    """Adds created_at and updated_at to any model."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ── Models ────────────────────────────────────────────────────

class User(TimestampMixin, Base):
    """Customer or administrator account."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(30), default="", nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.CUSTOMER.value
    )

    # Ownership is a logical reference only: deleting a user leaves their rows in place
    bookings: Mapped[List["Booking"]] = relationship(
        primaryjoin="User.id == foreign(Booking.user_id)", viewonly=True
    )
    reviews: Mapped[List["Review"]] = relationship(
        primaryjoin="User.id == foreign(Review.user_id)", viewonly=True
    )

    __table_args__ = (
        Index("ix_users_role", "role"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"


class Attraction(TimestampMixin, Base):
    """
    Catalog attraction. `rating` and `reviews` are derived from the reviews
    table and only ever written by the review manager / reconcile task.
    """
    __tablename__ = "attractions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    image: Mapped[str] = mapped_column(String(255), default="/placeholder.svg")
    rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    price_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    price_kes: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)
    category: Mapped[str] = mapped_column(String(100), default="General")
    description: Mapped[str] = mapped_column(Text, default="")
    long_description: Mapped[str] = mapped_column(Text, default="")
    best_time_to_visit: Mapped[str] = mapped_column(String(255), default="")
    duration: Mapped[float] = mapped_column(Float, default=0)
    lat: Mapped[float] = mapped_column(Float, default=0)
    lng: Mapped[float] = mapped_column(Float, default=0)
    gallery: Mapped[list] = mapped_column(JSON, default=list)
    activities: Mapped[list] = mapped_column(JSON, default=list)
    included: Mapped[list] = mapped_column(JSON, default=list)
    not_included: Mapped[list] = mapped_column(JSON, default=list)

    __table_args__ = (
        Index("ix_attractions_location", "location"),
        Index("ix_attractions_category", "category"),
    )


class Safari(TimestampMixin, Base):
    """Multi-day safari package."""
    __tablename__ = "safaris"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, default="")
    image_url: Mapped[str] = mapped_column(String(255), default="/placeholder.svg")
    price_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    price_kes: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)
    duration: Mapped[int] = mapped_column(Integer, default=1)
    itinerary: Mapped[str] = mapped_column(Text, default="")
    included: Mapped[list] = mapped_column(JSON, default=list)
    not_included: Mapped[list] = mapped_column(JSON, default=list)
    gallery: Mapped[list] = mapped_column(JSON, default=list)


class Booking(TimestampMixin, Base):
    """
    Reservation of an attraction or safari.
    `item_id` is polymorphic on `booking_type`, so it carries no foreign key.
    """
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    booking_type: Mapped[str] = mapped_column(String(20), nullable=False)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)

    booking_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    travel_date: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)
    accommodation_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    total_price_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    total_price_kes: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0)
    deposit_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BookingStatus.CONFIRMED.value
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.UNPAID.value
    )

    user: Mapped["User"] = relationship(
        primaryjoin="foreign(Booking.user_id) == User.id", viewonly=True
    )
    payments: Mapped[List["Payment"]] = relationship(back_populates="booking")

    __table_args__ = (
        Index("ix_bookings_user_id", "user_id"),
        Index("ix_bookings_item", "booking_type", "item_id"),
        Index("ix_bookings_created_at", "created_at"),
    )


class Payment(Base):
    """Append-only payment ledger row. Many per booking."""
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    booking: Mapped["Booking"] = relationship(back_populates="payments")

    __table_args__ = (
        Index("ix_payments_booking_id", "booking_id"),
        Index("ix_payments_user_id", "user_id"),
    )


class Review(TimestampMixin, Base):
    """
    Attraction review. One per (user, attraction), enforced by the review
    manager's check-then-insert-or-update under a lock on the attraction row.
    """
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    attraction_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("attractions.id"), nullable=False
    )
    rating: Mapped[float] = mapped_column(Float, nullable=False)
    comment: Mapped[str] = mapped_column(Text, default="", nullable=False)

    user: Mapped["User"] = relationship(
        primaryjoin="foreign(Review.user_id) == User.id", viewonly=True
    )

    __table_args__ = (
        Index("ix_reviews_attraction_id", "attraction_id"),
        Index("ix_reviews_user_attraction", "user_id", "attraction_id"),
    )


class Message(Base):
    """
    Directed chat message. A NULL sender_id / recipient_id is the support
    inbox; author_id is always the real user who wrote the message.
    """
    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True
    )
    recipient_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "sender_id IS NOT NULL OR recipient_id IS NOT NULL",
            name="ck_message_has_real_party",
        ),
        Index("ix_messages_recipient_read", "recipient_id", "read"),
        Index("ix_messages_sender", "sender_id"),
        Index("ix_messages_created_at", "created_at"),
    )
