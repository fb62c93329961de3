"""
shared/schemas/schemas.py
All Pydantic v2 request/response schemas for the platform.

Request bodies accept the camelCase names the web client sends (and the
snake_case names as well). Responses mirror the stored rows in snake_case.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class RequestSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _optional_str(v: Any) -> Optional[str]:
    """Ids arrive as strings or numbers depending on the item type."""
    if v is None:
        return None
    return str(v)


# ── Auth ──────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, max_length=128)
    phone_number: Optional[str] = Field(None, max_length=30)


class UserCreateRequest(RegisterRequest):
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseSchema):
    success: bool = True
    user: "UserResponse"
    access_token: Optional[str] = None


# ── User ──────────────────────────────────────────────────────

class UserResponse(BaseSchema):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str]
    role: str
    created_at: datetime


class UserUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=30)


# ── Attraction ────────────────────────────────────────────────

class AttractionWriteRequest(RequestSchema):
    """rating / reviews are derived from the reviews table and not accepted here."""
    name: str = Field(..., min_length=1, max_length=255)
    location: str = Field("", max_length=255)
    image: Optional[str] = None
    price_usd: float = Field(0, ge=0, alias="priceUSD")
    price_kes: float = Field(0, ge=0, alias="priceKES")
    featured: bool = False
    category: str = "General"
    description: str = ""
    long_description: str = ""
    best_time_to_visit: str = ""
    duration: float = 0
    lat: float = 0
    lng: float = 0
    gallery: List[str] = []
    activities: List[str] = []
    included: List[str] = []
    not_included: List[str] = []


class AttractionResponse(BaseSchema):
    id: int
    name: str
    location: str
    image: Optional[str]
    rating: float
    reviews: int
    price_usd: float
    price_kes: float
    featured: bool
    category: Optional[str]
    description: Optional[str]
    long_description: Optional[str]
    best_time_to_visit: Optional[str]
    duration: Optional[float]
    lat: Optional[float]
    lng: Optional[float]
    gallery: List[str] = []
    activities: List[str] = []
    included: List[str] = []
    not_included: List[str] = []


# ── Safari ────────────────────────────────────────────────────

class SafariWriteRequest(RequestSchema):
    name: str = Field(..., min_length=1, max_length=255)
    location: str = Field("", max_length=255)
    description: str = ""
    image_url: Optional[str] = None
    price_usd: float = Field(0, ge=0, alias="priceUSD")
    price_kes: float = Field(0, ge=0, alias="priceKES")
    featured: bool = False
    duration: int = Field(1, ge=1)
    itinerary: str = ""
    included: List[str] = []
    not_included: List[str] = []
    gallery: List[str] = []


class SafariResponse(BaseSchema):
    id: uuid.UUID
    name: str
    location: str
    description: Optional[str]
    image_url: Optional[str]
    price_usd: float
    price_kes: float
    featured: bool
    duration: int
    itinerary: Optional[str]
    included: List[str] = []
    not_included: List[str] = []
    gallery: List[str] = []


# ── Booking ───────────────────────────────────────────────────

class BookingWriteRequest(RequestSchema):
    """
    Full booking record. status / payment_status take any value and are
    clamped to their domain by the booking manager.
    """
    user_id: Optional[uuid.UUID] = None
    booking_type: Optional[str] = None
    item_id: Annotated[Optional[str], BeforeValidator(_optional_str)] = None
    travel_date: Optional[str] = None
    adults: int = Field(1, ge=0)
    children: int = Field(0, ge=0)
    accommodation_type: Optional[str] = None
    special_requests: Optional[str] = Field(None, max_length=2000)
    total_price_usd: float = Field(0, ge=0, alias="totalPriceUSD")
    total_price_kes: float = Field(0, ge=0, alias="totalPriceKES")
    deposit_amount: float = Field(0, ge=0)
    deposit_paid: bool = False
    status: Any = None
    payment_status: Any = None


class BookingResponse(BaseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    booking_type: str
    item_id: str
    booking_date: datetime
    travel_date: Optional[str]
    adults: int
    children: int
    accommodation_type: Optional[str]
    special_requests: Optional[str]
    total_price_usd: float
    total_price_kes: float
    deposit_amount: float
    deposit_paid: bool
    status: str
    payment_status: str
    created_at: datetime
    updated_at: datetime
    # Joined
    item_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class BookingCreatedResponse(BaseSchema):
    success: bool = True
    id: uuid.UUID


# ── Payment ───────────────────────────────────────────────────

class PaymentCreateRequest(RequestSchema):
    booking_id: Optional[uuid.UUID] = None
    amount: Optional[float] = None
    payment_type: Optional[str] = None
    payment_method: Optional[str] = None


class PaymentResponse(BaseSchema):
    id: uuid.UUID
    booking_id: uuid.UUID
    user_id: uuid.UUID
    amount: float
    payment_type: str
    payment_method: str
    status: str
    created_at: datetime


class PaymentCreatedResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    payment_id: uuid.UUID
    message: str


# ── Review ────────────────────────────────────────────────────

class ReviewCreateRequest(RequestSchema):
    """No range check on rating: any truthy number is accepted."""
    attraction_id: Optional[int] = None
    rating: Optional[float] = None
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    attraction_id: int
    rating: float
    comment: str
    created_at: datetime
    updated_at: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# ── Messaging ─────────────────────────────────────────────────

class MessageCreateRequest(RequestSchema):
    recipient_id: Optional[str] = None
    content: Optional[str] = Field(None, max_length=5000)


class ChatMessageResponse(BaseSchema):
    id: uuid.UUID
    sender_id: str
    recipient_id: str
    content: str
    created_at: datetime
    read: bool
    sender_name: Optional[str] = None
    sender_role: Optional[str] = None


class ChatSummaryResponse(BaseSchema):
    id: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: Optional[str]
    unread_count: int
    last_message: Optional[str]
    last_message_time: Optional[datetime]


# ── Admin ─────────────────────────────────────────────────────

class TopAttraction(BaseSchema):
    id: int
    name: str
    bookings: int


class AdminDashboardResponse(BaseSchema):
    total_bookings: int
    total_users: int
    total_revenue: float
    pending_bookings: int
    recent_bookings: List[BookingResponse]
    top_attractions: List[TopAttraction]


# ── Generic ───────────────────────────────────────────────────

class MessageResponse(BaseSchema):
    message: str
    success: bool = True


class SuccessResponse(BaseSchema):
    success: bool = True
    id: Optional[Any] = None


class ErrorResponse(BaseSchema):
    detail: str
    request_id: Optional[str] = None


SessionResponse.model_rebuild()
