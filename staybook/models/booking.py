"""Pydantic models for the guest booking workflow."""

import time
import uuid
from datetime import date, datetime, time as dt_time, timezone
from decimal import Decimal

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


def to_iso_datetime(value: date) -> str:
    """Render a calendar date as a UTC midnight ISO-8601 date-time."""
    moment = datetime.combine(value, dt_time.min, tzinfo=timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


def now_epoch_ms() -> int:
    return int(time.time() * 1000)


class WireModel(BaseModel):
    """Base for payloads exchanged with the booking backend (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Stay & Occupancy
# =============================================================================


class DateRange(BaseModel):
    """Check-in / check-out pair. Check-out is strictly after check-in."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.check_out <= self.check_in:
            raise ValueError("Check-out date must be after check-in date")
        return self

    @property
    def nights(self) -> int:
        """Calculate number of nights."""
        return (self.check_out - self.check_in).days


class OccupancyRequest(BaseModel):
    """Requested guest counts."""

    model_config = ConfigDict(frozen=True)

    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)

    @property
    def total_guests(self) -> int:
        return self.adults + self.children


class RoomRate(BaseModel):
    """A bookable rate plan of a room type."""

    name: str | None = None
    base_rate: Decimal = Field(gt=0)


class RoomTypeContext(BaseModel):
    """Room type constraints supplied by the property catalogue."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    room_type_id: str
    name: str = ""

    max_occupancy: int = Field(ge=1)
    max_adults: int = Field(ge=1)
    max_children: int = Field(ge=0)

    base_rate: Decimal = Field(gt=0)
    rates: tuple[RoomRate, ...] = ()
    currency: str = "PHP"

    @property
    def nightly_rate(self) -> Decimal:
        """First rate plan wins over the room type base rate."""
        if self.rates:
            return self.rates[0].base_rate
        return self.base_rate


# =============================================================================
# Guest & Pricing
# =============================================================================


class GuestIdentity(BaseModel):
    """Lead guest details collected on the last step."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    phone: str | None = None

    # Free text forwarded to the property
    special_requests: str | None = None
    guest_notes: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class PricingBreakdown(BaseModel):
    """Derived stay price. Never edited in place; recompute instead."""

    model_config = ConfigDict(frozen=True)

    nights: int = Field(ge=0)
    subtotal: Decimal = Field(ge=0)
    taxes: Decimal = Field(ge=0)
    service_fee: Decimal = Field(ge=0)
    total: Decimal = Field(ge=0)


# =============================================================================
# Draft & Submission
# =============================================================================


class BookingDraft(BaseModel):
    """
    In-progress booking accumulated across the wizard steps.

    Holds raw user input, which may be invalid until the matching step
    validates it. Discarded if the flow is abandoned.
    """

    property_id: str
    room_type_id: str

    check_in: date | None = None
    check_out: date | None = None

    adults: int = 2
    children: int = 0

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str | None = None
    special_requests: str | None = None
    guest_notes: str | None = None

    pricing: PricingBreakdown | None = None

    # Reused for every retry of this draft
    idempotency_key: str = Field(default_factory=lambda: str(uuid.uuid4()))

    def date_range(self) -> DateRange | None:
        """Return the stay range, or None while it is incomplete or inverted."""
        if self.check_in is None or self.check_out is None:
            return None
        if self.check_out <= self.check_in:
            return None
        return DateRange(check_in=self.check_in, check_out=self.check_out)

    def identity(self) -> GuestIdentity:
        """Build the guest identity. Raises pydantic.ValidationError."""
        return GuestIdentity(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone or None,
            special_requests=self.special_requests or None,
            guest_notes=self.guest_notes or None,
        )

    def freeze(self) -> "SubmissionSnapshot":
        """
        Build the immutable submission input from a fully validated draft.

        Raises:
            ValueError: If the draft is incomplete (pydantic.ValidationError included)
        """
        stay = self.date_range()
        if stay is None:
            raise ValueError("Draft has no valid date range")
        if self.pricing is None:
            raise ValueError("Draft has no pricing")

        return SubmissionSnapshot(
            property_id=self.property_id,
            room_type_id=self.room_type_id,
            stay=stay,
            occupancy=OccupancyRequest(adults=self.adults, children=self.children),
            guest=self.identity(),
            pricing=self.pricing,
            idempotency_key=self.idempotency_key,
        )


class SubmissionSnapshot(BaseModel):
    """Frozen copy of a validated draft handed to the reservation service."""

    model_config = ConfigDict(frozen=True)

    property_id: str
    room_type_id: str
    stay: DateRange
    occupancy: OccupancyRequest
    guest: GuestIdentity
    pricing: PricingBreakdown
    idempotency_key: str

    def to_request(self) -> "ReservationRequest":
        return ReservationRequest(
            first_name=self.guest.first_name,
            last_name=self.guest.last_name,
            email=self.guest.email,
            phone=self.guest.phone,
            check_in_date=to_iso_datetime(self.stay.check_in),
            check_out_date=to_iso_datetime(self.stay.check_out),
            adults=self.occupancy.adults,
            children=self.occupancy.children,
            total_amount=self.pricing.total,
            nights=self.pricing.nights,
            subtotal=self.pricing.subtotal,
            taxes=self.pricing.taxes,
            service_fee=self.pricing.service_fee,
            business_unit_id=self.property_id,
            room_type_id=self.room_type_id,
            special_requests=self.guest.special_requests,
            guest_notes=self.guest.guest_notes,
        )


# =============================================================================
# Wire Models
# =============================================================================


class ReservationRequest(WireModel):
    """Payload for POST /reservations/create-with-payment."""

    first_name: str
    last_name: str
    email: str
    phone: str | None = None

    check_in_date: str  # ISO-8601 date-time
    check_out_date: str  # ISO-8601 date-time

    adults: int
    children: int

    total_amount: Decimal
    nights: int
    subtotal: Decimal
    taxes: Decimal
    service_fee: Decimal

    business_unit_id: str
    room_type_id: str

    special_requests: str | None = None
    guest_notes: str | None = None

    @field_serializer("total_amount", "subtotal", "taxes", "service_fee")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ReservationSubmissionResult(WireModel):
    """Successful create-with-payment response."""

    reservation_id: str
    checkout_url: str
    payment_session_id: str
    confirmation_number: str | None = None


class PendingReservationMarker(WireModel):
    """Breadcrumb linking a submitted reservation to its checkout session."""

    model_config = ConfigDict(frozen=True)

    reservation_id: str
    payment_session_id: str
    timestamp: int  # epoch milliseconds

    @classmethod
    def from_result(
        cls,
        result: ReservationSubmissionResult,
        timestamp: int | None = None,
    ) -> "PendingReservationMarker":
        return cls(
            reservation_id=result.reservation_id,
            payment_session_id=result.payment_session_id,
            timestamp=timestamp if timestamp is not None else now_epoch_ms(),
        )


class ReservationStatus(WireModel):
    """Response of GET /reservations/{id}/status."""

    id: str
    status: str
    payment_status: str
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "PAID" and self.status == "CONFIRMED"

    @property
    def is_failed(self) -> bool:
        return self.payment_status == "FAILED" or self.status == "CANCELLED"
