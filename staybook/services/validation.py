"""Per-step validation for the booking wizard.

Validators are pure and return a ValidationResult. They never raise for
invalid guest input; a missing room type context is a programming error
and raises ValueError.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from pydantic import ValidationError

from staybook.models.booking import (
    BookingDraft,
    DateRange,
    GuestIdentity,
    RoomTypeContext,
)
from staybook.services.pricing import compute_pricing


# =============================================================================
# Result Types
# =============================================================================


class FailureKind(str, Enum):
    """Why a validator rejected its input."""

    MISSING_DATE = "MissingDate"
    INVALID_RANGE = "InvalidRange"
    ADULTS_REQUIRED = "AdultsRequired"
    NEGATIVE_CHILDREN = "NegativeChildren"
    TOO_MANY_ADULTS = "TooManyAdults"
    TOO_MANY_CHILDREN = "TooManyChildren"
    OCCUPANCY_EXCEEDED = "OccupancyExceeded"
    INVALID_IDENTITY = "InvalidIdentity"
    INVALID_IDENTIFIER = "InvalidIdentifier"
    INVALID_PRICING = "InvalidPricing"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validator: success, or a kind plus field -> message."""

    ok: bool
    kind: FailureKind | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, kind: FailureKind, errors: dict[str, str]) -> "ValidationResult":
        return cls(ok=False, kind=kind, errors=dict(errors))

    @property
    def message(self) -> str:
        """First error message, for a toast-style summary."""
        return next(iter(self.errors.values()), "")

    def __bool__(self) -> bool:
        return self.ok


def _require_room_type(room_type: RoomTypeContext | None) -> RoomTypeContext:
    if room_type is None:
        raise ValueError("A room type context is required for validation")
    return room_type


# =============================================================================
# Step Validators
# =============================================================================


def validate_dates(check_in: date | None, check_out: date | None) -> ValidationResult:
    """Dates step: both dates present, check-out after check-in."""
    if check_in is None or check_out is None:
        return ValidationResult.failure(
            FailureKind.MISSING_DATE,
            {"dates": "Please select both check-in and check-out dates"},
        )

    if check_out <= check_in:
        return ValidationResult.failure(
            FailureKind.INVALID_RANGE,
            {"check_out": "Check-out date must be after check-in date"},
        )

    return ValidationResult.success()


def validate_guests(
    adults: int,
    children: int,
    room_type: RoomTypeContext,
) -> ValidationResult:
    """
    Guests step: occupancy within the room type ceilings.

    The individual adults/children ceilings are checked before the combined
    occupancy ceiling, so an over-limit adult count reports TOO_MANY_ADULTS.
    """
    room_type = _require_room_type(room_type)

    if adults < 1:
        return ValidationResult.failure(
            FailureKind.ADULTS_REQUIRED,
            {"adults": "At least 1 adult is required"},
        )

    if children < 0:
        return ValidationResult.failure(
            FailureKind.NEGATIVE_CHILDREN,
            {"children": "Children count cannot be negative"},
        )

    if adults > room_type.max_adults:
        return ValidationResult.failure(
            FailureKind.TOO_MANY_ADULTS,
            {"adults": f"Maximum {room_type.max_adults} adults allowed"},
        )

    if children > room_type.max_children:
        return ValidationResult.failure(
            FailureKind.TOO_MANY_CHILDREN,
            {"children": f"Maximum {room_type.max_children} children allowed"},
        )

    if adults + children > room_type.max_occupancy:
        return ValidationResult.failure(
            FailureKind.OCCUPANCY_EXCEEDED,
            {"guests": f"Maximum occupancy is {room_type.max_occupancy} guests"},
        )

    return ValidationResult.success()


def validate_summary(draft: BookingDraft) -> ValidationResult:
    """Summary step only displays the draft."""
    return ValidationResult.success()


_NAME_LABELS = {
    "first_name": "First name",
    "last_name": "Last name",
}


def _identity_message(error: dict) -> str:
    name = str(error["loc"][0]) if error["loc"] else "identity"

    if name == "email":
        return "Please enter a valid email address"

    label = _NAME_LABELS.get(name, name.replace("_", " ").capitalize())
    if error["type"] == "string_too_short":
        return f"{label} is required"
    if error["type"] == "string_too_long":
        return f"{label} too long"
    return error["msg"]


def identity_errors(exc: ValidationError) -> dict[str, str]:
    """Map pydantic errors to field -> message, first error per field."""
    errors: dict[str, str] = {}
    for error in exc.errors():
        name = str(error["loc"][0]) if error["loc"] else "identity"
        errors.setdefault(name, _identity_message(error))
    return errors


def validate_identity(
    first_name: str,
    last_name: str,
    email: str,
    phone: str | None = None,
) -> ValidationResult:
    """Identity step: names 1-50 chars, valid email, phone free-form."""
    try:
        GuestIdentity(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone or None,
        )
    except ValidationError as e:
        return ValidationResult.failure(FailureKind.INVALID_IDENTITY, identity_errors(e))

    return ValidationResult.success()


# =============================================================================
# Full Draft Validation
# =============================================================================


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def _validate_identifiers(draft: BookingDraft, room_type: RoomTypeContext) -> ValidationResult:
    errors: dict[str, str] = {}

    if not _is_uuid(draft.property_id) or draft.property_id != room_type.property_id:
        errors["property_id"] = "Invalid property ID"
    if not _is_uuid(draft.room_type_id) or draft.room_type_id != room_type.room_type_id:
        errors["room_type_id"] = "Invalid room type ID"

    if errors:
        return ValidationResult.failure(FailureKind.INVALID_IDENTIFIER, errors)
    return ValidationResult.success()


def _validate_pricing(draft: BookingDraft, room_type: RoomTypeContext) -> ValidationResult:
    pricing = draft.pricing
    if pricing is None:
        return ValidationResult.failure(
            FailureKind.INVALID_PRICING,
            {"pricing": "Pricing has not been calculated"},
        )

    expected = compute_pricing(
        room_type.nightly_rate,
        DateRange(check_in=draft.check_in, check_out=draft.check_out),
    )
    if pricing != expected:
        return ValidationResult.failure(
            FailureKind.INVALID_PRICING,
            {"pricing": "Pricing is out of date, please review your booking"},
        )

    errors: dict[str, str] = {}
    if pricing.nights <= 0:
        errors["nights"] = "Nights must be positive"
    if pricing.subtotal <= 0:
        errors["subtotal"] = "Subtotal must be positive"
    if pricing.taxes <= 0:
        errors["taxes"] = "Taxes must be positive"
    if pricing.service_fee <= 0:
        errors["service_fee"] = "Service fee must be positive"
    if pricing.total <= 0:
        errors["total"] = "Total amount must be positive"

    if errors:
        return ValidationResult.failure(FailureKind.INVALID_PRICING, errors)
    return ValidationResult.success()


def validate_submission(draft: BookingDraft, room_type: RoomTypeContext) -> ValidationResult:
    """
    Re-validate the whole draft immediately before submission.

    Re-runs the dates, guests and identity validators, checks the property
    and room type identifiers, and recomputes pricing so a stale or edited
    draft cannot be submitted.
    """
    room_type = _require_room_type(room_type)

    checks = (
        lambda: validate_dates(draft.check_in, draft.check_out),
        lambda: validate_guests(draft.adults, draft.children, room_type),
        lambda: validate_identity(
            draft.first_name, draft.last_name, draft.email, draft.phone
        ),
        lambda: _validate_identifiers(draft, room_type),
        lambda: _validate_pricing(draft, room_type),
    )

    for check in checks:
        result = check()
        if not result:
            return result

    return ValidationResult.success()
