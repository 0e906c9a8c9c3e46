"""Tests for the booking step validators."""

from datetime import date
from decimal import Decimal

import pytest

from staybook.models.booking import BookingDraft, RoomTypeContext
from staybook.services.pricing import quote_nights
from staybook.services.validation import (
    FailureKind,
    ValidationResult,
    validate_dates,
    validate_guests,
    validate_identity,
    validate_submission,
    validate_summary,
)

from conftest import PROPERTY_ID, ROOM_TYPE_ID


@pytest.fixture
def complete_draft():
    return BookingDraft(
        property_id=PROPERTY_ID,
        room_type_id=ROOM_TYPE_ID,
        check_in=date(2024, 7, 1),
        check_out=date(2024, 7, 4),
        adults=2,
        children=0,
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        pricing=quote_nights(Decimal("5000"), 3),
    )


# =============================================================================
# Dates
# =============================================================================


class TestValidateDates:
    """Tests for the dates step."""

    def test_valid_range(self):
        assert validate_dates(date(2024, 7, 1), date(2024, 7, 4)).ok

    @pytest.mark.parametrize(
        "check_in, check_out",
        [(None, None), (date(2024, 7, 1), None), (None, date(2024, 7, 4))],
    )
    def test_missing_date(self, check_in, check_out):
        result = validate_dates(check_in, check_out)

        assert not result
        assert result.kind is FailureKind.MISSING_DATE
        assert result.errors == {"dates": "Please select both check-in and check-out dates"}

    @pytest.mark.parametrize("offset", [0, 1, 30])
    def test_check_out_not_after_check_in(self, offset):
        """Test same-day and inverted ranges are rejected."""
        check_in = date(2024, 7, 31)
        check_out = date(2024, 7, 31 - offset)

        result = validate_dates(check_in, check_out)

        assert result.kind is FailureKind.INVALID_RANGE
        assert "check_out" in result.errors


# =============================================================================
# Guests
# =============================================================================


class TestValidateGuests:
    """Tests for the guests step."""

    def test_within_limits(self, room_type):
        assert validate_guests(2, 2, room_type).ok

    def test_adults_required(self, room_type):
        result = validate_guests(0, 1, room_type)

        assert result.kind is FailureKind.ADULTS_REQUIRED
        assert result.errors == {"adults": "At least 1 adult is required"}

    def test_negative_children(self, room_type):
        assert validate_guests(1, -1, room_type).kind is FailureKind.NEGATIVE_CHILDREN

    def test_too_many_adults(self, room_type):
        result = validate_guests(3, 0, room_type)

        assert result.kind is FailureKind.TOO_MANY_ADULTS
        assert result.errors == {"adults": "Maximum 2 adults allowed"}

    def test_too_many_children(self, room_type):
        result = validate_guests(1, 3, room_type)

        assert result.kind is FailureKind.TOO_MANY_CHILDREN
        assert result.errors == {"children": "Maximum 2 children allowed"}

    def test_adults_ceiling_checked_before_occupancy(self):
        """Test 3 adults in a 2-adult / 3-guest room reports TooManyAdults."""
        room = RoomTypeContext(
            property_id=PROPERTY_ID,
            room_type_id=ROOM_TYPE_ID,
            max_occupancy=3,
            max_adults=2,
            max_children=2,
            base_rate=Decimal("5000"),
        )

        result = validate_guests(3, 0, room)

        assert result.kind is FailureKind.TOO_MANY_ADULTS

    def test_occupancy_exceeded_for_every_split(self):
        """Test any split above max occupancy is OccupancyExceeded."""
        room = RoomTypeContext(
            property_id=PROPERTY_ID,
            room_type_id=ROOM_TYPE_ID,
            max_occupancy=4,
            max_adults=8,
            max_children=8,
            base_rate=Decimal("5000"),
        )

        for total in range(5, 9):
            for adults in range(1, total + 1):
                result = validate_guests(adults, total - adults, room)
                assert result.kind is FailureKind.OCCUPANCY_EXCEEDED, (adults, total)
                assert result.errors == {"guests": "Maximum occupancy is 4 guests"}

    def test_missing_room_type_is_programmer_error(self):
        with pytest.raises(ValueError):
            validate_guests(2, 0, None)


# =============================================================================
# Summary & Identity
# =============================================================================


def test_summary_always_passes():
    draft = BookingDraft(property_id=PROPERTY_ID, room_type_id=ROOM_TYPE_ID)

    assert validate_summary(draft).ok


class TestValidateIdentity:
    """Tests for the identity step."""

    def test_valid_identity(self):
        assert validate_identity("Jane", "Doe", "jane@example.com").ok

    def test_phone_is_free_form(self):
        assert validate_identity("Jane", "Doe", "jane@example.com", "(+63) 917-000 ext. 4").ok

    def test_empty_names(self):
        result = validate_identity("", "  ", "jane@example.com")

        assert result.kind is FailureKind.INVALID_IDENTITY
        assert result.errors == {
            "first_name": "First name is required",
            "last_name": "Last name is required",
        }

    def test_name_too_long(self):
        result = validate_identity("J" * 51, "Doe", "jane@example.com")

        assert result.errors == {"first_name": "First name too long"}

    def test_name_at_limit(self):
        assert validate_identity("J" * 50, "D" * 50, "jane@example.com").ok

    @pytest.mark.parametrize("email", ["", "jane", "jane@", "@example.com", "jane doe@example.com"])
    def test_invalid_email(self, email):
        result = validate_identity("Jane", "Doe", email)

        assert result.errors == {"email": "Please enter a valid email address"}


# =============================================================================
# Full Submission
# =============================================================================


class TestValidateSubmission:
    """Tests for the pre-submission re-validation."""

    def test_complete_draft_passes(self, complete_draft, room_type):
        assert validate_submission(complete_draft, room_type).ok

    def test_reruns_guest_limits(self, complete_draft, room_type):
        complete_draft.adults = 5

        assert validate_submission(complete_draft, room_type).kind is FailureKind.TOO_MANY_ADULTS

    def test_reruns_identity(self, complete_draft, room_type):
        complete_draft.email = "not-an-email"

        assert validate_submission(complete_draft, room_type).kind is FailureKind.INVALID_IDENTITY

    def test_missing_pricing(self, complete_draft, room_type):
        complete_draft.pricing = None

        result = validate_submission(complete_draft, room_type)

        assert result.kind is FailureKind.INVALID_PRICING

    def test_stale_pricing(self, complete_draft, room_type):
        """Test pricing computed for other dates is rejected."""
        complete_draft.check_out = date(2024, 7, 6)

        result = validate_submission(complete_draft, room_type)

        assert result.kind is FailureKind.INVALID_PRICING
        assert "pricing" in result.errors

    def test_tampered_total(self, complete_draft, room_type):
        complete_draft.pricing = complete_draft.pricing.model_copy(update={"total": Decimal("1")})

        assert validate_submission(complete_draft, room_type).kind is FailureKind.INVALID_PRICING

    def test_mismatched_room_type(self, complete_draft, room_type):
        complete_draft.room_type_id = "1d2c3b4a-0000-4000-8000-000000000000"

        result = validate_submission(complete_draft, room_type)

        assert result.kind is FailureKind.INVALID_IDENTIFIER
        assert result.errors == {"room_type_id": "Invalid room type ID"}

    def test_non_uuid_property(self, complete_draft, room_type):
        complete_draft.property_id = "grand-hotel"

        result = validate_submission(complete_draft, room_type)

        assert result.errors == {"property_id": "Invalid property ID"}

    def test_missing_room_type_is_programmer_error(self, complete_draft):
        with pytest.raises(ValueError):
            validate_submission(complete_draft, None)


def test_result_message_is_first_error():
    result = ValidationResult.failure(FailureKind.INVALID_IDENTITY, {"a": "first", "b": "second"})

    assert result.message == "first"
    assert ValidationResult.success().message == ""
