"""Booking wizard state machine: dates -> guests -> summary -> identity."""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterator

from staybook.models.booking import BookingDraft, RoomTypeContext
from staybook.services.pricing import compute_pricing
from staybook.services.validation import (
    ValidationResult,
    validate_dates,
    validate_guests,
    validate_identity,
    validate_submission,
    validate_summary,
)
from staybook.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Steps
# =============================================================================


class BookingStep(str, Enum):
    """Wizard steps in their only allowed order."""

    DATES = "dates"
    GUESTS = "guests"
    SUMMARY = "summary"
    IDENTITY = "identity"


STEP_ORDER: tuple[BookingStep, ...] = (
    BookingStep.DATES,
    BookingStep.GUESTS,
    BookingStep.SUMMARY,
    BookingStep.IDENTITY,
)

STEP_TITLES: dict[BookingStep, str] = {
    BookingStep.DATES: "Select Dates",
    BookingStep.GUESTS: "Guest Details",
    BookingStep.SUMMARY: "Booking Summary",
    BookingStep.IDENTITY: "Complete Booking",
}


class BookingStateError(Exception):
    """Flow used out of order (programming error, not guest input)."""

    pass


@dataclass(frozen=True)
class StepResult:
    """Result of advance(): the step the flow is now on and why."""

    step: BookingStep
    validation: ValidationResult
    notice: str | None = None

    @property
    def advanced(self) -> bool:
        return self.validation.ok


@dataclass(frozen=True)
class StepProgress:
    """One entry of the wizard progress indicator."""

    step: BookingStep
    title: str
    number: int
    completed: bool
    current: bool


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


# =============================================================================
# Booking Flow
# =============================================================================


class BookingFlow:
    """
    Linear booking wizard over one draft.

    Usage:
        flow = BookingFlow(room_type)
        flow.select_check_in(date(2024, 7, 1))
        flow.select_check_out(date(2024, 7, 4))
        flow.advance()          # -> GUESTS
        flow.set_guests(2, 0)
        flow.advance()          # -> SUMMARY
        flow.advance()          # -> IDENTITY
        flow.set_guest_details("Jane", "Doe", "jane@example.com")
        outcome = await reservation_service.submit(flow)
    """

    def __init__(self, room_type: RoomTypeContext, draft: BookingDraft | None = None):
        if room_type is None:
            raise ValueError("BookingFlow requires a room type context")

        self.room_type = room_type
        self.draft = draft or BookingDraft(
            property_id=room_type.property_id,
            room_type_id=room_type.room_type_id,
        )
        self._step = BookingStep.DATES
        self._errors: dict[str, str] = {}
        self._submitting = False

    # =========================================================================
    # State
    # =========================================================================

    @property
    def step(self) -> BookingStep:
        return self._step

    @property
    def errors(self) -> dict[str, str]:
        """Field errors of the last rejected transition."""
        return dict(self._errors)

    @property
    def submitting(self) -> bool:
        return self._submitting

    def progress(self) -> list[StepProgress]:
        current_index = STEP_ORDER.index(self._step)
        return [
            StepProgress(
                step=step,
                title=STEP_TITLES[step],
                number=index + 1,
                completed=index < current_index,
                current=index == current_index,
            )
            for index, step in enumerate(STEP_ORDER)
        ]

    def _ensure_idle(self) -> None:
        if self._submitting:
            raise BookingStateError("A reservation submission is in progress")

    def _clear_errors(self, *names: str) -> None:
        for name in names:
            self._errors.pop(name, None)

    def _refresh_pricing(self) -> None:
        stay = self.draft.date_range()
        self.draft.pricing = (
            compute_pricing(self.room_type.nightly_rate, stay) if stay else None
        )

    # =========================================================================
    # Input
    # =========================================================================

    def select_check_in(self, value: date | None) -> None:
        """Set check-in; pushes check-out to the next day if it would not follow."""
        self._ensure_idle()
        self._clear_errors("dates", "check_in", "check_out")

        self.draft.check_in = value
        if value is not None and self.draft.check_out is not None:
            if value >= self.draft.check_out:
                self.draft.check_out = value + timedelta(days=1)

        self._refresh_pricing()

    def select_check_out(self, value: date | None) -> None:
        self._ensure_idle()
        self._clear_errors("dates", "check_in", "check_out")

        self.draft.check_out = value
        self._refresh_pricing()

    def set_guests(self, adults: int, children: int = 0) -> None:
        self._ensure_idle()
        self._clear_errors("adults", "children", "guests")

        self.draft.adults = adults
        self.draft.children = children

    def set_guest_details(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone: str | None = None,
        special_requests: str | None = None,
        guest_notes: str | None = None,
    ) -> None:
        self._ensure_idle()
        self._clear_errors("first_name", "last_name", "email", "phone")

        self.draft.first_name = first_name
        self.draft.last_name = last_name
        self.draft.email = email
        self.draft.phone = phone
        self.draft.special_requests = special_requests
        self.draft.guest_notes = guest_notes

    # =========================================================================
    # Transitions
    # =========================================================================

    def validate_step(self, step: BookingStep | None = None) -> ValidationResult:
        """Run the validator of a step (default: the current one)."""
        step = step or self._step
        draft = self.draft

        if step is BookingStep.DATES:
            return validate_dates(draft.check_in, draft.check_out)
        if step is BookingStep.GUESTS:
            return validate_guests(draft.adults, draft.children, self.room_type)
        if step is BookingStep.SUMMARY:
            return validate_summary(draft)
        return validate_identity(
            draft.first_name, draft.last_name, draft.email, draft.phone
        )

    def advance(self) -> StepResult:
        """
        Move to the next step if the current one validates.

        Returns:
            StepResult; on failure the flow stays put and errors are set

        Raises:
            BookingStateError: At the identity step (submit instead) or mid-submission
        """
        self._ensure_idle()
        if self._step is BookingStep.IDENTITY:
            raise BookingStateError("Identity is the last step; submit the booking instead")

        leaving = self._step
        validation = self.validate_step(leaving)

        if not validation:
            self._errors = dict(validation.errors)
            logger.info(
                "booking_step_rejected",
                step=leaving.value,
                kind=validation.kind.value if validation.kind else None,
                fields=sorted(validation.errors),
            )
            return StepResult(step=leaving, validation=validation)

        if leaving in (BookingStep.DATES, BookingStep.GUESTS):
            self._refresh_pricing()

        self._step = STEP_ORDER[STEP_ORDER.index(leaving) + 1]
        self._errors = {}

        logger.debug("booking_step_advanced", from_step=leaving.value, to_step=self._step.value)
        return StepResult(
            step=self._step,
            validation=validation,
            notice=self._notice_for(leaving),
        )

    def retreat(self) -> BookingStep:
        """Go back one step. Keeps all entered data; no-op on the first step."""
        self._ensure_idle()
        self._errors = {}

        index = STEP_ORDER.index(self._step)
        if index > 0:
            self._step = STEP_ORDER[index - 1]
        return self._step

    def _notice_for(self, leaving: BookingStep) -> str | None:
        if leaving is BookingStep.DATES and self.draft.pricing:
            return f"{_plural(self.draft.pricing.nights, 'night')} stay selected"
        if leaving is BookingStep.GUESTS:
            return f"{_plural(self.draft.adults + self.draft.children, 'guest')} selected"
        return None

    # =========================================================================
    # Submission
    # =========================================================================

    def validate_for_submission(self) -> ValidationResult:
        """
        Identity validation plus full-draft re-validation.

        Raises:
            BookingStateError: If the flow is not on the identity step
        """
        if self._step is not BookingStep.IDENTITY:
            raise BookingStateError(
                f"Cannot submit from step '{self._step.value}', complete the booking steps first"
            )

        result = self.validate_step(BookingStep.IDENTITY)
        if result:
            result = validate_submission(self.draft, self.room_type)

        self._errors = dict(result.errors)
        return result

    @contextmanager
    def submission_lock(self) -> Iterator[None]:
        """Hold the flow while a submission call is outstanding."""
        if self._submitting:
            raise BookingStateError("A reservation submission is already in progress")

        self._submitting = True
        try:
            yield
        finally:
            self._submitting = False
