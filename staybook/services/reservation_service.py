"""Reservation service - validated draft to reservation + checkout session."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

from staybook.config import Settings, get_settings
from staybook.models.booking import (
    PendingReservationMarker,
    ReservationStatus,
    ReservationSubmissionResult,
    now_epoch_ms,
)
from staybook.services.booking_client import (
    BookingApiClient,
    BookingApiError,
    BookingRejectedError,
    BookingTransportError,
)
from staybook.services.booking_flow import BookingFlow, BookingStep
from staybook.services.pending_tracker import (
    InMemorySessionStore,
    JsonFileSessionStore,
    KeyValueStore,
    PendingReservationTracker,
)
from staybook.utils.logger import booking_context, get_logger

logger = get_logger(__name__)


# =============================================================================
# Data Models
# =============================================================================


class SubmissionErrorKind(str, Enum):
    """Failure classes of a submission attempt."""

    NOT_READY = "not_ready"  # flow not on the identity step
    VALIDATION = "validation"  # draft failed re-validation, nothing sent
    DUPLICATE = "duplicate"  # a submission for this flow is in flight
    TRANSPORT = "transport"  # network failure, timeout, unreadable response
    REJECTED = "rejected"  # backend returned an error status


@dataclass(frozen=True)
class SubmissionError:
    """Why a submission did not produce a reservation."""

    kind: SubmissionErrorKind
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None
    details: str | None = None

    @property
    def retryable(self) -> bool:
        return self.kind in (SubmissionErrorKind.TRANSPORT, SubmissionErrorKind.REJECTED)


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of ReservationService.submit()."""

    ok: bool
    result: ReservationSubmissionResult | None = None
    marker: PendingReservationMarker | None = None
    error: SubmissionError | None = None
    warning: str | None = None

    @property
    def checkout_url(self) -> str | None:
        return self.result.checkout_url if self.result else None

    @classmethod
    def failed(cls, kind: SubmissionErrorKind, message: str, **kwargs) -> "SubmissionOutcome":
        return cls(ok=False, error=SubmissionError(kind=kind, message=message, **kwargs))


@dataclass
class PaymentCheckResult:
    """Result of waiting on a reservation's payment."""

    reservation_id: str
    status: ReservationStatus | None = None
    attempts: int = 0
    timed_out: bool = False
    error: str | None = None

    @property
    def paid(self) -> bool:
        return bool(self.status and self.status.is_paid)

    @property
    def failed(self) -> bool:
        return bool(self.status and self.status.is_failed)


# =============================================================================
# Reservation Service
# =============================================================================


class ReservationService:
    """
    Submits a completed booking flow to the backend.

    One submit() call issues at most one network request:
    1. Refuse unless the flow is on the identity step and fully validates
    2. Create reservation + payment checkout session in a single call
    3. Record the pending-reservation marker
    4. Return the checkout URL for the redirect

    Failures leave the draft untouched and record no marker. Retries reuse
    the draft's idempotency key, but the backend is not assumed to dedupe.
    """

    def __init__(
        self,
        client: BookingApiClient,
        tracker: PendingReservationTracker,
        clock: Callable[[], int] = now_epoch_ms,
    ):
        """
        Initialize reservation service.

        Args:
            client: Booking backend client (opened by the caller)
            tracker: Pending-reservation tracker
            clock: Epoch-milliseconds source for marker timestamps
        """
        self.client = client
        self.tracker = tracker
        self.clock = clock

    async def submit(self, flow: BookingFlow) -> SubmissionOutcome:
        """
        Submit the flow's draft.

        Args:
            flow: Booking flow positioned on the identity step

        Returns:
            SubmissionOutcome with the checkout URL, or the error
        """
        if flow.step is not BookingStep.IDENTITY:
            logger.warning("reservation_submit_not_ready", step=flow.step.value)
            return SubmissionOutcome.failed(
                SubmissionErrorKind.NOT_READY,
                f"Complete the '{flow.step.value}' step before submitting",
            )

        if flow.submitting:
            logger.warning("reservation_submit_duplicate")
            return SubmissionOutcome.failed(
                SubmissionErrorKind.DUPLICATE,
                "Your reservation is already being submitted",
            )

        validation = flow.validate_for_submission()
        if not validation:
            logger.info(
                "reservation_submit_invalid",
                kind=validation.kind.value if validation.kind else None,
                fields=sorted(validation.errors),
            )
            return SubmissionOutcome.failed(
                SubmissionErrorKind.VALIDATION,
                "Please check your booking details and try again.",
                field_errors=validation.errors,
            )

        snapshot = flow.draft.freeze()

        with flow.submission_lock(), booking_context(
            snapshot.idempotency_key,
            property_id=snapshot.property_id,
            room_type_id=snapshot.room_type_id,
        ):
            try:
                result = await self.client.create_reservation_with_payment(
                    snapshot.to_request(),
                    idempotency_key=snapshot.idempotency_key,
                )

            except BookingRejectedError as e:
                logger.error(
                    "reservation_submit_rejected",
                    status=e.status_code,
                    error=e.error,
                    details=e.details,
                )
                return SubmissionOutcome.failed(
                    SubmissionErrorKind.REJECTED,
                    e.error or str(e),
                    status_code=e.status_code,
                    details=e.details,
                )
            except BookingTransportError as e:
                logger.error("reservation_submit_transport_error", error=str(e))
                return SubmissionOutcome.failed(SubmissionErrorKind.TRANSPORT, str(e))
            except BookingApiError as e:
                logger.error("reservation_submit_failed", error=str(e))
                return SubmissionOutcome.failed(
                    SubmissionErrorKind.TRANSPORT,
                    str(e),
                    status_code=e.status_code,
                )

            logger.info(
                "reservation_submitted",
                reservation_id=result.reservation_id,
                confirmation_number=result.confirmation_number,
            )

            # Marker must exist before the caller redirects
            marker = PendingReservationMarker.from_result(result, timestamp=self.clock())
            try:
                self.tracker.record(marker)
            except Exception as e:
                # Reservation already exists; hand back the checkout URL regardless
                logger.error(
                    "pending_reservation_record_failed",
                    reservation_id=result.reservation_id,
                    error=str(e),
                )
                return SubmissionOutcome(
                    ok=True,
                    result=result,
                    warning=(
                        f"Reservation {result.reservation_id} was created but could not "
                        "be tracked for payment follow-up"
                    ),
                )

        return SubmissionOutcome(ok=True, result=result, marker=marker)


# =============================================================================
# Payment Status Reconciliation
# =============================================================================


class PaymentStatusReconciler:
    """
    Polls reservation payment status after a checkout redirect.

    Used when the guest comes back (or fails to come back) from checkout:
    the pending marker says which reservation to look at.
    """

    def __init__(
        self,
        client: BookingApiClient,
        tracker: PendingReservationTracker,
        poll_interval: float = 5.0,
        max_attempts: int = 60,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.tracker = tracker
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def check(self, reservation_id: str) -> ReservationStatus:
        return await self.client.get_reservation_status(reservation_id)

    async def wait_for_completion(self, reservation_id: str) -> PaymentCheckResult:
        """
        Poll until the payment is settled or attempts run out.

        Fetch errors are logged and polling continues.
        """
        result = PaymentCheckResult(reservation_id=reservation_id)

        while result.attempts < self.max_attempts:
            result.attempts += 1
            try:
                result.status = await self.check(reservation_id)
                result.error = None
            except BookingApiError as e:
                result.error = str(e)
                logger.warning(
                    "payment_status_check_failed",
                    reservation_id=reservation_id,
                    attempt=result.attempts,
                    error=str(e),
                )

            if result.paid or result.failed:
                logger.info(
                    "payment_status_settled",
                    reservation_id=reservation_id,
                    status=result.status.status,
                    payment_status=result.status.payment_status,
                    attempts=result.attempts,
                )
                return result

            if result.attempts < self.max_attempts:
                await self._sleep(self.poll_interval)

        result.timed_out = True
        logger.warning(
            "payment_status_timeout",
            reservation_id=reservation_id,
            attempts=result.attempts,
        )
        return result

    async def reconcile_pending(self) -> PaymentCheckResult | None:
        """Poll the reservation named by the pending marker, if any."""
        marker = self.tracker.peek()
        if marker is None:
            logger.debug("no_pending_reservation")
            return None

        logger.info(
            "reconciling_pending_reservation",
            reservation_id=marker.reservation_id,
            payment_session_id=marker.payment_session_id,
        )
        return await self.wait_for_completion(marker.reservation_id)


# =============================================================================
# Factory Functions
# =============================================================================


def create_tracker(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    persistent: bool = False,
) -> PendingReservationTracker:
    """
    Create a pending-reservation tracker.

    Args:
        settings: Settings (from config if not provided)
        store: Explicit store; overrides `persistent`
        persistent: Use the per-shell JSON session file instead of memory

    Returns:
        Configured PendingReservationTracker
    """
    settings = settings or get_settings()

    if store is None:
        if persistent:
            store = JsonFileSessionStore(Path(settings.tracker.session_dir))
        else:
            store = InMemorySessionStore()

    return PendingReservationTracker(store, key=settings.pending_storage_key)


def create_booking_client(settings: Settings | None = None, **kwargs) -> BookingApiClient:
    """Create a booking client from settings (caller opens it)."""
    settings = settings or get_settings()
    return BookingApiClient(
        base_url=settings.booking_api_base_url,
        timeout=settings.booking_api_timeout,
        **kwargs,
    )


def create_reconciler(
    client: BookingApiClient,
    tracker: PendingReservationTracker,
    settings: Settings | None = None,
) -> PaymentStatusReconciler:
    settings = settings or get_settings()
    return PaymentStatusReconciler(
        client,
        tracker,
        poll_interval=settings.booking_api.status_poll_interval_seconds,
        max_attempts=settings.booking_api.status_poll_max_attempts,
    )
