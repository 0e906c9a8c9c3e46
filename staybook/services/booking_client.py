"""Async client for the reservation + payment backend."""

from typing import Any

import httpx

from staybook.models.booking import (
    ReservationRequest,
    ReservationStatus,
    ReservationSubmissionResult,
)
from staybook.utils.logger import get_logger, mask_email

logger = get_logger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class BookingApiError(Exception):
    """Base exception for booking backend errors."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class BookingTransportError(BookingApiError):
    """Network failure or timeout; the backend outcome is unknown."""

    pass


class BookingRejectedError(BookingApiError):
    """Backend answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int,
        error: str | None = None,
        details: str | None = None,
        response: Any = None,
    ):
        super().__init__(message, status_code=status_code, response=response)
        self.error = error
        self.details = details


# =============================================================================
# Booking API Client
# =============================================================================


class BookingApiClient:
    """
    Async client for the booking backend.

    Usage:
        async with BookingApiClient(base_url) as client:
            result = await client.create_reservation_with_payment(request, key)
    """

    CREATE_WITH_PAYMENT_PATH = "/reservations/create-with-payment"
    STATUS_PATH = "/reservations/{reservation_id}/status"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize booking client.

        Args:
            base_url: API base URL (e.g., https://hotel.example.com/api)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "BookingApiClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raise if not initialized."""
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with BookingApiClient(...)' context."
            )
        return self._client

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _rejection(response: httpx.Response) -> BookingRejectedError:
        """Build a rejection from a {error, details} error body."""
        try:
            data = response.json()
        except ValueError:
            data = None

        error = details = None
        if isinstance(data, dict):
            error = data.get("error")
            details = data.get("details")

        message = error or f"Booking request failed with HTTP {response.status_code}"
        return BookingRejectedError(
            message,
            status_code=response.status_code,
            error=error,
            details=details,
            response=data,
        )

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response

        except httpx.HTTPStatusError as e:
            rejection = self._rejection(e.response)
            logger.error(
                "booking_api_http_error",
                url=url,
                status=e.response.status_code,
                error=rejection.error,
                details=rejection.details,
            )
            raise rejection from e
        except httpx.TimeoutException as e:
            logger.error("booking_api_timeout", url=url, timeout=self.timeout)
            raise BookingTransportError(f"Request timed out: {e}") from e
        except httpx.TransportError as e:
            logger.error("booking_api_transport_error", url=url, error=str(e))
            raise BookingTransportError(f"Network error: {e}") from e

    # =========================================================================
    # Reservations
    # =========================================================================

    async def create_reservation_with_payment(
        self,
        request: ReservationRequest,
        idempotency_key: str | None = None,
    ) -> ReservationSubmissionResult:
        """
        Create a reservation and its payment checkout session in one call.

        Args:
            request: Full reservation payload
            idempotency_key: Client key reused across retries of one draft

        Returns:
            ReservationSubmissionResult with the checkout URL

        Raises:
            BookingRejectedError: Backend returned 4xx/5xx
            BookingTransportError: Network failure or timeout
            BookingApiError: Success response could not be parsed
        """
        url = f"{self.base_url}{self.CREATE_WITH_PAYMENT_PATH}"
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}

        logger.info(
            "booking_api_create_reservation",
            property_id=request.business_unit_id,
            room_type_id=request.room_type_id,
            check_in=request.check_in_date,
            check_out=request.check_out_date,
            adults=request.adults,
            children=request.children,
            total=str(request.total_amount),
            email=mask_email(request.email),
        )

        response = await self._send(
            "POST", url, json=request.to_payload(), headers=headers
        )

        try:
            result = ReservationSubmissionResult.model_validate(response.json())
        except ValueError as e:
            logger.error("booking_api_malformed_response", url=url, error=str(e))
            raise BookingApiError(
                f"Malformed reservation response: {e}",
                status_code=response.status_code,
            ) from e

        logger.info(
            "booking_api_reservation_created",
            reservation_id=result.reservation_id,
            payment_session_id=result.payment_session_id,
        )
        return result

    async def get_reservation_status(self, reservation_id: str) -> ReservationStatus:
        """
        Get reservation and payment status.

        Args:
            reservation_id: Reservation ID returned on submission

        Returns:
            ReservationStatus
        """
        url = f"{self.base_url}{self.STATUS_PATH.format(reservation_id=reservation_id)}"

        logger.debug("booking_api_get_status", reservation_id=reservation_id)

        response = await self._send("GET", url)

        try:
            return ReservationStatus.model_validate(response.json())
        except ValueError as e:
            raise BookingApiError(
                f"Malformed status response: {e}",
                status_code=response.status_code,
            ) from e
