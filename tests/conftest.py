"""Shared fixtures for booking engine tests."""

import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from staybook.models.booking import RoomTypeContext
from staybook.services.booking_flow import BookingFlow
from staybook.services.pending_tracker import InMemorySessionStore, PendingReservationTracker

PROPERTY_ID = "6f1c2d3e-4a5b-4c6d-8e7f-901a2b3c4d5e"
ROOM_TYPE_ID = "0b9a8c7d-6e5f-4a3b-9c2d-1e0f2a3b4c5d"
BASE_URL = "https://hotel.test/api"

CHECKOUT_RESPONSE = {
    "reservationId": "res_123",
    "checkoutUrl": "https://checkout.paymongo.test/cs_abc",
    "paymentSessionId": "cs_abc",
    "confirmationNumber": "RES-LXYZ-AB12C",
}


class RecordingBackend:
    """httpx handler that records requests and replays queued responses."""

    def __init__(self, *responses):
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        return httpx.Response(status, json=body)

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def room_type():
    """Room type allowing 2 adults + 2 children, max 4 guests, 5000/night."""
    return RoomTypeContext(
        property_id=PROPERTY_ID,
        room_type_id=ROOM_TYPE_ID,
        name="Deluxe King",
        max_occupancy=4,
        max_adults=2,
        max_children=2,
        base_rate=Decimal("5000"),
    )


@pytest.fixture
def flow(room_type):
    return BookingFlow(room_type)


@pytest.fixture
def ready_flow(flow):
    """Flow on the identity step with a complete, valid draft."""
    flow.select_check_in(date(2024, 7, 1))
    flow.select_check_out(date(2024, 7, 4))
    assert flow.advance().advanced
    flow.set_guests(2, 0)
    assert flow.advance().advanced
    assert flow.advance().advanced
    flow.set_guest_details("Jane", "Doe", "jane@example.com")
    return flow


@pytest.fixture
def tracker():
    return PendingReservationTracker(InMemorySessionStore())
