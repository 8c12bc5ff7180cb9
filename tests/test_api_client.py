"""
Tests for the remote API client with requests stubbed out.
"""

import pendulum
import pytest
import requests

from slotbook.adapters.api_client import BookingApiClient
from slotbook.domain.exceptions import ApiClientError
from slotbook.domain.models import BookingStatus


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload


class RecordingTransport:
    """Stands in for requests.request and remembers each call."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def __call__(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def transport(monkeypatch):
    def install(response):
        fake = RecordingTransport(response)
        monkeypatch.setattr(requests, "request", fake)
        return fake

    return install


def test_available_slots(transport):
    fake = transport(
        FakeResponse(
            payload=[
                {"start": "2024-11-25T09:00:00-05:00", "end": "2024-11-25T10:00:00-05:00", "available": True},
                {"start": "2024-11-25T10:00:00-05:00", "end": "2024-11-25T11:00:00-05:00", "available": False},
            ]
        )
    )
    client = BookingApiClient("http://localhost:8000/")

    slots = client.available_slots("court-1", pendulum.date(2024, 11, 25))

    assert fake.calls[0]["url"] == "http://localhost:8000/api/venues/court-1/availability"
    assert fake.calls[0]["params"] == {"date": "2024-11-25"}
    assert [slot.available for slot in slots] == [True, False]
    assert slots[0].start == pendulum.parse("2024-11-25 14:00", tz="UTC")


def test_admin_token_header(transport):
    fake = transport(FakeResponse(payload=[]))
    client = BookingApiClient("http://localhost:8000", admin_token="secret")

    client.list_bookings("court-1", start=pendulum.datetime(2024, 11, 25, tz="UTC"))

    assert fake.calls[0]["headers"]["X-Admin-Token"] == "secret"
    assert fake.calls[0]["params"] == {"startDate": "2024-11-25T00:00:00Z"}


def test_no_token_header_by_default(transport):
    fake = transport(FakeResponse(payload=[]))

    BookingApiClient("http://localhost:8000").list_venues()

    assert "X-Admin-Token" not in fake.calls[0]["headers"]


def test_create_booking_payload(transport):
    fake = transport(
        FakeResponse(
            status_code=201,
            payload={
                "id": "b-1",
                "venue_id": "court-1",
                "customer_name": "Jane Doe",
                "customer_email": "jane@example.com",
                "start_time": "2024-11-25T15:00:00Z",
                "end_time": "2024-11-25T16:00:00Z",
                "status": "pending",
            },
        )
    )
    client = BookingApiClient("http://localhost:8000")

    booking = client.create_booking(
        "court-1",
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        start_time=pendulum.parse("2024-11-25 10:00", tz="America/New_York"),
        end_time=pendulum.parse("2024-11-25 11:00", tz="America/New_York"),
    )

    sent = fake.calls[0]["json"]
    assert fake.calls[0]["method"] == "POST"
    assert sent["start_time"] == "2024-11-25T10:00:00-05:00"
    assert sent["status"] == "pending"
    assert booking.id == "b-1"


def test_update_status(transport):
    fake = transport(FakeResponse(payload={"success": True}))

    BookingApiClient("http://localhost:8000").update_booking_status(
        "court-1", "b-1", BookingStatus.CANCELLED
    )

    assert fake.calls[0]["method"] == "PUT"
    assert fake.calls[0]["json"] == {"status": "cancelled", "admin_notes": None}


def test_stats(transport):
    fake = transport(FakeResponse(payload={"total": 4, "pending": 1, "confirmed": 3}))

    stats = BookingApiClient("http://localhost:8000").booking_stats("court-1")

    assert fake.calls[0]["params"] == {"stats": "true"}
    assert stats.total == 4
    assert stats.cancelled == 0


def test_error_message_from_server(transport):
    transport(FakeResponse(status_code=404, payload={"error": "Venue not found: court-9"}))

    with pytest.raises(ApiClientError, match="Venue not found: court-9"):
        BookingApiClient("http://localhost:8000").get_venue("court-9")


def test_error_without_json_body(transport):
    transport(FakeResponse(status_code=502, text="Bad Gateway"))

    with pytest.raises(ApiClientError, match="502: Bad Gateway"):
        BookingApiClient("http://localhost:8000").check_health()


def test_connection_error(transport):
    transport(requests.exceptions.ConnectionError("refused"))

    with pytest.raises(ApiClientError, match="failed"):
        BookingApiClient("http://localhost:8000").check_health()
