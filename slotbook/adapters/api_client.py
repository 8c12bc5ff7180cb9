"""
HTTP client for a remote slotbook API server.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import requests

from ..domain.exceptions import ApiClientError
from ..domain.models import (
    Booking,
    BookingStats,
    BookingStatus,
    ResolvedSlot,
    Venue,
    ensure_aware,
)


class BookingApiClient:
    """
    Client for the slotbook REST API.

    Mirrors the read and write calls of ``BookingService`` that the CLI uses,
    so commands can run against a local store or a remote server.
    """

    ADMIN_TOKEN_HEADER = "X-Admin-Token"

    def __init__(self, base_url: str, admin_token: Optional[str] = None, timeout: int = 30):
        """
        Initialize the API client.

        Args:
            base_url: Server root, e.g. ``http://localhost:8000``
            admin_token: Operator token for admin endpoints
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        if admin_token:
            self.headers[self.ADMIN_TOKEN_HEADER] = admin_token

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"

        try:
            response = requests.request(
                method,
                url,
                headers=self.headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as e:
            raise ApiClientError(f"Request to {url} failed: {e}") from e

        if not response.ok:
            raise ApiClientError(
                f"{method} {path} returned {response.status_code}: {self._error_message(response)}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ApiClientError(f"Invalid JSON from {url}: {e}") from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text
        if isinstance(payload, dict) and "error" in payload:
            return str(payload["error"])
        return str(payload)

    def list_venues(self) -> List[Venue]:
        return [Venue.from_dict(item) for item in self._request("GET", "/api/venues")]

    def get_venue(self, venue_id: str) -> Venue:
        return Venue.from_dict(self._request("GET", f"/api/venues/{venue_id}"))

    def available_slots(self, venue_id: str, target_date: date) -> List[ResolvedSlot]:
        data = self._request(
            "GET",
            f"/api/venues/{venue_id}/availability",
            params={"date": target_date.strftime("%Y-%m-%d")},
        )
        return [ResolvedSlot.from_dict(item) for item in data]

    def create_booking(
        self,
        venue_id: str,
        *,
        customer_name: str,
        customer_email: str,
        start_time: datetime,
        end_time: datetime,
        customer_phone: Optional[str] = None,
        notes: Optional[str] = None,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> Booking:
        payload: Dict[str, Any] = {
            "customer_name": customer_name,
            "customer_email": customer_email,
            "customer_phone": customer_phone,
            "start_time": ensure_aware(start_time).to_iso8601_string(),
            "end_time": ensure_aware(end_time).to_iso8601_string(),
            "notes": notes,
            "status": BookingStatus(status).value,
        }
        data = self._request("POST", f"/api/venues/{venue_id}/bookings", json=payload)
        return Booking.from_dict(data)

    def list_bookings(
        self,
        venue_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        params: Dict[str, str] = {}
        if start is not None:
            params["startDate"] = ensure_aware(start).to_iso8601_string()
        if end is not None:
            params["endDate"] = ensure_aware(end).to_iso8601_string()

        data = self._request("GET", f"/api/venues/{venue_id}/bookings", params=params)
        return [Booking.from_dict(item) for item in data]

    def update_booking_status(
        self,
        venue_id: str,
        booking_id: str,
        status: BookingStatus,
        admin_notes: Optional[str] = None,
    ) -> None:
        self._request(
            "PUT",
            f"/api/venues/{venue_id}/bookings/{booking_id}",
            json={"status": BookingStatus(status).value, "admin_notes": admin_notes},
        )

    def booking_stats(self, venue_id: str) -> BookingStats:
        data = self._request(
            "GET",
            f"/api/venues/{venue_id}/bookings",
            params={"stats": "true"},
        )
        return BookingStats.from_dict(data)

    def check_health(self) -> Dict[str, Any]:
        """Fetch the server health document."""
        return self._request("GET", "/health")
