"""
Adapters layer - Storage backends and the remote API client.
"""

from .api_client import BookingApiClient
from .factory import build_store
from .json_store import JsonBookingStore
from .sql_store import SqlBookingStore

__all__ = ["BookingApiClient", "JsonBookingStore", "SqlBookingStore", "build_store"]
