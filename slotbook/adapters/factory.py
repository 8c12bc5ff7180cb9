"""
Build the configured booking store.
"""

from typing import Union

from ..config import StorageConfig
from .json_store import JsonBookingStore
from .sql_store import SqlBookingStore

BookingStore = Union[SqlBookingStore, JsonBookingStore]


def build_store(config: StorageConfig) -> BookingStore:
    """Create an unopened store for the configured backend."""
    if config.backend == "json":
        return JsonBookingStore(config.json_path, seed_demo=config.seed_demo)

    return SqlBookingStore(
        config.database_url,
        seed_demo=config.seed_demo,
        echo=config.echo_sql,
    )
