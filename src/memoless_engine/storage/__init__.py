from loguru import logger

from .base import RegistrationRecord, RegistrationStatus, RegistrationStore, StoreStatus
from .disabled import DisabledRegistrationStore
from .sqlite import SqliteRegistrationStore, sqlite_path


def create_store(database_url: str) -> RegistrationStore:
    """Pick the backend from the URL: empty -> disabled, sqlite: -> embedded, else PostgreSQL."""
    if not database_url:
        logger.info("[Store] DATABASE_URL not set, persistence disabled")
        return DisabledRegistrationStore()
    if database_url.startswith("sqlite:"):
        return SqliteRegistrationStore(sqlite_path(database_url))
    from .postgres import PostgresRegistrationStore

    return PostgresRegistrationStore(database_url)


__all__ = [
    "RegistrationRecord",
    "RegistrationStatus",
    "RegistrationStore",
    "StoreStatus",
    "DisabledRegistrationStore",
    "SqliteRegistrationStore",
    "create_store",
]
