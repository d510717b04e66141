"""Cached access to the configured database."""

from __future__ import annotations

from functools import cache

from harvest_backend.database.service import DatabaseService
from harvest_backend.settings import BackendSettings, get_settings


@cache
def _build_database_service(database_url: str) -> DatabaseService:
    """Create a cached :class:`DatabaseService` for the given connection string."""
    return DatabaseService(database_url)


def get_database(settings: BackendSettings | None = None) -> DatabaseService:
    """Return the cached database service instance."""
    config = settings or get_settings()
    return _build_database_service(config.database_url)


__all__ = ["get_database"]
