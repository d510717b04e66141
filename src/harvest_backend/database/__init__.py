"""Database connectivity helpers and the SQL player store."""

from harvest_backend.database.base import BaseSchema
from harvest_backend.database.dependencies import get_database
from harvest_backend.database.repositories import PlayerRepository
from harvest_backend.database.schemas import PlayerSchema
from harvest_backend.database.service import DatabaseService
from harvest_backend.database.store import SqlPlayerStore

__all__ = [
    "BaseSchema",
    "DatabaseService",
    "PlayerRepository",
    "PlayerSchema",
    "SqlPlayerStore",
    "get_database",
]
